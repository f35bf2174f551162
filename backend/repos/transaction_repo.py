"""Repository for the append-only transaction tables."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Any
from uuid import uuid4

import asyncpg

from backend.db import system_conn
from engine.kernel.store import TransactionStore
from engine.kernel.types import EntityFamily, Transaction

# (table, entity id column) per family. Fixed strings, never user input.
_TABLES: dict[EntityFamily, tuple[str, str]] = {
    EntityFamily.SEED: ("seed_transactions", "seed_id"),
    EntityFamily.TAG: ("tag_transactions", "tag_id"),
    EntityFamily.FOLLOWUP: ("followup_transactions", "followup_id"),
}


def _row_to_transaction(row: asyncpg.Record, id_column: str) -> Transaction:
    """Convert a database row to a kernel Transaction."""
    return Transaction(
        id=str(row["id"]),
        entity_id=str(row[id_column]),
        type=row["transaction_type"],
        payload=row["transaction_data"],
        created_at=row["created_at"],
        automation_id=str(row["automation_id"]) if row["automation_id"] is not None else None,
    )


class TransactionRepo(TransactionStore):
    """All transaction-table database operations."""

    async def append(
        self,
        family: EntityFamily,
        entity_id: str,
        type: str,
        payload: dict[str, Any],
        *,
        created_at: datetime,
        automation_id: str | None = None,
    ) -> Transaction:
        """
        Insert one transaction row.

        Args:
            family: Which transaction table to write
            entity_id: Owning seed / tag / follow-up id
            type: Transaction type
            payload: JSON payload for the type
            created_at: Replay ordering key
            automation_id: Automation that produced the change, if any

        Returns:
            The stored Transaction
        """
        table, id_column = _TABLES[family]
        async with system_conn() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO {table} (id, {id_column}, transaction_type, transaction_data, created_at, automation_id)
                VALUES ($1, $2, $3, $4, $5, $6)
                RETURNING *
                """,  # noqa: S608
                str(uuid4()),
                entity_id,
                type,
                payload,
                created_at,
                automation_id,
            )
            return _row_to_transaction(row, id_column)

    async def list_by_entity(self, family: EntityFamily, entity_id: str) -> list[Transaction]:
        """
        Get the full history of one entity.

        Returns:
            Transactions ordered by created_at ASC
        """
        table, id_column = _TABLES[family]
        async with system_conn() as conn:
            rows = await conn.fetch(
                f"SELECT * FROM {table} WHERE {id_column} = $1 ORDER BY created_at ASC",  # noqa: S608
                entity_id,
            )
            return [_row_to_transaction(row, id_column) for row in rows]

    async def list_by_entities(self, family: EntityFamily, entity_ids: Iterable[str]) -> list[Transaction]:
        """
        Get the histories of many entities in one query.

        Returns:
            Transactions ordered by created_at ASC, all entities interleaved
        """
        ids = list(entity_ids)
        if not ids:
            return []
        table, id_column = _TABLES[family]
        async with system_conn() as conn:
            rows = await conn.fetch(
                f"SELECT * FROM {table} WHERE {id_column} = ANY($1::uuid[]) ORDER BY created_at ASC",  # noqa: S608
                ids,
            )
            return [_row_to_transaction(row, id_column) for row in rows]

    async def list_by_automation(self, family: EntityFamily, automation_id: str) -> list[Transaction]:
        """Get every transaction written by one automation, oldest first."""
        table, id_column = _TABLES[family]
        async with system_conn() as conn:
            rows = await conn.fetch(
                f"SELECT * FROM {table} WHERE automation_id = $1 ORDER BY created_at ASC",  # noqa: S608
                automation_id,
            )
            return [_row_to_transaction(row, id_column) for row in rows]

    async def get_transaction(self, family: EntityFamily, transaction_id: str) -> Transaction | None:
        """Get one transaction by id, or None."""
        table, id_column = _TABLES[family]
        async with system_conn() as conn:
            row = await conn.fetchrow(
                f"SELECT * FROM {table} WHERE id = $1",  # noqa: S608
                transaction_id,
            )
            return _row_to_transaction(row, id_column) if row else None
