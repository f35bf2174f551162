"""Repository for entity identity rows: users, seeds, tags, follow-ups."""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from backend.db import system_conn
from engine.kernel.store import EntityDirectory


def _is_uuid(value: str) -> bool:
    """Id columns are UUID; anything else cannot match a row."""
    try:
        UUID(str(value))
    except ValueError:
        return False
    return True


class DirectoryRepo(EntityDirectory):
    """
    Identity and ownership lookups.
    These tables carry no displayable state; that lives in the transaction tables.
    """

    async def add_user(self, user_id: str) -> None:
        async with system_conn() as conn:
            await conn.execute(
                "INSERT INTO users (id) VALUES ($1) ON CONFLICT (id) DO NOTHING",
                user_id,
            )

    async def list_user_ids(self) -> list[str]:
        async with system_conn() as conn:
            rows = await conn.fetch("SELECT id FROM users ORDER BY created_at ASC")
            return [str(row["id"]) for row in rows]

    async def register_seed(self, seed_id: str, user_id: str) -> None:
        """Record a seed's owner, adding the user first if this is their first seed."""
        async with system_conn() as conn:
            await conn.execute(
                "INSERT INTO users (id) VALUES ($1) ON CONFLICT (id) DO NOTHING",
                user_id,
            )
            await conn.execute(
                "INSERT INTO seeds (id, user_id) VALUES ($1, $2)",
                seed_id,
                user_id,
            )

    async def list_seed_ids(self, user_id: str) -> list[str]:
        """
        List a user's seeds.

        Returns:
            Seed ids, newest first
        """
        if not _is_uuid(user_id):
            return []
        async with system_conn() as conn:
            rows = await conn.fetch(
                "SELECT id FROM seeds WHERE user_id = $1 ORDER BY created_at DESC",
                user_id,
            )
            return [str(row["id"]) for row in rows]

    async def get_seed_owner(self, seed_id: str) -> str | None:
        if not _is_uuid(seed_id):
            return None
        async with system_conn() as conn:
            owner = await conn.fetchval("SELECT user_id FROM seeds WHERE id = $1", seed_id)
            return str(owner) if owner is not None else None

    async def register_tag(self, tag_id: str) -> None:
        async with system_conn() as conn:
            await conn.execute(
                "INSERT INTO tags (id) VALUES ($1) ON CONFLICT (id) DO NOTHING",
                tag_id,
            )

    async def list_tag_ids(self) -> list[str]:
        async with system_conn() as conn:
            rows = await conn.fetch("SELECT id FROM tags ORDER BY created_at ASC")
            return [str(row["id"]) for row in rows]

    async def register_followup(self, followup_id: str, seed_id: str) -> None:
        async with system_conn() as conn:
            await conn.execute(
                "INSERT INTO followups (id, seed_id) VALUES ($1, $2)",
                followup_id,
                seed_id,
            )

    async def get_followup_seed(self, followup_id: str) -> str | None:
        if not _is_uuid(followup_id):
            return None
        async with system_conn() as conn:
            seed_id = await conn.fetchval("SELECT seed_id FROM followups WHERE id = $1", followup_id)
            return str(seed_id) if seed_id is not None else None

    async def list_followups_for_seeds(self, seed_ids: Iterable[str]) -> dict[str, str]:
        ids = [seed_id for seed_id in seed_ids if _is_uuid(seed_id)]
        if not ids:
            return {}
        async with system_conn() as conn:
            rows = await conn.fetch(
                "SELECT id, seed_id FROM followups WHERE seed_id = ANY($1::uuid[])",
                ids,
            )
            return {str(row["id"]): str(row["seed_id"]) for row in rows}
