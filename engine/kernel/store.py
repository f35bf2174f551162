"""
Memoriae Kernel: Store Protocols

The kernel never talks to a database. It needs two collaborators:

  TransactionStore: append-only transaction log per entity family
  EntityDirectory: which users, seeds, tags and follow-ups exist

Implement with Postgres for production (backend.repos), or in-memory for tests.
"""

from __future__ import annotations

import copy
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from engine.kernel.transactions import make_transaction
from engine.kernel.types import EntityFamily, Transaction

# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------


class TransactionStore:
    """
    Abstract append-only transaction log.
    Transactions are never updated or deleted; corrections are new transactions.
    """

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
        """Persist one transaction and return it with its assigned id."""
        raise NotImplementedError

    async def list_by_entity(self, family: EntityFamily, entity_id: str) -> list[Transaction]:
        """All transactions for one entity, oldest first."""
        raise NotImplementedError

    async def list_by_entities(self, family: EntityFamily, entity_ids: Iterable[str]) -> list[Transaction]:
        """All transactions for a set of entities in one query, oldest first."""
        raise NotImplementedError

    async def list_by_automation(self, family: EntityFamily, automation_id: str) -> list[Transaction]:
        """Transactions produced by one automation run, oldest first."""
        raise NotImplementedError

    async def get_transaction(self, family: EntityFamily, transaction_id: str) -> Transaction | None:
        raise NotImplementedError


class EntityDirectory:
    """
    Abstract listing of entity rows. Holds identity and ownership only;
    all displayable state lives in transactions.
    """

    async def add_user(self, user_id: str) -> None:
        raise NotImplementedError

    async def list_user_ids(self) -> list[str]:
        raise NotImplementedError

    async def register_seed(self, seed_id: str, user_id: str) -> None:
        """Record the seed's owner. An unknown user is added, as by add_user()."""
        raise NotImplementedError

    async def list_seed_ids(self, user_id: str) -> list[str]:
        raise NotImplementedError

    async def get_seed_owner(self, seed_id: str) -> str | None:
        """User id owning the seed, or None if the seed does not exist."""
        raise NotImplementedError

    async def register_tag(self, tag_id: str) -> None:
        raise NotImplementedError

    async def list_tag_ids(self) -> list[str]:
        raise NotImplementedError

    async def register_followup(self, followup_id: str, seed_id: str) -> None:
        raise NotImplementedError

    async def get_followup_seed(self, followup_id: str) -> str | None:
        """Parent seed id, or None if the follow-up does not exist."""
        raise NotImplementedError

    async def list_followups_for_seeds(self, seed_ids: Iterable[str]) -> dict[str, str]:
        """Map of follow-up id to seed id for every follow-up under the given seeds."""
        raise NotImplementedError


# ---------------------------------------------------------------------------
# In-memory implementation
# ---------------------------------------------------------------------------


class MemoryStore(TransactionStore, EntityDirectory):
    """
    In-memory store for testing and local runs.

    Every public call is recorded in `calls` (method name) so tests can
    assert which lookups a service performed.
    """

    def __init__(self) -> None:
        self.transactions: dict[EntityFamily, list[Transaction]] = {family: [] for family in EntityFamily}
        self.users: list[str] = []
        self.seeds: dict[str, str] = {}
        self.tags: list[str] = []
        self.followups: dict[str, str] = {}
        self.calls: list[str] = []

    # -- transactions ------------------------------------------------------

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
        self.calls.append("append")
        transaction = make_transaction(
            entity_id,
            type,
            copy.deepcopy(payload),
            created_at=created_at,
            automation_id=automation_id,
        )
        self.transactions[family].append(transaction)
        return transaction

    def insert(self, family: EntityFamily, transaction: Transaction) -> None:
        """Load a prebuilt transaction as-is (test setup; not recorded in calls)."""
        self.transactions[family].append(transaction)

    async def list_by_entity(self, family: EntityFamily, entity_id: str) -> list[Transaction]:
        self.calls.append("list_by_entity")
        return _oldest_first(t for t in self.transactions[family] if t.entity_id == entity_id)

    async def list_by_entities(self, family: EntityFamily, entity_ids: Iterable[str]) -> list[Transaction]:
        self.calls.append("list_by_entities")
        wanted = set(entity_ids)
        return _oldest_first(t for t in self.transactions[family] if t.entity_id in wanted)

    async def list_by_automation(self, family: EntityFamily, automation_id: str) -> list[Transaction]:
        self.calls.append("list_by_automation")
        return _oldest_first(t for t in self.transactions[family] if t.automation_id == automation_id)

    async def get_transaction(self, family: EntityFamily, transaction_id: str) -> Transaction | None:
        self.calls.append("get_transaction")
        return next((t for t in self.transactions[family] if t.id == transaction_id), None)

    # -- directory ---------------------------------------------------------

    async def add_user(self, user_id: str) -> None:
        self.calls.append("add_user")
        if user_id not in self.users:
            self.users.append(user_id)

    async def list_user_ids(self) -> list[str]:
        self.calls.append("list_user_ids")
        return list(self.users)

    async def register_seed(self, seed_id: str, user_id: str) -> None:
        self.calls.append("register_seed")
        if user_id not in self.users:
            self.users.append(user_id)
        self.seeds[seed_id] = user_id

    async def list_seed_ids(self, user_id: str) -> list[str]:
        self.calls.append("list_seed_ids")
        return [seed_id for seed_id, owner in self.seeds.items() if owner == user_id]

    async def get_seed_owner(self, seed_id: str) -> str | None:
        self.calls.append("get_seed_owner")
        return self.seeds.get(seed_id)

    async def register_tag(self, tag_id: str) -> None:
        self.calls.append("register_tag")
        if tag_id not in self.tags:
            self.tags.append(tag_id)

    async def list_tag_ids(self) -> list[str]:
        self.calls.append("list_tag_ids")
        return list(self.tags)

    async def register_followup(self, followup_id: str, seed_id: str) -> None:
        self.calls.append("register_followup")
        self.followups[followup_id] = seed_id

    async def get_followup_seed(self, followup_id: str) -> str | None:
        self.calls.append("get_followup_seed")
        return self.followups.get(followup_id)

    async def list_followups_for_seeds(self, seed_ids: Iterable[str]) -> dict[str, str]:
        self.calls.append("list_followups_for_seeds")
        wanted = set(seed_ids)
        return {fid: sid for fid, sid in self.followups.items() if sid in wanted}


def _oldest_first(transactions: Iterable[Transaction]) -> list[Transaction]:
    return sorted(transactions, key=lambda t: t.created_at)
