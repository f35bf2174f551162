"""
Seed service: capture seeds and evolve them through seed transactions.

Every mutation appends one transaction and returns the freshly replayed
seed. Store errors propagate unchanged.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any
from uuid import uuid4

from backend.models.seed import CategoryAssignment, CreateSeedRequest, Seed
from backend.models.tag import CreateTagRequest, Tag
from backend.services.errors import InvalidInput, SeedNotFound, TagNotFound, require_valid
from backend.services.tags import TagService
from engine.kernel.reducer import group_by_entity, reduce_seed, sort_transactions
from engine.kernel.store import EntityDirectory, TransactionStore
from engine.kernel.types import EntityFamily, Transaction, utc_now

logger = logging.getLogger(__name__)


class SeedService:
    """Seed operations over a transaction store and an entity directory."""

    def __init__(
        self,
        store: TransactionStore,
        directory: EntityDirectory,
        clock: Callable[[], datetime] = utc_now,
        *,
        tags: TagService | None = None,
    ) -> None:
        self.store = store
        self.directory = directory
        self.clock = clock
        self.tags = tags or TagService(store, directory, clock)

    # -- reads -------------------------------------------------------------

    async def get_by_id(self, seed_id: str, *, user_id: str | None = None) -> Seed | None:
        """
        Replay one seed.

        Args:
            seed_id: Seed to load
            user_id: When given, seeds owned by anyone else read as missing

        Returns:
            Seed, or None if it does not exist or has no transactions
        """
        logger.debug("seeds: get_by_id %s", seed_id)
        owner = await self.directory.get_seed_owner(seed_id)
        if owner is None or (user_id is not None and owner != user_id):
            return None
        transactions = await self.store.list_by_entity(EntityFamily.SEED, seed_id)
        if not transactions:
            return None
        return Seed.from_state(seed_id, owner, reduce_seed(transactions, logger=logger))

    async def get_by_user(self, user_id: str) -> list[Seed]:
        """All of a user's seeds, newest first, fetched in one batched query."""
        logger.debug("seeds: get_by_user %s", user_id)
        seed_ids = await self.directory.list_seed_ids(user_id)
        if not seed_ids:
            return []
        histories = group_by_entity(await self.store.list_by_entities(EntityFamily.SEED, seed_ids))
        seeds = [
            Seed.from_state(seed_id, user_id, reduce_seed(histories[seed_id], logger=logger))
            for seed_id in seed_ids
            if seed_id in histories
        ]
        seeds.sort(key=lambda s: s.created_at, reverse=True)
        return seeds

    async def get_timeline(self, seed_id: str) -> list[Transaction]:
        """A seed's full history in replay order, for audit display."""
        if await self.directory.get_seed_owner(seed_id) is None:
            raise SeedNotFound()
        return sort_transactions(await self.store.list_by_entity(EntityFamily.SEED, seed_id))

    # -- writes ------------------------------------------------------------

    async def create(self, user_id: str, req: CreateSeedRequest) -> Seed:
        """
        Capture a new seed.

        Content is trimmed; blank content is rejected.
        """
        content = req.content.strip() if isinstance(req.content, str) else ""
        if not content:
            logger.warning("seeds: create rejected for user %s, blank content", user_id)
            raise InvalidInput("Content is required and must be a non-empty string")

        payload = {"content": content}
        require_valid(EntityFamily.SEED, "create_seed", payload)

        seed_id = str(uuid4())
        await self.directory.register_seed(seed_id, user_id)
        await self.store.append(EntityFamily.SEED, seed_id, "create_seed", payload, created_at=self.clock())
        seed = await self._load(seed_id)
        logger.info("seeds: created seed %s for user %s", seed_id, user_id)
        return seed

    async def edit_content(self, seed_id: str, content: str) -> Seed:
        """Replace a seed's content. Empty content is allowed."""
        if not isinstance(content, str):
            raise InvalidInput("Content must be a string")
        return await self._append(seed_id, "edit_content", {"content": content})

    async def add_tag(self, seed_id: str, tag_id: str, *, automation_id: str | None = None) -> Seed:
        """Attach a tag, recording its current name. Attaching twice is harmless."""
        tag = await self.tags.get_by_id(tag_id)
        if tag is None:
            logger.warning("seeds: add_tag rejected for seed %s, tag %s not found", seed_id, tag_id)
            raise TagNotFound()
        return await self._append(
            seed_id,
            "add_tag",
            {"tag_id": tag.id, "tag_name": tag.name},
            automation_id=automation_id,
        )

    async def tag_by_name(
        self,
        seed_id: str,
        name: str,
        *,
        color: str | None = None,
        automation_id: str | None = None,
    ) -> Seed:
        """
        Attach the tag with this exact name, creating it first if needed.
        The tag creation and the seed append are two separate writes.
        """
        await self._require_seed(seed_id)
        tag: Tag | None = await self.tags.get_by_name(name.strip())
        if tag is None:
            tag = await self.tags.create(CreateTagRequest(name=name, color=color), automation_id=automation_id)
        return await self.add_tag(seed_id, tag.id, automation_id=automation_id)

    async def remove_tag(self, seed_id: str, tag_id: str) -> Seed:
        seed = await self._require_seed(seed_id)
        payload: dict[str, Any] = {"tag_id": tag_id}
        attached = next((t for t in seed.tags if t.id == tag_id), None)
        if attached is not None:
            payload["tag_name"] = attached.name
        return await self._append(seed_id, "remove_tag", payload)

    async def set_category(self, seed_id: str, category: CategoryAssignment) -> Seed:
        """Put the seed in a category, replacing any previous one."""
        return await self._append(
            seed_id,
            "set_category",
            {
                "category_id": category.id,
                "category_name": category.name,
                "category_path": category.path,
            },
        )

    async def remove_category(self, seed_id: str, category_id: str) -> Seed:
        return await self._append(seed_id, "remove_category", {"category_id": category_id})

    async def add_sprout(self, seed_id: str, sprout_id: str, *, automation_id: str | None = None) -> Seed:
        return await self._append(seed_id, "add_sprout", {"sprout_id": sprout_id}, automation_id=automation_id)

    async def add_followup_reference(self, seed_id: str, followup_id: str) -> Seed:
        return await self._append(seed_id, "add_followup", {"followup_id": followup_id})

    # -- helpers -----------------------------------------------------------

    async def _append(
        self,
        seed_id: str,
        type: str,
        payload: dict[str, Any],
        *,
        automation_id: str | None = None,
    ) -> Seed:
        require_valid(EntityFamily.SEED, type, payload)
        await self._require_seed(seed_id)
        await self.store.append(
            EntityFamily.SEED,
            seed_id,
            type,
            payload,
            created_at=self.clock(),
            automation_id=automation_id,
        )
        logger.info("seeds: appended %s to seed %s", type, seed_id)
        return await self._load(seed_id)

    async def _require_seed(self, seed_id: str) -> Seed:
        seed = await self.get_by_id(seed_id)
        if seed is None:
            logger.warning("seeds: seed %s not found", seed_id)
            raise SeedNotFound()
        return seed

    async def _load(self, seed_id: str) -> Seed:
        seed = await self.get_by_id(seed_id)
        if seed is None:
            raise SeedNotFound()
        return seed
