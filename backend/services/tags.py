"""
Tag service: create, rename and recolor tags by appending tag transactions.

Current tag state is never stored; every read replays the tag's history.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any
from uuid import uuid4

from backend.models.tag import CreateTagRequest, Tag
from backend.services.errors import InvalidInput, TagNotFound, require_valid
from engine.kernel.reducer import group_by_entity, reduce_tag
from engine.kernel.store import EntityDirectory, TransactionStore
from engine.kernel.types import EntityFamily, utc_now

logger = logging.getLogger(__name__)


class TagService:
    """Tag operations over a transaction store and an entity directory."""

    def __init__(
        self,
        store: TransactionStore,
        directory: EntityDirectory,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.directory = directory
        self.clock = clock

    async def create(self, req: CreateTagRequest, *, automation_id: str | None = None) -> Tag:
        """
        Create a tag.

        Args:
            req: Name and optional color
            automation_id: Set when an automation created the tag

        Returns:
            The new tag
        """
        name = req.name.strip()
        if not name:
            logger.warning("tags: create rejected, blank name")
            raise InvalidInput("Tag name cannot be empty")

        payload = {"name": name, "color": req.color}
        require_valid(EntityFamily.TAG, "creation", payload)

        tag_id = str(uuid4())
        await self.directory.register_tag(tag_id)
        await self._append(tag_id, "creation", payload, automation_id=automation_id)
        tag = await self._load(tag_id)
        logger.info("tags: created tag %s (%s)", tag_id, name)
        return tag

    async def get_by_id(self, tag_id: str) -> Tag | None:
        """Replay one tag. Returns None when it has no transactions."""
        logger.debug("tags: get_by_id %s", tag_id)
        transactions = await self.store.list_by_entity(EntityFamily.TAG, tag_id)
        if not transactions:
            return None
        return Tag.from_state(tag_id, reduce_tag(transactions, logger=logger))

    async def get_by_name(self, name: str) -> Tag | None:
        """Find a tag by exact (case-sensitive) name."""
        for tag in await self._load_all():
            if tag.name == name:
                return tag
        return None

    async def get_all(self) -> list[Tag]:
        """
        Every tag, sorted by name.
        Tags without a color list with color "" so clients never see null.
        """
        tags = await self._load_all()
        for tag in tags:
            if tag.color is None:
                tag.color = ""
        return sorted(tags, key=lambda t: t.name)

    async def edit(self, tag_id: str, name: str) -> Tag:
        """Rename a tag. Renaming to the current name appends nothing."""
        new_name = name.strip() if isinstance(name, str) else ""
        if not new_name:
            logger.warning("tags: edit rejected for %s, blank name", tag_id)
            raise InvalidInput("Tag name cannot be empty")

        current = await self.get_by_id(tag_id)
        if current is None:
            logger.warning("tags: edit rejected, tag %s not found", tag_id)
            raise TagNotFound()
        if current.name == new_name:
            return current

        await self._append(tag_id, "edit", {"name": new_name})
        logger.info("tags: renamed tag %s to %s", tag_id, new_name)
        return await self._load(tag_id)

    async def set_color(self, tag_id: str, color: str | None) -> Tag:
        """Change or clear a tag's color. Setting the current color appends nothing."""
        current = await self.get_by_id(tag_id)
        if current is None:
            logger.warning("tags: set_color rejected, tag %s not found", tag_id)
            raise TagNotFound()
        if current.color == color:
            return current

        await self._append(tag_id, "set_color", {"color": color})
        logger.info("tags: set color of tag %s to %s", tag_id, color)
        return await self._load(tag_id)

    # -- helpers -----------------------------------------------------------

    async def _append(
        self,
        tag_id: str,
        type: str,
        payload: dict[str, Any],
        *,
        automation_id: str | None = None,
    ) -> None:
        require_valid(EntityFamily.TAG, type, payload)
        await self.store.append(
            EntityFamily.TAG,
            tag_id,
            type,
            payload,
            created_at=self.clock(),
            automation_id=automation_id,
        )

    async def _load(self, tag_id: str) -> Tag:
        tag = await self.get_by_id(tag_id)
        if tag is None:
            raise TagNotFound()
        return tag

    async def _load_all(self) -> list[Tag]:
        tag_ids = await self.directory.list_tag_ids()
        if not tag_ids:
            return []
        histories = group_by_entity(await self.store.list_by_entities(EntityFamily.TAG, tag_ids))
        return [
            Tag.from_state(tag_id, reduce_tag(histories[tag_id], logger=logger))
            for tag_id in tag_ids
            if tag_id in histories
        ]
