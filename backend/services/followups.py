"""
Follow-up service: reminders attached to seeds.

A follow-up's due time and message are replayed from its transactions:
creation sets them, edits replace them, snoozes push the due time back,
and a dismissal ends the follow-up for good.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any
from uuid import uuid4

from backend.models.followup import CreateFollowupRequest, DueFollowup, EditFollowupRequest, Followup
from backend.services.errors import FollowupDismissed, FollowupNotFound, InvalidInput, SeedNotFound, require_valid
from engine.kernel.reducer import group_by_entity, reduce_followup
from engine.kernel.store import EntityDirectory, TransactionStore
from engine.kernel.types import (
    DISMISSAL_TYPES,
    FOLLOWUP_TRIGGERS,
    SNOOZE_METHODS,
    EntityFamily,
    format_timestamp,
    parse_timestamp,
    utc_now,
)

logger = logging.getLogger(__name__)


class FollowupService:
    """Follow-up operations over a transaction store and an entity directory."""

    def __init__(
        self,
        store: TransactionStore,
        directory: EntityDirectory,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.directory = directory
        self.clock = clock

    # -- reads -------------------------------------------------------------

    async def get_by_id(self, followup_id: str) -> Followup | None:
        """Replay one follow-up. None when it does not exist or has no transactions."""
        logger.debug("followups: get_by_id %s", followup_id)
        seed_id = await self.directory.get_followup_seed(followup_id)
        if seed_id is None:
            return None
        transactions = await self.store.list_by_entity(EntityFamily.FOLLOWUP, followup_id)
        if not transactions:
            return None
        return Followup.from_state(followup_id, seed_id, reduce_followup(transactions, logger=logger))

    async def get_by_seed_id(self, seed_id: str) -> list[Followup]:
        """Every follow-up on a seed, oldest first, fetched in one batched query."""
        logger.debug("followups: get_by_seed_id %s", seed_id)
        parents = await self.directory.list_followups_for_seeds([seed_id])
        if not parents:
            return []
        followups = await self._replay_all(parents)
        followups.sort(key=lambda f: f.created_at)
        return followups

    async def get_due_followups(self, user_id: str) -> list[DueFollowup]:
        """
        Follow-ups across all of a user's seeds that are due and not dismissed.

        Seeds, then follow-ups, then one batched transaction fetch. Returns
        early, with no further lookups, when a step comes back empty.

        Returns:
            Notification records, earliest due first
        """
        seed_ids = await self.directory.list_seed_ids(user_id)
        if not seed_ids:
            return []
        parents = await self.directory.list_followups_for_seeds(seed_ids)
        if not parents:
            return []

        now = self.clock()
        due = [
            DueFollowup(
                followup_id=f.id,
                seed_id=f.seed_id,
                user_id=user_id,
                due_time=f.due_time,
                message=f.message,
            )
            for f in await self._replay_all(parents)
            if not f.dismissed and f.due_time <= now
        ]
        due.sort(key=lambda d: d.due_time)
        logger.debug("followups: %d due for user %s", len(due), user_id)
        return due

    # -- writes ------------------------------------------------------------

    async def create(
        self,
        seed_id: str,
        req: CreateFollowupRequest,
        trigger: str = "manual",
        *,
        automation_id: str | None = None,
    ) -> Followup:
        """
        Schedule a follow-up on a seed.

        Appends the follow-up's creation transaction, then an add_followup
        transaction on the seed. The two appends are sequential, not atomic:
        if the seed-side append fails the follow-up already exists and stays
        readable, and the error is re-raised.

        Args:
            seed_id: Parent seed
            req: Due time and message
            trigger: "manual" or "automatic"
            automation_id: Set when an automation scheduled the follow-up

        Returns:
            The new follow-up
        """
        message = req.message.strip() if isinstance(req.message, str) else ""
        if not message:
            logger.warning("followups: create rejected for seed %s, blank message", seed_id)
            raise InvalidInput("Message is required")
        if req.due_time is None:
            raise InvalidInput("Due time is required")
        if trigger not in FOLLOWUP_TRIGGERS:
            raise InvalidInput(f"Invalid trigger: {trigger}")
        if await self.directory.get_seed_owner(seed_id) is None:
            logger.warning("followups: create rejected, seed %s not found", seed_id)
            raise SeedNotFound()

        creation = {
            "trigger": trigger,
            "initial_time": format_timestamp(parse_timestamp(req.due_time)),
            "initial_message": message,
        }
        require_valid(EntityFamily.FOLLOWUP, "creation", creation)

        followup_id = str(uuid4())
        reference = {"followup_id": followup_id}
        require_valid(EntityFamily.SEED, "add_followup", reference)
        await self.directory.register_followup(followup_id, seed_id)
        await self._append(followup_id, "creation", creation, automation_id=automation_id)

        try:
            await self.store.append(
                EntityFamily.SEED,
                seed_id,
                "add_followup",
                reference,
                created_at=self.clock(),
                automation_id=automation_id,
            )
        except Exception:
            logger.exception("followups: add_followup on seed %s failed for followup %s", seed_id, followup_id)
            raise

        followup = await self._load(followup_id)
        logger.info("followups: created followup %s on seed %s", followup_id, seed_id)
        return followup

    async def edit(self, followup_id: str, req: EditFollowupRequest) -> Followup:
        """
        Change the due time and/or message.

        The edit payload always carries new_time and new_message; old_time
        and old_message appear only for values that actually change.
        """
        current = await self._require_open(followup_id, "Cannot edit dismissed followup")

        new_time = parse_timestamp(req.due_time) if req.due_time is not None else current.due_time
        new_message = req.message.strip() if req.message and req.message.strip() else current.message

        payload: dict[str, Any] = {
            "new_time": format_timestamp(new_time),
            "new_message": new_message,
        }
        if new_time != current.due_time:
            payload["old_time"] = format_timestamp(current.due_time)
        if new_message != current.message:
            payload["old_message"] = current.message

        await self._append(followup_id, "edit", payload)
        logger.info("followups: edited followup %s", followup_id)
        return await self._load(followup_id)

    async def snooze(self, followup_id: str, duration_minutes: int, method: str = "manual") -> Followup:
        """Push the due time back by duration_minutes from its current value."""
        if isinstance(duration_minutes, bool) or not isinstance(duration_minutes, int) or duration_minutes <= 0:
            raise InvalidInput("Duration must be a positive number of minutes")
        if method not in SNOOZE_METHODS:
            raise InvalidInput(f"Invalid snooze method: {method}")

        await self._require_open(followup_id, "Cannot snooze dismissed followup")

        now = self.clock()
        await self._append(
            followup_id,
            "snooze",
            {
                "snoozed_at": format_timestamp(now),
                "duration_minutes": duration_minutes,
                "method": method,
            },
            created_at=now,
        )
        logger.info("followups: snoozed followup %s by %d minutes (%s)", followup_id, duration_minutes, method)
        return await self._load(followup_id)

    async def dismiss(self, followup_id: str, type: str = "followup") -> Followup:
        """Dismiss a follow-up. Dismissal is terminal."""
        if type not in DISMISSAL_TYPES:
            raise InvalidInput(f"Invalid dismissal type: {type}")

        await self._require_open(followup_id, "Followup already dismissed")

        now = self.clock()
        await self._append(
            followup_id,
            "dismissal",
            {"dismissed_at": format_timestamp(now), "type": type},
            created_at=now,
        )
        logger.info("followups: dismissed followup %s (%s)", followup_id, type)
        return await self._load(followup_id)

    # -- helpers -----------------------------------------------------------

    async def _append(
        self,
        followup_id: str,
        type: str,
        payload: dict[str, Any],
        *,
        created_at: datetime | None = None,
        automation_id: str | None = None,
    ) -> None:
        require_valid(EntityFamily.FOLLOWUP, type, payload)
        await self.store.append(
            EntityFamily.FOLLOWUP,
            followup_id,
            type,
            payload,
            created_at=created_at or self.clock(),
            automation_id=automation_id,
        )

    async def _require_open(self, followup_id: str, dismissed_message: str) -> Followup:
        current = await self.get_by_id(followup_id)
        if current is None:
            logger.warning("followups: followup %s not found", followup_id)
            raise FollowupNotFound()
        if current.dismissed:
            logger.warning("followups: followup %s is dismissed: %s", followup_id, dismissed_message)
            raise FollowupDismissed(dismissed_message)
        return current

    async def _load(self, followup_id: str) -> Followup:
        followup = await self.get_by_id(followup_id)
        if followup is None:
            raise FollowupNotFound()
        return followup

    async def _replay_all(self, parents: dict[str, str]) -> list[Followup]:
        """
        Replay many follow-ups from one batched fetch.

        A registered follow-up with no transactions yet (a create that has not
        appended, or failed to append, its creation) is left out, as get_by_id
        reads it as missing.
        """
        histories = group_by_entity(await self.store.list_by_entities(EntityFamily.FOLLOWUP, list(parents)))
        for followup_id in parents.keys() - histories.keys():
            logger.warning("followups: followup %s has no transactions yet, skipping", followup_id)
        return [
            Followup.from_state(followup_id, parents[followup_id], reduce_followup(transactions, logger=logger))
            for followup_id, transactions in histories.items()
        ]
