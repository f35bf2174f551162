"""
Follow-up scheduler: periodically finds due follow-ups and auto-snoozes stale ones.

A follow-up that has sat 30+ minutes past due without being handled is
snoozed by 90 minutes with method "automatic", unless its latest
transaction is itself a snooze from the last few minutes.

States:
    STOPPED -> RUNNING (start) -> STOPPING (stop, awaiting in-flight cycle) -> STOPPED

One instance per process, built in the app lifespan.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from backend.models.followup import Followup
from backend.services.followups import FollowupService
from engine.kernel.store import EntityDirectory
from engine.kernel.types import utc_now

logger = logging.getLogger(__name__)


class SchedulerState(enum.StrEnum):
    STOPPED = "stopped"
    RUNNING = "running"
    STOPPING = "stopping"


class FollowupScheduler:
    """
    Background timer for due follow-ups.

    start() runs one check cycle immediately, then one per interval on a
    single timer task. A tick that lands while a cycle is still in flight is
    skipped, so two cycles never overlap.
    """

    def __init__(
        self,
        followups: FollowupService,
        directory: EntityDirectory,
        *,
        interval_seconds: float = 60.0,
        auto_snooze_after_minutes: int = 30,
        auto_snooze_minutes: int = 90,
        recent_snooze_minutes: int = 5,
        stop_timeout_seconds: float = 5.0,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.followups = followups
        self.directory = directory
        self.interval_seconds = interval_seconds
        self.auto_snooze_after = timedelta(minutes=auto_snooze_after_minutes)
        self.auto_snooze_minutes = auto_snooze_minutes
        self.recent_snooze = timedelta(minutes=recent_snooze_minutes)
        self.stop_timeout_seconds = stop_timeout_seconds
        self.clock = clock

        self.state = SchedulerState.STOPPED
        self.last_error: Exception | None = None
        self._timer: asyncio.Task | None = None
        self._cycle: asyncio.Task | None = None
        self._processing = False

    @property
    def timer(self) -> asyncio.Task | None:
        """The recurring timer task while running, else None."""
        return self._timer

    # -- lifecycle ---------------------------------------------------------

    def start(self) -> None:
        """
        Start checking. Calling start() while running does nothing.
        Must be called from inside a running event loop.
        """
        if self.state is SchedulerState.RUNNING:
            logger.debug("followup_scheduler: already running")
            return

        logger.info("followup_scheduler: starting (interval: %ss)", self.interval_seconds)
        self.state = SchedulerState.RUNNING
        self._launch_cycle()
        self._timer = asyncio.create_task(self._run_timer())

    async def stop(self) -> None:
        """
        Stop checking and wait for an in-flight cycle, at most
        stop_timeout_seconds. Returns immediately when not running.

        A start() that lands while this is waiting wins: the scheduler
        stays RUNNING on the timer that start() created.
        """
        if self.state is not SchedulerState.RUNNING:
            return

        logger.info("followup_scheduler: stopping")
        self.state = SchedulerState.STOPPING

        timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()
            try:
                await timer
            except asyncio.CancelledError:
                pass

        cycle = self._cycle
        if cycle is not None and not cycle.done():
            try:
                # Timeout abandons the wait, not the cycle.
                await asyncio.wait_for(asyncio.shield(cycle), timeout=self.stop_timeout_seconds)
            except TimeoutError:
                logger.warning("followup_scheduler: stopped (timeout waiting for in-flight check)")

        if self.state is SchedulerState.RUNNING:
            # start() ran while we were waiting; its timer is the live one.
            logger.info("followup_scheduler: restarted while stopping, staying up")
            return

        self.state = SchedulerState.STOPPED
        logger.info("followup_scheduler: stopped")

    def is_active(self) -> bool:
        """True only while RUNNING; STOPPING counts as inactive."""
        return self.state is SchedulerState.RUNNING

    # -- check cycle -------------------------------------------------------

    async def check_due_followups(self) -> None:
        """
        One check cycle over every user.

        A failure for one user is logged and the cycle moves on to the next.
        A failure listing users propagates to the caller.
        """
        if self._processing:
            logger.debug("followup_scheduler: previous check still in progress, skipping")
            return

        self._processing = True
        try:
            user_ids = await self.directory.list_user_ids()
            if not user_ids:
                return

            now = self.clock()
            for user_id in user_ids:
                try:
                    await self._check_user(user_id, now)
                except Exception:
                    logger.exception("followup_scheduler: error checking followups for user %s", user_id)
        finally:
            self._processing = False

    async def _check_user(self, user_id: str, now: datetime) -> None:
        stale_before = now - self.auto_snooze_after
        for due in await self.followups.get_due_followups(user_id):
            if due.due_time > stale_before:
                continue

            followup = await self.followups.get_by_id(due.followup_id)
            if followup is None or followup.dismissed:
                continue
            if not self._should_auto_snooze(followup, now):
                continue

            await self.followups.snooze(due.followup_id, self.auto_snooze_minutes, "automatic")
            logger.info(
                "followup_scheduler: auto-snoozed followup %s for seed %s (was %d minutes past due)",
                due.followup_id,
                due.seed_id,
                round((now - due.due_time).total_seconds() / 60),
            )

    def _should_auto_snooze(self, followup: Followup, now: datetime) -> bool:
        if not followup.transactions:
            return True
        latest = followup.transactions[-1]
        return latest.transaction_type != "snooze" or now - latest.created_at > self.recent_snooze

    # -- timer -------------------------------------------------------------

    async def _run_timer(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            self._launch_cycle()

    def _launch_cycle(self) -> None:
        if self._cycle is not None and not self._cycle.done():
            logger.debug("followup_scheduler: previous check still in progress, skipping tick")
            return
        self._cycle = asyncio.create_task(self._tick())

    async def _tick(self) -> None:
        try:
            await self.check_due_followups()
        except Exception as e:
            self.last_error = e
            logger.exception("followup_scheduler: check cycle failed")
