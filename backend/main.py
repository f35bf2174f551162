"""
Memoriae FastAPI application.

Entry point for the API server. The lifespan builds the repositories,
the entity services and the single follow-up scheduler.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request

from backend import db
from backend.config import settings
from backend.repos import DirectoryRepo, TransactionRepo
from backend.services.followup_scheduler import FollowupScheduler
from backend.services.followups import FollowupService
from backend.services.seeds import SeedService
from backend.services.tags import TagService

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI application.

    Handles startup and shutdown logic:
    - Initialize database pool
    - Build services and the follow-up scheduler
    - Stop the scheduler, then close the pool on shutdown
    """
    # Startup
    await db.init_pool()
    logger.info("Database pool initialized")

    store = TransactionRepo()
    directory = DirectoryRepo()
    tags = TagService(store, directory)
    app.state.tags = tags
    app.state.seeds = SeedService(store, directory, tags=tags)
    app.state.followups = FollowupService(store, directory)

    scheduler = FollowupScheduler(
        app.state.followups,
        directory,
        interval_seconds=settings.FOLLOWUP_CHECK_INTERVAL_SECONDS,
        auto_snooze_after_minutes=settings.FOLLOWUP_AUTO_SNOOZE_AFTER_MINUTES,
        auto_snooze_minutes=settings.FOLLOWUP_AUTO_SNOOZE_MINUTES,
        recent_snooze_minutes=settings.FOLLOWUP_RECENT_SNOOZE_MINUTES,
        stop_timeout_seconds=settings.SCHEDULER_STOP_TIMEOUT_SECONDS,
    )
    app.state.followup_scheduler = scheduler
    if settings.SCHEDULER_ENABLED:
        scheduler.start()
    else:
        logger.info("Follow-up scheduler disabled")

    yield

    # Shutdown
    await scheduler.stop()

    await db.close_pool()
    logger.info("Database pool closed")


def get_followup_scheduler(request: Request) -> FollowupScheduler:
    """Dependency: the process's one follow-up scheduler."""
    return request.app.state.followup_scheduler


app = FastAPI(
    title="Memoriae",
    docs_url=None,
    redoc_url=None,
    lifespan=lifespan,
)


@app.get("/health")
async def health(scheduler: FollowupScheduler = Depends(get_followup_scheduler)):
    """Health check endpoint for uptime monitoring."""
    return {
        "status": "ok",
        "scheduler": "running" if scheduler.is_active() else "stopped",
    }
