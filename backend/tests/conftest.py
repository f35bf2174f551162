"""
Pytest configuration and fixtures for Memoriae backend tests.

Services run against the in-memory store with a controllable clock.
Tests that need Postgres skip themselves when DATABASE_URL is not set.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from backend.services.followups import FollowupService
from backend.services.seeds import SeedService
from backend.services.tags import TagService
from engine.kernel.store import MemoryStore


class FakeClock:
    """
    Deterministic clock. Each call returns the current time and then moves
    it forward one second, so consecutive appends never share a timestamp.
    """

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + timedelta(seconds=1)
        return current

    def set(self, value: datetime) -> None:
        self.now = value

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 1, 9, 0, tzinfo=UTC))


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def tags(store, clock):
    return TagService(store, store, clock)


@pytest.fixture
def seeds(store, clock, tags):
    return SeedService(store, store, clock, tags=tags)


@pytest.fixture
def followups(store, clock):
    return FollowupService(store, store, clock)
