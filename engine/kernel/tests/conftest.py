"""
Engine kernel test configuration.

Kernel tests are pure: no database, no shared event loop. MemoryStore tests
run on pytest-asyncio's function-scoped loop.
"""

from datetime import UTC, datetime

import pytest


@pytest.fixture
def t0() -> datetime:
    """A fixed base time; tests offset from it with timedelta."""
    return datetime(2026, 3, 1, 10, 0, tzinfo=UTC)
