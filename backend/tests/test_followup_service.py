"""
Tests for FollowupService.

Covers creation with the seed-side add_followup append, edit deltas,
additive snoozes, terminal dismissal, and get_due_followups.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio

from backend.models.followup import CreateFollowupRequest, EditFollowupRequest
from backend.models.seed import CreateSeedRequest
from backend.services.errors import FollowupDismissed, FollowupNotFound, InvalidInput, SeedNotFound
from backend.services.followups import FollowupService
from engine.kernel.store import MemoryStore
from engine.kernel.types import EntityFamily

D1 = datetime(2026, 3, 5, 9, 0, tzinfo=UTC)
D2 = datetime(2026, 3, 6, 14, 30, tzinfo=UTC)


@pytest_asyncio.fixture
async def seed(seeds):
    return await seeds.create("user-1", CreateSeedRequest(content="Repot the fig"))


# ============================================================================
# Creation
# ============================================================================


@pytest.mark.asyncio
async def test_create_then_get(followups, seed):
    created = await followups.create(seed.id, CreateFollowupRequest(due_time=D1, message="Check roots"))

    fetched = await followups.get_by_id(created.id)
    assert fetched.due_time == D1
    assert fetched.message == "Check roots"
    assert fetched.dismissed is False
    assert fetched.seed_id == seed.id


@pytest.mark.asyncio
async def test_create_appends_reference_on_seed(followups, seed, store):
    created = await followups.create(seed.id, CreateFollowupRequest(due_time=D1, message="Check roots"))

    seed_txn = store.transactions[EntityFamily.SEED][-1]
    assert seed_txn.type == "add_followup"
    assert seed_txn.payload == {"followup_id": created.id}
    creation = store.transactions[EntityFamily.FOLLOWUP][0]
    assert creation.payload == {
        "trigger": "manual",
        "initial_time": "2026-03-05T09:00:00.000Z",
        "initial_message": "Check roots",
    }


@pytest.mark.asyncio
async def test_create_blank_message(followups, seed):
    with pytest.raises(InvalidInput) as exc_info:
        await followups.create(seed.id, CreateFollowupRequest(due_time=D1, message="  "))
    assert exc_info.value.message == "Message is required"


@pytest.mark.asyncio
async def test_create_unknown_seed(followups):
    with pytest.raises(SeedNotFound):
        await followups.create("ghost", CreateFollowupRequest(due_time=D1, message="hello"))


@pytest.mark.asyncio
async def test_create_with_unknown_trigger_stores_nothing(followups, seed, store):
    with pytest.raises(InvalidInput):
        await followups.create(seed.id, CreateFollowupRequest(due_time=D1, message="hello"), trigger="cron")

    assert store.followups == {}
    assert store.transactions[EntityFamily.FOLLOWUP] == []
    assert [t.type for t in store.transactions[EntityFamily.SEED]] == ["create_seed"]


class SeedAppendFails(MemoryStore):
    async def append(self, family, entity_id, type, payload, *, created_at, automation_id=None):
        if family is EntityFamily.SEED and type == "add_followup":
            raise ConnectionError("seed_transactions unavailable")
        return await super().append(
            family, entity_id, type, payload, created_at=created_at, automation_id=automation_id
        )


@pytest.mark.asyncio
async def test_seed_side_failure_propagates_and_followup_survives(clock):
    store = SeedAppendFails()
    await store.register_seed("seed-1", "user-1")
    await store.append(EntityFamily.SEED, "seed-1", "create_seed", {"content": "x"}, created_at=clock())
    service = FollowupService(store, store, clock)

    with pytest.raises(ConnectionError):
        await service.create("seed-1", CreateFollowupRequest(due_time=D1, message="orphan"))

    [followup_id] = store.followups
    orphan = await service.get_by_id(followup_id)
    assert orphan.message == "orphan"


# ============================================================================
# Reads
# ============================================================================


@pytest.mark.asyncio
async def test_get_by_id_unknown(followups):
    assert await followups.get_by_id("nope") is None


@pytest.mark.asyncio
async def test_get_by_seed_id(followups, seed, seeds):
    a = await followups.create(seed.id, CreateFollowupRequest(due_time=D1, message="a"))
    b = await followups.create(seed.id, CreateFollowupRequest(due_time=D2, message="b"))
    other_seed = await seeds.create("user-1", CreateSeedRequest(content="other"))
    await followups.create(other_seed.id, CreateFollowupRequest(due_time=D1, message="c"))

    listed = await followups.get_by_seed_id(seed.id)
    assert [f.id for f in listed] == [a.id, b.id]


@pytest.mark.asyncio
async def test_get_by_seed_id_none(followups, seed):
    assert await followups.get_by_seed_id(seed.id) == []


# ============================================================================
# Edit / snooze / dismiss
# ============================================================================


@pytest.mark.asyncio
async def test_edit_then_snooze_adds_to_edited_time(followups, seed):
    f = await followups.create(seed.id, CreateFollowupRequest(due_time=D1, message="m"))
    await followups.edit(f.id, EditFollowupRequest(due_time=D2))
    snoozed = await followups.snooze(f.id, 90)
    assert snoozed.due_time == D2 + timedelta(minutes=90)


@pytest.mark.asyncio
async def test_edit_payload_has_old_values_only_when_changed(followups, seed, store):
    f = await followups.create(seed.id, CreateFollowupRequest(due_time=D1, message="Call the nursery"))

    await followups.edit(f.id, EditFollowupRequest(message="Email the nursery"))
    payload = store.transactions[EntityFamily.FOLLOWUP][-1].payload
    assert payload == {
        "new_time": "2026-03-05T09:00:00.000Z",
        "new_message": "Email the nursery",
        "old_message": "Call the nursery",
    }

    await followups.edit(f.id, EditFollowupRequest(due_time=D2))
    payload = store.transactions[EntityFamily.FOLLOWUP][-1].payload
    assert payload == {
        "new_time": "2026-03-06T14:30:00.000Z",
        "new_message": "Email the nursery",
        "old_time": "2026-03-05T09:00:00.000Z",
    }


@pytest.mark.asyncio
async def test_edit_unknown(followups):
    with pytest.raises(FollowupNotFound) as exc_info:
        await followups.edit("nope", EditFollowupRequest(message="x"))
    assert exc_info.value.message == "Followup not found"


@pytest.mark.asyncio
@pytest.mark.parametrize("duration", [0, -10])
async def test_snooze_rejects_non_positive(followups, seed, duration):
    f = await followups.create(seed.id, CreateFollowupRequest(due_time=D1, message="m"))
    with pytest.raises(InvalidInput):
        await followups.snooze(f.id, duration)


@pytest.mark.asyncio
async def test_snooze_records_method(followups, seed, store):
    f = await followups.create(seed.id, CreateFollowupRequest(due_time=D1, message="m"))
    await followups.snooze(f.id, 15, "automatic")
    payload = store.transactions[EntityFamily.FOLLOWUP][-1].payload
    assert payload["duration_minutes"] == 15
    assert payload["method"] == "automatic"


@pytest.mark.asyncio
async def test_dismissal_is_terminal(followups, seed, store):
    f = await followups.create(seed.id, CreateFollowupRequest(due_time=D1, message="m"))
    dismissed = await followups.dismiss(f.id, "followup")
    assert dismissed.dismissed is True
    assert dismissed.dismissed_at is not None
    count = len(store.transactions[EntityFamily.FOLLOWUP])

    with pytest.raises(FollowupDismissed) as exc_info:
        await followups.edit(f.id, EditFollowupRequest(message="too late"))
    assert exc_info.value.message == "Cannot edit dismissed followup"

    with pytest.raises(FollowupDismissed) as exc_info:
        await followups.snooze(f.id, 30)
    assert exc_info.value.message == "Cannot snooze dismissed followup"

    with pytest.raises(FollowupDismissed) as exc_info:
        await followups.dismiss(f.id, "snooze")
    assert exc_info.value.message == "Followup already dismissed"

    assert len(store.transactions[EntityFamily.FOLLOWUP]) == count


# ============================================================================
# Due follow-ups
# ============================================================================


@pytest.mark.asyncio
async def test_due_followups_for_user_without_seeds_makes_no_further_calls(followups, store):
    store.calls.clear()
    assert await followups.get_due_followups("user-without-seeds") == []
    assert store.calls == ["list_seed_ids"]


@pytest.mark.asyncio
async def test_due_followups_with_seeds_but_no_followups(followups, seed, store):
    store.calls.clear()
    assert await followups.get_due_followups("user-1") == []
    assert store.calls == ["list_seed_ids", "list_followups_for_seeds"]


@pytest.mark.asyncio
async def test_due_followups_filters_future_and_dismissed(followups, seed, clock):
    now = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)
    past = await followups.create(seed.id, CreateFollowupRequest(due_time=now - timedelta(hours=1), message="due"))
    await followups.create(seed.id, CreateFollowupRequest(due_time=now + timedelta(hours=1), message="later"))
    gone = await followups.create(seed.id, CreateFollowupRequest(due_time=now - timedelta(hours=2), message="gone"))
    await followups.dismiss(gone.id)

    clock.set(now)
    due = await followups.get_due_followups("user-1")
    assert [(d.followup_id, d.seed_id, d.user_id, d.message) for d in due] == [
        (past.id, seed.id, "user-1", "due"),
    ]
    assert due[0].due_time == now - timedelta(hours=1)


@pytest.mark.asyncio
async def test_registered_followup_without_history_is_left_out(followups, seed, store, clock, caplog):
    real = await followups.create(seed.id, CreateFollowupRequest(due_time=D1, message="real"))
    await store.register_followup("half-created", seed.id)

    assert await followups.get_by_id("half-created") is None
    assert [f.id for f in await followups.get_by_seed_id(seed.id)] == [real.id]

    clock.set(D2)
    with caplog.at_level(logging.WARNING, logger="backend.services.followups"):
        due = await followups.get_due_followups("user-1")
    assert [d.followup_id for d in due] == [real.id]
    assert "half-created" in caplog.text
