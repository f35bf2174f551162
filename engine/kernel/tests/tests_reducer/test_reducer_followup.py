"""
Memoriae Reducer: Follow-up Tests

Covers:
  - Creation only (due time, message, not dismissed)
  - Edit then snooze: the snooze adds to the edited due time
  - Out-of-order input is sorted before folding
  - Snoozes compound
  - Dismissal sets dismissed / dismissed_at
  - The sorted history is attached to the state
"""

from datetime import UTC, datetime, timedelta

import pytest

from engine.kernel.errors import MissingCreationTransaction
from engine.kernel.reducer import reduce_followup
from engine.kernel.transactions import make_transaction

FOLLOWUP_ID = "followup-1"

D1 = "2026-03-05T09:00:00.000Z"
D2 = "2026-03-06T14:30:00.000Z"


def at(hour, minute=0):
    return datetime(2026, 3, 1, hour, minute, tzinfo=UTC)


def creation(created_at, initial_time=D1, message="Check on the seedlings"):
    return make_transaction(
        FOLLOWUP_ID,
        "creation",
        {"trigger": "manual", "initial_time": initial_time, "initial_message": message},
        created_at=created_at,
    )


def edit(created_at, **payload):
    return make_transaction(FOLLOWUP_ID, "edit", payload, created_at=created_at)


def snooze(created_at, minutes):
    return make_transaction(
        FOLLOWUP_ID,
        "snooze",
        {"snoozed_at": created_at.isoformat(), "duration_minutes": minutes, "method": "manual"},
        created_at=created_at,
    )


class TestFollowupReducer:
    def test_creation_only(self):
        state = reduce_followup([creation(at(10))])
        assert state.due_time == datetime(2026, 3, 5, 9, 0, tzinfo=UTC)
        assert state.message == "Check on the seedlings"
        assert state.dismissed is False
        assert state.dismissed_at is None
        assert state.timestamp == at(10)

    def test_edit_then_snooze_adds_to_edited_time(self):
        state = reduce_followup(
            [
                creation(at(10)),
                edit(at(11), new_time=D2),
                snooze(at(12), 90),
            ]
        )
        assert state.due_time == datetime(2026, 3, 6, 14, 30, tzinfo=UTC) + timedelta(minutes=90)

    def test_out_of_order_input_is_sorted(self):
        c, e, s = creation(at(10)), edit(at(11), new_time=D2), snooze(at(12), 90)
        shuffled = reduce_followup([e, c, s])
        ordered = reduce_followup([c, e, s])
        assert shuffled.due_time == ordered.due_time
        assert [t.id for t in shuffled.transactions] == [c.id, e.id, s.id]

    def test_snoozes_compound(self):
        state = reduce_followup([creation(at(10)), snooze(at(11), 30), snooze(at(12), 45)])
        assert state.due_time == datetime(2026, 3, 5, 9, 0, tzinfo=UTC) + timedelta(minutes=75)

    def test_edit_message_only_keeps_time(self):
        state = reduce_followup([creation(at(10)), edit(at(11), new_message="Water them")])
        assert state.message == "Water them"
        assert state.due_time == datetime(2026, 3, 5, 9, 0, tzinfo=UTC)

    def test_dismissal(self):
        dismissal = make_transaction(
            FOLLOWUP_ID,
            "dismissal",
            {"dismissed_at": "2026-03-01T13:00:00Z", "type": "followup"},
            created_at=at(13),
        )
        state = reduce_followup([creation(at(10)), dismissal])
        assert state.dismissed is True
        assert state.dismissed_at == at(13)

    def test_missing_creation(self):
        with pytest.raises(MissingCreationTransaction) as exc_info:
            reduce_followup([snooze(at(12), 90)])
        assert exc_info.value.message == "Followup must have a creation transaction"
