"""
Memoriae Kernel: Validation Tests

Structural checks for every transaction type of every entity family.
transaction_errors returns all problems; validate_transaction raises on the first.
"""

import pytest

from engine.kernel.errors import TransactionValidationError
from engine.kernel.types import EntityFamily
from engine.kernel.validation import transaction_errors, validate_transaction

SEED = EntityFamily.SEED
TAG = EntityFamily.TAG
FOLLOWUP = EntityFamily.FOLLOWUP

# ============================================================================
# Envelope checks
# ============================================================================


class TestEnvelope:
    def test_unknown_type(self):
        assert transaction_errors(SEED, "delete_seed", {}) == ["Unknown transaction type: delete_seed"]

    def test_type_from_another_family_is_unknown(self):
        """'snooze' is a follow-up type, not a tag type."""
        assert transaction_errors(TAG, "snooze", {"duration_minutes": 5}) == ["Unknown transaction type: snooze"]

    @pytest.mark.parametrize("payload", [None, [], "content", 3])
    def test_payload_must_be_object(self, payload):
        assert transaction_errors(SEED, "create_seed", payload) == ["Payload must be a non-null object"]

    def test_validate_raises_first_error_and_keeps_all(self):
        with pytest.raises(TransactionValidationError) as exc_info:
            validate_transaction(SEED, "set_category", {})
        assert exc_info.value.message == "set_category requires 'category_id'"
        assert len(exc_info.value.errors) == 3

    def test_validate_passes_silently(self):
        assert validate_transaction(SEED, "create_seed", {"content": "an idea"}) is None


# ============================================================================
# Seed transactions
# ============================================================================


class TestSeedValidation:
    def test_create_seed_valid(self):
        assert transaction_errors(SEED, "create_seed", {"content": "Write the garden plan"}) == []

    @pytest.mark.parametrize("content", ["", "   ", None, 42])
    def test_create_seed_rejects_blank_content(self, content):
        errors = transaction_errors(SEED, "create_seed", {"content": content})
        assert errors
        assert "content" in errors[0]

    def test_create_seed_missing_content(self):
        assert transaction_errors(SEED, "create_seed", {}) == ["create_seed requires 'content'"]

    def test_edit_content_allows_empty(self):
        assert transaction_errors(SEED, "edit_content", {"content": ""}) == []

    def test_edit_content_requires_string(self):
        assert transaction_errors(SEED, "edit_content", {"content": None})

    def test_add_tag_requires_id_and_name(self):
        assert transaction_errors(SEED, "add_tag", {"tag_id": "t1", "tag_name": "work"}) == []
        errors = transaction_errors(SEED, "add_tag", {"tag_id": "t1", "tag_name": " "})
        assert errors == ["add_tag requires non-empty 'tag_name' string"]

    def test_remove_tag_name_optional(self):
        assert transaction_errors(SEED, "remove_tag", {"tag_id": "t1"}) == []
        assert transaction_errors(SEED, "remove_tag", {"tag_id": "t1", "tag_name": "work"}) == []

    def test_remove_tag_blank_name_rejected(self):
        assert transaction_errors(SEED, "remove_tag", {"tag_id": "t1", "tag_name": ""})

    def test_set_category_requires_all_fields(self):
        payload = {"category_id": "c1", "category_name": "Home", "category_path": "/home"}
        assert transaction_errors(SEED, "set_category", payload) == []
        payload["category_path"] = ""
        assert transaction_errors(SEED, "set_category", payload) == [
            "set_category requires non-empty 'category_path' string"
        ]

    def test_remove_category(self):
        assert transaction_errors(SEED, "remove_category", {"category_id": "c1"}) == []
        assert transaction_errors(SEED, "remove_category", {})

    def test_audit_references(self):
        assert transaction_errors(SEED, "add_sprout", {"sprout_id": "s1"}) == []
        assert transaction_errors(SEED, "add_followup", {"followup_id": "f1"}) == []
        assert transaction_errors(SEED, "add_sprout", {})
        assert transaction_errors(SEED, "add_followup", {"followup_id": ""})


# ============================================================================
# Tag transactions
# ============================================================================


class TestTagValidation:
    def test_creation_with_color(self):
        assert transaction_errors(TAG, "creation", {"name": "work", "color": "#ff0000"}) == []

    def test_creation_with_null_color(self):
        assert transaction_errors(TAG, "creation", {"name": "work", "color": None}) == []

    def test_creation_requires_color_key(self):
        assert transaction_errors(TAG, "creation", {"name": "work"}) == ["creation requires 'color'"]

    def test_creation_rejects_blank_name(self):
        assert transaction_errors(TAG, "creation", {"name": "", "color": None})

    def test_color_must_be_string_or_null(self):
        assert transaction_errors(TAG, "set_color", {"color": 123}) == ["set_color color must be null or string"]
        assert transaction_errors(TAG, "set_color", {"color": None}) == []

    def test_edit_requires_name(self):
        assert transaction_errors(TAG, "edit", {"name": "home"}) == []
        assert transaction_errors(TAG, "edit", {"name": "  "})


# ============================================================================
# Follow-up transactions
# ============================================================================


class TestFollowupValidation:
    def test_creation_valid(self):
        payload = {"trigger": "manual", "initial_time": "2026-03-01T10:00:00.000Z", "initial_message": "Call Sam"}
        assert transaction_errors(FOLLOWUP, "creation", payload) == []

    def test_creation_bad_timestamp(self):
        payload = {"trigger": "manual", "initial_time": "next tuesday", "initial_message": "Call Sam"}
        assert transaction_errors(FOLLOWUP, "creation", payload) == ["Invalid timestamp for 'initial_time': next tuesday"]

    def test_creation_blank_message(self):
        payload = {"initial_time": "2026-03-01T10:00:00Z", "initial_message": ""}
        assert transaction_errors(FOLLOWUP, "creation", payload)

    def test_creation_unknown_trigger(self):
        payload = {"trigger": "cron", "initial_time": "2026-03-01T10:00:00Z", "initial_message": "Call Sam"}
        assert transaction_errors(FOLLOWUP, "creation", payload) == ["Unknown follow-up trigger: cron"]

    def test_edit_needs_something_to_change(self):
        assert transaction_errors(FOLLOWUP, "edit", {}) == ["edit requires 'new_time' or 'new_message'"]
        assert transaction_errors(FOLLOWUP, "edit", {"new_message": "Email Sam"}) == []
        assert transaction_errors(FOLLOWUP, "edit", {"new_time": "2026-03-02T09:00:00Z"}) == []

    def test_edit_bad_time(self):
        assert transaction_errors(FOLLOWUP, "edit", {"new_time": "soon"})

    @pytest.mark.parametrize("duration", [0, -5, "90", None, True, 1.5])
    def test_snooze_rejects_non_positive_or_non_int(self, duration):
        errors = transaction_errors(FOLLOWUP, "snooze", {"duration_minutes": duration, "method": "manual"})
        assert errors == ["snooze requires positive integer 'duration_minutes'"]

    def test_snooze_valid(self):
        payload = {"snoozed_at": "2026-03-01T10:00:00Z", "duration_minutes": 90, "method": "automatic"}
        assert transaction_errors(FOLLOWUP, "snooze", payload) == []

    def test_snooze_unknown_method(self):
        payload = {"duration_minutes": 10, "method": "telepathy"}
        assert transaction_errors(FOLLOWUP, "snooze", payload) == ["Unknown snooze method: telepathy"]

    def test_dismissal(self):
        assert transaction_errors(FOLLOWUP, "dismissal", {"dismissed_at": "2026-03-01T10:00:00Z", "type": "followup"}) == []
        assert transaction_errors(FOLLOWUP, "dismissal", {"type": "followup"}) == ["dismissal requires 'dismissed_at'"]
        assert transaction_errors(FOLLOWUP, "dismissal", {"dismissed_at": "2026-03-01T10:00:00Z", "type": "forever"})
