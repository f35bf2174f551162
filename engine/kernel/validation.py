"""
Memoriae Kernel: Transaction Validation

Validates transaction payloads before they reach a reducer or a store.
Every state change goes through one of the per-family transaction types.
Validation is structural (well-formed?) not semantic (does the tag exist?).

Callers pick the failure policy: reducers treat a bad creation payload as
fatal and skip any other bad transaction.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from engine.kernel.errors import TransactionValidationError
from engine.kernel.types import (
    DISMISSAL_TYPES,
    FOLLOWUP_TRIGGERS,
    SNOOZE_METHODS,
    TRANSACTION_TYPES,
    EntityFamily,
    parse_timestamp,
)

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def transaction_errors(family: EntityFamily, type: str, payload: Any) -> list[str]:
    """
    Check a transaction's type and payload structure.
    Returns a list of error strings. Empty list = valid.
    """
    errors: list[str] = []

    if type not in TRANSACTION_TYPES[family]:
        errors.append(f"Unknown transaction type: {type}")
        return errors  # can't validate payload for unknown type

    if not isinstance(payload, dict):
        errors.append("Payload must be a non-null object")
        return errors

    validator = _VALIDATORS[family].get(type)
    if validator:
        errors.extend(validator(payload))

    return errors


def validate_transaction(family: EntityFamily, type: str, payload: Any) -> None:
    """
    Raise TransactionValidationError if the payload is malformed for its type.
    The exception message is the first problem found; `errors` holds all of them.
    """
    errors = transaction_errors(family, type, payload)
    if errors:
        raise TransactionValidationError(errors[0], errors)


# ---------------------------------------------------------------------------
# Field checks
# ---------------------------------------------------------------------------


def _is_non_blank(value: Any) -> bool:
    return isinstance(value, str) and len(value.strip()) > 0


def _require_non_blank(p: dict, key: str, type: str, errors: list[str]) -> None:
    if key not in p:
        errors.append(f"{type} requires '{key}'")
    elif not _is_non_blank(p[key]):
        errors.append(f"{type} requires non-empty '{key}' string")


def _check_color(p: dict, type: str, errors: list[str]) -> None:
    if "color" not in p:
        errors.append(f"{type} requires 'color'")
    elif p["color"] is not None and not isinstance(p["color"], str):
        errors.append(f"{type} color must be null or string")


def _check_timestamp(p: dict, key: str, type: str, errors: list[str], required: bool = True) -> None:
    if key not in p or p[key] is None:
        if required:
            errors.append(f"{type} requires '{key}'")
        return
    if not isinstance(p[key], str):
        errors.append(f"'{key}' must be an ISO 8601 string")
        return
    try:
        parse_timestamp(p[key])
    except ValueError:
        errors.append(f"Invalid timestamp for '{key}': {p[key]}")


# ---------------------------------------------------------------------------
# Seed validators
# ---------------------------------------------------------------------------


def _validate_create_seed(p: dict) -> list[str]:
    errors: list[str] = []
    _require_non_blank(p, "content", "create_seed", errors)
    return errors


def _validate_edit_content(p: dict) -> list[str]:
    # Empty content is allowed: users may clear a seed.
    if not isinstance(p.get("content"), str):
        return ["edit_content requires 'content' string"]
    return []


def _validate_add_tag(p: dict) -> list[str]:
    errors: list[str] = []
    _require_non_blank(p, "tag_id", "add_tag", errors)
    _require_non_blank(p, "tag_name", "add_tag", errors)
    return errors


def _validate_remove_tag(p: dict) -> list[str]:
    errors: list[str] = []
    _require_non_blank(p, "tag_id", "remove_tag", errors)
    if p.get("tag_name") is not None and not _is_non_blank(p["tag_name"]):
        errors.append("remove_tag 'tag_name' must be a non-empty string when given")
    return errors


def _validate_set_category(p: dict) -> list[str]:
    errors: list[str] = []
    for key in ("category_id", "category_name", "category_path"):
        _require_non_blank(p, key, "set_category", errors)
    return errors


def _validate_remove_category(p: dict) -> list[str]:
    errors: list[str] = []
    _require_non_blank(p, "category_id", "remove_category", errors)
    return errors


def _validate_add_sprout(p: dict) -> list[str]:
    errors: list[str] = []
    _require_non_blank(p, "sprout_id", "add_sprout", errors)
    return errors


def _validate_add_followup(p: dict) -> list[str]:
    errors: list[str] = []
    _require_non_blank(p, "followup_id", "add_followup", errors)
    return errors


# ---------------------------------------------------------------------------
# Tag validators
# ---------------------------------------------------------------------------


def _validate_tag_creation(p: dict) -> list[str]:
    errors: list[str] = []
    _require_non_blank(p, "name", "creation", errors)
    _check_color(p, "creation", errors)
    return errors


def _validate_tag_edit(p: dict) -> list[str]:
    errors: list[str] = []
    _require_non_blank(p, "name", "edit", errors)
    return errors


def _validate_set_color(p: dict) -> list[str]:
    errors: list[str] = []
    _check_color(p, "set_color", errors)
    return errors


# ---------------------------------------------------------------------------
# Follow-up validators
# ---------------------------------------------------------------------------


def _validate_followup_creation(p: dict) -> list[str]:
    errors: list[str] = []
    _check_timestamp(p, "initial_time", "creation", errors)
    _require_non_blank(p, "initial_message", "creation", errors)
    if "trigger" in p and p["trigger"] not in FOLLOWUP_TRIGGERS:
        errors.append(f"Unknown follow-up trigger: {p['trigger']}")
    return errors


def _validate_followup_edit(p: dict) -> list[str]:
    errors: list[str] = []
    if p.get("new_time") is None and p.get("new_message") is None:
        errors.append("edit requires 'new_time' or 'new_message'")
    _check_timestamp(p, "new_time", "edit", errors, required=False)
    _check_timestamp(p, "old_time", "edit", errors, required=False)
    if p.get("new_message") is not None and not _is_non_blank(p["new_message"]):
        errors.append("edit 'new_message' must be a non-empty string")
    return errors


def _validate_snooze(p: dict) -> list[str]:
    errors: list[str] = []
    duration = p.get("duration_minutes")
    # bool is an int subclass; True minutes is not a duration
    if not isinstance(duration, int) or isinstance(duration, bool) or duration <= 0:
        errors.append("snooze requires positive integer 'duration_minutes'")
    if "method" in p and p["method"] not in SNOOZE_METHODS:
        errors.append(f"Unknown snooze method: {p['method']}")
    _check_timestamp(p, "snoozed_at", "snooze", errors, required=False)
    return errors


def _validate_dismissal(p: dict) -> list[str]:
    errors: list[str] = []
    _check_timestamp(p, "dismissed_at", "dismissal", errors)
    if "type" in p and p["type"] not in DISMISSAL_TYPES:
        errors.append(f"Unknown dismissal type: {p['type']}")
    return errors


# ---------------------------------------------------------------------------
# Dispatcher
# ---------------------------------------------------------------------------

_Validator = Callable[[dict], list[str]]

_VALIDATORS: dict[EntityFamily, dict[str, _Validator]] = {
    EntityFamily.SEED: {
        "create_seed": _validate_create_seed,
        "edit_content": _validate_edit_content,
        "add_tag": _validate_add_tag,
        "remove_tag": _validate_remove_tag,
        "set_category": _validate_set_category,
        "remove_category": _validate_remove_category,
        "add_sprout": _validate_add_sprout,
        "add_followup": _validate_add_followup,
    },
    EntityFamily.TAG: {
        "creation": _validate_tag_creation,
        "edit": _validate_tag_edit,
        "set_color": _validate_set_color,
    },
    EntityFamily.FOLLOWUP: {
        "creation": _validate_followup_creation,
        "edit": _validate_followup_edit,
        "snooze": _validate_snooze,
        "dismissal": _validate_dismissal,
    },
}
