"""
Memoriae Kernel: Reducers

Pure functions from transactions to current entity state.

One skeleton, three families:
  1. sort by (created_at, id)
  2. find the creation transaction (missing is fatal)
  3. validate it (invalid is fatal)
  4. seed the accumulator from its payload
  5. fold the rest in order; a transaction that fails validation is logged
     and skipped, never fatal
  6. stamp the result with the creation time

State is a function of the *set* of transactions, not of arrival order.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

from engine.kernel.errors import MissingCreationTransaction
from engine.kernel.types import (
    CREATION_TYPES,
    CategoryRef,
    EntityFamily,
    EntityState,
    FollowupState,
    SeedState,
    TagRef,
    TagState,
    Transaction,
    parse_timestamp,
)
from engine.kernel.validation import transaction_errors, validate_transaction

_default_logger = logging.getLogger(__name__)

_ENTITY_LABELS: dict[EntityFamily, str] = {
    EntityFamily.SEED: "Seed",
    EntityFamily.TAG: "Tag",
    EntityFamily.FOLLOWUP: "Followup",
}


# ---------------------------------------------------------------------------
# ReplayResult
# ---------------------------------------------------------------------------


@dataclass
class ReplayResult:
    """
    Result of replaying one entity's history.
    `skipped` pairs each excluded transaction with the reason it was dropped.
    """

    state: Any
    applied: list[Transaction] = field(default_factory=list)
    skipped: list[tuple[Transaction, str]] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def sort_transactions(transactions: Iterable[Transaction]) -> list[Transaction]:
    """Chronological order. Equal timestamps fall back to transaction id."""
    return sorted(transactions, key=lambda t: (t.created_at, t.id))


def group_by_entity(transactions: Iterable[Transaction]) -> dict[str, list[Transaction]]:
    """Split a batched fetch into per-entity histories, keeping first-seen entity order."""
    grouped: dict[str, list[Transaction]] = {}
    for transaction in transactions:
        grouped.setdefault(transaction.entity_id, []).append(transaction)
    return grouped


def replay(
    family: EntityFamily,
    transactions: Iterable[Transaction],
    *,
    logger: logging.Logger | None = None,
) -> ReplayResult:
    """
    Rebuild an entity's state from its transactions, reporting what was skipped.

    Raises MissingCreationTransaction or TransactionValidationError when the
    creation transaction is absent or malformed.
    """
    log = logger or _default_logger
    ordered = sort_transactions(transactions)
    creation_type = CREATION_TYPES[family]

    creation = next((t for t in ordered if t.type == creation_type), None)
    if creation is None:
        raise MissingCreationTransaction(f"{_ENTITY_LABELS[family]} must have a creation transaction")

    validate_transaction(family, creation.type, creation.payload)

    init, handlers = _FAMILIES[family]
    state = init(creation)
    result = ReplayResult(state=state, applied=[creation])

    for transaction in ordered:
        if transaction is creation:
            continue

        if transaction.type == creation_type:
            reason = f"DUPLICATE_CREATION: entity already created by {creation.id}"
        else:
            errors = transaction_errors(family, transaction.type, transaction.payload)
            reason = errors[0] if errors else None

        if reason is not None:
            log.warning(
                "Skipping %s transaction %s (%s) for %s: %s",
                family.value,
                transaction.id,
                transaction.type,
                transaction.entity_id,
                reason,
            )
            result.skipped.append((transaction, reason))
            continue

        handlers[transaction.type](state, transaction.payload)
        result.applied.append(transaction)

    if isinstance(state, FollowupState):
        state.transactions = ordered

    return result


def compute_state(
    family: EntityFamily,
    transactions: Iterable[Transaction],
    *,
    logger: logging.Logger | None = None,
) -> EntityState:
    """Current state of one entity. See replay() for the failure modes."""
    return replay(family, transactions, logger=logger).state


def reduce_seed(transactions: Iterable[Transaction], *, logger: logging.Logger | None = None) -> SeedState:
    return replay(EntityFamily.SEED, transactions, logger=logger).state


def reduce_tag(transactions: Iterable[Transaction], *, logger: logging.Logger | None = None) -> TagState:
    return replay(EntityFamily.TAG, transactions, logger=logger).state


def reduce_followup(
    transactions: Iterable[Transaction], *, logger: logging.Logger | None = None
) -> FollowupState:
    return replay(EntityFamily.FOLLOWUP, transactions, logger=logger).state


# ---------------------------------------------------------------------------
# Seed transitions
# ---------------------------------------------------------------------------


def _init_seed(creation: Transaction) -> SeedState:
    return SeedState(content=creation.payload["content"], timestamp=creation.created_at)


def _seed_edit_content(state: SeedState, p: dict) -> None:
    state.content = p["content"]


def _seed_add_tag(state: SeedState, p: dict) -> None:
    if any(t.id == p["tag_id"] for t in state.tags):
        return
    state.tags.append(TagRef(id=p["tag_id"], name=p["tag_name"]))


def _seed_remove_tag(state: SeedState, p: dict) -> None:
    state.tags = [t for t in state.tags if t.id != p["tag_id"]]


def _seed_set_category(state: SeedState, p: dict) -> None:
    # One category slot: set replaces whatever was there.
    state.categories = [CategoryRef(id=p["category_id"], name=p["category_name"], path=p["category_path"])]


def _seed_remove_category(state: SeedState, p: dict) -> None:
    state.categories = [c for c in state.categories if c.id != p["category_id"]]


def _audit_only(state: Any, p: dict) -> None:
    pass


# ---------------------------------------------------------------------------
# Tag transitions
# ---------------------------------------------------------------------------


def _init_tag(creation: Transaction) -> TagState:
    return TagState(
        name=creation.payload["name"],
        color=creation.payload["color"],
        timestamp=creation.created_at,
    )


def _tag_edit(state: TagState, p: dict) -> None:
    state.name = p["name"]


def _tag_set_color(state: TagState, p: dict) -> None:
    state.color = p["color"]


# ---------------------------------------------------------------------------
# Follow-up transitions
# ---------------------------------------------------------------------------


def _init_followup(creation: Transaction) -> FollowupState:
    return FollowupState(
        due_time=parse_timestamp(creation.payload["initial_time"]),
        message=creation.payload["initial_message"],
        timestamp=creation.created_at,
    )


def _followup_edit(state: FollowupState, p: dict) -> None:
    if p.get("new_time") is not None:
        state.due_time = parse_timestamp(p["new_time"])
    if p.get("new_message") is not None:
        state.message = p["new_message"]


def _followup_snooze(state: FollowupState, p: dict) -> None:
    # Relative to the current due time, so snoozes compound on top of edits.
    state.due_time = state.due_time + timedelta(minutes=p["duration_minutes"])


def _followup_dismissal(state: FollowupState, p: dict) -> None:
    state.dismissed = True
    state.dismissed_at = parse_timestamp(p["dismissed_at"])


# ---------------------------------------------------------------------------
# Dispatcher
# ---------------------------------------------------------------------------

_Handler = Callable[[Any, dict], None]

_FAMILIES: dict[EntityFamily, tuple[Callable[[Transaction], Any], dict[str, _Handler]]] = {
    EntityFamily.SEED: (
        _init_seed,
        {
            "edit_content": _seed_edit_content,
            "add_tag": _seed_add_tag,
            "remove_tag": _seed_remove_tag,
            "set_category": _seed_set_category,
            "remove_category": _seed_remove_category,
            "add_sprout": _audit_only,
            "add_followup": _audit_only,
        },
    ),
    EntityFamily.TAG: (
        _init_tag,
        {
            "edit": _tag_edit,
            "set_color": _tag_set_color,
        },
    ),
    EntityFamily.FOLLOWUP: (
        _init_followup,
        {
            "edit": _followup_edit,
            "snooze": _followup_snooze,
            "dismissal": _followup_dismissal,
        },
    ),
}
