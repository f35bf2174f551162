"""
Memoriae Kernel: Shared Types

Data classes used across validation, reducers, and stores.
These are the contracts that bind the kernel together.

Every mutable entity (seed, tag, follow-up) is a pile of immutable
transactions. Its current state is never stored; it is recomputed by
replaying the pile in created_at order.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

# ---------------------------------------------------------------------------
# Entity families
# ---------------------------------------------------------------------------


class EntityFamily(enum.StrEnum):
    SEED = "seed"
    TAG = "tag"
    FOLLOWUP = "followup"


# ---------------------------------------------------------------------------
# Transaction type registry
# ---------------------------------------------------------------------------

SEED_TRANSACTION_TYPES: set[str] = {
    "create_seed",
    "edit_content",
    "add_tag",
    "remove_tag",
    "set_category",
    "remove_category",
    "add_sprout",
    # Legacy: written before sprouts replaced follow-up references
    "add_followup",
}

TAG_TRANSACTION_TYPES: set[str] = {
    "creation",
    "edit",
    "set_color",
}

FOLLOWUP_TRANSACTION_TYPES: set[str] = {
    "creation",
    "edit",
    "dismissal",
    "snooze",
}

TRANSACTION_TYPES: dict[EntityFamily, set[str]] = {
    EntityFamily.SEED: SEED_TRANSACTION_TYPES,
    EntityFamily.TAG: TAG_TRANSACTION_TYPES,
    EntityFamily.FOLLOWUP: FOLLOWUP_TRANSACTION_TYPES,
}

CREATION_TYPES: dict[EntityFamily, str] = {
    EntityFamily.SEED: "create_seed",
    EntityFamily.TAG: "creation",
    EntityFamily.FOLLOWUP: "creation",
}

FOLLOWUP_TRIGGERS: set[str] = {"manual", "automatic"}
SNOOZE_METHODS: set[str] = {"manual", "automatic"}
DISMISSAL_TYPES: set[str] = {"followup", "snooze"}


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Transaction:
    """
    One immutable, timestamped change to one entity.
    Reducers read `type`, `payload` and `created_at`; `id` breaks ties.
    """

    id: str
    entity_id: str
    type: str
    payload: dict[str, Any]
    created_at: datetime
    automation_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "entity_id": self.entity_id,
            "type": self.type,
            "payload": self.payload,
            "created_at": format_timestamp(self.created_at),
            "automation_id": self.automation_id,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Transaction:
        return cls(
            id=d["id"],
            entity_id=d["entity_id"],
            type=d["type"],
            payload=d["payload"],
            created_at=parse_timestamp(d["created_at"]),
            automation_id=d.get("automation_id"),
        )


@dataclass
class TagRef:
    id: str
    name: str


@dataclass
class CategoryRef:
    id: str
    name: str
    path: str


@dataclass
class SeedState:
    """Current content of a seed plus its attached tags and category."""

    content: str
    timestamp: datetime
    tags: list[TagRef] = field(default_factory=list)
    categories: list[CategoryRef] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "seed": self.content,
            "timestamp": format_timestamp(self.timestamp),
            "metadata": self.metadata,
            "tags": [{"id": t.id, "name": t.name} for t in self.tags],
            "categories": [{"id": c.id, "name": c.name, "path": c.path} for c in self.categories],
        }


@dataclass
class TagState:
    name: str
    color: str | None
    timestamp: datetime
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "color": self.color,
            "timestamp": format_timestamp(self.timestamp),
            "metadata": self.metadata,
        }


@dataclass
class FollowupState:
    """
    A follow-up's due time and message after every edit and snooze.
    `transactions` is the full sorted history, kept for audit display.
    """

    due_time: datetime
    message: str
    timestamp: datetime
    dismissed: bool = False
    dismissed_at: datetime | None = None
    transactions: list[Transaction] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "due_time": format_timestamp(self.due_time),
            "message": self.message,
            "timestamp": format_timestamp(self.timestamp),
            "dismissed": self.dismissed,
            "transactions": [t.to_dict() for t in self.transactions],
        }
        if self.dismissed_at is not None:
            d["dismissed_at"] = format_timestamp(self.dismissed_at)
        return d


EntityState = SeedState | TagState | FollowupState


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def utc_now() -> datetime:
    """Current time, timezone-aware UTC."""
    return datetime.now(UTC)


def parse_timestamp(value: str | datetime) -> datetime:
    """
    Parse an ISO 8601 string (a trailing "Z" is accepted) into an aware datetime.
    Naive values are taken to be UTC.

    Raises ValueError on anything unparseable.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        dt = datetime.fromisoformat(text)
    else:
        raise ValueError(f"Not a timestamp: {value!r}")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt


def format_timestamp(value: datetime) -> str:
    """ISO 8601 UTC with millisecond precision and a "Z" suffix."""
    return value.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")
