"""
Memoriae Kernel: Transaction Construction

Factory for well-formed transactions.
Used by stores when appending, and by tests to build histories concisely.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import uuid4

from engine.kernel.types import Transaction, parse_timestamp, utc_now


def make_transaction(
    entity_id: str,
    type: str,
    payload: dict[str, Any],
    *,
    created_at: datetime | str | None = None,
    automation_id: str | None = None,
    transaction_id: str | None = None,
) -> Transaction:
    """
    Build a Transaction from minimal inputs.

    created_at accepts an aware datetime or an ISO 8601 string and defaults
    to now. The id is a fresh UUID unless one is given.
    """
    ts = parse_timestamp(created_at) if created_at is not None else utc_now()
    return Transaction(
        id=transaction_id or str(uuid4()),
        entity_id=str(entity_id),
        type=type,
        payload=dict(payload),
        created_at=ts,
        automation_id=automation_id,
    )
