"""Follow-up models. A follow-up is a reminder attached to a seed."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from engine.kernel.types import FollowupState


class CreateFollowupRequest(BaseModel):
    """What the client sends to schedule a follow-up on a seed."""

    model_config = {"extra": "forbid"}

    due_time: datetime
    message: str = Field(max_length=10000)


class EditFollowupRequest(BaseModel):
    """Change the due time and/or message. Omitted fields keep their current value."""

    model_config = {"extra": "forbid"}

    due_time: datetime | None = None
    message: str | None = Field(default=None, max_length=10000)


class FollowupTransaction(BaseModel):
    """One entry of a follow-up's audit history."""

    id: str
    followup_id: str
    transaction_type: str
    transaction_data: dict[str, Any]
    created_at: datetime


class Followup(BaseModel):
    """A follow-up with its replayed state and full history."""

    id: str
    seed_id: str
    created_at: datetime
    due_time: datetime
    message: str
    dismissed: bool = False
    dismissed_at: datetime | None = None
    transactions: list[FollowupTransaction] = Field(default_factory=list)

    @classmethod
    def from_state(cls, followup_id: str, seed_id: str, state: FollowupState) -> Followup:
        return cls(
            id=followup_id,
            seed_id=seed_id,
            created_at=state.timestamp,
            due_time=state.due_time,
            message=state.message,
            dismissed=state.dismissed,
            dismissed_at=state.dismissed_at,
            transactions=[
                FollowupTransaction(
                    id=t.id,
                    followup_id=t.entity_id,
                    transaction_type=t.type,
                    transaction_data=t.payload,
                    created_at=t.created_at,
                )
                for t in state.transactions
            ],
        )


class DueFollowup(BaseModel):
    """Lightweight notification record for a follow-up that is due."""

    followup_id: str
    seed_id: str
    user_id: str
    due_time: datetime
    message: str
