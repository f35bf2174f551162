"""Tag models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from engine.kernel.types import TagState


class CreateTagRequest(BaseModel):
    """What the client (or an automation) sends to create a tag."""

    model_config = {"extra": "forbid"}

    name: str = Field(max_length=200)
    color: str | None = None


class Tag(BaseModel):
    """A tag with its replayed state."""

    id: str
    name: str
    color: str | None = None
    created_at: datetime

    @classmethod
    def from_state(cls, tag_id: str, state: TagState) -> Tag:
        return cls(id=tag_id, name=state.name, color=state.color, created_at=state.timestamp)
