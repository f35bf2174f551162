"""Seed models. A seed is a captured thought whose content is replayed from transactions."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from engine.kernel.types import SeedState


class CreateSeedRequest(BaseModel):
    """What the client sends to create a seed."""

    model_config = {"extra": "forbid"}

    content: str = Field(max_length=100000)


class SeedTag(BaseModel):
    id: str
    name: str


class SeedCategory(BaseModel):
    id: str
    name: str
    path: str


class CategoryAssignment(BaseModel):
    """Category to set on a seed."""

    model_config = {"extra": "forbid"}

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    path: str = Field(min_length=1)


class Seed(BaseModel):
    """A seed with its replayed state."""

    id: str
    user_id: str
    created_at: datetime
    content: str
    tags: list[SeedTag] = Field(default_factory=list)
    categories: list[SeedCategory] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_state(cls, seed_id: str, user_id: str, state: SeedState) -> Seed:
        return cls(
            id=seed_id,
            user_id=user_id,
            created_at=state.timestamp,
            content=state.content,
            tags=[SeedTag(id=t.id, name=t.name) for t in state.tags],
            categories=[SeedCategory(id=c.id, name=c.name, path=c.path) for c in state.categories],
            metadata=state.metadata,
        )
