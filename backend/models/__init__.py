"""
Pydantic models for Memoriae.

All data shapes defined here. No imports from db, repos, or services.
"""

from backend.models.followup import (
    CreateFollowupRequest,
    DueFollowup,
    EditFollowupRequest,
    Followup,
    FollowupTransaction,
)
from backend.models.seed import (
    CategoryAssignment,
    CreateSeedRequest,
    Seed,
    SeedCategory,
    SeedTag,
)
from backend.models.tag import CreateTagRequest, Tag

__all__ = [
    # Seed models
    "Seed",
    "SeedTag",
    "SeedCategory",
    "CategoryAssignment",
    "CreateSeedRequest",
    # Tag models
    "Tag",
    "CreateTagRequest",
    # Follow-up models
    "Followup",
    "FollowupTransaction",
    "DueFollowup",
    "CreateFollowupRequest",
    "EditFollowupRequest",
]
