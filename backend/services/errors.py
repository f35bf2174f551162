"""
Service-layer precondition errors.

Each carries a fixed, human-readable message meant to reach the end user
unchanged. None of them are retried.

require_valid() runs the kernel validators on a payload before it is
appended, so a malformed write fails as InvalidInput instead of landing
in history for every later replay to skip.
"""

from __future__ import annotations

from typing import Any

from engine.kernel.errors import TransactionValidationError
from engine.kernel.types import EntityFamily
from engine.kernel.validation import validate_transaction


class ServiceError(Exception):
    """Base class for errors raised by the entity services."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidInput(ServiceError):
    """A required field is missing or blank."""


class NotFound(ServiceError):
    pass


class SeedNotFound(NotFound):
    def __init__(self, message: str = "Seed not found") -> None:
        super().__init__(message)


class TagNotFound(NotFound):
    def __init__(self, message: str = "Tag not found") -> None:
        super().__init__(message)


class FollowupNotFound(NotFound):
    def __init__(self, message: str = "Followup not found") -> None:
        super().__init__(message)


class FollowupDismissed(ServiceError):
    """The follow-up is dismissed; dismissal is terminal."""


def require_valid(family: EntityFamily, type: str, payload: dict[str, Any]) -> None:
    """Reject a payload that replay would skip, before it is ever stored."""
    try:
        validate_transaction(family, type, payload)
    except TransactionValidationError as e:
        raise InvalidInput(e.message) from e
