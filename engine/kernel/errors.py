"""
Memoriae Kernel: Exceptions

Raised by validation and reduction. Nothing here is retried; a reducer
either skips the offending transaction or lets the error reach the caller.
"""

from __future__ import annotations


class KernelError(Exception):
    """Base class for kernel errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class TransactionValidationError(KernelError):
    """A transaction payload does not match the shape its type requires."""

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or [message]


class MissingCreationTransaction(KernelError):
    """An entity's history has no creation transaction. Not recoverable by replay."""

    pass
