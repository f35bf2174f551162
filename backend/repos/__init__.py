"""
Repository layer for Memoriae.

All SQL lives here and ONLY here. No database access outside this module.
"""

from backend.repos.directory_repo import DirectoryRepo
from backend.repos.transaction_repo import TransactionRepo

__all__ = [
    "TransactionRepo",
    "DirectoryRepo",
]
