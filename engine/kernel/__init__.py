"""
Memoriae Kernel: the pure engine.

Three components:
  validation: structural checks for every transaction type
  reducer: transactions to current entity state (pure, deterministic)
  store: the storage contracts the services depend on, plus MemoryStore
"""

from engine.kernel.errors import KernelError, MissingCreationTransaction, TransactionValidationError
from engine.kernel.reducer import (
    ReplayResult,
    compute_state,
    group_by_entity,
    reduce_followup,
    reduce_seed,
    reduce_tag,
    replay,
    sort_transactions,
)
from engine.kernel.store import EntityDirectory, MemoryStore, TransactionStore
from engine.kernel.transactions import make_transaction
from engine.kernel.types import (
    EntityFamily,
    FollowupState,
    SeedState,
    TagState,
    Transaction,
)
from engine.kernel.validation import transaction_errors, validate_transaction

__all__ = [
    "EntityFamily",
    "Transaction",
    "SeedState",
    "TagState",
    "FollowupState",
    "validate_transaction",
    "transaction_errors",
    "replay",
    "ReplayResult",
    "compute_state",
    "group_by_entity",
    "reduce_seed",
    "reduce_tag",
    "reduce_followup",
    "sort_transactions",
    "make_transaction",
    "TransactionStore",
    "EntityDirectory",
    "MemoryStore",
    "KernelError",
    "TransactionValidationError",
    "MissingCreationTransaction",
]
