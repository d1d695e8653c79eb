"""Ledger core: allocation arithmetic, ledger mutations and the success journal."""

from moneys_wisdom.ledger.arithmetic import (
    AllocationDraft,
    adjust_percentage,
    allocate,
    validate_allocation,
)
from moneys_wisdom.ledger.journal import (
    add_entry,
    delete_entry,
    entries_for_day,
    has_entry_for_today,
    todays_entry,
)
from moneys_wisdom.ledger.mutator import (
    LedgerError,
    LedgerMutator,
    LedgerValidationError,
    NotFoundError,
    now_millis,
)

__all__ = [
    # Arithmetic
    "AllocationDraft",
    "adjust_percentage",
    "allocate",
    "validate_allocation",
    # Journal
    "add_entry",
    "delete_entry",
    "entries_for_day",
    "has_entry_for_today",
    "todays_entry",
    # Mutator
    "LedgerError",
    "LedgerMutator",
    "LedgerValidationError",
    "NotFoundError",
    "now_millis",
]
