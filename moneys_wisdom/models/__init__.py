"""
Data Models Package

This package contains all Pydantic models used in Money's Wisdom.
All data flowing through the system must conform to these schemas.
"""

from moneys_wisdom.models.ledger import (
    ALLOCATION_DESCRIPTION,
    GOAL_REALIZED_PREFIX,
    GOAL_TOP_UP_TEMPLATE,
    JOURNAL_ITEM_COUNT,
    PLAY_SPEND_DESCRIPTION,
    Allocation,
    AppData,
    DreamGoal,
    FundType,
    ImportResult,
    JournalEntry,
    LedgerState,
    Percentages,
    RealizationKind,
    RealizationPlan,
    Transaction,
    TransactionType,
    ValidationIssue,
    ValidationResult,
)
from moneys_wisdom.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Persisted conventions
    "ALLOCATION_DESCRIPTION",
    "GOAL_REALIZED_PREFIX",
    "GOAL_TOP_UP_TEMPLATE",
    "JOURNAL_ITEM_COUNT",
    "PLAY_SPEND_DESCRIPTION",
    # Ledger models
    "Allocation",
    "AppData",
    "DreamGoal",
    "FundType",
    "ImportResult",
    "JournalEntry",
    "LedgerState",
    "Percentages",
    "RealizationKind",
    "RealizationPlan",
    "Transaction",
    "TransactionType",
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
