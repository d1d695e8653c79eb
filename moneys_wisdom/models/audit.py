"""
Audit Models for Money's Wisdom

Every significant action in the system is logged for audit purposes.
This provides:
1. Traceability of every balance change
2. Debugging information when a save or import goes wrong
3. A recent-activity view for the user

DESIGN DECISION: Audit events are append-only. We never delete or modify them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every user-facing action has its own event type.
    """
    # Ledger
    INCOME_ALLOCATED = "income_allocated"
    PERCENTAGES_ADJUSTED = "percentages_adjusted"
    PLAY_SPENT = "play_spent"
    TRANSACTION_DELETED = "transaction_deleted"

    # Dream goals
    GOAL_ADDED = "goal_added"
    GOAL_REALIZED = "goal_realized"
    GOAL_REALIZATION_BLOCKED = "goal_realization_blocked"
    GOAL_DELETED = "goal_deleted"

    # Journal
    JOURNAL_ENTRY_SAVED = "journal_entry_saved"
    JOURNAL_ENTRY_DELETED = "journal_entry_deleted"

    # Validation
    VALIDATION_FAILED = "validation_failed"

    # Persistence
    DATA_SAVED = "data_saved"
    SAVE_FAILED = "save_failed"
    SNAPSHOT_DISCARDED = "snapshot_discarded"
    BACKUP_EXPORTED = "backup_exported"
    BACKUP_IMPORTED = "backup_imported"
    IMPORT_FAILED = "import_failed"
    DATA_CLEARED = "data_cleared"

    # External services
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'goal', 'journal_entry')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., a mutation and its save)"
    )

    # Event details
    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    # Additional data (event-specific)
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_message: Optional[str] = None

    # User action tracking
    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.income_allocated(income, transaction_ids)
        event = AuditEventBuilder.data_saved(timestamp, version)
    """

    @staticmethod
    def income_allocated(
        income: str,
        transaction_ids: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INCOME_ALLOCATED,
            entity_type="transaction",
            entity_id=transaction_ids[0] if transaction_ids else None,
            correlation_id=correlation_id,
            description=f"Income of {income} allocated across {len(transaction_ids)} funds",
            details={
                "income": income,
                "transaction_ids": transaction_ids,
            },
            is_user_action=True,
        )

    @staticmethod
    def percentages_adjusted(
        target: str,
        requested_delta: int,
        percentages: dict[str, int],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERCENTAGES_ADJUSTED,
            entity_type="percentages",
            description=f"Percentage for {target} adjusted by {requested_delta:+d}",
            details={
                "target": target,
                "requested_delta": requested_delta,
                "percentages": percentages,
            },
            is_user_action=True,
        )

    @staticmethod
    def play_spent(
        transaction_id: str,
        amount: str,
        description: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PLAY_SPENT,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Play fund spent: {amount}",
            details={
                "amount": amount,
                "description": description,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_deleted(
        transaction_id: str,
        fund_type: str,
        transaction_type: str,
        amount: str,
        reverted_goal_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction deleted and reversed: {transaction_type} {amount} ({fund_type})",
            details={
                "fund_type": fund_type,
                "transaction_type": transaction_type,
                "amount": amount,
                "reverted_goal_id": reverted_goal_id,
            },
            is_user_action=True,
        )

    @staticmethod
    def goal_added(
        goal_id: str,
        name: str,
        cost: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GOAL_ADDED,
            entity_type="goal",
            entity_id=goal_id,
            description=f"Dream goal added: {name}",
            details={
                "name": name,
                "cost": cost,
            },
            is_user_action=True,
        )

    @staticmethod
    def goal_realized(
        goal_id: str,
        kind: str,
        dream_amount: str,
        play_amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GOAL_REALIZED,
            entity_type="goal",
            entity_id=goal_id,
            correlation_id=correlation_id,
            description=f"Dream goal realized ({kind.lower()})",
            details={
                "kind": kind,
                "dream_amount": dream_amount,
                "play_amount": play_amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def goal_realization_blocked(
        goal_id: str,
        shortfall: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GOAL_REALIZATION_BLOCKED,
            severity=AuditSeverity.WARNING,
            entity_type="goal",
            entity_id=goal_id,
            description=f"Dream goal cannot be realized yet, short by {shortfall}",
            details={
                "shortfall": shortfall,
            },
        )

    @staticmethod
    def goal_deleted(
        goal_id: str,
        name: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GOAL_DELETED,
            entity_type="goal",
            entity_id=goal_id,
            description=f"Dream goal deleted: {name}",
            details={
                "name": name,
            },
            is_user_action=True,
        )

    @staticmethod
    def journal_entry_saved(
        entry_id: str,
        filled_items: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.JOURNAL_ENTRY_SAVED,
            entity_type="journal_entry",
            entity_id=entry_id,
            description=f"Journal entry saved with {filled_items} items",
            details={
                "filled_items": filled_items,
            },
            is_user_action=True,
        )

    @staticmethod
    def journal_entry_deleted(entry_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.JOURNAL_ENTRY_DELETED,
            entity_type="journal_entry",
            entity_id=entry_id,
            description="Journal entry deleted",
            is_user_action=True,
        )

    @staticmethod
    def validation_failed(
        action: str,
        issues: list[dict],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="action",
            description=f"{action} blocked by {len(issues)} validation issues",
            details={
                "action": action,
                "issues": issues,
            },
        )

    @staticmethod
    def data_saved(
        timestamp: int,
        version: int,
        size_bytes: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DATA_SAVED,
            severity=AuditSeverity.DEBUG,
            entity_type="snapshot",
            description=f"Snapshot saved (v{version}, ts {timestamp})",
            details={
                "timestamp": timestamp,
                "version": version,
                "size_bytes": size_bytes,
            },
        )

    @staticmethod
    def save_failed(error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="snapshot",
            description="Failed to persist snapshot",
            error_message=error_message,
        )

    @staticmethod
    def snapshot_discarded(reason: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_DISCARDED,
            severity=AuditSeverity.WARNING,
            entity_type="snapshot",
            description="Persisted snapshot unreadable, treated as absent",
            error_message=reason,
        )

    @staticmethod
    def backup_exported(fmt: str, transaction_count: int, journal_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKUP_EXPORTED,
            entity_type="backup",
            description=f"Backup exported as {fmt}",
            details={
                "format": fmt,
                "transaction_count": transaction_count,
                "journal_count": journal_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def backup_imported(transaction_count: int, journal_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKUP_IMPORTED,
            entity_type="backup",
            description=(
                f"Backup imported: {transaction_count} transactions, "
                f"{journal_count} journal entries"
            ),
            details={
                "transaction_count": transaction_count,
                "journal_count": journal_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def import_failed(error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="backup",
            description="Backup import rejected",
            error_message=error_message,
            is_user_action=True,
        )

    @staticmethod
    def data_cleared(timestamp: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DATA_CLEARED,
            severity=AuditSeverity.WARNING,
            entity_type="snapshot",
            description="All ledger and journal data reset",
            details={
                "timestamp": timestamp,
            },
            is_user_action=True,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )
