"""
Audit Models for the Finance Ledger

Every mutation of the ledger produces an event. Events serve two purposes:
1. A structured trail of what changed (logged through structlog)
2. Notifications the surrounding UI reacts to (e.g. a pot reaching its goal)

DESIGN DECISION: Events are append-only and never edited.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events the ledger records."""
    # Transactions
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_REMOVED = "transaction_removed"

    # Accounts
    ACCOUNT_ADDED = "account_added"
    ACCOUNT_UPDATED = "account_updated"
    ACCOUNT_REMOVED = "account_removed"
    PRIMARY_ACCOUNT_CHANGED = "primary_account_changed"

    # Pots
    POT_GOAL_REACHED = "pot_goal_reached"

    # Categories
    CATEGORY_REMOVED = "category_removed"
    CATEGORY_BULK_APPLIED = "category_bulk_applied"

    # Import / export / persistence
    CSV_IMPORTED = "csv_imported"
    SNAPSHOT_IMPORTED = "snapshot_imported"
    LEDGER_RESET = "ledger_reset"
    PERSIST_FAILED = "persist_failed"

    # Validation
    VALIDATION_FAILED = "validation_failed"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of the ledger's trail.
    Every mutation creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.now,
        description="When the event occurred"
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
        description="Type of entity (e.g., 'transaction', 'account', 'pot')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

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
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class GoalReachedEvent(BaseModel):
    """
    One-shot notification that a savings pot crossed its goal.

    Emitted only on the crossing (saved amount went from below the goal
    to at or above it), never for deposits into an already full pot.
    """
    pot_id: UUID
    pot_name: str
    goal: Decimal
    saved: Decimal


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_added(tx_id, name, amount, kind)
        event = AuditEventBuilder.pot_goal_reached(goal_event)
    """

    @staticmethod
    def transaction_added(
        transaction_id: UUID,
        name: str,
        amount: Decimal,
        kind: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_ADDED,
            entity_type="transaction",
            entity_id=transaction_id,
            description=f"Transaction added: {name}",
            details={
                "amount": str(amount),
                "kind": kind,
            },
        )

    @staticmethod
    def transaction_updated(
        transaction_id: UUID,
        name: str,
        category_changed: bool,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_UPDATED,
            entity_type="transaction",
            entity_id=transaction_id,
            description=f"Transaction updated: {name}",
            details={
                "category_changed": category_changed,
            },
        )

    @staticmethod
    def transaction_removed(transaction_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_REMOVED,
            entity_type="transaction",
            entity_id=transaction_id,
            description="Transaction removed",
        )

    @staticmethod
    def account_added(account_id: UUID, name: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_ADDED,
            entity_type="account",
            entity_id=account_id,
            description=f"Account added: {name}",
        )

    @staticmethod
    def account_updated(account_id: UUID, name: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_UPDATED,
            entity_type="account",
            entity_id=account_id,
            description=f"Account updated: {name}",
        )

    @staticmethod
    def account_removed(
        account_id: UUID,
        removed_account_ids: list[UUID],
        removed_pot_ids: list[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_REMOVED,
            entity_type="account",
            entity_id=account_id,
            description=(
                f"Account removed with {len(removed_account_ids) - 1} sub-accounts "
                f"and {len(removed_pot_ids)} pots"
            ),
            details={
                "removed_account_ids": [str(i) for i in removed_account_ids],
                "removed_pot_ids": [str(i) for i in removed_pot_ids],
            },
        )

    @staticmethod
    def primary_account_changed(account_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PRIMARY_ACCOUNT_CHANGED,
            entity_type="account",
            entity_id=account_id,
            description="Primary account changed",
        )

    @staticmethod
    def pot_goal_reached(goal: GoalReachedEvent) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.POT_GOAL_REACHED,
            entity_type="pot",
            entity_id=goal.pot_id,
            description=f"Savings goal reached: {goal.pot_name}",
            details={
                "goal": str(goal.goal),
                "saved": str(goal.saved),
            },
        )

    @staticmethod
    def category_removed(category_id: UUID, cleared_transactions: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_REMOVED,
            entity_type="category",
            entity_id=category_id,
            description="Category removed",
            details={
                "cleared_transactions": cleared_transactions,
            },
        )

    @staticmethod
    def category_bulk_applied(
        category_id: UUID,
        name: str,
        changed: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_BULK_APPLIED,
            entity_type="category",
            entity_id=category_id,
            description=f"Category applied to {changed} past transactions named '{name}'",
            details={
                "name": name,
                "changed": changed,
            },
        )

    @staticmethod
    def csv_imported(account_id: UUID, imported: int, skipped: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CSV_IMPORTED,
            entity_type="account",
            entity_id=account_id,
            description=f"CSV import: {imported} transactions imported",
            details={
                "imported": imported,
                "skipped": skipped,
            },
        )

    @staticmethod
    def snapshot_imported(version: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_IMPORTED,
            entity_type="snapshot",
            description=f"Backup imported (format version {version})",
            details={
                "version": version,
            },
        )

    @staticmethod
    def ledger_reset() -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_RESET,
            description="Ledger reset to empty state",
        )

    @staticmethod
    def persist_failed(error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERSIST_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="snapshot",
            description="Persisting ledger snapshot failed",
            error_message=error_message,
        )

    @staticmethod
    def validation_failed(
        entity_type: str,
        entity_id: Optional[UUID],
        issues: list[dict],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"Validation failed with {len(issues)} issues",
            details={
                "issues": issues,
            },
        )
