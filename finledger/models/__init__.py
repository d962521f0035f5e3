"""
Data Models Package

This package contains all Pydantic models used by the finance ledger.
All data flowing through the engine must conform to these schemas.
"""

from finledger.models.ledger import (
    Account,
    AccountCategory,
    AppearanceMode,
    AppSettings,
    Category,
    ColorValue,
    Debt,
    DebtDirection,
    Investment,
    LedgerSnapshot,
    SavingsPot,
    Transaction,
    TransactionKind,
    ValidationIssue,
    ValidationResult,
    default_seed_categories,
)
from finledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    GoalReachedEvent,
)
from finledger.models.query import (
    MonthlyPoint,
    StatsSummary,
    TimeRange,
    TopPlace,
    TransactionFilter,
)

__all__ = [
    # Ledger models
    "Account",
    "AccountCategory",
    "AppearanceMode",
    "AppSettings",
    "Category",
    "ColorValue",
    "Debt",
    "DebtDirection",
    "Investment",
    "LedgerSnapshot",
    "SavingsPot",
    "Transaction",
    "TransactionKind",
    "ValidationIssue",
    "ValidationResult",
    "default_seed_categories",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    "GoalReachedEvent",
    # Query models
    "MonthlyPoint",
    "StatsSummary",
    "TimeRange",
    "TopPlace",
    "TransactionFilter",
]
