"""
Data Models Package

This package contains all Pydantic models used in Kanakku.
All data flowing through the system must conform to these schemas.
"""

from kanakku.models.finance import (
    Budget,
    Expense,
    ExpenseCategory,
    ExpenseDraft,
    Income,
    IncomeBuckets,
    IncomeCategory,
    IncomeDraft,
    IncomeStatus,
    PaymentMethod,
    Recurrence,
)
from kanakku.models.profile import (
    BackupMetadata,
    BackupReceipt,
    BackupSnapshot,
    LocalBackup,
    SnapshotData,
    Theme,
    UserProfile,
)
from kanakku.models.results import (
    ErrorCode,
    OperationResult,
    ValidationIssue,
    ValidationResult,
)
from kanakku.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Finance models
    "Budget",
    "Expense",
    "ExpenseCategory",
    "ExpenseDraft",
    "Income",
    "IncomeBuckets",
    "IncomeCategory",
    "IncomeDraft",
    "IncomeStatus",
    "PaymentMethod",
    "Recurrence",
    # Profile & backup models
    "BackupMetadata",
    "BackupReceipt",
    "BackupSnapshot",
    "LocalBackup",
    "SnapshotData",
    "Theme",
    "UserProfile",
    # Results
    "ErrorCode",
    "OperationResult",
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
