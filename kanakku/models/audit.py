"""
Audit Models for Kanakku

Every significant state change is logged for audit purposes.
This provides:
1. Traceability of every lifecycle transition
2. Debugging information when a backup will not restore
3. Ability to reconstruct how an income chain evolved

DESIGN DECISION: Audit logs are append-only. We never modify them;
the stored trail is only trimmed from the oldest end.
"""

import json
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

    Every income transition has its own event type.
    """
    # Income lifecycle
    INCOME_CREATED = "income_created"
    INCOME_SUCCESSOR_GENERATED = "income_successor_generated"
    INCOME_MARKED_RECEIVED = "income_marked_received"
    INCOME_DELETED = "income_deleted"
    INCOME_RESTORED = "income_restored"
    INCOMES_RECONCILED = "incomes_reconciled"

    # Expenses & budgets
    EXPENSE_ADDED = "expense_added"
    EXPENSE_DELETED = "expense_deleted"
    EXPENSE_RESTORED = "expense_restored"
    BUDGET_SET = "budget_set"
    DEMO_DATA_LOADED = "demo_data_loaded"

    # Validation
    VALIDATION_FAILED = "validation_failed"

    # Backup / restore
    BACKUP_CREATED = "backup_created"
    BACKUP_DELIVERY_FAILED = "backup_delivery_failed"
    BACKUP_DELETED = "backup_deleted"
    DATA_IMPORTED = "data_imported"
    IMPORT_FAILED = "import_failed"
    USER_RESTORED = "user_restored"
    EXPORT_GENERATED = "export_generated"

    # Accounts
    LOGIN_SUCCEEDED = "login_succeeded"
    LOGIN_FAILED = "login_failed"
    SIGNUP_STARTED = "signup_started"
    ONBOARDING_COMPLETED = "onboarding_completed"
    LOGOUT = "logout"
    PASSWORD_RESET = "password_reset"
    PROFILE_UPDATED = "profile_updated"
    BIOMETRIC_REGISTERED = "biometric_registered"

    # System events
    SYSTEM_ERROR = "system_error"


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
        description="Type of entity (e.g., 'income', 'expense', 'backup', 'user')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., an income and its successor)"
    )

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
    error_code: Optional[str] = None
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
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_storage_row(self) -> list:
        """
        Convert to a flat row for the stored audit trail.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]

    @classmethod
    def from_storage_row(cls, row: list) -> "AuditEvent":
        """Inverse of to_storage_row."""
        return cls(
            event_id=UUID(row[0]),
            timestamp=datetime.fromisoformat(row[1]),
            event_type=AuditEventType(row[2]),
            severity=AuditSeverity(row[3]),
            entity_type=row[4] or None,
            entity_id=row[5] or None,
            correlation_id=UUID(row[6]) if row[6] else None,
            description=row[7],
            details=json.loads(row[8]) if row[8] else {},
            error_message=row[9] or None,
            is_user_action=row[10] == "True",
        )


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.income_created(income_id, "Salary", "Received", correlation_id)
        event = AuditEventBuilder.backup_created(backup_id, size, correlation_id)
    """

    @staticmethod
    def income_created(
        income_id: str,
        category: str,
        status: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INCOME_CREATED,
            entity_type="income",
            entity_id=income_id,
            correlation_id=correlation_id,
            description=f"{category} income created as {status}",
            details={
                "category": category,
                "status": status,
            },
            is_user_action=True,
        )

    @staticmethod
    def income_successor_generated(
        income_id: str,
        originator_id: str,
        due_date: str,
        status: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INCOME_SUCCESSOR_GENERATED,
            entity_type="income",
            entity_id=income_id,
            correlation_id=correlation_id,
            description=f"Next occurrence generated for {due_date} ({status})",
            details={
                "originator_id": originator_id,
                "date": due_date,
                "status": status,
            },
        )

    @staticmethod
    def income_marked_received(
        income_id: str,
        scheduled_date: str,
        received_date: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INCOME_MARKED_RECEIVED,
            entity_type="income",
            entity_id=income_id,
            correlation_id=correlation_id,
            description=f"Income due {scheduled_date} marked received on {received_date}",
            details={
                "scheduled_date": scheduled_date,
                "received_date": received_date,
            },
            is_user_action=True,
        )

    @staticmethod
    def incomes_reconciled(
        to_overdue: int,
        to_expected: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INCOMES_RECONCILED,
            entity_type="income",
            correlation_id=correlation_id,
            description=(
                f"Reconciled incomes: {to_overdue} now overdue, "
                f"{to_expected} back to expected"
            ),
            details={
                "to_overdue": to_overdue,
                "to_expected": to_expected,
            },
        )

    @staticmethod
    def entity_removed(
        event_type: AuditEventType,
        entity_type: str,
        entity_id: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"{entity_type.capitalize()} {entity_id} removed",
            is_user_action=True,
        )

    @staticmethod
    def entity_changed(
        event_type: AuditEventType,
        entity_type: str,
        entity_id: Optional[str],
        description: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=description,
            details=details or {},
            is_user_action=True,
        )

    @staticmethod
    def validation_failed(
        entity_type: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            correlation_id=correlation_id,
            description=f"{entity_type.capitalize()} input rejected with {len(issues)} issues",
            details={
                "issues": issues,
            },
            is_user_action=True,
        )

    @staticmethod
    def backup_created(
        backup_id: str,
        size: int,
        custom_key: bool,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKUP_CREATED,
            entity_type="backup",
            entity_id=backup_id,
            correlation_id=correlation_id,
            description=f"Encrypted backup saved locally ({size} chars)",
            details={
                "size": size,
                "custom_key": custom_key,
            },
            is_user_action=True,
        )

    @staticmethod
    def backup_delivery_failed(
        backup_id: Optional[str],
        channel: str,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKUP_DELIVERY_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="backup",
            entity_id=backup_id,
            correlation_id=correlation_id,
            description=f"Delivery through {channel} failed; local copy kept",
            error_message=error_message,
            details={
                "channel": channel,
            },
        )

    @staticmethod
    def import_failed(
        error_code: str,
        mode: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="backup",
            correlation_id=correlation_id,
            description=f"Backup {mode} rejected: {error_code}",
            error_code=error_code,
            details={
                "mode": mode,
            },
            is_user_action=True,
        )

    @staticmethod
    def data_imported(
        event_type: AuditEventType,
        user_id: str,
        counts: dict[str, int],
        profile_updated: bool,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            entity_type="user",
            entity_id=user_id,
            correlation_id=correlation_id,
            description=(
                f"Restored {counts.get('expenses', 0)} expenses, "
                f"{counts.get('incomes', 0)} incomes, "
                f"{counts.get('budgets', 0)} budgets"
            ),
            details={
                **counts,
                "profile_updated": profile_updated,
            },
            is_user_action=True,
        )

    @staticmethod
    def login_attempt(
        identifier: str,
        succeeded: bool,
        user_id: Optional[str] = None,
        error_code: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=(
                AuditEventType.LOGIN_SUCCEEDED if succeeded
                else AuditEventType.LOGIN_FAILED
            ),
            severity=AuditSeverity.INFO if succeeded else AuditSeverity.WARNING,
            entity_type="user",
            entity_id=user_id,
            description=(
                "User logged in" if succeeded
                else f"Login rejected: {error_code}"
            ),
            error_code=error_code,
            details={
                "identifier": identifier,
            },
            is_user_action=True,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
