"""
Audit Logger

DESIGN DECISION: Every significant state change is logged.
This provides:
1. Traceability of every income transition and backup
2. Debugging capability when an import is rejected
3. A history the user can inspect

The audit logger:
- Is synchronous, like the mutations it records
- Gracefully handles failures (doesn't break the app if logging fails)
- Supports correlation IDs to trace related events
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from kanakku.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from kanakku.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """Route structlog output through stdlib logging at the given level."""
    logging.basicConfig(format="%(message)s", level=getattr(logging, level.upper()))
    logging.getLogger().setLevel(getattr(logging, level.upper()))


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The stored audit trail (for user visibility), when configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("kanakku.audit")

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def log_income_created(
        self,
        income_id: str,
        category: str,
        status: str,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.income_created(
            income_id=income_id,
            category=category,
            status=status,
            correlation_id=correlation_id,
        ))

    def log_successor_generated(
        self,
        income_id: str,
        originator_id: str,
        due_date: str,
        status: str,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.income_successor_generated(
            income_id=income_id,
            originator_id=originator_id,
            due_date=due_date,
            status=status,
            correlation_id=correlation_id,
        ))

    def log_income_received(
        self,
        income_id: str,
        scheduled_date: str,
        received_date: str,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.income_marked_received(
            income_id=income_id,
            scheduled_date=scheduled_date,
            received_date=received_date,
            correlation_id=correlation_id,
        ))

    def log_reconciled(self, to_overdue: int, to_expected: int) -> None:
        self.log(AuditEventBuilder.incomes_reconciled(
            to_overdue=to_overdue,
            to_expected=to_expected,
        ))

    def log_removed(
        self,
        event_type: AuditEventType,
        entity_type: str,
        entity_id: str,
    ) -> None:
        self.log(AuditEventBuilder.entity_removed(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
        ))

    def log_changed(
        self,
        event_type: AuditEventType,
        entity_type: str,
        entity_id: Optional[str],
        description: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.entity_changed(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            description=description,
            details=details,
            correlation_id=correlation_id,
        ))

    def log_validation_failed(
        self,
        entity_type: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.validation_failed(
            entity_type=entity_type,
            issues=issues,
            correlation_id=correlation_id,
        ))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., mark received).
    Pass it through all subsequent operations.
    """
    return uuid4()
