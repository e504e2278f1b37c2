"""Tests for the audit logger and the stored audit trail."""

from kanakku.audit import AuditLogger, create_correlation_id
from kanakku.models.audit import AuditEvent, AuditEventType
from kanakku.services.storage import (
    InMemoryKeyValueStore,
    KeyValueAuditStorage,
    StorageError,
)
from kanakku.services.storage.interface import AuditStorageInterface


class FailingAuditStorage(AuditStorageInterface):

    def append_event(self, event):
        raise StorageError("quota exceeded")

    def get_recent_events(self, limit=100):
        return []

    def get_events_by_entity(self, entity_type, entity_id):
        return []


def logout_event(user_id: str) -> AuditEvent:
    return AuditEvent(
        event_type=AuditEventType.LOGOUT,
        entity_type="user",
        entity_id=user_id,
        description="User logged out",
    )


class TestAuditLogger:

    def test_without_storage_logs_locally(self):
        assert AuditLogger().log(logout_event("u-1")) is True

    def test_storage_failure_does_not_raise(self):
        """A broken trail must never break the mutation being audited."""
        logger = AuditLogger(FailingAuditStorage())
        assert logger.log(logout_event("u-1")) is False

    def test_helpers_share_correlation_id(self, audit_logger, audit_storage):
        correlation_id = create_correlation_id()
        audit_logger.log_income_created("i-1", "Salary", "Received", correlation_id)
        audit_logger.log_successor_generated("i-2", "i-1", "2024-07-12", "Expected", correlation_id)

        events = audit_storage.get_recent_events()

        assert [e.event_type for e in events] == [
            AuditEventType.INCOME_SUCCESSOR_GENERATED,
            AuditEventType.INCOME_CREATED,
        ]
        assert {e.correlation_id for e in events} == {correlation_id}
        assert events[0].details["originator_id"] == "i-1"

    def test_log_error(self, audit_logger, audit_storage):
        audit_logger.log_error("StorageError", "disk full")
        event = audit_storage.get_recent_events(1)[0]
        assert event.event_type == AuditEventType.SYSTEM_ERROR
        assert event.error_message == "disk full"


class TestKeyValueAuditStorage:

    def test_newest_first(self, audit_storage):
        for user_id in ("a", "b", "c"):
            audit_storage.append_event(logout_event(user_id))

        assert [e.entity_id for e in audit_storage.get_recent_events()] == ["c", "b", "a"]
        assert [e.entity_id for e in audit_storage.get_recent_events(2)] == ["c", "b"]

    def test_bounded(self):
        storage = KeyValueAuditStorage(InMemoryKeyValueStore(), max_events=3)
        for n in range(5):
            storage.append_event(logout_event(str(n)))

        assert [e.entity_id for e in storage.get_recent_events()] == ["4", "3", "2"]

    def test_disabled_when_size_is_zero(self):
        store = InMemoryKeyValueStore()
        storage = KeyValueAuditStorage(store, max_events=0)
        assert storage.append_event(logout_event("a"))
        assert store.keys() == []

    def test_events_by_entity_in_chronological_order(self, audit_storage):
        audit_storage.append_event(logout_event("a"))
        audit_storage.append_event(logout_event("b"))
        audit_storage.append_event(logout_event("a"))

        events = audit_storage.get_events_by_entity("user", "a")

        assert len(events) == 2
        assert events[0].timestamp <= events[1].timestamp
        assert audit_storage.get_events_by_entity("income", "a") == []
