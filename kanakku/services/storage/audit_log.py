"""
Audit Trail Storage

Keeps the most recent audit events in the key-value store as flat rows
(see AuditEvent.to_storage_row). The trail is bounded; the oldest rows
fall off when it grows past max_events.
"""

from kanakku.models.audit import AuditEvent
from kanakku.services.storage.interface import (
    AuditStorageInterface,
    KeyValueStoreInterface,
)
from kanakku.services.storage.repository import STORAGE_KEY_AUDIT_LOG


class KeyValueAuditStorage(AuditStorageInterface):
    """Bounded, append-only audit trail in a key-value store."""

    def __init__(self, store: KeyValueStoreInterface, max_events: int = 200):
        self._store = store
        self._max_events = max_events

    def _rows(self) -> list[list]:
        return self._store.get(STORAGE_KEY_AUDIT_LOG) or []

    def append_event(self, event: AuditEvent) -> bool:
        if self._max_events <= 0:
            return True
        rows = self._rows()
        rows.append(event.to_storage_row())
        self._store.set(STORAGE_KEY_AUDIT_LOG, rows[-self._max_events:])
        return True

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        rows = self._rows()[-limit:] if limit > 0 else []
        return [AuditEvent.from_storage_row(row) for row in reversed(rows)]

    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        return [
            AuditEvent.from_storage_row(row)
            for row in self._rows()
            if row[4] == entity_type and row[5] == entity_id
        ]
