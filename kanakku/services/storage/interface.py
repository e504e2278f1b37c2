"""
Abstract Storage Interface

DESIGN DECISION: The app persists through a plain key-value interface.
This allows us to:
1. Keep data in a JSON file on disk for normal use
2. Use in-memory storage for testing and for session-scoped state
3. Swap in another backend (browser storage bridge, SQLite) later
4. Keep lifecycle logic decoupled from storage implementation

Values are JSON-compatible (dicts, lists, strings, numbers, bools).
Typed access lives in LedgerRepository, not here.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from kanakku.models.audit import AuditEvent


class KeyValueStoreInterface(ABC):
    """
    Abstract interface for the persistent key-value layer.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """
        Read a value.

        Returns:
            The stored JSON-compatible value, or None if the key is absent

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """
        Write a value, replacing any previous one.

        Raises:
            StorageError: If the backend cannot be written
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove a key. Removing an absent key is not an error."""
        pass

    @abstractmethod
    def keys(self) -> list[str]:
        """List stored keys."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never modify stored events.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass

    @abstractmethod
    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity.

        Returns:
            List of events in chronological order
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class CorruptDataError(StorageError):
    """Persisted value does not match the expected schema."""
    pass
