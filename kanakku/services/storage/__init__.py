"""
Storage Services Package

Provides the abstract key-value interface, two concrete stores
(in-memory and JSON file) and the typed repository over them.
"""

from kanakku.services.storage.interface import (
    AuditStorageInterface,
    CorruptDataError,
    KeyValueStoreInterface,
    StorageError,
)
from kanakku.services.storage.memory import InMemoryKeyValueStore
from kanakku.services.storage.json_file import JsonFileKeyValueStore
from kanakku.services.storage.repository import LedgerRepository
from kanakku.services.storage.audit_log import KeyValueAuditStorage

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "KeyValueStoreInterface",
    # Exceptions
    "CorruptDataError",
    "StorageError",
    # Implementations
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "KeyValueAuditStorage",
    "LedgerRepository",
]
