"""Services package."""

from kanakku.services.delivery import (
    DeliveryError,
    DeliveryInterface,
    OutboxDelivery,
)
from kanakku.services.storage import (
    AuditStorageInterface,
    CorruptDataError,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    KeyValueAuditStorage,
    KeyValueStoreInterface,
    LedgerRepository,
    StorageError,
)

__all__ = [
    # Delivery
    "DeliveryError",
    "DeliveryInterface",
    "OutboxDelivery",
    # Storage services
    "AuditStorageInterface",
    "CorruptDataError",
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "KeyValueAuditStorage",
    "KeyValueStoreInterface",
    "LedgerRepository",
    "StorageError",
]
