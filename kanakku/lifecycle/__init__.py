"""Income lifecycle package."""

from kanakku.lifecycle.engine import (
    AlreadyReceivedError,
    EntryNotFoundError,
    LifecycleError,
    bucket_pending,
    count_transitions,
    create_income,
    mark_received,
    reconcile,
    remove_entry,
    restore_entry,
)

__all__ = [
    "AlreadyReceivedError",
    "EntryNotFoundError",
    "LifecycleError",
    "bucket_pending",
    "count_transitions",
    "create_income",
    "mark_received",
    "reconcile",
    "remove_entry",
    "restore_entry",
]
