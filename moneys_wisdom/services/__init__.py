"""Services package."""

from moneys_wisdom.services.storage import (
    FileKeyValueStorage,
    InMemoryKeyValueStorage,
    KeyValueStorageInterface,
    ReconciliationStore,
    StorageError,
    StorageFailure,
    StorageQuotaExceededError,
    StorageWriteError,
)

__all__ = [
    "FileKeyValueStorage",
    "InMemoryKeyValueStorage",
    "KeyValueStorageInterface",
    "ReconciliationStore",
    "StorageError",
    "StorageFailure",
    "StorageQuotaExceededError",
    "StorageWriteError",
]
