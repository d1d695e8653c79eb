"""
Storage Services Package

Provides the key-value storage interface, its local implementations and
the reconciliation store that decides between the seed and local data.
"""

from moneys_wisdom.services.storage.interface import (
    KeyValueStorageInterface,
    StorageError,
    StorageFailure,
    StorageQuotaExceededError,
    StorageWriteError,
)
from moneys_wisdom.services.storage.local import (
    FileKeyValueStorage,
    InMemoryKeyValueStorage,
)
from moneys_wisdom.services.storage.reconciliation import (
    ReconciliationStore,
    backup_filename,
    parse_backup_text,
)

__all__ = [
    # Interface
    "KeyValueStorageInterface",
    # Exceptions
    "StorageError",
    "StorageFailure",
    "StorageQuotaExceededError",
    "StorageWriteError",
    # Implementations
    "FileKeyValueStorage",
    "InMemoryKeyValueStorage",
    # Reconciliation
    "ReconciliationStore",
    "backup_filename",
    "parse_backup_text",
]
