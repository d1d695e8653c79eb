"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for the storage medium.
This allows us to:
1. Keep snapshots on disk today and somewhere else tomorrow
2. Use in-memory storage for testing
3. Keep the reconciliation logic decoupled from the medium

The interface is intentionally narrow - a string key-value store.
The whole AppData aggregate lives under a single key.
"""

from abc import ABC, abstractmethod
from typing import Optional


class KeyValueStorageInterface(ABC):
    """
    Abstract interface for the local key-value store.

    Any storage implementation (files, memory, browser-like stores)
    must implement these methods.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """
        Read the value stored under a key.

        Args:
            key: Storage key

        Returns:
            The stored string, or None if the key is absent
        """
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """
        Store a value, replacing any previous one.

        Args:
            key: Storage key
            value: String to store

        Raises:
            StorageWriteError: If the medium is unavailable
            StorageQuotaExceededError: If the value does not fit
        """
        pass

    @abstractmethod
    def remove(self, key: str) -> None:
        """
        Delete a key. Removing an absent key is not an error.

        Args:
            key: Storage key
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class StorageWriteError(StorageError):
    """The storage medium could not be written."""
    pass


class StorageQuotaExceededError(StorageWriteError):
    """The value is larger than the medium allows."""

    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(f"Value of {size} bytes exceeds storage quota of {limit} bytes")


class StorageFailure(StorageError):
    """
    Saving the app data failed.

    Surfaced to the user as a blocking notification; in-memory state
    is not rolled back.
    """
    pass
