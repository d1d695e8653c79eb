"""
Local Storage Implementations

DESIGN DECISION: Snapshots are stored on the local machine because:
1. The app is single-user and single-client
2. No server or account setup required
3. The backup/export workflow covers moving data around

Two backends implement the key-value interface:
- FileKeyValueStorage: one JSON file per key in a data directory
- InMemoryKeyValueStorage: a dict, for tests and throwaway sessions

Both enforce an optional byte quota so "storage full" behaves the same
everywhere.
"""

import os
import re
import tempfile
from pathlib import Path
from typing import Optional, Union

from moneys_wisdom.services.storage.interface import (
    KeyValueStorageInterface,
    StorageQuotaExceededError,
    StorageWriteError,
)


_SAFE_KEY = re.compile(r"^[A-Za-z0-9._-]+$")


def _check_quota(value: str, limit: Optional[int]) -> None:
    if limit is None:
        return
    size = len(value.encode("utf-8"))
    if size > limit:
        raise StorageQuotaExceededError(size, limit)


class FileKeyValueStorage(KeyValueStorageInterface):
    """
    Stores each key as <data_dir>/<key>.json.

    Writes go to a temporary file first and are moved into place, so a
    crash mid-write leaves the previous snapshot intact.
    """

    def __init__(
        self,
        data_dir: Union[str, Path],
        max_bytes: Optional[int] = None,
    ):
        self._dir = Path(data_dir)
        self._max_bytes = max_bytes

    def _path(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self._dir / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def set(self, key: str, value: str) -> None:
        _check_quota(value, self._max_bytes)
        path = self._path(key)
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self._dir, prefix=f".{key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(value)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageWriteError(f"Could not write {path}: {e}") from e

    def remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


class InMemoryKeyValueStorage(KeyValueStorageInterface):
    """Process-local store. Contents vanish with the process."""

    def __init__(
        self,
        initial: Optional[dict[str, str]] = None,
        max_bytes: Optional[int] = None,
    ):
        self._data: dict[str, str] = dict(initial or {})
        self._max_bytes = max_bytes

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        _check_quota(value, self._max_bytes)
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)
