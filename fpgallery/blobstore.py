"""Key-value blob store

The controller only needs get/set/remove on string blobs. Two implementations:

- MemoryBlobStore: dict-backed, optional byte quota (tests, in-memory-only mode)
- webserver.database.BlobDatabase: SQLCipher-backed, survives restarts
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from fpgallery.errors import StorageError


logger = logging.getLogger(__name__)


class BlobStore(ABC):
    """Abstract key-value store of text blobs.

    Implementations raise StorageError on any read/write failure.
    A set() is all-or-nothing: the previous value stays in place if it fails.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the blob stored under key, or None if absent."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous blob."""

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete key. Absent keys are ignored."""

    def get_json(self, key: str) -> Any:
        """Load and decode a JSON blob.

        Returns:
            Decoded value, or None if the key is absent

        Raises:
            StorageError: If the blob cannot be read or is not valid JSON
        """
        raw = self.get(key)
        if raw is None:
            return None

        try:
            return json.loads(raw)
        except ValueError as e:
            raise StorageError(f"Corrupt blob under '{key}': {e}") from e

    def set_json(self, key: str, value: Any) -> None:
        self.set(key, json.dumps(value, ensure_ascii=False))


class MemoryBlobStore(BlobStore):
    """Dict-backed blob store.

    Args:
        quota_bytes: Maximum total size of all blobs (UTF-8 bytes). None = unlimited.
            Exceeding it raises StorageError, like a browser storage quota.
    """

    def __init__(self, quota_bytes: Optional[int] = None):
        self.quota_bytes = quota_bytes
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        if self.quota_bytes is not None:
            used = sum(len(v.encode("utf-8")) for k, v in self._data.items() if k != key)
            needed = used + len(value.encode("utf-8"))
            if needed > self.quota_bytes:
                logger.warning(f"Blob quota exceeded writing '{key}' ({needed} > {self.quota_bytes} bytes)")
                raise StorageError(f"Storage quota exceeded ({needed} > {self.quota_bytes} bytes)")
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def __len__(self) -> int:
        return len(self._data)
