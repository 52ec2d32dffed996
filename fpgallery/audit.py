"""Audit Log - bounded record of verification attempts

Append-only, keeps the most recent AUDIT_LOG_LIMIT entries (oldest evicted
first) and mirrors them to the blob store under AUDIT_KEY, oldest first.
"""

from __future__ import annotations

import logging
from typing import List

from fpgallery.blobstore import BlobStore
from fpgallery.config import AUDIT_KEY, AUDIT_LOG_LIMIT
from fpgallery.errors import StorageError
from fpgallery.models import AuditEntry
from fpgallery.models_serialization import audit_entry_to_dict, audit_entry_from_dict


logger = logging.getLogger(__name__)


class AuditLog:
    """FIFO-bounded verification log.

    Args:
        blobs: Blob store used for persistence
        limit: Maximum number of retained entries
    """

    def __init__(self, blobs: BlobStore, limit: int = AUDIT_LOG_LIMIT):
        if limit <= 0:
            raise ValueError(f"Audit limit must be positive, got {limit}")

        self.blobs = blobs
        self.limit = limit
        self._entries: List[AuditEntry] = []

    def record(self, entry: AuditEntry) -> None:
        """Append an entry, evict from the front beyond the limit, persist.

        Raises:
            StorageError: If persisting failed (the entry is kept in memory)
        """
        self._entries.append(entry)
        overflow = len(self._entries) - self.limit
        if overflow > 0:
            del self._entries[:overflow]

        self.persist()

    def list(self) -> List[AuditEntry]:
        """Retained entries, oldest first."""
        return list(self._entries)

    def clear(self) -> None:
        self._entries = []
        self.persist()

    def __len__(self) -> int:
        return len(self._entries)

    def persist(self) -> None:
        self.blobs.set_json(AUDIT_KEY, [audit_entry_to_dict(entry) for entry in self._entries])

    def reload(self) -> None:
        """Load entries from the blob store.

        Missing blob -> empty log. Corrupt blob -> empty log, then StorageError.
        """
        try:
            data = self.blobs.get_json(AUDIT_KEY)
            if data is None:
                self._entries = []
                return

            if not isinstance(data, list):
                raise StorageError(f"Corrupt blob under '{AUDIT_KEY}': expected a list")

            try:
                entries = [audit_entry_from_dict(item) for item in data]
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                raise StorageError(f"Corrupt audit entry under '{AUDIT_KEY}': {e}") from e

        except StorageError as e:
            logger.error(f"Failed to reload audit log: {e}")
            self._entries = []
            raise

        # Keep the most recent entries if the stored log is longer than the limit
        self._entries = entries[-self.limit:]
