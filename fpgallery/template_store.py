"""Template Store - enrolled identities and the last capture

Owns the gallery (ordered list of Identity records) and the single "last capture"
value, and mirrors both into a BlobStore:

- USERS_KEY:        JSON array of identities
- LAST_CAPTURE_KEY: JSON capture result (removed when there is none)

Every mutating operation applies the in-memory change first and then persists.
A failed write raises StorageError but the in-memory change stays in effect;
memory and durable state may diverge until the next successful write or reload.
"""

from __future__ import annotations

import logging
import uuid
from typing import Iterable, List, Optional

from fpgallery.blobstore import BlobStore
from fpgallery.config import USERS_KEY, LAST_CAPTURE_KEY
from fpgallery.errors import StorageError
from fpgallery.models import Identity, CaptureResult, utcnow
from fpgallery.models_serialization import (
    identity_to_dict, identity_from_dict, capture_to_dict, capture_from_dict,
)


logger = logging.getLogger(__name__)


class TemplateStore:
    """Durable gallery of enrolled identities."""

    def __init__(self, blobs: BlobStore):
        """Initialize an empty store on top of a blob store.

        Call reload() to load previously persisted state.

        Args:
            blobs: Key-value blob store used for persistence
        """
        self.blobs = blobs
        self._gallery: List[Identity] = []
        self._last_capture: Optional[CaptureResult] = None

    # ========================================================================
    # GALLERY
    # ========================================================================

    def enroll(self, display_name: str, template: str) -> Identity:
        """Append a new identity with a fresh id.

        Duplicate names are allowed: every enrollment is a distinct identity.

        Args:
            display_name: Display name (validated non-empty by the caller)
            template: Captured template (base64)

        Returns:
            The new Identity

        Raises:
            StorageError: If persisting failed (the identity is enrolled in memory anyway)
        """
        identity = Identity(
            id=self._new_id(),
            display_name=display_name,
            template=template,
            enrolled_at=utcnow(),
        )
        self._gallery.append(identity)
        logger.info(f"Enrolled id={identity.id} name={display_name!r} (gallery size {len(self._gallery)})")

        self.persist()
        return identity

    def _new_id(self) -> str:
        existing = {identity.id for identity in self._gallery}
        while True:
            candidate = uuid.uuid4().hex
            if candidate not in existing:
                return candidate

    def remove(self, identity_id: str) -> bool:
        """Delete the identity with that id.

        Returns:
            True if a record was removed, False if the id was unknown (no-op)
        """
        remaining = [identity for identity in self._gallery if identity.id != identity_id]
        if len(remaining) == len(self._gallery):
            return False

        self._gallery = remaining
        logger.info(f"Removed id={identity_id}")
        self.persist()
        return True

    def clear(self) -> int:
        """Empty the gallery. Returns the number of removed records."""
        count = len(self._gallery)
        self._gallery = []
        logger.info(f"Cleared gallery ({count} identities)")
        self.persist()
        return count

    def list(self) -> List[Identity]:
        """Snapshot of the gallery in insertion order."""
        return list(self._gallery)

    def get(self, identity_id: str) -> Optional[Identity]:
        for identity in self._gallery:
            if identity.id == identity_id:
                return identity
        return None

    def __len__(self) -> int:
        return len(self._gallery)

    # ========================================================================
    # LAST CAPTURE
    # ========================================================================

    @property
    def last_capture(self) -> Optional[CaptureResult]:
        return self._last_capture

    def set_last_capture(self, capture: Optional[CaptureResult]) -> None:
        """Overwrite the last capture and persist it."""
        self._last_capture = capture
        self._persist_last_capture()

    # ========================================================================
    # BULK REPLACE (import)
    # ========================================================================

    def replace(self, gallery: Iterable[Identity], last_capture: Optional[CaptureResult]) -> None:
        """Destructively replace the gallery.

        The last capture is only overwritten when last_capture is given; None
        keeps the current one.

        Raises:
            ValueError: If the new gallery contains duplicate ids
            StorageError: If persisting failed (memory is replaced anyway)
        """
        gallery = list(gallery)
        ids = [identity.id for identity in gallery]
        if len(ids) != len(set(ids)):
            raise ValueError("Duplicate identity ids in replacement gallery")

        self._gallery = gallery
        if last_capture is not None:
            self._last_capture = last_capture
        logger.info(f"Replaced gallery ({len(gallery)} identities)")
        self.persist()

    # ========================================================================
    # PERSISTENCE
    # ========================================================================

    def persist(self) -> None:
        """Write gallery and last capture to the blob store.

        Raises:
            StorageError: If any write fails
        """
        self.blobs.set_json(USERS_KEY, [identity_to_dict(identity) for identity in self._gallery])
        self._persist_last_capture()

    def _persist_last_capture(self) -> None:
        if self._last_capture is None:
            self.blobs.remove(LAST_CAPTURE_KEY)
        else:
            self.blobs.set_json(LAST_CAPTURE_KEY, capture_to_dict(self._last_capture))

    def reload(self) -> None:
        """Load gallery and last capture from the blob store.

        A missing blob yields an empty gallery / no last capture. A corrupt blob
        also yields an empty value, then StorageError is raised so the caller can
        report it.

        Raises:
            StorageError: If a blob could not be read or decoded
        """
        problems = []

        try:
            self._gallery = self._load_gallery()
        except StorageError as e:
            logger.error(f"Failed to reload gallery: {e}")
            self._gallery = []
            problems.append(str(e))

        try:
            self._last_capture = self._load_last_capture()
        except StorageError as e:
            logger.error(f"Failed to reload last capture: {e}")
            self._last_capture = None
            problems.append(str(e))

        logger.info(f"Reloaded {len(self._gallery)} identities")

        if problems:
            raise StorageError("; ".join(problems))

    def _load_gallery(self) -> List[Identity]:
        data = self.blobs.get_json(USERS_KEY)
        if data is None:
            return []

        if not isinstance(data, list):
            raise StorageError(f"Corrupt blob under '{USERS_KEY}': expected a list")

        gallery = []
        seen = set()
        for item in data:
            try:
                identity = identity_from_dict(item)
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                raise StorageError(f"Corrupt identity record under '{USERS_KEY}': {e}") from e
            if identity.id in seen:
                raise StorageError(f"Duplicate identity id under '{USERS_KEY}': {identity.id}")
            seen.add(identity.id)
            gallery.append(identity)

        return gallery

    def _load_last_capture(self) -> Optional[CaptureResult]:
        data = self.blobs.get_json(LAST_CAPTURE_KEY)
        try:
            return capture_from_dict(data)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise StorageError(f"Corrupt blob under '{LAST_CAPTURE_KEY}': {e}") from e
