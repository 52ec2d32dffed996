"""Gallery Controller - enrollment and verification flows

Ties the Capture Gateway, Template Store, Match Engine and Audit Log together:

    enroll:  validate name -> capture -> TemplateStore.enroll
    verify:  guard empty gallery -> capture -> MatchEngine.identify -> AuditLog.record
    capture: capture only (refreshes the last capture)
    delete / clear / import / export

All GalleryError exceptions are caught at the boundary of each operation and
turned into an OperationResult with a user-facing message. Storage failures do
not undo the in-memory change; they are reported as warnings.

Operations are serialized: while one is in flight every other one fails fast
with ControllerBusyError (the equivalent of a disabled capture button).
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Union

from fpgallery.audit import AuditLog
from fpgallery.capture import CaptureGateway
from fpgallery.config import MAX_MATCH_SCORE
from fpgallery.errors import (
    GalleryError, DeviceError, DeviceTransportError, ValidationError,
    StorageError, EmptyGalleryError, ControllerBusyError,
)
from fpgallery.exchange import export_document, import_document
from fpgallery.matching import MatchEngine
from fpgallery.models import AuditEntry, CaptureConfig, CaptureResult, OperationResult
from fpgallery.template_store import TemplateStore


logger = logging.getLogger(__name__)


class GalleryController:
    """Single-actor controller over the gallery and audit trail.

    Args:
        gateway: Device client (capture + compare)
        store: Template store (gallery + last capture)
        audit: Audit log
        engine: Match engine (defaults to one comparing through gateway)
    """

    def __init__(
        self,
        gateway: CaptureGateway,
        store: TemplateStore,
        audit: AuditLog,
        engine: Optional[MatchEngine] = None,
    ):
        self.gateway = gateway
        self.store = store
        self.audit = audit
        self.engine = engine or MatchEngine(gateway)
        self._lock = threading.Lock()

    # ========================================================================
    # SERIALIZATION
    # ========================================================================

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    @contextmanager
    def _exclusive(self):
        if not self._lock.acquire(blocking=False):
            raise ControllerBusyError()
        try:
            yield
        finally:
            self._lock.release()

    # ========================================================================
    # STARTUP
    # ========================================================================

    def load(self) -> List[str]:
        """Reload gallery and audit log from the blob store.

        Returns:
            List of warnings (empty when everything loaded cleanly)
        """
        warnings = []
        for name, component in (("gallery", self.store), ("audit log", self.audit)):
            try:
                component.reload()
            except StorageError as e:
                warnings.append(f"Could not load {name}: {e}")
        return warnings

    # ========================================================================
    # MESSAGES
    # ========================================================================

    def _failure(self, error: GalleryError, context: str = "") -> OperationResult:
        if isinstance(error, DeviceError):
            message = f"Error: {error.code} - {error.description}"
        elif isinstance(error, DeviceTransportError):
            prefix = "Error matching" if context == "matching" else "Connection error"
            message = (
                f"{prefix}: {error}. "
                f"Make sure SGIBIOSRV is running at {self.gateway.base_url}"
            )
        elif isinstance(error, EmptyGalleryError):
            message = "No enrolled users yet!"
        elif isinstance(error, ControllerBusyError):
            message = "Busy: another capture or verification is in progress"
        elif isinstance(error, StorageError):
            message = f"Storage error: {error}"
        else:
            message = str(error)

        logger.info(f"Operation failed: {message}")
        return OperationResult(ok=False, message=message, error=error)

    @staticmethod
    def _with_warnings(result: OperationResult, warnings: List[str]) -> OperationResult:
        if warnings:
            result.warnings.extend(warnings)
            result.message = f"{result.message} (Warning: {'; '.join(warnings)})"
        return result

    # ========================================================================
    # CAPTURE
    # ========================================================================

    def _capture(self, config: Optional[CaptureConfig], warnings: List[str]) -> CaptureResult:
        capture = self.gateway.capture(config)
        try:
            self.store.set_last_capture(capture)
        except StorageError as e:
            warnings.append(f"changes not saved ({e})")
        return capture

    def capture(self, config: Optional[CaptureConfig] = None) -> OperationResult:
        """Capture once and keep the result as last capture."""
        warnings: List[str] = []
        try:
            with self._exclusive():
                capture = self._capture(config, warnings)
        except GalleryError as e:
            return self._failure(e)

        result = OperationResult(
            ok=True,
            message=f"Fingerprint captured! Quality: {capture.quality_score}, NFIQ: {capture.nfiq_score}",
            capture=capture,
        )
        return self._with_warnings(result, warnings)

    # ========================================================================
    # ENROLLMENT
    # ========================================================================

    def enroll(self, display_name: str, config: Optional[CaptureConfig] = None) -> OperationResult:
        """Capture a fingerprint and enroll it under display_name.

        The name is trimmed; an empty name fails before any capture is attempted.
        """
        name = (display_name or "").strip()
        warnings: List[str] = []

        try:
            if not name:
                raise ValidationError("Name is required!")

            with self._exclusive():
                capture = self._capture(config, warnings)
                try:
                    identity = self.store.enroll(name, capture.template)
                except StorageError as e:
                    warnings.append(f"changes not saved ({e})")
                    identity = self.store.list()[-1]
        except GalleryError as e:
            return self._failure(e)

        result = OperationResult(
            ok=True,
            message=f"{name} enrolled successfully!",
            identity=identity,
            capture=capture,
        )
        return self._with_warnings(result, warnings)

    # ========================================================================
    # VERIFICATION
    # ========================================================================

    def verify(self, config: Optional[CaptureConfig] = None) -> OperationResult:
        """Capture a probe and identify it against the whole gallery.

        An empty gallery short-circuits before the capture. A transport failure
        during the scan aborts the verification and nothing is audited.
        """
        warnings: List[str] = []

        try:
            with self._exclusive():
                gallery = self.store.list()
                if not gallery:
                    raise EmptyGalleryError()

                capture = self._capture(config, warnings)

                try:
                    outcome = self.engine.identify(capture.template, gallery)
                except DeviceTransportError as e:
                    return self._failure(e, context="matching")

                try:
                    self.audit.record(AuditEntry.from_outcome(outcome))
                except StorageError as e:
                    warnings.append(f"audit entry not saved ({e})")
        except GalleryError as e:
            return self._failure(e)

        if outcome.accepted:
            message = (
                f"Verification successful! {outcome.matched_identity.display_name} "
                f"(Score: {outcome.score}/{MAX_MATCH_SCORE})"
            )
        else:
            message = f"Fingerprint did not match. Best score: {outcome.score}/{MAX_MATCH_SCORE}"

        result = OperationResult(ok=True, message=message, capture=capture, outcome=outcome)
        return self._with_warnings(result, warnings)

    # ========================================================================
    # GALLERY MAINTENANCE
    # ========================================================================

    def delete(self, identity_id: str) -> OperationResult:
        """Remove an identity. Unknown ids are a no-op and still succeed."""
        warnings: List[str] = []
        try:
            with self._exclusive():
                try:
                    self.store.remove(identity_id)
                except StorageError as e:
                    warnings.append(f"changes not saved ({e})")
        except GalleryError as e:
            return self._failure(e)

        return self._with_warnings(OperationResult(ok=True, message="User deleted"), warnings)

    def clear(self) -> OperationResult:
        """Remove every identity."""
        warnings: List[str] = []
        try:
            with self._exclusive():
                count = len(self.store)
                try:
                    self.store.clear()
                except StorageError as e:
                    warnings.append(f"changes not saved ({e})")
        except GalleryError as e:
            return self._failure(e)

        return self._with_warnings(OperationResult(ok=True, message=f"{count} users deleted"), warnings)

    # ========================================================================
    # IMPORT / EXPORT
    # ========================================================================

    def export(self) -> Dict[str, Any]:
        """Exchange document of the current gallery and last capture.

        Raises:
            ControllerBusyError: If another operation is in flight
        """
        with self._exclusive():
            return export_document(self.store.list(), self.store.last_capture)

    def import_(self, document: Union[str, bytes, Dict[str, Any]]) -> OperationResult:
        """Replace the gallery with the document's users.

        The last capture is replaced only when the document carries one.
        Invalid documents are rejected and leave the store untouched.
        """
        warnings: List[str] = []
        try:
            with self._exclusive():
                gallery, last_capture = import_document(document)
                try:
                    self.store.replace(gallery, last_capture)
                except StorageError as e:
                    warnings.append(f"changes not saved ({e})")
        except GalleryError as e:
            return self._failure(e)

        result = OperationResult(ok=True, message=f"Imported {len(gallery)} users")
        return self._with_warnings(result, warnings)
