"""
Response helpers shared by the route modules.
Maps controller results onto JSON bodies and HTTP status codes.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException

from fpgallery.errors import (
    DeviceError, DeviceTransportError, ValidationError, InvalidFormatError,
    StorageError, EmptyGalleryError, ControllerBusyError,
)
from fpgallery.models import Identity, CaptureResult, OperationResult
from fpgallery.models_serialization import capture_to_dict, format_timestamp


# Most specific first
_STATUS_CODES = (
    (InvalidFormatError, 422),
    (ValidationError, 400),
    (EmptyGalleryError, 400),
    (ControllerBusyError, 409),
    (DeviceError, 502),
    (DeviceTransportError, 503),
    (StorageError, 500),
)


def status_for(error: Exception) -> int:
    for error_type, code in _STATUS_CODES:
        if isinstance(error, error_type):
            return code
    return 500


def raise_for_result(result: OperationResult):
    """Raise HTTPException if the operation failed."""
    if result.ok:
        return

    detail: Dict[str, Any] = {"message": result.message}
    if isinstance(result.error, DeviceError):
        detail["error_code"] = result.error.code

    raise HTTPException(status_code=status_for(result.error), detail=detail)


def identity_summary(identity: Identity) -> Dict[str, Any]:
    """Identity without its template (too large for listings)."""
    return {
        "id": identity.id,
        "name": identity.display_name,
        "enrollDate": format_timestamp(identity.enrolled_at),
    }


def capture_summary(capture: Optional[CaptureResult]) -> Optional[Dict[str, Any]]:
    return capture_to_dict(capture) if capture is not None else None
