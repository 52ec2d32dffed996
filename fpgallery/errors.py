"""Exception hierarchy for the fingerprint gallery controller

GalleryError
├── DeviceError                 device answered with a non-zero ErrorCode
│   ├── CaptureDeviceError      capture endpoint failure (code + description)
│   └── ComparisonRejected      comparison endpoint refused a template pair
├── DeviceTransportError        service unreachable, non-2xx, malformed body
├── ValidationError             user-correctable input
│   └── InvalidFormatError      malformed import document
├── StorageError                blob store read/write failure
├── EmptyGalleryError           identification requested with no enrolled identities
└── ControllerBusyError         a capture or scan is already in flight
"""

from __future__ import annotations

from typing import Optional

from fpgallery.config import describe_device_error


class GalleryError(Exception):
    """Base class for all controller errors."""


class DeviceError(GalleryError):
    """Failure reported by the device service itself."""

    def __init__(self, code: int, description: Optional[str] = None):
        self.code = code
        self.description = description or describe_device_error(code)
        super().__init__(f"{code} - {self.description}")


class CaptureDeviceError(DeviceError):
    pass


class ComparisonRejected(DeviceError):
    pass


class DeviceTransportError(GalleryError):
    """Device service could not be reached or answered garbage."""


class ValidationError(GalleryError):
    pass


class InvalidFormatError(ValidationError):
    """Import document does not match the exchange schema."""


class StorageError(GalleryError):
    """Durable read/write failure (in-memory state is kept)."""


class EmptyGalleryError(GalleryError):
    def __init__(self, message: str = "No enrolled identities"):
        super().__init__(message)


class ControllerBusyError(GalleryError):
    def __init__(self, message: str = "A capture is already in progress"):
        super().__init__(message)
