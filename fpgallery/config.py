"""Configuration file for the fingerprint gallery controller

This module contains all configurable parameters of the enrollment/verification core.

Modify these values (or the matching FPGALLERY_* environment variables) to tune the
system behavior without changing the core code.
"""

import os
from typing import Dict

# ============================================================================
# DEVICE SERVICE
# ============================================================================

# Local capture service (SGIBIOSRV). Runs HTTPS with a self-signed certificate.
DEVICE_BASE_URL: str = os.environ.get("FPGALLERY_DEVICE_URL", "https://localhost:8443")
CAPTURE_PATH: str = "/SGIFPCapture"
MATCH_SCORE_PATH: str = "/SGIMatchScore"

# TLS verification of the localhost device channel (off: self-signed cert)
DEVICE_VERIFY_TLS: bool = os.environ.get("FPGALLERY_DEVICE_VERIFY_TLS", "0") == "1"

# Extra seconds granted to the HTTP client on top of the device capture timeout,
# so that the device's own timeout (error 54) fires first.
HTTP_GRACE_SECONDS: float = 5.0

# Timeout for a single comparison request (seconds)
COMPARE_TIMEOUT_SECONDS: float = 10.0

# ============================================================================
# CAPTURE DEFAULTS
# ============================================================================

DEFAULT_TIMEOUT_MS: int = 10000
DEFAULT_QUALITY_THRESHOLD: int = 50  # 0-100
DEFAULT_TEMPLATE_FORMAT: str = "ISO"
DEFAULT_WSQ_RATE: float = 0.75
DEFAULT_LICENSE_STRING: str = os.environ.get("FPGALLERY_LICENSE", "")

# ============================================================================
# MATCHING
# ============================================================================

# Device score scale is 0-199
MAX_MATCH_SCORE: int = 199

# Fixed acceptance threshold: accepted iff best score > 100.
# Design constant, not calibrated from error rates.
ACCEPTANCE_THRESHOLD: int = 100

# ============================================================================
# AUDIT LOG
# ============================================================================

AUDIT_LOG_LIMIT: int = 50

# ============================================================================
# PERSISTENCE KEYS
# ============================================================================

USERS_KEY: str = "fpgallery.users"
LAST_CAPTURE_KEY: str = "fpgallery.last_capture"
AUDIT_KEY: str = "fpgallery.audit"

# ============================================================================
# DEVICE ERROR CODES
# ============================================================================

DEVICE_ERROR_CODES: Dict[int, str] = {
    51: "System file load failure",
    52: "Sensor chip initialization failed",
    53: "Device not found",
    54: "Fingerprint image capture timeout",
    55: "No device available",
    56: "Driver load failed",
    57: "Wrong image",
    58: "Lack of bandwidth",
    59: "Device busy",
    60: "Cannot get serial number",
    61: "Unsupported device",
    63: "Capture service (SgiBioSrv) is not running",
}
UNKNOWN_DEVICE_ERROR: str = "Unknown error"


def describe_device_error(code: int) -> str:
    """Human-readable description for a device ErrorCode."""
    return DEVICE_ERROR_CODES.get(code, UNKNOWN_DEVICE_ERROR)


# ============================================================================
# VALIDATION
# ============================================================================

def validate_config():
    """Validate configuration consistency."""
    errors = []

    if not (0 <= DEFAULT_QUALITY_THRESHOLD <= 100):
        errors.append(f"DEFAULT_QUALITY_THRESHOLD must be in [0, 100] (got {DEFAULT_QUALITY_THRESHOLD})")

    if DEFAULT_TIMEOUT_MS <= 0:
        errors.append(f"DEFAULT_TIMEOUT_MS must be positive (got {DEFAULT_TIMEOUT_MS})")

    if not (0 < ACCEPTANCE_THRESHOLD < MAX_MATCH_SCORE):
        errors.append(f"ACCEPTANCE_THRESHOLD must be in (0, {MAX_MATCH_SCORE}) (got {ACCEPTANCE_THRESHOLD})")

    if AUDIT_LOG_LIMIT <= 0:
        errors.append(f"AUDIT_LOG_LIMIT must be positive (got {AUDIT_LOG_LIMIT})")

    if errors:
        raise ValueError("Configuration validation failed:\n" + "\n".join(errors))

# Run validation on import
validate_config()
