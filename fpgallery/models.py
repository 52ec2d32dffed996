"""Data structures for the fingerprint gallery controller

This module defines the core data classes used throughout the controller.
These classes are shared across all modules (capture, template_store, matching, audit, exchange).
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from fpgallery.config import (
    DEFAULT_TIMEOUT_MS, DEFAULT_QUALITY_THRESHOLD, DEFAULT_TEMPLATE_FORMAT,
    DEFAULT_WSQ_RATE, DEFAULT_LICENSE_STRING, MAX_MATCH_SCORE, ACCEPTANCE_THRESHOLD,
)


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Identity:
    """Enrolled identity record.

    Records are immutable: re-enrolling a name creates a new record with a new id.

    Attributes:
        id: Unique opaque identifier (never reused within a gallery)
        display_name: Non-empty display name (duplicates allowed)
        template: Vendor-encoded template, base64 text
        enrolled_at: Enrollment timestamp (UTC)
    """
    id: str
    display_name: str
    template: str
    enrolled_at: datetime

    def __post_init__(self) -> None:
        """Validate record after initialization."""
        if not self.id:
            raise ValueError("Identity id must be non-empty")

        if not self.display_name or not self.display_name.strip():
            raise ValueError("Display name must be non-empty")

        if not self.template:
            raise ValueError("Template must be non-empty")


@dataclass
class CaptureResult:
    """Result of a successful capture.

    Attributes:
        template: Extracted template, base64 text
        preview_image: BMP preview image, base64 text
        quality_score: Device image quality [0, 100]
        nfiq_score: NFIQ score [1, 5] (1 = best)
    """
    template: str
    preview_image: str
    quality_score: int
    nfiq_score: int

    def __post_init__(self) -> None:
        if self.quality_score < 0 or self.quality_score > 100:
            raise ValueError(f"Quality must be in [0, 100], got {self.quality_score}")

        if self.nfiq_score < 1 or self.nfiq_score > 5:
            raise ValueError(f"NFIQ must be in [1, 5], got {self.nfiq_score}")


@dataclass
class CaptureConfig:
    """Options sent to the capture endpoint.

    Attributes:
        timeout_ms: Device capture timeout (milliseconds)
        quality_threshold: Minimum image quality accepted by the device [0, 100]
        template_format: Template encoding ("ISO", "ANSI", ...)
        wsq_compression_rate: WSQ compression rate for the preview image
        license_string: Device service licence string (usually empty)
    """
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    quality_threshold: int = DEFAULT_QUALITY_THRESHOLD
    template_format: str = DEFAULT_TEMPLATE_FORMAT
    wsq_compression_rate: float = DEFAULT_WSQ_RATE
    license_string: str = DEFAULT_LICENSE_STRING

    def __post_init__(self) -> None:
        """Validate capture settings after initialization."""
        if self.timeout_ms <= 0:
            raise ValueError(f"Timeout must be positive, got {self.timeout_ms}")

        if self.quality_threshold < 0 or self.quality_threshold > 100:
            raise ValueError(f"Quality threshold must be in [0, 100], got {self.quality_threshold}")

        if not self.template_format:
            raise ValueError("Template format must be non-empty")

    def to_form(self) -> dict:
        """Form fields for the capture request."""
        return {
            'Timeout': str(self.timeout_ms),
            'Quality': str(self.quality_threshold),
            'licstr': self.license_string,
            'templateFormat': self.template_format,
            'imageWSQRate': str(self.wsq_compression_rate),
        }


@dataclass(frozen=True)
class MatchOutcome:
    """1:N identification decision. Never persisted.

    Attributes:
        matched_identity: Best-scoring identity (None when nothing scored above 0)
        score: Best score on the device scale [0, 199]
        accepted: True iff score > ACCEPTANCE_THRESHOLD
    """
    matched_identity: Optional[Identity]
    score: int
    accepted: bool

    def __post_init__(self) -> None:
        if self.score < 0 or self.score > MAX_MATCH_SCORE:
            raise ValueError(f"Score must be in [0, {MAX_MATCH_SCORE}], got {self.score}")

        if self.accepted != (self.score > ACCEPTANCE_THRESHOLD):
            raise ValueError(f"accepted={self.accepted} inconsistent with score {self.score}")

        if self.accepted and self.matched_identity is None:
            raise ValueError("Accepted outcome requires a matched identity")


@dataclass(frozen=True)
class AuditEntry:
    """Verification attempt record.

    Attributes:
        timestamp: When the attempt finished (UTC)
        subject_name: Matched display name, only present when accepted
        score: Best score of the attempt
        success: Whether the attempt was accepted
    """
    timestamp: datetime
    score: int
    success: bool
    subject_name: Optional[str] = None

    def __post_init__(self) -> None:
        if self.score < 0:
            raise ValueError(f"Score must be non-negative, got {self.score}")

        if not self.success and self.subject_name is not None:
            raise ValueError("subject_name is only recorded for accepted attempts")

    @classmethod
    def from_outcome(cls, outcome: MatchOutcome, timestamp: Optional[datetime] = None) -> AuditEntry:
        """Project a match outcome into an audit entry."""
        return cls(
            timestamp=timestamp or utcnow(),
            score=outcome.score,
            success=outcome.accepted,
            subject_name=outcome.matched_identity.display_name if outcome.accepted else None,
        )


@dataclass
class OperationResult:
    """User-facing outcome of a controller operation.

    Attributes:
        ok: Whether the operation succeeded
        message: Status message for display
        error: Exception that caused the failure (None on success)
        warnings: Non-fatal problems (e.g. storage write failed)
        identity: Enrolled identity (enroll)
        capture: Capture result (enroll, verify, capture)
        outcome: Match outcome (verify)
    """
    ok: bool
    message: str
    error: Optional[Exception] = None
    warnings: list = field(default_factory=list)
    identity: Optional[Identity] = None
    capture: Optional[CaptureResult] = None
    outcome: Optional[MatchOutcome] = None
