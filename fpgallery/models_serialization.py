"""Dict serialization for gallery records

This module converts Identity, CaptureResult and AuditEntry objects to and from
plain JSON-compatible dicts. The same shapes are used for the blob store layout
and for the import/export document:

- Identity:      {"id", "name", "template", "enrollDate"}
- CaptureResult: {"template", "image", "quality", "nfiq"}
- AuditEntry:    {"timestamp", "name", "score", "success"}

Timestamps are ISO-8601 strings in UTC.
"""

from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fpgallery.models import Identity, CaptureResult, AuditEntry


def format_timestamp(value: datetime) -> str:
    """Serialize a timestamp as ISO-8601 (naive values are taken as UTC)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp, accepting a trailing 'Z'.

    Raises:
        ValueError: If the string is not ISO-8601
    """
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def identity_to_dict(identity: Identity) -> Dict[str, Any]:
    return {
        'id': identity.id,
        'name': identity.display_name,
        'template': identity.template,
        'enrollDate': format_timestamp(identity.enrolled_at),
    }


def identity_from_dict(data: Dict[str, Any]) -> Identity:
    """Rebuild an Identity from its dict form.

    Args:
        data: Dict produced by identity_to_dict

    Returns:
        Identity object

    Raises:
        KeyError, TypeError, ValueError: If the dict is malformed
    """
    return Identity(
        id=str(data['id']),
        display_name=data['name'],
        template=data['template'],
        enrolled_at=parse_timestamp(data['enrollDate']),
    )


def capture_to_dict(capture: CaptureResult) -> Dict[str, Any]:
    return {
        'template': capture.template,
        'image': capture.preview_image,
        'quality': int(capture.quality_score),
        'nfiq': int(capture.nfiq_score),
    }


def capture_from_dict(data: Optional[Dict[str, Any]]) -> Optional[CaptureResult]:
    if data is None:
        return None

    return CaptureResult(
        template=data['template'],
        preview_image=data['image'],
        quality_score=int(data['quality']),
        nfiq_score=int(data['nfiq']),
    )


def audit_entry_to_dict(entry: AuditEntry) -> Dict[str, Any]:
    return {
        'timestamp': format_timestamp(entry.timestamp),
        'name': entry.subject_name,
        'score': int(entry.score),
        'success': bool(entry.success),
    }


def audit_entry_from_dict(data: Dict[str, Any]) -> AuditEntry:
    return AuditEntry(
        timestamp=parse_timestamp(data['timestamp']),
        subject_name=data.get('name'),
        score=int(data['score']),
        success=bool(data['success']),
    )
