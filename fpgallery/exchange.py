"""Import/Export Codec - portable gallery document

Document shape (JSON):

    {
        "users": [{"id": "...", "name": "...", "template": "...", "enrollDate": "ISO-8601"}],
        "lastCapture": {"template": "...", "image": "...", "quality": 0-100, "nfiq": 1-5} | null,
        "exportDate": "ISO-8601"
    }

Import validates the whole document against an explicit schema before anything
is returned; a document that fails validation never reaches the store.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, field_validator
from pydantic import ValidationError as SchemaError

from fpgallery.errors import InvalidFormatError
from fpgallery.models import Identity, CaptureResult, utcnow
from fpgallery.models_serialization import (
    identity_to_dict, identity_from_dict, capture_to_dict, capture_from_dict,
    format_timestamp, parse_timestamp,
)


# ============================================================================
# SCHEMA
# ============================================================================

class UserRecord(BaseModel):
    """Identity entry of the exchange document."""
    model_config = ConfigDict(extra='forbid')

    id: Union[StrictStr, StrictInt]
    name: StrictStr = Field(min_length=1)
    template: StrictStr = Field(min_length=1)
    enrollDate: StrictStr

    @field_validator('id')
    @classmethod
    def _id_not_empty(cls, value):
        if isinstance(value, str) and not value.strip():
            raise ValueError("id must be non-empty")
        return value

    @field_validator('name')
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("name must not be blank")
        return value

    @field_validator('enrollDate')
    @classmethod
    def _iso_date(cls, value: str) -> str:
        parse_timestamp(value)
        return value


class CaptureRecord(BaseModel):
    """Last-capture entry of the exchange document."""
    model_config = ConfigDict(extra='forbid')

    template: StrictStr = Field(min_length=1)
    image: StrictStr
    quality: StrictInt = Field(ge=0, le=100)
    nfiq: StrictInt = Field(ge=1, le=5)


class ExchangeDocument(BaseModel):
    """Root of the exchange document."""
    model_config = ConfigDict(extra='forbid')

    users: List[UserRecord]
    lastCapture: Optional[CaptureRecord] = None
    exportDate: Optional[StrictStr] = None

    @field_validator('exportDate')
    @classmethod
    def _iso_export_date(cls, value: Optional[str]) -> Optional[str]:
        if value is not None:
            parse_timestamp(value)
        return value


# ============================================================================
# EXPORT
# ============================================================================

def export_document(
    gallery: Sequence[Identity],
    last_capture: Optional[CaptureResult],
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Build the exchange document.

    Args:
        gallery: Identities in display order
        last_capture: Current last capture (or None)
        now: Export timestamp (defaults to current UTC time)

    Returns:
        JSON-compatible dict with users, lastCapture and exportDate
    """
    return {
        'users': [identity_to_dict(identity) for identity in gallery],
        'lastCapture': capture_to_dict(last_capture) if last_capture is not None else None,
        'exportDate': format_timestamp(now or utcnow()),
    }


def dumps_document(
    gallery: Sequence[Identity],
    last_capture: Optional[CaptureResult],
    now: Optional[datetime] = None,
) -> str:
    """Exchange document as JSON text."""
    return json.dumps(export_document(gallery, last_capture, now), indent=2, ensure_ascii=False)


# ============================================================================
# IMPORT
# ============================================================================

def _describe(error: SchemaError) -> str:
    parts = []
    for item in error.errors()[:5]:
        location = ".".join(str(p) for p in item.get('loc', ())) or "<root>"
        parts.append(f"{location}: {item.get('msg')}")
    return "; ".join(parts)


def import_document(
    document: Union[str, bytes, Dict[str, Any]],
) -> Tuple[List[Identity], Optional[CaptureResult]]:
    """Validate and decode an exchange document.

    Args:
        document: JSON text/bytes, or an already-decoded mapping

    Returns:
        Tuple of (gallery, last_capture); last_capture is None when the
        document carries no capture

    Raises:
        InvalidFormatError: If the document is not JSON, lacks a users list,
            or any entry does not match the schema
    """
    if isinstance(document, (str, bytes, bytearray)):
        try:
            document = json.loads(document)
        except ValueError as e:
            raise InvalidFormatError(f"Invalid JSON: {e}") from e

    if not isinstance(document, dict):
        raise InvalidFormatError("Invalid format: document must be a JSON object")

    if 'users' not in document:
        raise InvalidFormatError("Invalid format: 'users' is missing")

    if not isinstance(document['users'], list):
        raise InvalidFormatError("Invalid format: 'users' must be a list")

    try:
        parsed = ExchangeDocument.model_validate(document)
    except SchemaError as e:
        raise InvalidFormatError(f"Invalid format: {_describe(e)}") from e

    gallery = [identity_from_dict(user.model_dump()) for user in parsed.users]

    ids = [identity.id for identity in gallery]
    if len(ids) != len(set(ids)):
        raise InvalidFormatError("Invalid format: duplicate user ids")

    last_capture = None
    if parsed.lastCapture is not None:
        last_capture = capture_from_dict(parsed.lastCapture.model_dump())

    return gallery, last_capture
