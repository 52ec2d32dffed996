from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from fpgallery.errors import InvalidFormatError
from fpgallery.exchange import export_document, dumps_document, import_document
from fpgallery.models import CaptureResult


NOW = datetime(2025, 3, 14, 9, 26, 53, tzinfo=timezone.utc)


def _valid_document():
    return {
        "users": [
            {"id": "a1", "name": "Andi", "template": "TA", "enrollDate": "2025-03-01T10:00:00+00:00"},
            {"id": 1712345678901, "name": "Budi", "template": "TB", "enrollDate": "2025-03-02T11:00:00Z"},
        ],
        "lastCapture": {"template": "TB", "image": "Qk0=", "quality": 77, "nfiq": 2},
        "exportDate": "2025-03-14T09:26:53+00:00",
    }


def test_export_then_import_round_trips(store):
    store.enroll("Andi", "TA")
    store.enroll("Andi", "TA2")
    store.enroll("Citra", "TC")
    capture = CaptureResult(template="TC", preview_image="IMG", quality_score=91, nfiq_score=1)

    text = dumps_document(store.list(), capture, now=NOW)
    gallery, last_capture = import_document(text)

    assert gallery == store.list()
    assert last_capture == capture


def test_export_document_shape(store):
    identity = store.enroll("Andi", "TA")

    document = export_document(store.list(), None, now=NOW)

    assert set(document) == {"users", "lastCapture", "exportDate"}
    assert document["lastCapture"] is None
    assert document["exportDate"] == "2025-03-14T09:26:53+00:00"
    assert document["users"] == [{
        "id": identity.id,
        "name": "Andi",
        "template": "TA",
        "enrollDate": identity.enrolled_at.isoformat(),
    }]
    json.dumps(document)


def test_import_accepts_mapping_and_numeric_ids():
    gallery, last_capture = import_document(_valid_document())

    assert [i.id for i in gallery] == ["a1", "1712345678901"]
    assert gallery[1].enrolled_at == datetime(2025, 3, 2, 11, 0, tzinfo=timezone.utc)
    assert last_capture.quality_score == 77


def test_import_without_last_capture():
    document = _valid_document()
    del document["lastCapture"]

    _, last_capture = import_document(document)

    assert last_capture is None


def test_import_missing_users_is_invalid_format():
    document = _valid_document()
    del document["users"]

    with pytest.raises(InvalidFormatError, match="users"):
        import_document(document)


@pytest.mark.parametrize("users", [None, "abc", {"id": "x"}, 3])
def test_import_users_not_a_list_is_invalid_format(users):
    document = _valid_document()
    document["users"] = users

    with pytest.raises(InvalidFormatError):
        import_document(document)


@pytest.mark.parametrize("mutate", [
    lambda u: u.pop("template"),
    lambda u: u.pop("id"),
    lambda u: u.update(name=""),
    lambda u: u.update(name="   "),
    lambda u: u.update(template=123),
    lambda u: u.update(enrollDate="14/03/2025 09.26.53"),
    lambda u: u.update(extra="field"),
])
def test_import_rejects_bad_user_entries(mutate):
    document = _valid_document()
    mutate(document["users"][0])

    with pytest.raises(InvalidFormatError):
        import_document(document)


@pytest.mark.parametrize("capture", [
    {"template": "T", "image": "", "quality": 101, "nfiq": 2},
    {"template": "T", "image": "", "quality": 50, "nfiq": 0},
    {"template": "T", "quality": 50, "nfiq": 2},
    "not-a-capture",
])
def test_import_rejects_bad_last_capture(capture):
    document = _valid_document()
    document["lastCapture"] = capture

    with pytest.raises(InvalidFormatError):
        import_document(document)


def test_import_rejects_duplicate_ids():
    document = _valid_document()
    document["users"][1]["id"] = "a1"

    with pytest.raises(InvalidFormatError, match="duplicate"):
        import_document(document)


@pytest.mark.parametrize("text", ["", "not json", "[1, 2]", "null", b"\xff\xfe"])
def test_import_rejects_non_object_documents(text):
    with pytest.raises(InvalidFormatError):
        import_document(text)


def test_import_empty_users_list_is_valid():
    gallery, last_capture = import_document({"users": []})

    assert gallery == []
    assert last_capture is None


@pytest.mark.parametrize("export_date", ["not a date", "", "14/03/2025", 20250314])
def test_import_rejects_bad_export_date(export_date):
    document = _valid_document()
    document["exportDate"] = export_date

    with pytest.raises(InvalidFormatError):
        import_document(document)


@pytest.mark.parametrize("export_date", [None, "2025-03-14T09:26:53Z", "2025-03-14T09:26:53.123456+07:00"])
def test_import_accepts_iso_or_missing_export_date(export_date):
    document = _valid_document()
    document["exportDate"] = export_date

    gallery, _ = import_document(document)

    assert len(gallery) == 2
