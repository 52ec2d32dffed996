from __future__ import annotations

import os
import tempfile

# Keep database, key file and logs out of the working tree
os.environ.setdefault("FPGALLERY_HOME", tempfile.mkdtemp(prefix="fpgallery-tests-"))
os.environ.setdefault("FPGALLERY_VERBOSE", "0")

import pytest

from fpgallery.audit import AuditLog
from fpgallery.blobstore import MemoryBlobStore
from fpgallery.capture import CaptureGateway
from fpgallery.config import CAPTURE_PATH, MATCH_SCORE_PATH
from fpgallery.controller import GalleryController
from fpgallery.template_store import TemplateStore


DEVICE_URL = "https://device.test:8443"


class FakeResponse:
    def __init__(self, payload=None, status_code: int = 200, invalid_json: bool = False):
        self.payload = payload
        self.status_code = status_code
        self.invalid_json = invalid_json

    def json(self):
        if self.invalid_json:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self.payload


def capture_payload(template: str = "PROBE", quality: int = 80, nfiq: int = 2, code: int = 0):
    return {
        "ErrorCode": code,
        "TemplateBase64": template,
        "BMPBase64": "Qk0=",
        "ImageQuality": quality,
        "NFIQ": nfiq,
    }


class FakeDeviceSession:
    """Scripted stand-in for requests.Session talking to the device service.

    capture_responses: queue of payload dicts, FakeResponse objects or exceptions
    scores: gallery template -> int score, payload dict, FakeResponse or exception
    """

    def __init__(self):
        self.capture_responses = []
        self.scores = {}
        self.calls = []

    def queue_capture(self, *items):
        self.capture_responses.extend(items)

    def post(self, url, data=None, headers=None, timeout=None, verify=None):
        self.calls.append({"url": url, "data": dict(data or {}), "timeout": timeout, "verify": verify})

        if url.endswith(CAPTURE_PATH):
            if not self.capture_responses:
                raise AssertionError("unexpected capture request")
            item = self.capture_responses.pop(0)
        elif url.endswith(MATCH_SCORE_PATH):
            item = self.scores.get(data["Template2"], 0)
            if isinstance(item, int):
                item = {"ErrorCode": 0, "MatchingScore": item}
        else:
            raise AssertionError(f"unexpected url {url}")

        if isinstance(item, Exception):
            raise item
        if isinstance(item, FakeResponse):
            return item
        return FakeResponse(item)

    @property
    def capture_calls(self):
        return [c for c in self.calls if c["url"].endswith(CAPTURE_PATH)]

    @property
    def compare_calls(self):
        return [c for c in self.calls if c["url"].endswith(MATCH_SCORE_PATH)]


@pytest.fixture
def blobs():
    return MemoryBlobStore()


@pytest.fixture
def session():
    return FakeDeviceSession()


@pytest.fixture
def gateway(session):
    return CaptureGateway(base_url=DEVICE_URL, session=session)


@pytest.fixture
def store(blobs):
    return TemplateStore(blobs)


@pytest.fixture
def audit(blobs):
    return AuditLog(blobs)


@pytest.fixture
def controller(gateway, store, audit):
    return GalleryController(gateway, store, audit)
