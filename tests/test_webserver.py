from __future__ import annotations

import json

import pytest
import requests
from fastapi.testclient import TestClient

from fpgallery.webserver import server
from fpgallery.webserver.database import BlobDatabase

from conftest import capture_payload


@pytest.fixture
def client(controller):
    server.install_controller(controller)
    yield TestClient(server.app)
    server.install_controller(None)


def _enroll(client, session, name, template):
    session.queue_capture(capture_payload(template=template))
    response = client.post("/api/users", data={"name": name})
    assert response.status_code == 201, response.text
    return response.json()["user"]


# ============================================================================
# USERS
# ============================================================================

def test_enroll_and_list(client, session):
    user = _enroll(client, session, " Andi ", "GA")

    assert user["name"] == "Andi"
    assert "template" not in user

    listing = client.get("/api/users").json()
    assert listing["count"] == 1
    assert listing["users"] == [user]
    assert client.get(f"/api/users/{user['id']}").json() == user


def test_enroll_without_name_is_bad_request(client, session):
    response = client.post("/api/users", data={"name": "  "})

    assert response.status_code == 400
    assert response.json()["detail"]["message"] == "Name is required!"
    assert session.calls == []


def test_enroll_device_error_is_bad_gateway(client, session):
    session.queue_capture(capture_payload(code=53))

    response = client.post("/api/users", data={"name": "Budi"})

    assert response.status_code == 502
    assert response.json()["detail"]["error_code"] == 53


def test_enroll_device_unreachable_is_service_unavailable(client, session):
    session.queue_capture(requests.ConnectionError("refused"))

    response = client.post("/api/users", data={"name": "Budi"})

    assert response.status_code == 503


def test_get_unknown_user_is_not_found(client):
    assert client.get("/api/users/nope").status_code == 404


def test_delete_user_and_unknown_user(client, session):
    user = _enroll(client, session, "Andi", "GA")

    gone = client.delete("/api/users/nope").json()
    assert gone["deleted"] is False

    deleted = client.delete(f"/api/users/{user['id']}").json()
    assert deleted["deleted"] is True
    assert client.get("/api/users").json()["count"] == 0


def test_delete_all_users(client, session):
    _enroll(client, session, "Andi", "GA")
    _enroll(client, session, "Budi", "GB")

    response = client.delete("/api/users")

    assert response.json()["message"] == "2 users deleted"
    assert client.get("/api/users").json()["count"] == 0


# ============================================================================
# BIOMETRIC
# ============================================================================

def test_capture_then_last_capture(client, session):
    assert client.get("/api/capture/last").status_code == 404

    session.queue_capture(capture_payload(template="X", quality=61, nfiq=4))
    response = client.post("/api/capture")

    assert response.status_code == 200
    assert response.json()["capture"] == {"template": "X", "image": "Qk0=", "quality": 61, "nfiq": 4}
    assert client.get("/api/capture/last").json()["capture"]["template"] == "X"


def test_verify_empty_gallery_is_bad_request(client, session):
    response = client.post("/api/verify")

    assert response.status_code == 400
    assert response.json()["detail"]["message"] == "No enrolled users yet!"
    assert session.calls == []


def test_verify_match(client, session):
    _enroll(client, session, "Andi", "GA")
    budi = _enroll(client, session, "Budi", "GB")
    session.scores.update({"GA": 40, "GB": 150})
    session.queue_capture(capture_payload(template="PROBE"))

    body = client.post("/api/verify").json()

    assert body["accepted"] is True
    assert body["score"] == 150
    assert body["user"] == budi
    assert body["threshold"] == 100
    assert body["max_score"] == 199


def test_verify_no_match_hides_user(client, session):
    _enroll(client, session, "Andi", "GA")
    session.scores["GA"] = 100
    session.queue_capture(capture_payload(template="PROBE"))

    body = client.post("/api/verify").json()

    assert body["accepted"] is False
    assert body["score"] == 100
    assert body["user"] is None


# ============================================================================
# ADMIN
# ============================================================================

def test_audit_lists_verifications(client, session):
    _enroll(client, session, "Andi", "GA")
    session.scores["GA"] = 170
    session.queue_capture(capture_payload(template="P1"), capture_payload(template="P2"))
    client.post("/api/verify")
    session.scores["GA"] = 20
    client.post("/api/verify")

    body = client.get("/api/admin/audit").json()

    assert body["count"] == 2
    assert [e["success"] for e in body["entries"]] == [True, False]
    assert body["entries"][0]["name"] == "Andi"
    assert body["entries"][1]["name"] is None


def test_export_import_round_trip(client, session):
    _enroll(client, session, "Andi", "GA")
    _enroll(client, session, "Budi", "GB")
    exported = client.get("/api/admin/export")

    assert exported.status_code == 200
    assert "attachment" in exported.headers["content-disposition"]
    document = exported.json()
    users_before = client.get("/api/users").json()

    client.delete("/api/users")
    response = client.post("/api/admin/import", content=json.dumps(document))

    assert response.status_code == 200
    assert response.json()["count"] == 2
    assert client.get("/api/users").json() == users_before


def test_import_invalid_document_keeps_gallery(client, session):
    _enroll(client, session, "Andi", "GA")

    response = client.post("/api/admin/import", content=json.dumps({"lastCapture": None}))

    assert response.status_code == 422
    assert client.get("/api/users").json()["count"] == 1


def test_stats_and_health(client, session):
    _enroll(client, session, "Andi", "GA")

    stats = client.get("/api/admin/stats").json()
    health = client.get("/health").json()

    assert stats["num_users"] == 1
    assert stats["has_last_capture"] is True
    assert stats["busy"] is False
    assert "storage" not in stats
    assert health == {"status": "healthy", "identities": 1, "busy": False}


def test_stats_storage_failure_is_reported(controller, tmp_path):
    database = BlobDatabase(tmp_path / "stats.db", encryption_key="stats-key-0123456789")
    database.conn.close()
    server.install_controller(controller, database)
    try:
        response = TestClient(server.app).get("/api/admin/stats")
    finally:
        server.install_controller(None)

    assert response.status_code == 500
    assert response.json()["detail"]["message"].startswith("Storage error")
