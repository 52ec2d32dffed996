from __future__ import annotations

import argparse
import json
import os

import run_webserver


def _args(**overrides):
    values = {"data_dir": None, "device_url": None, "verify_tls": False}
    values.update(overrides)
    return argparse.Namespace(**values)


def test_apply_environment_sets_overrides(monkeypatch, tmp_path):
    # register the variables so monkeypatch restores them afterwards
    monkeypatch.setenv("FPGALLERY_HOME", os.environ["FPGALLERY_HOME"])
    monkeypatch.setenv("FPGALLERY_DEVICE_URL", "unset")
    monkeypatch.setenv("FPGALLERY_DEVICE_VERIFY_TLS", "0")

    run_webserver._apply_environment(_args(
        data_dir=str(tmp_path), device_url="https://10.0.0.5:8443", verify_tls=True,
    ))

    assert os.environ["FPGALLERY_HOME"] == str(tmp_path.resolve())
    assert os.environ["FPGALLERY_DEVICE_URL"] == "https://10.0.0.5:8443"
    assert os.environ["FPGALLERY_DEVICE_VERIFY_TLS"] == "1"


def test_apply_environment_leaves_unset_options_alone(monkeypatch):
    monkeypatch.setenv("FPGALLERY_DEVICE_URL", "https://keep.me:8443")

    run_webserver._apply_environment(_args())

    assert os.environ["FPGALLERY_DEVICE_URL"] == "https://keep.me:8443"


def test_offline_import_then_export(tmp_path, capsys):
    source = tmp_path / "in.json"
    source.write_text(json.dumps({
        "users": [
            {"id": "u1", "name": "Andi", "template": "TA", "enrollDate": "2025-03-01T10:00:00+00:00"},
            {"id": "u2", "name": "Budi", "template": "TB", "enrollDate": "2025-03-02T10:00:00+00:00"},
        ],
        "lastCapture": None,
    }), encoding="utf-8")
    target = tmp_path / "out.json"

    assert run_webserver.import_gallery(str(source)) == 0
    assert run_webserver.export_gallery(str(target)) == 0

    text = target.read_text(encoding="utf-8")
    assert text.startswith("{\n  \"users\"")
    document = json.loads(text)
    assert [u["id"] for u in document["users"]] == ["u1", "u2"]
    assert document["lastCapture"] is None
    out = capsys.readouterr().out
    assert "Imported 2 users" in out
    assert "Exported 2 users" in out


def test_offline_import_rejects_invalid_file(tmp_path, capsys):
    source = tmp_path / "bad.json"
    source.write_text("{\"lastCapture\": null}", encoding="utf-8")

    assert run_webserver.import_gallery(str(source)) == 1
    assert "✗" in capsys.readouterr().out
