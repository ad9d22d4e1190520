from __future__ import annotations

import base64
import dataclasses

from fastapi.testclient import TestClient

import services.vision as vision

IMAGE = "data:image/png;base64," + base64.b64encode(b"\x89PNG fake").decode()


def _client(store, settings):
    import app as app_module

    return TestClient(app_module.create_app(store=store, settings=settings))


def test_missing_image_is_a_bad_request(client):
    r = client.post("/api/validate-homescreen", json={})
    assert r.status_code == 400
    assert "error" in r.json()


def test_undecodable_image_with_a_key_is_a_bad_request(store, test_settings):
    client = _client(store, dataclasses.replace(test_settings, gemini_api_key="k"))
    r = client.post("/api/validate-homescreen", json={"imageData": "data:image/png;base64,%%%"})
    assert r.status_code == 400


def test_undecodable_image_without_a_key_is_still_accepted(client):
    r = client.post("/api/validate-homescreen", json={"imageData": "not base64 at all"})
    assert r.status_code == 200
    assert r.json()["isHomeScreen"] is True


def test_without_api_key_validation_is_skipped(client):
    r = client.post("/api/validate-homescreen", json={"imageData": IMAGE})
    assert r.status_code == 200
    assert r.json()["isHomeScreen"] is True


def test_strict_mode_without_key_is_unavailable(store, test_settings):
    client = _client(store, dataclasses.replace(test_settings, strict_validation=True))
    r = client.post("/api/validate-homescreen", json={"imageData": IMAGE})
    assert r.status_code == 503
    assert r.json()["isHomeScreen"] is False


def test_model_verdict_is_returned(monkeypatch, store, test_settings):
    monkeypatch.setattr(
        vision,
        "call_predict_with_image",
        lambda *a, **kw: '{"isHomeScreen": false, "reason": "this is a photo"}',
    )
    client = _client(store, dataclasses.replace(test_settings, gemini_api_key="k"))

    r = client.post("/api/validate-homescreen", json={"imageData": IMAGE})
    assert r.status_code == 200
    assert r.json() == {"isHomeScreen": False, "reason": "this is a photo"}

    assert client.get("/api/health").json()["hasApiKey"] is True


def test_model_failures_are_server_errors(monkeypatch, store, test_settings):
    client = _client(store, dataclasses.replace(test_settings, gemini_api_key="k"))

    monkeypatch.setattr(vision, "call_predict_with_image", lambda *a, **kw: "cannot tell")
    r = client.post("/api/validate-homescreen", json={"imageData": IMAGE})
    assert r.status_code == 500
    assert r.json()["isHomeScreen"] is False

    def boom(*a, **kw):
        raise RuntimeError("quota exceeded")

    monkeypatch.setattr(vision, "call_predict_with_image", boom)
    r = client.post("/api/validate-homescreen", json={"imageData": IMAGE})
    assert r.status_code == 500
    assert "quota exceeded" in r.json()["reason"]
