from __future__ import annotations

from fastapi.testclient import TestClient

from conftest import RecordingLimiter
from gatekeeper.core.app_factory import create_app
from gatekeeper.core.config import AppSettings


client = TestClient(create_app(RecordingLimiter(), app_settings=AppSettings()))


def test_preserves_incoming_request_id_header():
    resp = client.get("/health", headers={"X-Request-ID": "test-request-id-123"})

    assert resp.status_code == 200
    assert resp.headers.get("X-Request-ID") == "test-request-id-123"


def test_generates_request_id_when_missing():
    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.headers.get("X-Request-ID")
    assert resp.headers.get("X-Request-Duration-ms") is not None
