# backend/tests/test_error_envelope.py
from __future__ import annotations

from fastapi.testclient import TestClient

from app.main import create_app


def test_unknown_route_uses_failure_envelope(api):
    r = api.get("/api/nope")
    assert r.status_code == 404
    assert r.json()["success"] is False


def test_validation_errors_carry_details(api, headers, make_world):
    w = make_world(tenants=0)
    r = api.post("/api/buildings", json={"city": "Nis"}, headers=headers(w.client_slug, w.manager_email))
    assert r.status_code == 422
    body = r.json()
    assert body["success"] is False
    assert body["details"]


def test_unhandled_errors_are_hidden():
    app = create_app()

    @app.get("/boom")
    def boom():
        raise RuntimeError("secret internals")

    r = TestClient(app, raise_server_exceptions=False).get("/boom")
    assert r.status_code == 500
    assert "secret" not in r.json()["error"]


def test_health(api):
    r = api.get("/api/health")
    assert r.status_code == 200
