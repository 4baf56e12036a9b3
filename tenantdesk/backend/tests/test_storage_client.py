# backend/tests/test_storage_client.py
from __future__ import annotations

import json

import httpx
import pytest

from app.clients.storage import MAX_SIGNED_TTL_SECONDS, StorageClient, StorageError, clamp_ttl, get_storage


def _client(handler) -> StorageClient:
    return StorageClient(transport=httpx.MockTransport(handler))


def test_sign_path_posts_ttl_and_returns_absolute_url():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"signedURL": "/object/sign/b/clients/1/a.png?token=t"})

    url = _client(handler).sign_path("b", "/clients/1/a.png", 120)
    assert seen["url"].endswith("/object/sign/b/clients/1/a.png")
    assert seen["body"] == {"expiresIn": 120}
    assert url.startswith("http") and url.endswith("/object/sign/b/clients/1/a.png?token=t")


def test_sign_paths_batches_and_skips_errors():
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        assert body["paths"] == ["x/1.png", "x/2.png"]
        return httpx.Response(
            200,
            json=[
                {"path": "x/1.png", "signedURL": "https://cdn.local/1"},
                {"path": "x/2.png", "error": "not found", "signedURL": None},
            ],
        )

    out = _client(handler).sign_paths("b", ["/x/1.png", "x/2.png", "x/1.png"])
    assert out == {"x/1.png": "https://cdn.local/1"}


def test_http_errors_become_storage_errors():
    client = _client(lambda request: httpx.Response(500, json={"error": "boom"}))
    with pytest.raises(StorageError):
        client.remove("b", ["x/1.png"])


def test_ttl_is_clamped():
    assert clamp_ttl(1) == 60
    assert clamp_ttl(10**9) == MAX_SIGNED_TTL_SECONDS


def test_sign_file_route_scopes_paths_to_client_folder(api, headers, make_world):
    w = make_world(tenants=0)
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        return httpx.Response(200, json={"signedURL": "https://cdn.local/signed"})

    api.app.dependency_overrides[get_storage] = lambda: _client(handler)
    try:
        h = headers(w.client_slug, w.manager_email)
        ok = api.post("/api/storage/sign-file", json={"path": f"clients/{w.client_id}/doc.pdf"}, headers=h)
        assert ok.status_code == 200, ok.text
        assert ok.json()["signed_url"] == "https://cdn.local/signed"

        denied = api.post("/api/storage/sign-file", json={"path": "clients/999999/doc.pdf"}, headers=h)
        assert denied.status_code == 403
        assert len(calls) == 1
    finally:
        api.app.dependency_overrides.clear()


def test_remove_failure_maps_to_bad_gateway(api, headers, make_world):
    w = make_world(tenants=0)
    api.app.dependency_overrides[get_storage] = lambda: _client(lambda request: httpx.Response(503))
    try:
        r = api.post(
            "/api/storage/remove",
            json={"paths": [f"clients/{w.client_id}/old.png"]},
            headers=headers(w.client_slug, w.manager_email),
        )
        assert r.status_code == 502
        assert r.json()["success"] is False
    finally:
        api.app.dependency_overrides.clear()


def test_dot_segments_cannot_escape_client_folder(api, headers, make_world):
    w = make_world(tenants=0)
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        return httpx.Response(200, json={"signedURL": "https://cdn.local/signed"})

    api.app.dependency_overrides[get_storage] = lambda: _client(handler)
    try:
        h = headers(w.client_slug, w.manager_email)
        for path in (
            f"clients/{w.client_id}/../999999/secret.pdf",
            f"clients/{w.client_id}/./doc.pdf",
            f"clients/{w.client_id}//doc.pdf",
        ):
            r = api.post("/api/storage/sign-file", json={"path": path}, headers=h)
            assert r.status_code == 403, path
            assert r.json()["success"] is False

        listed = api.get("/api/storage/objects", params={"folder": "../999999"}, headers=h)
        assert listed.status_code == 403

        up = api.post(
            "/api/storage/upload",
            data={"folder": "docs/../../999999"},
            files={"file": ("a.txt", b"hi", "text/plain")},
            headers=h,
        )
        assert up.status_code == 403
        assert calls == []
    finally:
        api.app.dependency_overrides.clear()
