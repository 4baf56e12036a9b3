# backend/tests/test_cascade_deletes.py
from __future__ import annotations

import json
import uuid

import httpx
from sqlalchemy import func, select

from app.clients.storage import StorageClient, get_storage
from app.models import (
    Announcement,
    AnnouncementImage,
    Apartment,
    ApartmentImage,
    Building,
    BuildingImage,
    Client,
    ServerLog,
    Tenant,
)


def _storage(handler) -> StorageClient:
    return StorageClient(transport=httpx.MockTransport(handler))


def test_building_delete_continues_when_storage_cleanup_fails(api, headers, make_world, db):
    w = make_world(tenants=2)
    h = headers(w.client_slug, w.manager_email)
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.method)
        return httpx.Response(503)

    api.app.dependency_overrides[get_storage] = lambda: _storage(handler)
    try:
        r = api.post(
            f"/api/buildings/{w.building_id}/images",
            json={"storage_path": f"clients/{w.client_id}/buildings/front.jpg", "is_cover_image": True},
            headers=h,
        )
        assert r.status_code == 200, r.text
        r = api.post(
            f"/api/apartments/{w.apartment_ids[0]}/images",
            json={"storage_path": f"clients/{w.client_id}/apartments/kitchen.jpg"},
            headers=h,
        )
        assert r.status_code == 200, r.text

        r = api.delete(f"/api/buildings/{w.building_id}", headers=h)
        assert r.status_code == 200, r.text
        assert r.json() == {"success": True}
    finally:
        api.app.dependency_overrides.clear()

    assert "DELETE" in calls
    assert db.get(Building, w.building_id) is None
    assert db.scalar(select(func.count(Apartment.id)).where(Apartment.id.in_(w.apartment_ids))) == 0
    assert db.scalar(select(func.count(Tenant.id)).where(Tenant.id.in_(w.tenant_ids))) == 0
    assert db.scalar(select(func.count(BuildingImage.id)).where(BuildingImage.building_id == w.building_id)) == 0
    assert db.scalar(select(func.count(ApartmentImage.id)).where(ApartmentImage.apartment_id.in_(w.apartment_ids))) == 0

    failed = list(
        db.scalars(
            select(ServerLog).where(
                ServerLog.client_id == w.client_id,
                ServerLog.action == "removeStoredFiles",
                ServerLog.status == "fail",
            )
        ).all()
    )
    assert len(failed) == 2
    assert {row.type for row in failed} == {"external"}


def test_apartment_delete_removes_its_images_first(api, headers, make_world, db):
    w = make_world(tenants=1)
    h = headers(w.client_slug, w.manager_email)
    removed: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        removed.extend(json.loads(request.content)["prefixes"])
        return httpx.Response(200, json=[])

    path = f"clients/{w.client_id}/apartments/balcony.jpg"
    api.app.dependency_overrides[get_storage] = lambda: _storage(handler)
    try:
        assert api.post(
            f"/api/apartments/{w.apartment_ids[0]}/images", json={"storage_path": path}, headers=h
        ).status_code == 200
        r = api.delete(f"/api/apartments/{w.apartment_ids[0]}", headers=h)
        assert r.status_code == 200, r.text
    finally:
        api.app.dependency_overrides.clear()

    assert removed == [path]
    assert db.get(Apartment, w.apartment_ids[0]) is None
    assert db.get(Tenant, w.tenant_ids[0]) is None


def test_client_delete_cascades_and_clears_announcement_files(api, headers, make_world, db):
    w = make_world(tenants=1)
    h = headers(w.client_slug, w.manager_email)
    admin = headers(f"ops-{uuid.uuid4().hex[:8]}", f"admin-{uuid.uuid4().hex[:8]}@t.local", role="admin")
    removed: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        removed.extend(json.loads(request.content)["prefixes"])
        return httpx.Response(200, json=[])

    api.app.dependency_overrides[get_storage] = lambda: _storage(handler)
    try:
        ann = api.post("/api/announcements", json={"title": "Roof works", "building_ids": [w.building_id]}, headers=h)
        assert ann.status_code == 200, ann.text
        ann_id = ann.json()["id"]
        img_path = f"clients/{w.client_id}/announcements/roof.png"
        assert api.post(
            f"/api/announcements/{ann_id}/images", json={"storage_path": img_path}, headers=h
        ).status_code == 200

        r = api.delete(f"/api/clients/{w.client_id}", headers=admin)
        assert r.status_code == 200, r.text
    finally:
        api.app.dependency_overrides.clear()

    assert img_path in removed
    assert db.get(Client, w.client_id) is None
    assert db.get(Announcement, ann_id) is None
    assert db.scalar(select(func.count(AnnouncementImage.id)).where(AnnouncementImage.announcement_id == ann_id)) == 0
    assert db.get(Building, w.building_id) is None
