# backend/tests/test_attachments.py
from __future__ import annotations

import json

import httpx
from sqlalchemy import select

from app.clients.storage import StorageClient, get_storage
from app.models import AnnouncementDocument, AnnouncementImage, ApartmentImage


def _announcement(api, h, w, **extra) -> int:
    body = {
        "title": "Elevator maintenance",
        "category": "maintenance_operations",
        "subcategory": "utility_outages",
        "building_ids": [w.building_id],
    }
    body.update(extra)
    r = api.post("/api/announcements", json=body, headers=h)
    assert r.status_code == 200, r.text
    return r.json()["id"]


def test_category_is_checked_against_the_catalog(api, headers, make_world):
    w = make_world(tenants=1)
    h = headers(w.client_slug, w.manager_email)

    r = api.post("/api/announcements", json={"title": "x", "category": "gossip"}, headers=h)
    assert r.status_code == 400
    assert r.json() == {"success": False, "error": "Unknown category: gossip"}

    r = api.post(
        "/api/announcements",
        json={"title": "x", "category": "maintenance_operations", "subcategory": "poll_results"},
        headers=h,
    )
    assert r.status_code == 400

    # drafts may skip the category, publishing may not
    draft = api.post("/api/announcements", json={"title": "Draft", "building_ids": [w.building_id]}, headers=h)
    assert draft.status_code == 200, draft.text
    r = api.post(f"/api/announcements/{draft.json()['id']}/publish", headers=h)
    assert r.status_code == 400
    assert r.json() == {"success": False, "error": "Category required"}


def test_images_and_documents_follow_the_announcement(api, headers, make_world, db):
    w = make_world(tenants=1)
    h = headers(w.client_slug, w.manager_email)
    tenant = headers(w.client_slug, w.tenant_emails[0], "tenant")
    removed: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        removed.extend(json.loads(request.content)["prefixes"])
        return httpx.Response(200, json=[])

    ann_id = _announcement(api, h, w)
    image_path = f"clients/{w.client_id}/announcements/{ann_id}/lift.png"
    doc_path = f"clients/{w.client_id}/announcements/{ann_id}/schedule.pdf"

    api.app.dependency_overrides[get_storage] = lambda: StorageClient(transport=httpx.MockTransport(handler))
    try:
        assert api.post(f"/api/announcements/{ann_id}/images", json={"storage_path": image_path}, headers=h).status_code == 200
        r = api.post(
            f"/api/announcements/{ann_id}/documents",
            json={"storage_path": doc_path, "file_name": "schedule.pdf"},
            headers=h,
        )
        assert r.status_code == 200, r.text
        assert r.json()["mime_type"] == "application/pdf"

        r = api.post(
            f"/api/announcements/{ann_id}/documents",
            json={"storage_path": f"clients/{w.client_id}/announcements/run.exe", "file_name": "run.exe"},
            headers=h,
        )
        assert r.status_code == 400
        assert r.json()["error"].startswith("File type not allowed")

        # drafts are invisible to tenants
        assert api.get(f"/api/announcements/{ann_id}/images", headers=tenant).status_code == 404
        assert api.post(f"/api/announcements/{ann_id}/publish", headers=h).status_code == 200
        images = api.get(f"/api/announcements/{ann_id}/images", headers=tenant).json()
        docs = api.get(f"/api/announcements/{ann_id}/documents", headers=tenant).json()
        assert [x["storage_path"] for x in images] == [image_path]
        assert [x["file_name"] for x in docs] == ["schedule.pdf"]

        assert api.delete(f"/api/announcements/{ann_id}", headers=h).status_code == 200
    finally:
        api.app.dependency_overrides.clear()

    assert sorted(removed) == sorted([image_path, doc_path])
    assert db.scalars(select(AnnouncementImage).where(AnnouncementImage.announcement_id == ann_id)).all() == []
    assert db.scalars(select(AnnouncementDocument).where(AnnouncementDocument.announcement_id == ann_id)).all() == []


def test_apartment_cover_image_is_exclusive_and_removal_clears_storage(api, headers, make_world, db):
    w = make_world(tenants=1)
    h = headers(w.client_slug, w.manager_email)
    aid = w.apartment_ids[0]
    removed: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        removed.extend(json.loads(request.content)["prefixes"])
        return httpx.Response(200, json=[])

    first = f"clients/{w.client_id}/apartments/{aid}/living.jpg"
    second = f"clients/{w.client_id}/apartments/{aid}/bedroom.jpg"
    api.app.dependency_overrides[get_storage] = lambda: StorageClient(transport=httpx.MockTransport(handler))
    try:
        a = api.post(f"/api/apartments/{aid}/images", json={"storage_path": first, "is_cover_image": True}, headers=h)
        b = api.post(f"/api/apartments/{aid}/images", json={"storage_path": second, "is_cover_image": True}, headers=h)
        assert a.status_code == 200 and b.status_code == 200

        r = api.post(f"/api/apartments/{aid}/images", json={"storage_path": "clients/1/../2/x.jpg"}, headers=h)
        assert r.status_code == 403

        listed = {x["storage_path"]: x["is_cover_image"] for x in api.get(f"/api/apartments/{aid}/images", headers=h).json()}
        assert listed == {first: False, second: True}

        assert api.delete(f"/api/apartments/{aid}/images/{a.json()['id']}", headers=h).status_code == 200
    finally:
        api.app.dependency_overrides.clear()

    assert removed == [first]
    assert db.get(ApartmentImage, a.json()["id"]) is None
