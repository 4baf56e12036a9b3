# backend/tests/test_incidents.py
from __future__ import annotations

import json

import httpx
from sqlalchemy import select

from app.clients.storage import StorageClient, get_storage
from app.models import AppUser, IncidentImage, IncidentReport, Notification, ServerLog


def _report(api, headers, w, **extra) -> dict:
    body = {"title": "Leaking pipe", "description": "Water under the sink", "category": "plumbing"}
    body.update(extra)
    r = api.post("/api/incidents", json=body, headers=headers(w.client_slug, w.tenant_emails[0], "tenant"))
    assert r.status_code == 200, r.text
    return r.json()


def test_tenant_report_notifies_staff(api, headers, make_world, db):
    w = make_world(tenants=1)
    inc = _report(api, headers, w)

    assert inc["status"] == "open"
    assert inc["created_by_tenant_id"] == w.tenant_ids[0]
    rows = db.scalars(select(Notification).where(Notification.action_token == f"incident_created_{inc['id']}")).all()
    # the manager is the only staff member
    assert len(rows) == 1
    assert rows[0].building_id == w.building_id
    assert rows[0].user_id not in w.tenant_user_ids


def test_resolve_and_close_stamp_their_times_once(api, headers, make_world, db):
    w = make_world(tenants=1)
    inc = _report(api, headers, w)
    h = headers(w.client_slug, w.manager_email)

    r = api.patch(f"/api/incidents/{inc['id']}", json={"status": "in_progress"}, headers=h)
    assert r.status_code == 200, r.text
    assert r.json()["resolved_at"] is None

    r = api.patch(f"/api/incidents/{inc['id']}", json={"status": "resolved"}, headers=h)
    resolved_at = r.json()["resolved_at"]
    assert resolved_at is not None
    assert r.json()["closed_at"] is None

    r = api.patch(f"/api/incidents/{inc['id']}", json={"status": "closed"}, headers=h)
    assert r.json()["closed_at"] is not None
    assert r.json()["resolved_at"] == resolved_at


def test_closing_an_open_incident_also_marks_it_resolved(api, headers, make_world):
    w = make_world(tenants=1)
    inc = _report(api, headers, w)
    r = api.patch(f"/api/incidents/{inc['id']}", json={"status": "closed"}, headers=headers(w.client_slug, w.manager_email))
    assert r.status_code == 200, r.text
    assert r.json()["closed_at"] is not None
    assert r.json()["resolved_at"] == r.json()["closed_at"]


def _user_id(db, email: str) -> int:
    return int(db.scalar(select(AppUser.id).where(AppUser.email == email)))


def test_assignee_must_be_staff_of_the_same_client(api, headers, make_world, db):
    w = make_world(tenants=1)
    other = make_world(tenants=0)
    inc = _report(api, headers, w)
    h = headers(w.client_slug, w.manager_email)

    # a tenant, a user that does not exist and a manager of another client
    for bad in (w.tenant_user_ids[0], 10_000_000, _user_id(db, other.manager_email)):
        r = api.patch(f"/api/incidents/{inc['id']}", json={"assigned_to_user_id": bad}, headers=h)
        assert r.status_code == 400, r.text
        assert r.json() == {"success": False, "error": "Assignee must be a staff member of this client"}

    failed = db.scalars(
        select(ServerLog).where(
            ServerLog.client_id == w.client_id, ServerLog.action == "updateIncident", ServerLog.status == "fail"
        )
    ).all()
    assert len(failed) == 3

    manager_id = _user_id(db, w.manager_email)
    r = api.patch(f"/api/incidents/{inc['id']}", json={"assigned_to_user_id": manager_id}, headers=h)
    assert r.status_code == 200, r.text
    assert r.json()["assigned_to_user_id"] == manager_id

    r = api.patch(f"/api/incidents/{inc['id']}", json={"assigned_to_user_id": None}, headers=h)
    assert r.status_code == 200, r.text
    db.expire_all()
    assert db.get(IncidentReport, inc["id"]).assigned_to_user_id is None


def test_tenant_attaches_and_removes_incident_images(api, headers, make_world, db):
    w = make_world(tenants=2)
    inc = _report(api, headers, w)
    reporter = headers(w.client_slug, w.tenant_emails[0], "tenant")
    neighbour = headers(w.client_slug, w.tenant_emails[1], "tenant")
    manager = headers(w.client_slug, w.manager_email)
    removed: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        removed.extend(json.loads(request.content)["prefixes"])
        return httpx.Response(200, json=[])

    path = f"clients/{w.client_id}/incidents/{inc['id']}/sink.jpg"
    api.app.dependency_overrides[get_storage] = lambda: StorageClient(transport=httpx.MockTransport(handler))
    try:
        r = api.post(f"/api/incidents/{inc['id']}/images", json={"storage_path": path}, headers=reporter)
        assert r.status_code == 200, r.text
        image_id = r.json()["id"]

        # other tenants cannot see the report at all
        assert api.get(f"/api/incidents/{inc['id']}/images", headers=neighbour).status_code == 404
        r = api.post(
            f"/api/incidents/{inc['id']}/images",
            json={"storage_path": "clients/999999/incidents/x.jpg"},
            headers=reporter,
        )
        assert r.status_code == 403

        listed = api.get(f"/api/incidents/{inc['id']}/images", headers=manager).json()
        assert [x["storage_path"] for x in listed] == [path]

        r = api.delete(f"/api/incidents/{inc['id']}/images/{image_id}", headers=reporter)
        assert r.status_code == 200, r.text
    finally:
        api.app.dependency_overrides.clear()

    assert removed == [path]
    assert db.get(IncidentImage, image_id) is None


def test_tenant_cannot_remove_staff_images(api, headers, make_world):
    w = make_world(tenants=1)
    inc = _report(api, headers, w)
    reporter = headers(w.client_slug, w.tenant_emails[0], "tenant")
    manager = headers(w.client_slug, w.manager_email)

    r = api.post(
        f"/api/incidents/{inc['id']}/images",
        json={"storage_path": f"clients/{w.client_id}/incidents/{inc['id']}/after-repair.jpg"},
        headers=manager,
    )
    assert r.status_code == 200, r.text
    r = api.delete(f"/api/incidents/{inc['id']}/images/{r.json()['id']}", headers=reporter)
    assert r.status_code == 403
