# backend/tests/test_cross_client_access.py
from __future__ import annotations


def test_other_clients_rows_are_invisible(api, headers, make_world):
    a = make_world(tenants=1)
    b = make_world(tenants=1)
    ha = headers(a.client_slug, a.manager_email)

    assert api.get(f"/api/buildings/{a.building_id}", headers=ha).status_code == 200
    r = api.get(f"/api/buildings/{b.building_id}", headers=ha)
    assert r.status_code == 404
    assert r.json() == {"success": False, "error": "building not found"}

    assert api.get(f"/api/apartments/{b.apartment_ids[0]}", headers=ha).status_code == 404
    assert api.get(f"/api/tenants/{b.tenant_ids[0]}", headers=ha).status_code == 404

    listed = api.get("/api/buildings", headers=ha).json()
    assert [x["id"] for x in listed] == [a.building_id]


def test_tenant_cannot_use_manager_routes(api, headers, make_world):
    w = make_world(tenants=1)
    r = api.get("/api/buildings", headers=headers(w.client_slug, w.tenant_emails[0], "tenant"))
    assert r.status_code == 403
    assert r.json()["success"] is False


def test_missing_client_header_is_unauthenticated(api):
    r = api.get("/api/buildings", headers={"X-User-Email": "x@t.local"})
    assert r.status_code == 401
