# backend/tests/test_apartment_capacity.py
from __future__ import annotations

from sqlalchemy import select

from app.models import ServerLog
from app.services.property_service import CAPACITY_REACHED


def test_capacity_is_enforced(api, headers, make_world, db):
    w = make_world(tenants=0, capacity=2)
    h = headers(w.client_slug, w.manager_email)

    for n in ("1A", "1B"):
        r = api.post("/api/apartments", json={"building_id": w.building_id, "apartment_number": n}, headers=h)
        assert r.status_code == 200, r.text

    r = api.post("/api/apartments", json={"building_id": w.building_id, "apartment_number": "1C"}, headers=h)
    assert r.status_code == 400
    assert r.json() == {"success": False, "error": CAPACITY_REACHED}

    fail = db.scalar(
        select(ServerLog)
        .where(ServerLog.client_id == w.client_id, ServerLog.action == "createApartment", ServerLog.status == "fail")
        .order_by(ServerLog.id.desc())
    )
    assert fail is not None
    assert fail.error == CAPACITY_REACHED


def test_duplicate_number_conflicts(api, headers, make_world):
    w = make_world(tenants=0, capacity=5)
    h = headers(w.client_slug, w.manager_email)
    body = {"building_id": w.building_id, "apartment_number": "7"}
    assert api.post("/api/apartments", json=body, headers=h).status_code == 200

    r = api.post("/api/apartments", json={**body, "apartment_number": " 7 "}, headers=h)
    assert r.status_code == 409

    exists = api.get(
        "/api/apartments/exists", params={"building_id": w.building_id, "apartment_number": "7"}, headers=h
    ).json()
    assert exists["exists"] is True
