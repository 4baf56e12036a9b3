# backend/tests/test_tenant_contacts.py
from __future__ import annotations

import pytest


def _tenant(apartment_id: int, **extra) -> dict:
    body = {"apartment_id": apartment_id, "first_name": "Ana", "last_name": "Petrovic", "is_primary": True}
    body.update(extra)
    return body


@pytest.mark.parametrize(
    "extra",
    [
        {"email": "ana@t.local"},
        {"phone_number": "+381641112223"},
        {"email": "ana@t.local", "phone_number": "0641112223"},
        {"email": "ana@t.local", "phone_number": "+12345"},
    ],
)
def test_primary_tenant_needs_email_and_international_phone(api, headers, make_world, extra):
    w = make_world(tenants=1)
    r = api.post("/api/tenants", json=_tenant(w.apartment_ids[0], **extra), headers=headers(w.client_slug, w.manager_email))
    assert r.status_code == 422
    assert r.json()["success"] is False


def test_primary_tenant_with_contacts_is_created(api, headers, make_world):
    w = make_world(tenants=1)
    h = headers(w.client_slug, w.manager_email)
    r = api.post(
        "/api/tenants",
        json=_tenant(w.apartment_ids[0], email="ana@t.local", phone_number="+381 64 111 2223"),
        headers=h,
    )
    assert r.status_code == 200, r.text
    assert r.json()["phone_number"] == "+381641112223"

    # secondary occupants may skip contact details
    r = api.post("/api/tenants", json=_tenant(w.apartment_ids[0], is_primary=False), headers=h)
    assert r.status_code == 200, r.text
