# backend/tests/test_auth_flow.py
from __future__ import annotations

import uuid

from sqlalchemy import select

from app.models import ClientSubscription


def test_register_starts_trial_and_token_authenticates(api, db):
    tag = uuid.uuid4().hex[:8]
    slug = f"reg-{tag}"
    email = f"owner-{tag}@t.local"

    r = api.post("/api/auth/register", json={"email": email, "password": "long-enough", "client_slug": slug})
    assert r.status_code == 200, r.text
    body = r.json()
    client_id = body["created_client"]["client_id"]

    sub = db.scalar(select(ClientSubscription).where(ClientSubscription.client_id == client_id))
    assert sub is not None and sub.status == "trialing"

    login = api.post("/api/auth/login", json={"email": email, "password": "long-enough", "client_slug": slug})
    assert login.status_code == 200
    token = login.json()["access_token"]

    me = api.get("/api/auth/me", headers={"Authorization": f"Bearer {token}", "X-Client-Slug": slug})
    assert me.status_code == 200
    assert me.json()["role"] == "client"
    assert me.json()["email"] == email


def test_bad_password_is_rejected(api):
    tag = uuid.uuid4().hex[:8]
    api.post("/api/auth/register", json={"email": f"x-{tag}@t.local", "password": "long-enough", "client_slug": f"bp-{tag}"})
    r = api.post("/api/auth/login", json={"email": f"x-{tag}@t.local", "password": "wrong-pass", "client_slug": f"bp-{tag}"})
    assert r.status_code == 401
    assert r.json() == {"success": False, "error": "Invalid credentials"}


def test_duplicate_email_conflicts(api):
    tag = uuid.uuid4().hex[:8]
    body = {"email": f"dup-{tag}@t.local", "password": "long-enough"}
    assert api.post("/api/auth/register", json=body).status_code == 200
    assert api.post("/api/auth/register", json=body).status_code == 409
