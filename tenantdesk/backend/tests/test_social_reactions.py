# backend/tests/test_social_reactions.py
from __future__ import annotations

from sqlalchemy import select

from app.models import PostReaction


def test_react_add_change_remove(api, headers, make_world, db):
    w = make_world(tenants=2)
    author = headers(w.client_slug, w.tenant_emails[0], "tenant")
    other = headers(w.client_slug, w.tenant_emails[1], "tenant")

    r = api.post("/api/social/posts", json={"content_text": "Anyone lost a bike key?"}, headers=author)
    assert r.status_code == 200, r.text
    post_id = r.json()["id"]

    assert api.post(f"/api/social/posts/{post_id}/react", json={"emoji": "👍"}, headers=other).json()["action"] == "added"
    assert api.post(f"/api/social/posts/{post_id}/react", json={"emoji": "❤️"}, headers=other).json()["action"] == "changed"
    assert api.post(f"/api/social/posts/{post_id}/react", json={"emoji": "👍"}, headers=author).json()["action"] == "added"

    feed = api.get("/api/social/posts", headers=author).json()
    post = next(p for p in feed if p["id"] == post_id)
    assert {r["emoji"]: r["count"] for r in post["reactions"]} == {"❤️": 1, "👍": 1}
    assert post["user_reaction"] == "👍"

    r = api.post(f"/api/social/posts/{post_id}/react", json={"emoji": "❤️"}, headers=other)
    assert r.json() == {"success": True, "action": "removed", "emoji": None}

    rows = db.scalars(select(PostReaction).where(PostReaction.post_id == post_id)).all()
    assert [(x.tenant_id, x.emoji) for x in rows] == [(w.tenant_ids[0], "👍")]


def test_blank_emoji_is_rejected(api, headers, make_world):
    w = make_world(tenants=1)
    h = headers(w.client_slug, w.tenant_emails[0], "tenant")
    post_id = api.post("/api/social/posts", json={"content_text": "hello"}, headers=h).json()["id"]
    r = api.post(f"/api/social/posts/{post_id}/react", json={"emoji": "  "}, headers=h)
    assert r.status_code == 400
    assert r.json() == {"success": False, "error": "Emoji is required"}


def test_feed_requires_tenant(api, headers, make_world):
    w = make_world(tenants=0)
    r = api.get("/api/social/posts", headers=headers(w.client_slug, w.manager_email))
    assert r.status_code == 403
