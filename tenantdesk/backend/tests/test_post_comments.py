# backend/tests/test_post_comments.py
from __future__ import annotations

from sqlalchemy import select

from app.models import PostComment


def test_comment_edit_and_delete_by_author_only(api, headers, make_world, db):
    w = make_world(tenants=2)
    author = headers(w.client_slug, w.tenant_emails[0], "tenant")
    neighbour = headers(w.client_slug, w.tenant_emails[1], "tenant")

    post_id = api.post("/api/social/posts", json={"content_text": "Bike room is flooded"}, headers=author).json()["id"]

    r = api.post(f"/api/social/posts/{post_id}/comments", json={"content_text": "  Reported it  "}, headers=neighbour)
    assert r.status_code == 200, r.text
    comment = r.json()
    assert comment["content_text"] == "Reported it"
    assert comment["tenant_id"] == w.tenant_ids[1]
    api.post(f"/api/social/posts/{post_id}/comments", json={"content_text": "Thanks"}, headers=author)

    listed = api.get(f"/api/social/posts/{post_id}/comments", headers=author).json()
    assert [c["content_text"] for c in listed] == ["Reported it", "Thanks"]

    feed = api.get("/api/social/posts", headers=author).json()
    assert next(p for p in feed if p["id"] == post_id)["comments_count"] == 2

    r = api.put(f"/api/social/comments/{comment['id']}", json={"content_text": "hijacked"}, headers=author)
    assert r.status_code == 403
    assert r.json() == {"success": False, "error": "You can only change your own comments"}
    assert api.delete(f"/api/social/comments/{comment['id']}", headers=author).status_code == 403

    r = api.put(f"/api/social/comments/{comment['id']}", json={"content_text": "Reported it to the manager"}, headers=neighbour)
    assert r.status_code == 200, r.text
    assert r.json()["content_text"] == "Reported it to the manager"

    assert api.delete(f"/api/social/comments/{comment['id']}", headers=neighbour).json() == {"success": True}
    assert api.delete(f"/api/social/comments/{comment['id']}", headers=neighbour).status_code == 404


def test_blank_comment_is_rejected(api, headers, make_world):
    w = make_world(tenants=1)
    h = headers(w.client_slug, w.tenant_emails[0], "tenant")
    post_id = api.post("/api/social/posts", json={"content_text": "hello"}, headers=h).json()["id"]
    r = api.post(f"/api/social/posts/{post_id}/comments", json={"content_text": "   "}, headers=h)
    assert r.status_code == 400
    assert r.json() == {"success": False, "error": "Comment cannot be empty"}


def test_deleting_a_post_drops_its_comments(api, headers, make_world, db):
    w = make_world(tenants=2)
    author = headers(w.client_slug, w.tenant_emails[0], "tenant")
    other = headers(w.client_slug, w.tenant_emails[1], "tenant")
    post_id = api.post("/api/social/posts", json={"content_text": "Yard sale"}, headers=author).json()["id"]
    api.post(f"/api/social/posts/{post_id}/comments", json={"content_text": "When?"}, headers=other)

    assert api.delete(f"/api/social/posts/{post_id}", headers=author).status_code == 200
    assert db.scalars(select(PostComment).where(PostComment.post_id == post_id)).all() == []


def test_comments_stay_inside_the_building(api, headers, make_world):
    here = make_world(tenants=1)
    elsewhere = make_world(tenants=1)
    post_id = api.post(
        "/api/social/posts",
        json={"content_text": "Quiet hours reminder"},
        headers=headers(here.client_slug, here.tenant_emails[0], "tenant"),
    ).json()["id"]

    r = api.post(
        f"/api/social/posts/{post_id}/comments",
        json={"content_text": "hi"},
        headers=headers(elsewhere.client_slug, elsewhere.tenant_emails[0], "tenant"),
    )
    assert r.status_code == 404
