# backend/tests/test_notifications.py
from __future__ import annotations

from sqlalchemy import func, select, update

from app.models import Notification, Tenant
from app.services import notifications
from app.services.notifications import email_contacts, emit_notifications


def test_rows_are_inserted_in_batches_and_one_digest_per_user(db, make_world, monkeypatch):
    w = make_world(tenants=2)
    sent: list[str] = []
    monkeypatch.setattr(notifications, "send_email", lambda to, subject, body, **kw: (sent.append(to) or (True, "")))

    executes: list[int] = []
    real_execute = db.execute

    def counting_execute(stmt, params=None, *a, **kw):
        if isinstance(params, list):
            executes.append(len(params))
        return real_execute(stmt, params, *a, **kw)

    monkeypatch.setattr(db, "execute", counting_execute)

    token = f"batch-test-{w.client_id}"
    rows = [
        {"user_id": uid, "title": f"item {i}", "action_token": token}
        for i in range(5)
        for uid in w.tenant_user_ids
    ]
    out = emit_notifications(db, rows, batch_size=4)
    db.commit()

    assert out.inserted == 10
    assert executes == [4, 4, 2]
    assert out.users == 2
    assert sorted(sent) == sorted(w.tenant_emails)

    stored = db.scalar(select(func.count(Notification.id)).where(Notification.action_token == token))
    assert stored == 10


def test_opted_out_tenants_get_no_email(db, make_world):
    w = make_world(tenants=2)
    db.execute(update(Tenant).where(Tenant.id == w.tenant_ids[0]).values(email_opt_in=False))
    db.commit()

    contacts = email_contacts(db, w.tenant_user_ids)
    assert w.tenant_user_ids[0] not in contacts
    assert contacts[w.tenant_user_ids[1]] == w.tenant_emails[1]


def test_unread_count_and_mark_all_read(api, headers, make_world, db):
    w = make_world(tenants=1)
    emit_notifications(db, [{"user_id": w.tenant_user_ids[0], "title": "t"}] * 3, send_digest=False)
    db.commit()

    h = headers(w.client_slug, w.tenant_emails[0], "tenant")
    assert api.get("/api/notifications/unread-count", headers=h).json()["unread"] == 3
    api.post("/api/notifications/read-all", headers=h)
    assert api.get("/api/notifications/unread-count", headers=h).json()["unread"] == 0
