# backend/tests/test_calendar_reminders.py
from __future__ import annotations

from datetime import timedelta

from sqlalchemy import func, select

from app.domain.reminders import calendar_reminder_token, due_offsets, reminder_query_range
from app.models import CalendarEvent, Notification
from app.services import jobs


def test_due_offsets_tolerate_the_window(now):
    offsets = [60, 30]
    assert due_offsets(now + timedelta(minutes=60), now, offsets, 5) == [60]
    assert due_offsets(now + timedelta(minutes=33), now, offsets, 5) == [30]
    assert due_offsets(now + timedelta(minutes=45), now, offsets, 5) == []


def test_query_range_covers_all_offsets(now):
    lo, hi = reminder_query_range(now, [60, 30], 5)
    assert lo == now + timedelta(minutes=25)
    assert hi == now + timedelta(minutes=65)


def test_reminder_job_notifies_each_tenant_once(db, make_world, now, monkeypatch):
    sent: list[str] = []
    monkeypatch.setattr(jobs, "send_email", lambda to, subject, body, **kw: (sent.append(to) or (True, "")))

    w = make_world(tenants=3)
    ev = CalendarEvent(
        client_id=w.client_id,
        building_id=w.building_id,
        title="Building meeting",
        start_date_time=now + timedelta(minutes=60),
        end_date_time=now + timedelta(minutes=120),
    )
    db.add(ev)
    db.commit()

    jobs.send_calendar_reminders(db, now=now)
    db.commit()
    jobs.send_calendar_reminders(db, now=now + timedelta(minutes=2))
    db.commit()

    token = calendar_reminder_token(60, ev.id)
    count = db.scalar(select(func.count(Notification.id)).where(Notification.action_token == token))
    assert count == 3
    assert sorted(set(sent) & set(w.tenant_emails)) == sorted(w.tenant_emails)
    assert len([e for e in sent if e in w.tenant_emails]) == 3


def test_event_with_utc_offset_is_reminded_at_the_right_instant(api, headers, db, make_world, now, monkeypatch):
    monkeypatch.setattr(jobs, "send_email", lambda to, subject, body, **kw: (True, ""))
    w = make_world(tenants=2)

    r = api.post(
        "/api/calendar/events",
        json={
            "building_id": w.building_id,
            "title": "Elevator service",
            "start_date_time": "2026-03-10T15:00:00+02:00",
            "end_date_time": "2026-03-10T16:00:00+02:00",
        },
        headers=headers(w.client_slug, w.manager_email),
    )
    assert r.status_code == 200, r.text
    event_id = r.json()["id"]

    stored = db.get(CalendarEvent, event_id)
    assert stored.start_date_time == now + timedelta(hours=1)
    assert stored.start_date_time.tzinfo is None

    jobs.send_calendar_reminders(db, now=now)
    db.commit()

    token = calendar_reminder_token(60, event_id)
    count = db.scalar(select(func.count(Notification.id)).where(Notification.action_token == token))
    assert count == 2
