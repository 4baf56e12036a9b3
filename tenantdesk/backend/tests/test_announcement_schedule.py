# backend/tests/test_announcement_schedule.py
from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy import select

from app.domain.announcement_schedule import is_due, scheduled_at_utc
from app.models import Announcement, AnnouncementBuilding, Notification
from app.services.jobs import publish_scheduled_announcements


def test_wall_clock_time_is_read_in_its_timezone():
    local = datetime(2026, 7, 1, 14, 0)
    assert scheduled_at_utc(local, "Europe/Belgrade") == datetime(2026, 7, 1, 12, 0)
    assert scheduled_at_utc(local, None) == local
    assert scheduled_at_utc(local, "Not/AZone") == local


def test_due_within_forward_grace(now):
    assert is_due(schedule_enabled=True, scheduled_at=now + timedelta(seconds=20), tzid=None, now=now)
    assert not is_due(schedule_enabled=True, scheduled_at=now + timedelta(seconds=45), tzid=None, now=now)
    # overdue items are still due, however old
    assert is_due(schedule_enabled=True, scheduled_at=now - timedelta(days=3), tzid=None, now=now)
    assert not is_due(schedule_enabled=False, scheduled_at=now - timedelta(days=3), tzid=None, now=now)
    assert not is_due(schedule_enabled=True, scheduled_at=None, tzid=None, now=now)


def _draft(db, client_id: int, *, scheduled_at: datetime, category: str | None, subcategory: str | None) -> Announcement:
    a = Announcement(
        client_id=client_id,
        title="Water shutoff",
        message="Water will be off between 9 and 11.",
        category=category,
        subcategory=subcategory,
        schedule_enabled=True,
        scheduled_at=scheduled_at,
        scheduled_timezone="UTC",
    )
    db.add(a)
    db.flush()
    return a


def test_scheduled_publish_notifies_tenants_and_reports_failures(db, make_world, now):
    w = make_world(tenants=2)

    ok = _draft(db, w.client_id, scheduled_at=now - timedelta(minutes=1), category="maintenance_operations", subcategory="utility_outages")
    db.add(AnnouncementBuilding(announcement_id=ok.id, building_id=w.building_id))
    no_target = _draft(db, w.client_id, scheduled_at=now - timedelta(minutes=1), category="maintenance_operations", subcategory="utility_outages")
    later = _draft(db, w.client_id, scheduled_at=now + timedelta(hours=1), category="maintenance_operations", subcategory="utility_outages")
    db.add(AnnouncementBuilding(announcement_id=later.id, building_id=w.building_id))
    db.commit()

    out = publish_scheduled_announcements(db, now=now)
    db.commit()

    assert ok.id in out["published"]
    assert no_target.id in [f["id"] for f in out["failed"]]
    assert later.id not in out["published"]

    db.refresh(ok)
    assert ok.status == "published"
    assert ok.published_at == now
    assert ok.schedule_enabled is False

    notified = db.scalars(
        select(Notification.user_id).where(Notification.action_token == f"announcement_published_{ok.id}")
    ).all()
    assert sorted(notified) == sorted(w.tenant_user_ids)

    db.refresh(no_target)
    assert no_target.status == "draft"


def test_offset_datetimes_are_stored_as_naive_utc():
    from app.schemas import AnnouncementUpsert, PollUpsert

    a = AnnouncementUpsert(title="Notice", schedule_enabled=True, scheduled_at="2026-07-01T14:00:00+02:00")
    assert a.scheduled_at == datetime(2026, 7, 1, 12, 0)
    assert a.scheduled_timezone is None

    # with a zone the wall-clock time in that zone is kept
    b = AnnouncementUpsert(
        title="Notice",
        schedule_enabled=True,
        scheduled_at="2026-07-01T12:00:00+00:00",
        scheduled_timezone="Europe/Belgrade",
    )
    assert b.scheduled_at == datetime(2026, 7, 1, 14, 0)
    assert scheduled_at_utc(b.scheduled_at, b.scheduled_timezone) == datetime(2026, 7, 1, 12, 0)

    p = PollUpsert(
        building_id=1,
        type="yes_no",
        title="Paint the hallway?",
        starts_at="2026-07-01T10:00:00+02:00",
        ends_at="2026-07-02T10:00:00-05:00",
    )
    assert p.starts_at == datetime(2026, 7, 1, 8, 0)
    assert p.ends_at == datetime(2026, 7, 2, 15, 0)
