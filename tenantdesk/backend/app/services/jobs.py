# backend/app/services/jobs.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..config import settings
from ..db import SessionLocal
from ..domain.announcement_schedule import is_due
from ..domain.errors import ActionError
from ..domain.reminders import calendar_reminder_token, due_offsets, reminder_query_range
from ..domain.server_log import log_server_action, track_action
from ..domain.subscription_lifecycle import evaluate_subscription
from ..logging_config import job_context
from ..models import (
    Announcement,
    Apartment,
    AppUser,
    CalendarEvent,
    Client,
    ClientMembership,
    ClientSubscription,
    Notification,
    SubscriptionPlan,
    Tenant,
)
from .announcement_service import publish_announcement
from .email import (
    calendar_reminder_email,
    send_email,
    subscription_ending_email,
    subscription_ending_support_email,
)
from .notifications import emit_notifications
from .poll_service import run_poll_schedule

log = logging.getLogger("tenantdesk.jobs")


def _client_email(db: Session, client_id: int) -> Optional[str]:
    client = db.get(Client, int(client_id))
    if client is None:
        return None
    if client.email:
        return client.email
    # fall back to the first property-manager login of the client
    return db.scalar(
        select(AppUser.email)
        .join(ClientMembership, ClientMembership.user_id == AppUser.id)
        .where(ClientMembership.client_id == int(client_id), ClientMembership.role == "client")
        .order_by(ClientMembership.id.asc())
        .limit(1)
    )


# -------------------------
# Subscription lifecycle
# -------------------------
def check_subscriptions(db: Session, *, now: Optional[datetime] = None) -> dict[str, Any]:
    now = now or datetime.utcnow()
    subs = list(db.scalars(select(ClientSubscription).order_by(ClientSubscription.id.asc())).all())

    updated = 0
    reminders = 0
    results: list[dict[str, Any]] = []
    for sub in subs:
        check = evaluate_subscription(
            status=sub.status,
            next_payment_date=sub.next_payment_date,
            now=now,
            reminder_days=settings.subscription_reminder_days,
        )

        if check.expired and sub.status != "expired":
            sub.status = "expired"
            sub.updated_at = now
            db.add(sub)
            updated += 1

        results.append({"client_id": sub.client_id, "subscription_status": sub.status, "expired": check.expired})

        if not check.reminder_due:
            continue

        email = _client_email(db, sub.client_id)
        if not email:
            log_server_action(
                db,
                action="checkSubscriptionClientEmail",
                status="fail",
                client_id=sub.client_id,
                payload={"subscription_id": sub.id},
                error="client email not found",
                type="cron",
                commit=False,
            )
            continue

        plan_name = None
        if sub.plan_id is not None:
            plan = db.get(SubscriptionPlan, sub.plan_id)
            plan_name = plan.name if plan else None

        subject, body = subscription_ending_email(plan_name=plan_name, days_remaining=check.days_until_expiration)
        ok, _ = send_email(email, subject, body)
        reminders += 1 if ok else 0

        if settings.support_email:
            subject, body = subscription_ending_support_email(
                plan_name=plan_name, client_email=email, days_remaining=check.days_until_expiration
            )
            send_email(settings.support_email, subject, body)

    db.flush()
    return {"checked": len(subs), "updated": updated, "reminders_sent": reminders, "results": results}


# -------------------------
# Calendar reminders
# -------------------------
def send_calendar_reminders(db: Session, *, now: Optional[datetime] = None) -> dict[str, Any]:
    now = now or datetime.utcnow()
    offsets = list(settings.reminder_offsets_minutes)
    window = int(settings.reminder_window_minutes)
    lo, hi = reminder_query_range(now, offsets, window)

    events = list(
        db.scalars(
            select(CalendarEvent)
            .where(CalendarEvent.start_date_time >= lo, CalendarEvent.start_date_time <= hi)
            .where(CalendarEvent.building_id.is_not(None))
            .order_by(CalendarEvent.start_date_time.asc())
        ).all()
    )

    counters = {
        "events_fetched": len(events),
        "matched_events": 0,
        "tenants_considered": 0,
        "notifications_prepared": 0,
        "notifications_inserted": 0,
        "emails_attempted": 0,
        "emails_sent": 0,
    }

    for ev in events:
        due = due_offsets(ev.start_date_time, now, offsets, window)
        if not due:
            continue
        counters["matched_events"] += 1

        tenants = list(
            db.scalars(
                select(Tenant)
                .join(Apartment, Apartment.id == Tenant.apartment_id)
                .where(Apartment.building_id == ev.building_id, Tenant.user_id.is_not(None))
                .order_by(Tenant.id.asc())
            ).all()
        )
        counters["tenants_considered"] += len(tenants)
        if not tenants:
            continue

        user_ids = [int(t.user_id) for t in tenants]
        for offset in due:
            token = calendar_reminder_token(offset, ev.id)
            notified = set(
                db.scalars(
                    select(Notification.user_id).where(
                        Notification.action_token == token, Notification.user_id.in_(user_ids)
                    )
                ).all()
            )

            rows: list[dict[str, Any]] = []
            for t in tenants:
                uid = int(t.user_id)
                if uid in notified:
                    continue
                notified.add(uid)
                rows.append(
                    {
                        "user_id": uid,
                        "type": "reminder",
                        "title": ev.title,
                        "description": f"Reminder: {ev.title} starts in {offset} minutes.",
                        "url": "/dashboard/calendar/",
                        "action_token": token,
                        "building_id": ev.building_id,
                        "created_at": now,
                    }
                )
                if t.email:
                    counters["emails_attempted"] += 1
                    subject, body = calendar_reminder_email(
                        title=ev.title,
                        description=ev.description,
                        starts_at=ev.start_date_time,
                        minutes_remaining=offset,
                    )
                    ok, _ = send_email(t.email, subject, body)
                    counters["emails_sent"] += 1 if ok else 0

            if rows:
                counters["notifications_prepared"] += len(rows)
                emitted = emit_notifications(db, rows, send_digest=False)
                counters["notifications_inserted"] += emitted.inserted

    return {"now": now.isoformat(), "range": {"from": lo.isoformat(), "to": hi.isoformat()}, **counters}


# -------------------------
# Scheduled announcements
# -------------------------
def publish_scheduled_announcements(db: Session, *, now: Optional[datetime] = None) -> dict[str, Any]:
    now = now or datetime.utcnow()
    grace = int(settings.announcement_forward_grace_seconds)

    drafts = list(
        db.scalars(
            select(Announcement)
            .where(Announcement.status == "draft", Announcement.schedule_enabled.is_(True))
            .where(Announcement.scheduled_at.is_not(None))
            .order_by(Announcement.scheduled_at.asc())
        ).all()
    )
    due = [
        a
        for a in drafts
        if is_due(
            schedule_enabled=a.schedule_enabled,
            scheduled_at=a.scheduled_at,
            tzid=a.scheduled_timezone,
            now=now,
            forward_grace_seconds=grace,
        )
    ]

    published: list[int] = []
    failed: list[dict[str, Any]] = []
    for ann in due:
        try:
            publish_announcement(db, ann, now=now)
        except ActionError as e:
            failed.append({"id": ann.id, "error": e.message})
            continue
        published.append(ann.id)

    return {
        "checked": len(drafts),
        "publish_attempts": len(due),
        "published": published,
        "failed": failed,
        "forward_grace_seconds": grace,
    }


def poll_schedule(db: Session, *, now: Optional[datetime] = None) -> dict[str, Any]:
    return run_poll_schedule(db, now=now)


JOBS: dict[str, Callable[..., dict[str, Any]]] = {
    "check-subscriptions": check_subscriptions,
    "calendar-event-reminders": send_calendar_reminders,
    "publish-scheduled-announcements": publish_scheduled_announcements,
    "poll-schedule": poll_schedule,
}


def run_job(db: Session, name: str, *, now: Optional[datetime] = None) -> dict[str, Any]:
    """Runs one registered job inside a tracked cron action (committed on success)."""
    fn = JOBS.get(name)
    if fn is None:
        raise ActionError(f"Unknown job: {name}", status_code=404)

    with job_context(name):
        with track_action(db, f"cron:{name}", type="cron") as extra:
            out = fn(db, now=now)
            extra.update({k: v for k, v in out.items() if isinstance(v, (int, str))})
        log.info("job finished")
    return out


def run_job_standalone(name: str) -> dict[str, Any]:
    db = SessionLocal()
    try:
        return run_job(db, name)
    finally:
        db.close()
