# backend/app/routers/cron.py
from __future__ import annotations

import hmac
from typing import Optional

from fastapi import APIRouter, Depends, Header
from sqlalchemy.orm import Session

from ..config import settings
from ..db import get_db
from ..domain.errors import ActionError
from ..domain.server_log import log_server_action
from ..services.jobs import run_job

router = APIRouter(prefix="/cron", tags=["cron"])


def _expected_secret(job: str) -> Optional[str]:
    if job == "publish-scheduled-announcements":
        return settings.cron_secret_scheduler or settings.cron_secret
    return settings.cron_secret


def _authorize(db: Session, job: str, provided: Optional[str]) -> None:
    expected = _expected_secret(job)
    if expected and provided and hmac.compare_digest(str(provided), str(expected)):
        return
    log_server_action(
        db,
        action=f"cron:{job}:auth",
        status="fail",
        payload={"secret_configured": bool(expected)},
        error="Unauthorized",
        type="auth",
    )
    raise ActionError("Unauthorized", status_code=401)


def _run(db: Session, job: str, secret: Optional[str]) -> dict:
    _authorize(db, job, secret)
    return {"success": True, **run_job(db, job)}


@router.post("/check-subscriptions")
def check_subscriptions(
    db: Session = Depends(get_db), x_cron_secret: Optional[str] = Header(default=None, alias="X-Cron-Secret")
):
    return _run(db, "check-subscriptions", x_cron_secret)


@router.post("/calendar-event-reminders")
def calendar_event_reminders(
    db: Session = Depends(get_db), x_cron_secret: Optional[str] = Header(default=None, alias="X-Cron-Secret")
):
    return _run(db, "calendar-event-reminders", x_cron_secret)


@router.post("/publish-scheduled-announcements")
def publish_scheduled_announcements(
    db: Session = Depends(get_db), x_cron_secret: Optional[str] = Header(default=None, alias="X-Cron-Secret")
):
    return _run(db, "publish-scheduled-announcements", x_cron_secret)


@router.post("/poll-schedule")
def poll_schedule(
    db: Session = Depends(get_db), x_cron_secret: Optional[str] = Header(default=None, alias="X-Cron-Secret")
):
    return _run(db, "poll-schedule", x_cron_secret)
