# backend/tests/test_cron_auth.py
from __future__ import annotations

from sqlalchemy import select

from app.config import settings
from app.models import ServerLog


def test_missing_secret_is_rejected_and_logged(api, db, monkeypatch):
    monkeypatch.setattr(settings, "cron_secret", "s3cret")
    r = api.post("/api/cron/poll-schedule", headers={"X-Cron-Secret": "wrong"})
    assert r.status_code == 401
    assert r.json() == {"success": False, "error": "Unauthorized"}

    row = db.scalar(
        select(ServerLog).where(ServerLog.action == "cron:poll-schedule:auth").order_by(ServerLog.id.desc())
    )
    assert row is not None
    assert row.type == "auth"
    assert row.status == "fail"


def test_unconfigured_secret_rejects_everything(api, monkeypatch):
    monkeypatch.setattr(settings, "cron_secret", None)
    monkeypatch.setattr(settings, "cron_secret_scheduler", None)
    assert api.post("/api/cron/check-subscriptions", headers={"X-Cron-Secret": ""}).status_code == 401


def test_valid_secret_runs_job_and_logs_cron_action(api, db, monkeypatch):
    monkeypatch.setattr(settings, "cron_secret", "s3cret")
    r = api.post("/api/cron/poll-schedule", headers={"X-Cron-Secret": "s3cret"})
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert "activated" in body and "closed" in body

    row = db.scalar(select(ServerLog).where(ServerLog.action == "cron:poll-schedule").order_by(ServerLog.id.desc()))
    assert row is not None and row.status == "success" and row.type == "cron"


def test_scheduler_job_uses_its_own_secret(api, monkeypatch):
    monkeypatch.setattr(settings, "cron_secret", "general")
    monkeypatch.setattr(settings, "cron_secret_scheduler", "scheduler")
    path = "/api/cron/publish-scheduled-announcements"
    assert api.post(path, headers={"X-Cron-Secret": "general"}).status_code == 401
    assert api.post(path, headers={"X-Cron-Secret": "scheduler"}).status_code == 200
