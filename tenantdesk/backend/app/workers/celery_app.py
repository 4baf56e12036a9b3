# backend/app/workers/celery_app.py
from __future__ import annotations

from celery import Celery
from celery.schedules import crontab
from celery.signals import setup_logging

from ..config import settings
from ..logging_config import configure_logging

celery_app = Celery(
    "tenantdesk",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["app.workers.cron_tasks"],
)

celery_app.conf.update(
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_reject_on_worker_lost=True,
    task_track_started=True,
    timezone="UTC",
)

celery_app.conf.task_routes = {
    "app.workers.cron_tasks.*": {"queue": "cron"},
}

# reminder matching tolerates +-reminder_window_minutes, so every 5 minutes is enough
celery_app.conf.beat_schedule = {
    "check-subscriptions-daily": {
        "task": "app.workers.cron_tasks.run_cron_job",
        "schedule": crontab(hour=6, minute=0),
        "args": ("check-subscriptions",),
    },
    "calendar-event-reminders": {
        "task": "app.workers.cron_tasks.run_cron_job",
        "schedule": crontab(minute="*/5"),
        "args": ("calendar-event-reminders",),
    },
    "publish-scheduled-announcements": {
        "task": "app.workers.cron_tasks.run_cron_job",
        "schedule": crontab(minute="*"),
        "args": ("publish-scheduled-announcements",),
    },
    "poll-schedule": {
        "task": "app.workers.cron_tasks.run_cron_job",
        "schedule": crontab(minute="*"),
        "args": ("poll-schedule",),
    },
}


@setup_logging.connect
def _setup_logging(**kwargs) -> None:
    # connected handler stops Celery from installing its own root handlers
    configure_logging()
