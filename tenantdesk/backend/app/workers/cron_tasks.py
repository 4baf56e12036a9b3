# backend/app/workers/cron_tasks.py
from __future__ import annotations

import logging

from ..services.jobs import JOBS, run_job_standalone
from .celery_app import celery_app

log = logging.getLogger("tenantdesk.worker")


@celery_app.task(name="app.workers.cron_tasks.run_cron_job")
def run_cron_job(name: str) -> dict:
    """
    Runs one periodic job in its own session.

    Failures are already recorded in the server log by the job runner; the
    exception still propagates so Celery marks the task failed.
    """
    if name not in JOBS:
        return {"success": False, "error": f"Unknown job: {name}"}
    log.info("cron job start", extra={"job": name})
    out = run_job_standalone(name)
    return {"success": True, **out}
