# backend/app/logging_config.py
from __future__ import annotations

import json
import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Iterator, Optional

from .config import settings
from .middleware.request_id import get_request_id

# set on records via `extra=`; job also comes from job_context()
EXTRA_FIELDS = ("client_id", "user_id", "building_id", "job", "action")

# third-party loggers that flood INFO
QUIET_LOGGERS = {
    "httpx": "WARNING",
    "httpcore": "WARNING",
    "celery.redirected": "WARNING",
}

job_ctx: ContextVar[Optional[str]] = ContextVar("job", default=None)


@contextmanager
def job_context(name: str) -> Iterator[None]:
    """Tags every record logged inside with the cron job name."""
    token = job_ctx.set(name)
    try:
        yield
    finally:
        job_ctx.reset(token)


def _fields(record: logging.LogRecord) -> dict[str, Any]:
    out: dict[str, Any] = {}
    rid = get_request_id()
    if rid:
        out["request_id"] = rid
    job = job_ctx.get()
    if job and not hasattr(record, "job"):
        out["job"] = job
    for k in EXTRA_FIELDS:
        v = getattr(record, k, None)
        if v is not None:
            out[k] = v
    return out


class JsonFormatter(logging.Formatter):
    """One JSON object per line, with request/job context and structured extras."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_fields(record),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


class TextFormatter(logging.Formatter):
    """Readable single-line format for local runs: `... message key=value`."""

    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)-7s %(name)s: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = _fields(record)
        if fields:
            line += " " + " ".join(f"{k}={v}" for k, v in fields.items())
        return line


def configure_logging(level: Optional[str] = None, fmt: Optional[str] = None) -> None:
    """
    Installs a single stdout handler on the root logger. Safe to call again
    (uvicorn reload, Celery worker start, CLI).
    """
    level = (level or settings.log_level or "INFO").upper()
    fmt = (fmt or settings.log_format or "json").lower()

    root = logging.getLogger()
    root.setLevel(level)
    for h in list(root.handlers):
        root.removeHandler(h)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(TextFormatter() if fmt == "text" else JsonFormatter())
    root.addHandler(handler)

    logging.getLogger("uvicorn.access").setLevel(level)
    logging.getLogger("sqlalchemy.engine").setLevel((settings.sql_log_level or "WARNING").upper())
    for name, lvl in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(lvl)
