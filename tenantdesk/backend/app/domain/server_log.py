# backend/app/domain/server_log.py
from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterator, Optional

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..models import ServerLog
from .errors import ActionError, ConflictError

log = logging.getLogger("tenantdesk.actions")

LOG_TYPES = {"api", "db", "auth", "cron", "webhook", "action", "email", "external", "internal", "system", "unknown"}


def log_server_action(
    db: Session,
    *,
    action: str,
    status: str,
    user_id: Optional[int] = None,
    client_id: Optional[int] = None,
    payload: Optional[dict[str, Any]] = None,
    error: str = "",
    duration_ms: int = 0,
    type: str = "db",
    commit: bool = True,
) -> ServerLog:
    """Append one row to the server log table (the audit trail of action outcomes)."""
    row = ServerLog(
        user_id=user_id,
        client_id=client_id,
        action=str(action),
        payload=payload or {},
        status="success" if status == "success" else "fail",
        error=str(error or ""),
        duration_ms=int(duration_ms),
        type=type if type in LOG_TYPES else "unknown",
        created_at=datetime.utcnow(),
    )
    db.add(row)
    if commit:
        db.commit()

    level = logging.INFO if row.status == "success" else logging.WARNING
    log.log(level, "%s %s", action, row.status, extra={"action": action, "user_id": user_id, "client_id": client_id})
    return row


def _error_message(exc: BaseException) -> str:
    if isinstance(exc, ActionError):
        return exc.message
    if isinstance(exc, HTTPException):
        return str(exc.detail)
    return str(exc) or exc.__class__.__name__


@contextmanager
def track_action(
    db: Session,
    action: str,
    *,
    user_id: Optional[int] = None,
    client_id: Optional[int] = None,
    payload: Optional[dict[str, Any]] = None,
    type: str = "db",
) -> Iterator[dict[str, Any]]:
    """
    Wraps one server action.

    The body's pending writes are rolled back on failure, then a fail row is
    written and the exception propagates. On success a success row is written
    and the session is committed together with the body's writes. A commit
    that fails counts as a failed action; integrity errors become ConflictError.

    Yields a dict the body may fill with extra payload for the log row.
    """
    extra: dict[str, Any] = {}
    t0 = time.monotonic()

    def _record(status: str, error: str = "") -> None:
        log_server_action(
            db,
            action=action,
            status=status,
            user_id=user_id,
            client_id=client_id,
            payload={**(payload or {}), **extra},
            error=error,
            duration_ms=int((time.monotonic() - t0) * 1000),
            type=type,
        )

    try:
        yield extra
        _record("success")
    except Exception as exc:
        db.rollback()
        _record("fail", _error_message(exc))
        if isinstance(exc, IntegrityError):
            raise ConflictError("The change conflicts with existing data") from exc
        raise
