# backend/app/routers/audit.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from ..auth import Principal, require_client
from ..db import get_db
from ..models import AuditEvent, ServerLog
from ..schemas import AuditEventOut, ServerLogOut

router = APIRouter(prefix="/audit", tags=["audit"])


@router.get("", response_model=list[AuditEventOut])
def list_audit(
    entity_type: str | None = Query(default=None),
    entity_id: str | None = Query(default=None),
    limit: int = Query(default=200, ge=1, le=500),
    db: Session = Depends(get_db),
    p: Principal = Depends(require_client),
):
    q = select(AuditEvent).where(AuditEvent.client_id == p.client_id).order_by(desc(AuditEvent.id))
    if entity_type:
        q = q.where(AuditEvent.entity_type == entity_type)
    if entity_id:
        q = q.where(AuditEvent.entity_id == entity_id)
    return list(db.scalars(q.limit(limit)).all())


@router.get("/server-logs", response_model=list[ServerLogOut])
def list_server_logs(
    status: str | None = Query(default=None),
    type: str | None = Query(default=None),
    action: str | None = Query(default=None),
    limit: int = Query(default=200, ge=1, le=1000),
    db: Session = Depends(get_db),
    p: Principal = Depends(require_client),
):
    """Admins see every row; property managers only their own actions."""
    q = select(ServerLog).order_by(desc(ServerLog.id))
    if p.role != "admin":
        q = q.where(ServerLog.user_id == p.user_id)
    if status:
        q = q.where(ServerLog.status == status)
    if type:
        q = q.where(ServerLog.type == type)
    if action:
        q = q.where(ServerLog.action == action)
    return list(db.scalars(q.limit(limit)).all())
