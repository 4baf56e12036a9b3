# backend/app/routers/notifications.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import delete, desc, func, select, update
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..domain.server_log import track_action
from ..models import Notification
from ..schemas import NotificationOut

router = APIRouter(prefix="/notifications", tags=["notifications"])


def _must_get_mine(db: Session, p: Principal, notification_id: int) -> Notification:
    row = db.scalar(
        select(Notification).where(Notification.id == notification_id, Notification.user_id == p.user_id)
    )
    if row is None:
        raise HTTPException(status_code=404, detail="notification not found")
    return row


@router.get("", response_model=list[NotificationOut])
def list_notifications(
    type: str | None = Query(default=None),
    unread_only: bool = Query(default=False),
    limit: int = Query(default=100, ge=1, le=1000),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    q = (
        select(Notification)
        .where(Notification.user_id == p.user_id)
        .order_by(desc(Notification.created_at), desc(Notification.id))
        .limit(limit)
    )
    if type:
        q = q.where(Notification.type == type)
    if unread_only:
        q = q.where(Notification.is_read.is_(False))
    return list(db.scalars(q).all())


@router.get("/unread-count")
def unread_count(db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    n = db.scalar(
        select(func.count(Notification.id)).where(Notification.user_id == p.user_id, Notification.is_read.is_(False))
    )
    return {"unread": int(n or 0)}


@router.post("/{notification_id}/read", response_model=NotificationOut)
def mark_read(notification_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    row = _must_get_mine(db, p, notification_id)
    with track_action(db, "markNotificationRead", user_id=p.user_id, client_id=p.client_id):
        row.is_read = True
        db.add(row)
    return row


@router.post("/read-all")
def mark_all_read(db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    with track_action(db, "markAllNotificationsRead", user_id=p.user_id, client_id=p.client_id) as extra:
        res = db.execute(
            update(Notification)
            .where(Notification.user_id == p.user_id, Notification.is_read.is_(False))
            .values(is_read=True)
        )
        extra["updated"] = int(res.rowcount or 0)
    return {"success": True, "updated": extra["updated"]}


@router.delete("/{notification_id}")
def remove_notification(notification_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    row = _must_get_mine(db, p, notification_id)
    with track_action(db, "deleteNotification", user_id=p.user_id, client_id=p.client_id):
        db.execute(delete(Notification).where(Notification.id == row.id))
    return {"success": True}
