# backend/app/routers/dashboard.py
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy import desc, func, select
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..models import (
    Announcement,
    AnnouncementBuilding,
    Apartment,
    Building,
    Client,
    ClientSubscription,
    IncidentReport,
    Notification,
    Poll,
    Tenant,
)

router = APIRouter(prefix="/dashboard", tags=["dashboard"])

OPEN_INCIDENT_STATUSES = ("open", "in_progress", "on_hold")


def _count(db: Session, q) -> int:
    return int(db.scalar(q) or 0)


def admin_summary(db: Session) -> dict[str, Any]:
    by_client_status = dict(db.execute(select(Client.status, func.count(Client.id)).group_by(Client.status)).all())
    by_sub_status = dict(
        db.execute(
            select(ClientSubscription.status, func.count(ClientSubscription.id)).group_by(ClientSubscription.status)
        ).all()
    )
    return {
        "clients": _count(db, select(func.count(Client.id))),
        "clients_by_status": by_client_status,
        "subscriptions_by_status": by_sub_status,
        "buildings": _count(db, select(func.count(Building.id))),
    }


def client_summary(db: Session, client_id: int) -> dict[str, Any]:
    apartments = select(func.count(Apartment.id)).join(Building, Building.id == Apartment.building_id)
    tenants = (
        select(func.count(Tenant.id))
        .join(Apartment, Apartment.id == Tenant.apartment_id)
        .join(Building, Building.id == Apartment.building_id)
    )
    return {
        "buildings": _count(db, select(func.count(Building.id)).where(Building.client_id == client_id)),
        "apartments": _count(db, apartments.where(Building.client_id == client_id)),
        "tenants": _count(db, tenants.where(Building.client_id == client_id)),
        "open_incidents": _count(
            db,
            select(func.count(IncidentReport.id)).where(
                IncidentReport.client_id == client_id, IncidentReport.status.in_(OPEN_INCIDENT_STATUSES)
            ),
        ),
        "active_polls": _count(
            db, select(func.count(Poll.id)).where(Poll.client_id == client_id, Poll.status == "active")
        ),
    }


def tenant_summary(db: Session, p: Principal) -> dict[str, Any]:
    apartment = db.get(Apartment, p.apartment_id) if p.apartment_id else None
    latest = []
    if p.building_id is not None:
        latest = list(
            db.scalars(
                select(Announcement)
                .join(AnnouncementBuilding, AnnouncementBuilding.announcement_id == Announcement.id)
                .where(Announcement.status == "published", AnnouncementBuilding.building_id == p.building_id)
                .order_by(desc(Announcement.pinned), desc(Announcement.published_at))
                .limit(5)
            ).all()
        )
    return {
        "apartment": apartment.model_dump() if apartment else None,
        "unread_notifications": _count(
            db,
            select(func.count(Notification.id)).where(
                Notification.user_id == p.user_id, Notification.is_read.is_(False)
            ),
        ),
        "latest_announcements": [
            {"id": a.id, "title": a.title, "pinned": a.pinned, "published_at": a.published_at} for a in latest
        ],
    }


@router.get("")
def dashboard(db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    if p.role == "admin":
        return {"role": "admin", **admin_summary(db)}
    if p.role == "client":
        return {"role": "client", **client_summary(db, p.client_id)}
    return {"role": "tenant", **tenant_summary(db, p)}
