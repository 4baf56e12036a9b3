# backend/app/services/incident_service.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models import AppUser, Building, ClientMembership, IncidentReport
from .email import incident_created_email, send_email
from .notifications import EmitResult, emit_notifications


def apply_status(incident: IncidentReport, status: str, now: Optional[datetime] = None) -> None:
    """resolved and closed stamp their own timestamps (first time only)."""
    now = now or datetime.utcnow()
    incident.status = status
    if status == "resolved" and incident.resolved_at is None:
        incident.resolved_at = now
    if status == "closed":
        if incident.closed_at is None:
            incident.closed_at = now
        if incident.resolved_at is None:
            incident.resolved_at = now


def staff_users(db: Session, client_id: int) -> list[AppUser]:
    q = (
        select(AppUser)
        .join(ClientMembership, ClientMembership.user_id == AppUser.id)
        .where(ClientMembership.client_id == int(client_id), ClientMembership.role.in_(("client", "admin")))
        .where(AppUser.is_banned.is_(False))
        .order_by(AppUser.id.asc())
    )
    return list(db.scalars(q).all())


def notify_incident_created(db: Session, incident: IncidentReport) -> EmitResult:
    staff = staff_users(db, incident.client_id)
    rows = [
        {
            "user_id": u.id,
            "type": "alert",
            "title": f"New incident: {incident.title}",
            "description": (incident.description or "")[:280],
            "url": f"/dashboard/service-requests/{incident.id}",
            "action_token": f"incident_created_{incident.id}",
            "building_id": incident.building_id,
        }
        for u in staff
    ]
    result = emit_notifications(db, rows, send_digest=False)

    if incident.is_emergency:
        building = db.get(Building, incident.building_id)
        label = f"{building.street_address}, {building.city}" if building else f"building {incident.building_id}"
        subject, body = incident_created_email(
            title=incident.title, building_label=label, priority=incident.priority, incident_id=incident.id
        )
        for u in staff:
            ok, _ = send_email(u.email, subject, body)
            if ok:
                result.emails_sent += 1
            else:
                result.email_errors += 1
    return result
