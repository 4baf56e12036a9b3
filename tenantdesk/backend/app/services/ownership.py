# backend/app/services/ownership.py
from __future__ import annotations

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..clients.storage import normalize_path
from ..models import (
    Announcement,
    Apartment,
    Building,
    CalendarEvent,
    Client,
    IncidentReport,
    Poll,
    Tenant,
    TenantPost,
)


def must_get_client(db: Session, *, client_id: int) -> Client:
    row = db.get(Client, int(client_id))
    if not row:
        raise HTTPException(status_code=404, detail="client not found")
    return row


def must_get_building(db: Session, *, client_id: int, building_id: int) -> Building:
    row = db.scalar(select(Building).where(Building.id == building_id, Building.client_id == client_id))
    if not row:
        raise HTTPException(status_code=404, detail="building not found")
    return row


def must_get_apartment(db: Session, *, client_id: int, apartment_id: int) -> Apartment:
    row = db.scalar(
        select(Apartment)
        .join(Building, Building.id == Apartment.building_id)
        .where(Apartment.id == apartment_id, Building.client_id == client_id)
    )
    if not row:
        raise HTTPException(status_code=404, detail="apartment not found")
    return row


def must_get_tenant(db: Session, *, client_id: int, tenant_id: int) -> Tenant:
    row = db.scalar(
        select(Tenant)
        .join(Apartment, Apartment.id == Tenant.apartment_id)
        .join(Building, Building.id == Apartment.building_id)
        .where(Tenant.id == tenant_id, Building.client_id == client_id)
    )
    if not row:
        raise HTTPException(status_code=404, detail="tenant not found")
    return row


def must_get_announcement(db: Session, *, client_id: int, announcement_id: int) -> Announcement:
    row = db.scalar(
        select(Announcement).where(Announcement.id == announcement_id, Announcement.client_id == client_id)
    )
    if not row:
        raise HTTPException(status_code=404, detail="announcement not found")
    return row


def must_get_incident(db: Session, *, client_id: int, incident_id: int) -> IncidentReport:
    row = db.scalar(
        select(IncidentReport).where(IncidentReport.id == incident_id, IncidentReport.client_id == client_id)
    )
    if not row:
        raise HTTPException(status_code=404, detail="incident not found")
    return row


def must_get_poll(db: Session, *, client_id: int, poll_id: int) -> Poll:
    row = db.scalar(select(Poll).where(Poll.id == poll_id, Poll.client_id == client_id))
    if not row:
        raise HTTPException(status_code=404, detail="poll not found")
    return row


def must_get_event(db: Session, *, client_id: int, event_id: int) -> CalendarEvent:
    row = db.scalar(select(CalendarEvent).where(CalendarEvent.id == event_id, CalendarEvent.client_id == client_id))
    if not row:
        raise HTTPException(status_code=404, detail="calendar event not found")
    return row


def must_get_post(db: Session, *, building_id: int, post_id: int) -> TenantPost:
    row = db.scalar(select(TenantPost).where(TenantPost.id == post_id, TenantPost.building_id == building_id))
    if not row:
        raise HTTPException(status_code=404, detail="post not found")
    return row


def clean_storage_folder(path: str) -> str:
    """Relative folder with no `.`, `..` or empty segments ("" stays "")."""
    clean = normalize_path(path).replace("\\", "/").rstrip("/")
    if clean and any(seg in ("", ".", "..") for seg in clean.split("/")):
        raise HTTPException(status_code=403, detail="Path is outside your storage folder")
    return clean


def client_storage_folder(client_id: int) -> str:
    return f"clients/{int(client_id)}"


def must_scope_path(*, client_id: int, path: str) -> str:
    """Object paths live under the client's storage folder."""
    clean = clean_storage_folder(path)
    if not clean.startswith(client_storage_folder(client_id) + "/"):
        raise HTTPException(status_code=403, detail="Path is outside your storage folder")
    return clean
