# backend/app/routers/calendar.py
from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from ..auth import Principal, require_client, require_tenant
from ..db import get_db
from ..domain.audit import audit_write
from ..domain.server_log import track_action
from ..models import CalendarEvent
from ..schemas import CalendarEventOut, CalendarEventUpsert
from ..services.ownership import must_get_building, must_get_event

router = APIRouter(prefix="/calendar", tags=["calendar"])


def _in_range(q, start: datetime | None, end: datetime | None):
    if start is not None:
        q = q.where(CalendarEvent.end_date_time >= start)
    if end is not None:
        q = q.where(CalendarEvent.start_date_time <= end)
    return q


@router.get("/events", response_model=list[CalendarEventOut])
def list_events(
    building_id: int | None = Query(default=None),
    start: datetime | None = Query(default=None),
    end: datetime | None = Query(default=None),
    db: Session = Depends(get_db),
    p: Principal = Depends(require_client),
):
    q = select(CalendarEvent).where(CalendarEvent.client_id == p.client_id).order_by(CalendarEvent.start_date_time.asc())
    if building_id is not None:
        q = q.where(CalendarEvent.building_id == building_id)
    return list(db.scalars(_in_range(q, start, end)).all())


@router.get("/tenant/events", response_model=list[CalendarEventOut])
def tenant_events(
    start: datetime | None = Query(default=None),
    end: datetime | None = Query(default=None),
    db: Session = Depends(get_db),
    p: Principal = Depends(require_tenant),
):
    # client-wide events (no building) are shown to every tenant
    q = (
        select(CalendarEvent)
        .where(CalendarEvent.client_id == p.client_id)
        .where(or_(CalendarEvent.building_id == p.building_id, CalendarEvent.building_id.is_(None)))
        .order_by(CalendarEvent.start_date_time.asc())
    )
    return list(db.scalars(_in_range(q, start, end)).all())


@router.post("/events", response_model=CalendarEventOut)
def create_event(payload: CalendarEventUpsert, db: Session = Depends(get_db), p: Principal = Depends(require_client)):
    if payload.building_id is not None:
        must_get_building(db, client_id=p.client_id, building_id=payload.building_id)
    with track_action(db, "createCalendarEvent", user_id=p.user_id, client_id=p.client_id):
        row = CalendarEvent(**payload.model_dump(), client_id=p.client_id)
        db.add(row)
        db.flush()
        audit_write(
            db,
            client_id=p.client_id,
            actor_user_id=p.user_id,
            action="calendar_event.create",
            entity_type="CalendarEvent",
            entity_id=row.id,
            after=row.model_dump(),
        )
    return row


@router.put("/events/{event_id}", response_model=CalendarEventOut)
def update_event(
    event_id: int, payload: CalendarEventUpsert, db: Session = Depends(get_db), p: Principal = Depends(require_client)
):
    row = must_get_event(db, client_id=p.client_id, event_id=event_id)
    if payload.building_id is not None:
        must_get_building(db, client_id=p.client_id, building_id=payload.building_id)
    with track_action(db, "updateCalendarEvent", user_id=p.user_id, client_id=p.client_id, payload={"event_id": row.id}):
        before = row.model_dump()
        for k, v in payload.model_dump().items():
            setattr(row, k, v)
        db.add(row)
        db.flush()
        audit_write(
            db,
            client_id=p.client_id,
            actor_user_id=p.user_id,
            action="calendar_event.update",
            entity_type="CalendarEvent",
            entity_id=row.id,
            before=before,
            after=row.model_dump(),
        )
    return row


@router.delete("/events/{event_id}")
def remove_event(event_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_client)):
    row = must_get_event(db, client_id=p.client_id, event_id=event_id)
    with track_action(db, "deleteCalendarEvent", user_id=p.user_id, client_id=p.client_id, payload={"event_id": row.id}):
        audit_write(
            db,
            client_id=p.client_id,
            actor_user_id=p.user_id,
            action="calendar_event.delete",
            entity_type="CalendarEvent",
            entity_id=row.id,
            before=row.model_dump(),
        )
        db.delete(row)
    return {"success": True}
