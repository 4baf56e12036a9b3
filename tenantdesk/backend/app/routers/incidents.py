# backend/app/routers/incidents.py
from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal, require_client, require_tenant
from ..clients.storage import StorageClient, get_storage
from ..config import settings
from ..db import get_db
from ..domain.audit import audit_write
from ..domain.errors import ActionError
from ..domain.server_log import track_action
from ..models import IncidentComment, IncidentImage, IncidentReport
from ..schemas import (
    AttachmentIn,
    CommentIn,
    CommentOut,
    IncidentCreate,
    IncidentImageOut,
    IncidentOut,
    IncidentUpdate,
)
from ..services.incident_service import apply_status, notify_incident_created, staff_users
from ..services.ownership import must_get_incident, must_scope_path
from ..services.property_service import remove_stored_files

router = APIRouter(prefix="/incidents", tags=["incidents"])


@router.get("", response_model=list[IncidentOut])
def list_incidents(
    building_id: int | None = Query(default=None),
    status: str | None = Query(default=None),
    limit: int = Query(default=200, ge=1, le=2000),
    db: Session = Depends(get_db),
    p: Principal = Depends(require_client),
):
    q = (
        select(IncidentReport)
        .where(IncidentReport.client_id == p.client_id)
        .order_by(desc(IncidentReport.created_at))
        .limit(limit)
    )
    if building_id is not None:
        q = q.where(IncidentReport.building_id == building_id)
    if status:
        q = q.where(IncidentReport.status == status)
    return list(db.scalars(q).all())


@router.get("/mine", response_model=list[IncidentOut])
def my_incidents(db: Session = Depends(get_db), p: Principal = Depends(require_tenant)):
    q = (
        select(IncidentReport)
        .where(IncidentReport.client_id == p.client_id, IncidentReport.created_by_tenant_id == p.tenant_id)
        .order_by(desc(IncidentReport.created_at))
    )
    return list(db.scalars(q).all())


@router.post("", response_model=IncidentOut)
def create_incident(payload: IncidentCreate, db: Session = Depends(get_db), p: Principal = Depends(require_tenant)):
    with track_action(db, "createIncident", user_id=p.user_id, client_id=p.client_id) as extra:
        now = datetime.utcnow()
        row = IncidentReport(
            **payload.model_dump(),
            client_id=p.client_id,
            building_id=p.building_id,
            apartment_id=p.apartment_id,
            created_by_user_id=p.user_id,
            created_by_tenant_id=p.tenant_id,
            status="open",
            created_at=now,
            updated_at=now,
        )
        db.add(row)
        db.flush()
        sent = notify_incident_created(db, row)
        extra["notified"] = sent.inserted
    return row


def _visible(db: Session, p: Principal, incident_id: int) -> IncidentReport:
    row = must_get_incident(db, client_id=p.client_id, incident_id=incident_id)
    if p.role == "tenant" and row.created_by_tenant_id != p.tenant_id:
        raise HTTPException(status_code=404, detail="incident not found")
    return row


@router.get("/{incident_id}", response_model=IncidentOut)
def get_incident(incident_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    return _visible(db, p, incident_id)


@router.patch("/{incident_id}", response_model=IncidentOut)
def update_incident(
    incident_id: int, payload: IncidentUpdate, db: Session = Depends(get_db), p: Principal = Depends(require_client)
):
    row = must_get_incident(db, client_id=p.client_id, incident_id=incident_id)
    with track_action(db, "updateIncident", user_id=p.user_id, client_id=p.client_id, payload={"incident_id": row.id}):
        before = row.model_dump()
        data = payload.model_dump(exclude_unset=True)
        if "status" in data and data["status"]:
            apply_status(row, data["status"])
        if "priority" in data and data["priority"]:
            row.priority = data["priority"]
        if "assigned_to_user_id" in data:
            assignee = data["assigned_to_user_id"]
            if assignee is not None and int(assignee) not in {u.id for u in staff_users(db, p.client_id)}:
                raise ActionError("Assignee must be a staff member of this client")
            row.assigned_to_user_id = assignee
        row.updated_at = datetime.utcnow()
        db.add(row)
        db.flush()
        audit_write(
            db,
            client_id=p.client_id,
            actor_user_id=p.user_id,
            action="incident.update",
            entity_type="IncidentReport",
            entity_id=row.id,
            before=before,
            after=row.model_dump(),
        )
    return row


@router.get("/{incident_id}/comments", response_model=list[CommentOut])
def list_comments(incident_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    row = _visible(db, p, incident_id)
    q = select(IncidentComment).where(IncidentComment.incident_id == row.id).order_by(IncidentComment.created_at.asc())
    return list(db.scalars(q).all())


@router.post("/{incident_id}/comments", response_model=CommentOut)
def add_comment(
    incident_id: int, payload: CommentIn, db: Session = Depends(get_db), p: Principal = Depends(get_principal)
):
    row = _visible(db, p, incident_id)
    with track_action(db, "commentIncident", user_id=p.user_id, client_id=p.client_id, payload={"incident_id": row.id}):
        c = IncidentComment(incident_id=row.id, author_user_id=p.user_id, message=payload.message.strip())
        db.add(c)
        db.flush()
    return c


@router.get("/{incident_id}/images", response_model=list[IncidentImageOut])
def list_images(incident_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    row = _visible(db, p, incident_id)
    q = select(IncidentImage).where(IncidentImage.incident_id == row.id).order_by(IncidentImage.id.asc())
    return list(db.scalars(q).all())


@router.post("/{incident_id}/images", response_model=IncidentImageOut)
def add_image(
    incident_id: int, payload: AttachmentIn, db: Session = Depends(get_db), p: Principal = Depends(get_principal)
):
    row = _visible(db, p, incident_id)
    path = must_scope_path(client_id=p.client_id, path=payload.storage_path)
    with track_action(db, "addIncidentImage", user_id=p.user_id, client_id=p.client_id, payload={"incident_id": row.id}):
        img = IncidentImage(
            incident_id=row.id,
            storage_bucket=payload.storage_bucket or settings.storage_default_bucket,
            storage_path=path,
            uploaded_by_user_id=p.user_id,
        )
        db.add(img)
        db.flush()
    return img


@router.delete("/{incident_id}/images/{image_id}")
def remove_image(
    incident_id: int,
    image_id: int,
    db: Session = Depends(get_db),
    storage: StorageClient = Depends(get_storage),
    p: Principal = Depends(get_principal),
):
    row = _visible(db, p, incident_id)
    img = db.scalar(select(IncidentImage).where(IncidentImage.id == image_id, IncidentImage.incident_id == row.id))
    if img is None:
        raise HTTPException(status_code=404, detail="image not found")
    if p.role == "tenant" and img.uploaded_by_user_id != p.user_id:
        raise HTTPException(status_code=403, detail="You can only remove your own images")
    with track_action(db, "removeIncidentImage", user_id=p.user_id, client_id=p.client_id, payload={"image_id": image_id}):
        remove_stored_files(db, storage, [(img.storage_bucket, img.storage_path)], client_id=p.client_id)
        db.delete(img)
    return {"success": True}
