# backend/app/routers/announcements.py
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
from ..domain.catalogs import document_mime_type
from ..domain.errors import ActionError
from ..domain.server_log import track_action
from ..models import Announcement, AnnouncementBuilding, AnnouncementDocument, AnnouncementImage
from ..schemas import (
    AnnouncementDocumentIn,
    AnnouncementDocumentOut,
    AnnouncementImageOut,
    AnnouncementOut,
    AnnouncementUpsert,
    AttachmentIn,
)
from ..services.announcement_service import (
    building_ids_of,
    publish_announcement,
    set_buildings,
    unpublish_announcement,
    validate_category,
)
from ..services.ownership import must_get_announcement, must_scope_path
from ..services.property_service import delete_announcement, remove_stored_files

router = APIRouter(prefix="/announcements", tags=["announcements"])


def _out(db: Session, row: Announcement) -> AnnouncementOut:
    out = AnnouncementOut.model_validate(row)
    out.building_ids = building_ids_of(db, row.id)
    return out


@router.get("", response_model=list[AnnouncementOut])
def list_announcements(
    status: str | None = Query(default=None),
    limit: int = Query(default=200, ge=1, le=2000),
    db: Session = Depends(get_db),
    p: Principal = Depends(require_client),
):
    q = (
        select(Announcement)
        .where(Announcement.client_id == p.client_id)
        .order_by(desc(Announcement.pinned), desc(Announcement.created_at))
        .limit(limit)
    )
    if status:
        q = q.where(Announcement.status == status)
    return [_out(db, r) for r in db.scalars(q).all()]


@router.get("/tenant", response_model=list[AnnouncementOut])
def tenant_announcements(
    limit: int = Query(default=50, ge=1, le=500),
    db: Session = Depends(get_db),
    p: Principal = Depends(require_tenant),
):
    q = (
        select(Announcement)
        .join(AnnouncementBuilding, AnnouncementBuilding.announcement_id == Announcement.id)
        .where(
            Announcement.client_id == p.client_id,
            Announcement.status == "published",
            AnnouncementBuilding.building_id == p.building_id,
        )
        .order_by(desc(Announcement.pinned), desc(Announcement.published_at))
        .limit(limit)
    )
    return [_out(db, r) for r in db.scalars(q).all()]


@router.get("/{announcement_id}", response_model=AnnouncementOut)
def get_announcement(announcement_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_client)):
    return _out(db, must_get_announcement(db, client_id=p.client_id, announcement_id=announcement_id))


@router.post("", response_model=AnnouncementOut)
def create_announcement(
    payload: AnnouncementUpsert, db: Session = Depends(get_db), p: Principal = Depends(require_client)
):
    with track_action(db, "createAnnouncement", user_id=p.user_id, client_id=p.client_id):
        validate_category(payload.category, payload.subcategory, publishing=False)
        now = datetime.utcnow()
        row = Announcement(
            **payload.model_dump(exclude={"building_ids"}),
            client_id=p.client_id,
            status="draft",
            created_at=now,
            updated_at=now,
        )
        db.add(row)
        db.flush()
        set_buildings(db, announcement=row, building_ids=payload.building_ids)
        audit_write(
            db,
            client_id=p.client_id,
            actor_user_id=p.user_id,
            action="announcement.create",
            entity_type="Announcement",
            entity_id=row.id,
            after=row.model_dump(),
        )
    return _out(db, row)


@router.put("/{announcement_id}", response_model=AnnouncementOut)
def update_announcement(
    announcement_id: int,
    payload: AnnouncementUpsert,
    db: Session = Depends(get_db),
    p: Principal = Depends(require_client),
):
    row = must_get_announcement(db, client_id=p.client_id, announcement_id=announcement_id)
    with track_action(
        db, "updateAnnouncement", user_id=p.user_id, client_id=p.client_id, payload={"announcement_id": row.id}
    ):
        validate_category(payload.category, payload.subcategory, publishing=row.status == "published")
        before = row.model_dump()
        for k, v in payload.model_dump(exclude={"building_ids"}).items():
            setattr(row, k, v)
        row.updated_at = datetime.utcnow()
        db.add(row)
        db.flush()
        set_buildings(db, announcement=row, building_ids=payload.building_ids)
        audit_write(
            db,
            client_id=p.client_id,
            actor_user_id=p.user_id,
            action="announcement.update",
            entity_type="Announcement",
            entity_id=row.id,
            before=before,
            after=row.model_dump(),
        )
    return _out(db, row)


@router.post("/{announcement_id}/publish")
def publish(announcement_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_client)):
    row = must_get_announcement(db, client_id=p.client_id, announcement_id=announcement_id)
    with track_action(
        db, "publishAnnouncement", user_id=p.user_id, client_id=p.client_id, payload={"announcement_id": row.id}
    ) as extra:
        before = row.model_dump()
        emitted = publish_announcement(db, row)
        extra["notified"] = emitted.inserted
        audit_write(
            db,
            client_id=p.client_id,
            actor_user_id=p.user_id,
            action="announcement.publish",
            entity_type="Announcement",
            entity_id=row.id,
            before=before,
            after=row.model_dump(),
        )
    return {"success": True, "announcement": _out(db, row), "notified": emitted.inserted}


@router.post("/{announcement_id}/unpublish", response_model=AnnouncementOut)
def unpublish(announcement_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_client)):
    row = must_get_announcement(db, client_id=p.client_id, announcement_id=announcement_id)
    with track_action(
        db, "unpublishAnnouncement", user_id=p.user_id, client_id=p.client_id, payload={"announcement_id": row.id}
    ):
        unpublish_announcement(db, row)
    return _out(db, row)


@router.post("/{announcement_id}/pin", response_model=AnnouncementOut)
def toggle_pin(announcement_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_client)):
    row = must_get_announcement(db, client_id=p.client_id, announcement_id=announcement_id)
    with track_action(db, "togglePinAnnouncement", user_id=p.user_id, client_id=p.client_id):
        row.pinned = not row.pinned
        row.updated_at = datetime.utcnow()
        db.add(row)
    return _out(db, row)


@router.delete("/{announcement_id}")
def remove_announcement(
    announcement_id: int,
    db: Session = Depends(get_db),
    storage: StorageClient = Depends(get_storage),
    p: Principal = Depends(require_client),
):
    row = must_get_announcement(db, client_id=p.client_id, announcement_id=announcement_id)
    with track_action(
        db, "deleteAnnouncement", user_id=p.user_id, client_id=p.client_id, payload={"announcement_id": row.id}
    ):
        audit_write(
            db,
            client_id=p.client_id,
            actor_user_id=p.user_id,
            action="announcement.delete",
            entity_type="Announcement",
            entity_id=row.id,
            before=row.model_dump(),
        )
        delete_announcement(db, storage, row, client_id=p.client_id)
    return {"success": True}


# -------------------------
# Attachments
# -------------------------
def _readable(db: Session, p: Principal, announcement_id: int) -> Announcement:
    row = must_get_announcement(db, client_id=p.client_id, announcement_id=announcement_id)
    if p.role == "tenant" and (row.status != "published" or p.building_id not in building_ids_of(db, row.id)):
        raise HTTPException(status_code=404, detail="announcement not found")
    return row


@router.get("/{announcement_id}/images", response_model=list[AnnouncementImageOut])
def list_images(announcement_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    row = _readable(db, p, announcement_id)
    q = select(AnnouncementImage).where(AnnouncementImage.announcement_id == row.id).order_by(AnnouncementImage.id)
    return list(db.scalars(q).all())


@router.post("/{announcement_id}/images", response_model=AnnouncementImageOut)
def add_image(
    announcement_id: int, payload: AttachmentIn, db: Session = Depends(get_db), p: Principal = Depends(require_client)
):
    row = must_get_announcement(db, client_id=p.client_id, announcement_id=announcement_id)
    path = must_scope_path(client_id=p.client_id, path=payload.storage_path)
    with track_action(
        db, "addAnnouncementImage", user_id=p.user_id, client_id=p.client_id, payload={"announcement_id": row.id}
    ):
        img = AnnouncementImage(
            announcement_id=row.id,
            storage_bucket=payload.storage_bucket or settings.storage_default_bucket,
            storage_path=path,
        )
        db.add(img)
        db.flush()
    return img


@router.delete("/{announcement_id}/images/{image_id}")
def remove_image(
    announcement_id: int,
    image_id: int,
    db: Session = Depends(get_db),
    storage: StorageClient = Depends(get_storage),
    p: Principal = Depends(require_client),
):
    row = must_get_announcement(db, client_id=p.client_id, announcement_id=announcement_id)
    img = db.scalar(
        select(AnnouncementImage).where(AnnouncementImage.id == image_id, AnnouncementImage.announcement_id == row.id)
    )
    if img is None:
        raise HTTPException(status_code=404, detail="image not found")
    with track_action(
        db, "removeAnnouncementImage", user_id=p.user_id, client_id=p.client_id, payload={"image_id": image_id}
    ):
        remove_stored_files(db, storage, [(img.storage_bucket, img.storage_path)], client_id=p.client_id)
        db.delete(img)
    return {"success": True}


@router.get("/{announcement_id}/documents", response_model=list[AnnouncementDocumentOut])
def list_documents(announcement_id: int, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    row = _readable(db, p, announcement_id)
    q = (
        select(AnnouncementDocument)
        .where(AnnouncementDocument.announcement_id == row.id)
        .order_by(AnnouncementDocument.id)
    )
    return list(db.scalars(q).all())


@router.post("/{announcement_id}/documents", response_model=AnnouncementDocumentOut)
def add_document(
    announcement_id: int,
    payload: AnnouncementDocumentIn,
    db: Session = Depends(get_db),
    p: Principal = Depends(require_client),
):
    row = must_get_announcement(db, client_id=p.client_id, announcement_id=announcement_id)
    path = must_scope_path(client_id=p.client_id, path=payload.storage_path)
    with track_action(
        db,
        "addAnnouncementDocument",
        user_id=p.user_id,
        client_id=p.client_id,
        payload={"announcement_id": row.id, "file_name": payload.file_name},
    ):
        try:
            mime = document_mime_type(payload.file_name)
        except ValueError as e:
            raise ActionError(str(e))
        doc = AnnouncementDocument(
            announcement_id=row.id,
            storage_bucket=payload.storage_bucket or settings.storage_default_bucket,
            storage_path=path,
            file_name=payload.file_name.strip(),
            mime_type=mime,
        )
        db.add(doc)
        db.flush()
    return doc


@router.delete("/{announcement_id}/documents/{document_id}")
def remove_document(
    announcement_id: int,
    document_id: int,
    db: Session = Depends(get_db),
    storage: StorageClient = Depends(get_storage),
    p: Principal = Depends(require_client),
):
    row = must_get_announcement(db, client_id=p.client_id, announcement_id=announcement_id)
    doc = db.scalar(
        select(AnnouncementDocument).where(
            AnnouncementDocument.id == document_id, AnnouncementDocument.announcement_id == row.id
        )
    )
    if doc is None:
        raise HTTPException(status_code=404, detail="document not found")
    with track_action(
        db, "removeAnnouncementDocument", user_id=p.user_id, client_id=p.client_id, payload={"document_id": document_id}
    ):
        remove_stored_files(db, storage, [(doc.storage_bucket, doc.storage_path)], client_id=p.client_id)
        db.delete(doc)
    return {"success": True}
