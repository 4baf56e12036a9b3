# backend/app/routers/buildings.py
from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from ..auth import Principal, require_client
from ..clients.storage import StorageClient, get_storage
from ..config import settings
from ..db import get_db
from ..domain.audit import audit_write
from ..domain.server_log import track_action
from ..models import Building, BuildingImage
from ..schemas import BuildingCreate, BuildingOut, ImageIn, ImageOut
from ..services.ownership import must_get_building, must_scope_path
from ..services.property_service import delete_building, remove_stored_files

router = APIRouter(prefix="/buildings", tags=["buildings"])


@router.get("", response_model=list[BuildingOut])
def list_buildings(
    active_only: bool = Query(default=False),
    limit: int = Query(default=200, ge=1, le=2000),
    db: Session = Depends(get_db),
    p: Principal = Depends(require_client),
):
    q = select(Building).where(Building.client_id == p.client_id).order_by(desc(Building.id)).limit(limit)
    if active_only:
        q = q.where(Building.is_active.is_(True))
    return list(db.scalars(q).all())


@router.get("/{building_id}", response_model=BuildingOut)
def get_building(building_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_client)):
    return must_get_building(db, client_id=p.client_id, building_id=building_id)


@router.post("", response_model=BuildingOut)
def create_building(payload: BuildingCreate, db: Session = Depends(get_db), p: Principal = Depends(require_client)):
    with track_action(db, "createBuilding", user_id=p.user_id, client_id=p.client_id):
        now = datetime.utcnow()
        row = Building(**payload.model_dump(), client_id=p.client_id, created_at=now, updated_at=now)
        db.add(row)
        db.flush()
        audit_write(
            db,
            client_id=p.client_id,
            actor_user_id=p.user_id,
            action="building.create",
            entity_type="Building",
            entity_id=row.id,
            after=row.model_dump(),
        )
    return row


@router.put("/{building_id}", response_model=BuildingOut)
def update_building(
    building_id: int, payload: BuildingCreate, db: Session = Depends(get_db), p: Principal = Depends(require_client)
):
    row = must_get_building(db, client_id=p.client_id, building_id=building_id)
    with track_action(db, "updateBuilding", user_id=p.user_id, client_id=p.client_id, payload={"building_id": row.id}):
        before = row.model_dump()
        for k, v in payload.model_dump().items():
            setattr(row, k, v)
        row.updated_at = datetime.utcnow()
        db.add(row)
        db.flush()
        audit_write(
            db,
            client_id=p.client_id,
            actor_user_id=p.user_id,
            action="building.update",
            entity_type="Building",
            entity_id=row.id,
            before=before,
            after=row.model_dump(),
        )
    return row


@router.delete("/{building_id}")
def remove_building(
    building_id: int,
    db: Session = Depends(get_db),
    storage: StorageClient = Depends(get_storage),
    p: Principal = Depends(require_client),
):
    row = must_get_building(db, client_id=p.client_id, building_id=building_id)
    with track_action(db, "deleteBuilding", user_id=p.user_id, client_id=p.client_id, payload={"building_id": row.id}):
        audit_write(
            db,
            client_id=p.client_id,
            actor_user_id=p.user_id,
            action="building.delete",
            entity_type="Building",
            entity_id=row.id,
            before=row.model_dump(),
        )
        delete_building(db, storage, row)
    return {"success": True}


# -------------------------
# Images
# -------------------------
@router.get("/{building_id}/images", response_model=list[ImageOut])
def list_images(building_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_client)):
    b = must_get_building(db, client_id=p.client_id, building_id=building_id)
    q = select(BuildingImage).where(BuildingImage.building_id == b.id).order_by(BuildingImage.id.asc())
    return list(db.scalars(q).all())


@router.post("/{building_id}/images", response_model=ImageOut)
def add_image(
    building_id: int, payload: ImageIn, db: Session = Depends(get_db), p: Principal = Depends(require_client)
):
    b = must_get_building(db, client_id=p.client_id, building_id=building_id)
    with track_action(db, "addBuildingImage", user_id=p.user_id, client_id=p.client_id, payload={"building_id": b.id}):
        if payload.is_cover_image:
            for img in db.scalars(select(BuildingImage).where(BuildingImage.building_id == b.id)).all():
                img.is_cover_image = False
        row = BuildingImage(
            building_id=b.id,
            storage_bucket=payload.storage_bucket or settings.storage_default_bucket,
            storage_path=must_scope_path(client_id=p.client_id, path=payload.storage_path),
            is_cover_image=payload.is_cover_image,
        )
        db.add(row)
        db.flush()
    return row


@router.delete("/{building_id}/images/{image_id}")
def remove_image(
    building_id: int,
    image_id: int,
    db: Session = Depends(get_db),
    storage: StorageClient = Depends(get_storage),
    p: Principal = Depends(require_client),
):
    b = must_get_building(db, client_id=p.client_id, building_id=building_id)
    img = db.scalar(select(BuildingImage).where(BuildingImage.id == image_id, BuildingImage.building_id == b.id))
    if img is None:
        raise HTTPException(status_code=404, detail="image not found")
    with track_action(db, "removeBuildingImage", user_id=p.user_id, client_id=p.client_id, payload={"image_id": image_id}):
        remove_stored_files(db, storage, [(img.storage_bucket, img.storage_path)], client_id=p.client_id)
        db.delete(img)
    return {"success": True}
