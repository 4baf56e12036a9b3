# backend/app/routers/apartments.py
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
from ..domain.errors import ConflictError
from ..domain.server_log import track_action
from ..models import Apartment, ApartmentImage, Building
from ..schemas import ApartmentCreate, ApartmentOut, ImageIn, ImageOut
from ..services.ownership import must_get_apartment, must_get_building, must_scope_path
from ..services.property_service import apartment_exists, create_apartment, delete_apartment, remove_stored_files

router = APIRouter(prefix="/apartments", tags=["apartments"])


@router.get("", response_model=list[ApartmentOut])
def list_apartments(
    building_id: int | None = Query(default=None),
    limit: int = Query(default=500, ge=1, le=5000),
    db: Session = Depends(get_db),
    p: Principal = Depends(require_client),
):
    q = (
        select(Apartment)
        .join(Building, Building.id == Apartment.building_id)
        .where(Building.client_id == p.client_id)
        .order_by(desc(Apartment.id))
        .limit(limit)
    )
    if building_id is not None:
        q = q.where(Apartment.building_id == building_id)
    return list(db.scalars(q).all())


@router.get("/exists")
def exists(
    building_id: int,
    apartment_number: str,
    db: Session = Depends(get_db),
    p: Principal = Depends(require_client),
):
    b = must_get_building(db, client_id=p.client_id, building_id=building_id)
    apartment_id = apartment_exists(db, building_id=b.id, apartment_number=apartment_number)
    return {"exists": apartment_id is not None, "apartment_id": apartment_id}


@router.get("/{apartment_id}", response_model=ApartmentOut)
def get_apartment(apartment_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_client)):
    return must_get_apartment(db, client_id=p.client_id, apartment_id=apartment_id)


@router.post("", response_model=ApartmentOut)
def add_apartment(payload: ApartmentCreate, db: Session = Depends(get_db), p: Principal = Depends(require_client)):
    building = must_get_building(db, client_id=p.client_id, building_id=payload.building_id)
    with track_action(
        db, "createApartment", user_id=p.user_id, client_id=p.client_id, payload=payload.model_dump()
    ):
        row = create_apartment(db, building=building, values=payload.model_dump(exclude={"building_id"}))
        audit_write(
            db,
            client_id=p.client_id,
            actor_user_id=p.user_id,
            action="apartment.create",
            entity_type="Apartment",
            entity_id=row.id,
            after=row.model_dump(),
        )
    return row


@router.put("/{apartment_id}", response_model=ApartmentOut)
def update_apartment(
    apartment_id: int, payload: ApartmentCreate, db: Session = Depends(get_db), p: Principal = Depends(require_client)
):
    row = must_get_apartment(db, client_id=p.client_id, apartment_id=apartment_id)
    if payload.building_id != row.building_id:
        must_get_building(db, client_id=p.client_id, building_id=payload.building_id)

    with track_action(db, "updateApartment", user_id=p.user_id, client_id=p.client_id, payload={"apartment_id": row.id}):
        number = payload.apartment_number.strip()
        clash = apartment_exists(db, building_id=payload.building_id, apartment_number=number)
        if clash is not None and clash != row.id:
            raise ConflictError(f"Apartment {number} already exists in this building.")

        before = row.model_dump()
        for k, v in payload.model_dump().items():
            setattr(row, k, v)
        row.apartment_number = number
        row.updated_at = datetime.utcnow()
        db.add(row)
        db.flush()
        audit_write(
            db,
            client_id=p.client_id,
            actor_user_id=p.user_id,
            action="apartment.update",
            entity_type="Apartment",
            entity_id=row.id,
            before=before,
            after=row.model_dump(),
        )
    return row


@router.delete("/{apartment_id}")
def remove_apartment(
    apartment_id: int,
    db: Session = Depends(get_db),
    storage: StorageClient = Depends(get_storage),
    p: Principal = Depends(require_client),
):
    row = must_get_apartment(db, client_id=p.client_id, apartment_id=apartment_id)
    with track_action(db, "deleteApartment", user_id=p.user_id, client_id=p.client_id, payload={"apartment_id": row.id}):
        audit_write(
            db,
            client_id=p.client_id,
            actor_user_id=p.user_id,
            action="apartment.delete",
            entity_type="Apartment",
            entity_id=row.id,
            before=row.model_dump(),
        )
        delete_apartment(db, storage, row, client_id=p.client_id)
    return {"success": True}


# -------------------------
# Images
# -------------------------
@router.get("/{apartment_id}/images", response_model=list[ImageOut])
def list_images(apartment_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_client)):
    a = must_get_apartment(db, client_id=p.client_id, apartment_id=apartment_id)
    q = select(ApartmentImage).where(ApartmentImage.apartment_id == a.id).order_by(ApartmentImage.id.asc())
    return list(db.scalars(q).all())


@router.post("/{apartment_id}/images", response_model=ImageOut)
def add_image(
    apartment_id: int, payload: ImageIn, db: Session = Depends(get_db), p: Principal = Depends(require_client)
):
    a = must_get_apartment(db, client_id=p.client_id, apartment_id=apartment_id)
    path = must_scope_path(client_id=p.client_id, path=payload.storage_path)
    with track_action(db, "addApartmentImage", user_id=p.user_id, client_id=p.client_id, payload={"apartment_id": a.id}):
        if payload.is_cover_image:
            for img in db.scalars(select(ApartmentImage).where(ApartmentImage.apartment_id == a.id)).all():
                img.is_cover_image = False
        row = ApartmentImage(
            apartment_id=a.id,
            storage_bucket=payload.storage_bucket or settings.storage_default_bucket,
            storage_path=path,
            is_cover_image=payload.is_cover_image,
        )
        db.add(row)
        db.flush()
    return row


@router.delete("/{apartment_id}/images/{image_id}")
def remove_image(
    apartment_id: int,
    image_id: int,
    db: Session = Depends(get_db),
    storage: StorageClient = Depends(get_storage),
    p: Principal = Depends(require_client),
):
    a = must_get_apartment(db, client_id=p.client_id, apartment_id=apartment_id)
    img = db.scalar(select(ApartmentImage).where(ApartmentImage.id == image_id, ApartmentImage.apartment_id == a.id))
    if img is None:
        raise HTTPException(status_code=404, detail="image not found")
    with track_action(
        db, "removeApartmentImage", user_id=p.user_id, client_id=p.client_id, payload={"image_id": image_id}
    ):
        remove_stored_files(db, storage, [(img.storage_bucket, img.storage_path)], client_id=p.client_id)
        db.delete(img)
    return {"success": True}
