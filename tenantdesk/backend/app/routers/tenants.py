# backend/app/routers/tenants.py
from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from ..auth import Principal, require_client, require_tenant
from ..db import get_db
from ..domain.audit import audit_write
from ..domain.server_log import track_action
from ..models import Apartment, Building, Tenant
from ..schemas import TenantCreate, TenantOut
from ..services.ownership import must_get_apartment, must_get_tenant
from ..services.property_service import delete_tenant

router = APIRouter(prefix="/tenants", tags=["tenants"])


@router.get("", response_model=list[TenantOut])
def list_tenants(
    apartment_id: int | None = Query(default=None),
    building_id: int | None = Query(default=None),
    limit: int = Query(default=500, ge=1, le=5000),
    db: Session = Depends(get_db),
    p: Principal = Depends(require_client),
):
    q = (
        select(Tenant)
        .join(Apartment, Apartment.id == Tenant.apartment_id)
        .join(Building, Building.id == Apartment.building_id)
        .where(Building.client_id == p.client_id)
        .order_by(desc(Tenant.id))
        .limit(limit)
    )
    if apartment_id is not None:
        q = q.where(Tenant.apartment_id == apartment_id)
    if building_id is not None:
        q = q.where(Apartment.building_id == building_id)
    return list(db.scalars(q).all())


@router.get("/me", response_model=TenantOut)
def my_tenant(db: Session = Depends(get_db), p: Principal = Depends(require_tenant)):
    return must_get_tenant(db, client_id=p.client_id, tenant_id=p.tenant_id)


@router.get("/{tenant_id}", response_model=TenantOut)
def get_tenant(tenant_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_client)):
    return must_get_tenant(db, client_id=p.client_id, tenant_id=tenant_id)


@router.post("", response_model=TenantOut)
def create_tenant(payload: TenantCreate, db: Session = Depends(get_db), p: Principal = Depends(require_client)):
    must_get_apartment(db, client_id=p.client_id, apartment_id=payload.apartment_id)
    with track_action(db, "createTenant", user_id=p.user_id, client_id=p.client_id):
        now = datetime.utcnow()
        row = Tenant(**payload.model_dump(), created_at=now, updated_at=now)
        db.add(row)
        db.flush()
        audit_write(
            db,
            client_id=p.client_id,
            actor_user_id=p.user_id,
            action="tenant.create",
            entity_type="Tenant",
            entity_id=row.id,
            after=row.model_dump(),
        )
    return row


@router.put("/{tenant_id}", response_model=TenantOut)
def update_tenant(
    tenant_id: int, payload: TenantCreate, db: Session = Depends(get_db), p: Principal = Depends(require_client)
):
    row = must_get_tenant(db, client_id=p.client_id, tenant_id=tenant_id)
    if payload.apartment_id != row.apartment_id:
        must_get_apartment(db, client_id=p.client_id, apartment_id=payload.apartment_id)

    with track_action(db, "updateTenant", user_id=p.user_id, client_id=p.client_id, payload={"tenant_id": row.id}):
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
            action="tenant.update",
            entity_type="Tenant",
            entity_id=row.id,
            before=before,
            after=row.model_dump(),
        )
    return row


@router.delete("/{tenant_id}")
def remove_tenant(tenant_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_client)):
    row = must_get_tenant(db, client_id=p.client_id, tenant_id=tenant_id)
    with track_action(db, "deleteTenant", user_id=p.user_id, client_id=p.client_id, payload={"tenant_id": row.id}):
        audit_write(
            db,
            client_id=p.client_id,
            actor_user_id=p.user_id,
            action="tenant.delete",
            entity_type="Tenant",
            entity_id=row.id,
            before=row.model_dump(),
        )
        delete_tenant(db, row)
    return {"success": True}
