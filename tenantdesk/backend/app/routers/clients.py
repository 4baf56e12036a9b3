# backend/app/routers/clients.py
from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..auth import Principal, require_admin
from ..clients.storage import StorageClient, get_storage
from ..db import get_db
from ..domain.audit import audit_write
from ..domain.errors import ConflictError
from ..domain.server_log import track_action
from ..models import Client
from ..schemas import ClientCreate, ClientOut, ClientStatusIn
from ..services.ownership import must_get_client
from ..services.property_service import delete_client

router = APIRouter(prefix="/clients", tags=["clients"])


@router.get("", response_model=list[ClientOut])
def list_clients(
    status: str | None = Query(default=None),
    limit: int = Query(default=200, ge=1, le=2000),
    db: Session = Depends(get_db),
    p: Principal = Depends(require_admin),
):
    q = select(Client).order_by(Client.name.asc()).limit(limit)
    if status:
        q = q.where(Client.status == status)
    return list(db.scalars(q).all())


@router.get("/{client_id}", response_model=ClientOut)
def get_client(client_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_admin)):
    return must_get_client(db, client_id=client_id)


@router.post("", response_model=ClientOut)
def create_client(payload: ClientCreate, db: Session = Depends(get_db), p: Principal = Depends(require_admin)):
    with track_action(db, "createClient", user_id=p.user_id, payload={"slug": payload.slug}):
        if db.scalar(select(Client).where(Client.slug == payload.slug)):
            raise ConflictError("client slug already exists")
        row = Client(**payload.model_dump(), created_at=datetime.utcnow(), updated_at=datetime.utcnow())
        db.add(row)
        db.flush()
        audit_write(
            db,
            client_id=row.id,
            actor_user_id=p.user_id,
            action="client.create",
            entity_type="Client",
            entity_id=row.id,
            after=row.model_dump(),
        )
    return row


@router.put("/{client_id}", response_model=ClientOut)
def update_client(
    client_id: int, payload: ClientCreate, db: Session = Depends(get_db), p: Principal = Depends(require_admin)
):
    row = must_get_client(db, client_id=client_id)
    with track_action(db, "updateClient", user_id=p.user_id, client_id=client_id):
        clash = db.scalar(select(Client).where(Client.slug == payload.slug, Client.id != client_id))
        if clash:
            raise ConflictError("client slug already exists")
        before = row.model_dump()
        for k, v in payload.model_dump().items():
            setattr(row, k, v)
        row.updated_at = datetime.utcnow()
        db.add(row)
        db.flush()
        audit_write(
            db,
            client_id=row.id,
            actor_user_id=p.user_id,
            action="client.update",
            entity_type="Client",
            entity_id=row.id,
            before=before,
            after=row.model_dump(),
        )
    return row


@router.post("/{client_id}/status", response_model=ClientOut)
def set_client_status(
    client_id: int, payload: ClientStatusIn, db: Session = Depends(get_db), p: Principal = Depends(require_admin)
):
    row = must_get_client(db, client_id=client_id)
    with track_action(db, "setClientStatus", user_id=p.user_id, client_id=client_id, payload={"status": payload.status}):
        before = row.model_dump()
        row.status = payload.status
        row.updated_at = datetime.utcnow()
        db.add(row)
        db.flush()
        audit_write(
            db,
            client_id=row.id,
            actor_user_id=p.user_id,
            action="client.status",
            entity_type="Client",
            entity_id=row.id,
            before=before,
            after=row.model_dump(),
        )
    return row


@router.delete("/{client_id}")
def remove_client(
    client_id: int,
    db: Session = Depends(get_db),
    storage: StorageClient = Depends(get_storage),
    p: Principal = Depends(require_admin),
):
    row = must_get_client(db, client_id=client_id)
    with track_action(db, "deleteClient", user_id=p.user_id, client_id=client_id):
        audit_write(
            db,
            client_id=row.id,
            actor_user_id=p.user_id,
            action="client.delete",
            entity_type="Client",
            entity_id=row.id,
            before=row.model_dump(),
        )
        delete_client(db, storage, row)
    return {"success": True}
