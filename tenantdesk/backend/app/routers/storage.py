# backend/app/routers/storage.py
from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal, require_client
from ..clients.storage import StorageClient, StorageError, clamp_ttl, get_storage, normalize_path
from ..config import settings
from ..db import get_db
from ..domain.errors import ActionError
from ..domain.server_log import track_action
from ..schemas import RemoveFilesIn, SignFileIn, SignFilesIn
from ..services.ownership import clean_storage_folder, client_storage_folder, must_scope_path

router = APIRouter(prefix="/storage", tags=["storage"])


def _scoped(p: Principal, path: str) -> str:
    return must_scope_path(client_id=p.client_id, path=path)


@router.post("/sign-file")
def sign_file(
    payload: SignFileIn,
    db: Session = Depends(get_db),
    storage: StorageClient = Depends(get_storage),
    p: Principal = Depends(get_principal),
):
    path = _scoped(p, payload.path)
    bucket = payload.bucket or settings.storage_default_bucket
    with track_action(db, "signFile", user_id=p.user_id, client_id=p.client_id, payload={"path": path}, type="external"):
        try:
            url = storage.sign_path(bucket, path, payload.ttl_seconds)
        except StorageError as e:
            raise ActionError(str(e), status_code=502)
    return {"success": True, "path": path, "signed_url": url, "expires_in": clamp_ttl(payload.ttl_seconds)}


@router.post("/sign-files")
def sign_files(
    payload: SignFilesIn,
    db: Session = Depends(get_db),
    storage: StorageClient = Depends(get_storage),
    p: Principal = Depends(get_principal),
):
    paths = [_scoped(p, x) for x in payload.paths]
    bucket = payload.bucket or settings.storage_default_bucket
    with track_action(
        db, "signFiles", user_id=p.user_id, client_id=p.client_id, payload={"count": len(paths)}, type="external"
    ) as extra:
        try:
            urls = storage.sign_paths(bucket, paths, payload.ttl_seconds)
        except StorageError as e:
            raise ActionError(str(e), status_code=502)
        extra["signed"] = len(urls)
    return {"success": True, "urls": urls, "expires_in": clamp_ttl(payload.ttl_seconds)}


@router.get("/objects")
def list_objects(
    folder: str = Query(default=""),
    bucket: str | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    storage: StorageClient = Depends(get_storage),
    p: Principal = Depends(require_client),
):
    prefix = client_storage_folder(p.client_id)
    sub = clean_storage_folder(folder)
    if sub:
        prefix = f"{prefix}/{sub}"
    try:
        objects = storage.list_objects(bucket or settings.storage_default_bucket, prefix, limit=limit, offset=offset)
    except StorageError as e:
        raise ActionError(str(e), status_code=502)
    return [{"name": o.name, "size": o.size, "updated_at": o.updated_at, "path": f"{prefix}/{o.name}"} for o in objects]


@router.post("/upload")
def upload(
    folder: str = Form(default=""),
    bucket: str | None = Form(default=None),
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    storage: StorageClient = Depends(get_storage),
    p: Principal = Depends(get_principal),
):
    name = normalize_path(file.filename or "")
    if not name or "/" in name or "\\" in name or name in (".", ".."):
        raise ActionError("Invalid file name")
    parts = [client_storage_folder(p.client_id)]
    sub = clean_storage_folder(folder)
    if sub:
        parts.append(sub)
    parts.append(name)
    path = "/".join(parts)

    with track_action(db, "uploadFile", user_id=p.user_id, client_id=p.client_id, payload={"path": path}, type="external"):
        try:
            stored = storage.upload(
                bucket or settings.storage_default_bucket,
                path,
                file.file.read(),
                content_type=file.content_type or "application/octet-stream",
            )
        except StorageError as e:
            raise ActionError(str(e), status_code=502)
    return {"success": True, "path": stored}


@router.post("/remove")
def remove(
    payload: RemoveFilesIn,
    db: Session = Depends(get_db),
    storage: StorageClient = Depends(get_storage),
    p: Principal = Depends(require_client),
):
    paths = [_scoped(p, x) for x in payload.paths]
    with track_action(
        db, "removeFiles", user_id=p.user_id, client_id=p.client_id, payload={"paths": paths}, type="external"
    ):
        try:
            n = storage.remove(payload.bucket or settings.storage_default_bucket, paths)
        except StorageError as e:
            raise ActionError(str(e), status_code=502)
    return {"success": True, "removed": n}
