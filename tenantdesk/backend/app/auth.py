# backend/app/auth.py
from __future__ import annotations

import base64
import hashlib
import hmac
import os
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt
from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy import select
from sqlalchemy.orm import Session

from .config import settings
from .db import get_db
from .models import Apartment, AppUser, Building, Client, ClientMembership, Tenant


@dataclass(frozen=True)
class Principal:
    client_id: int
    client_slug: str
    user_id: int
    email: str
    role: str  # admin | client | tenant
    tenant_id: int | None = None
    building_id: int | None = None
    apartment_id: int | None = None


ROLE_ORDER = {"tenant": 1, "client": 2, "admin": 3}


def _require_role(principal: Principal, min_role: str) -> None:
    if ROLE_ORDER.get(principal.role, 0) < ROLE_ORDER.get(min_role, 999):
        raise HTTPException(status_code=403, detail=f"Requires role >= {min_role}")


# -------------------------
# Password hashing
# -------------------------
def hash_password(password: str) -> str:
    salt = secrets.token_bytes(16)
    iters = int(os.getenv("AUTH_PBKDF2_ITERS", "210000"))
    dk = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iters)
    return f"pbkdf2_sha256${iters}${base64.b64encode(salt).decode()}${base64.b64encode(dk).decode()}"


def verify_password(password: str, stored: str) -> bool:
    try:
        algo, iters_s, salt_b64, dk_b64 = stored.split("$", 3)
    except ValueError:
        return False
    if algo != "pbkdf2_sha256":
        return False
    salt = base64.b64decode(salt_b64.encode())
    dk = base64.b64decode(dk_b64.encode())
    test = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, int(iters_s))
    return hmac.compare_digest(test, dk)


# -------------------------
# JWT helpers
# -------------------------
def create_access_token(*, user_id: int, minutes: int | None = None) -> str:
    now = datetime.now(timezone.utc)
    exp_minutes = int(minutes if minutes is not None else settings.jwt_exp_minutes)
    payload: dict[str, Any] = {
        "sub": str(int(user_id)),
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=exp_minutes)).timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm="HS256")


def decode_access_token(token: str) -> dict[str, Any]:
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=["HS256"])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")


# -------------------------
# Client + membership helpers
# -------------------------
def _resolve_client(db: Session, client_slug: str) -> Client:
    client = db.scalar(select(Client).where(Client.slug == client_slug))
    if client:
        return client
    raise HTTPException(status_code=401, detail="Unknown client")


def _get_user_by_email(db: Session, email: str) -> AppUser | None:
    return db.scalar(select(AppUser).where(AppUser.email == email))


def _get_membership(db: Session, client_id: int, user_id: int) -> ClientMembership | None:
    return db.scalar(
        select(ClientMembership).where(ClientMembership.client_id == client_id, ClientMembership.user_id == user_id)
    )


def _tenant_context(db: Session, *, client_id: int, user_id: int) -> tuple[int, int, int] | None:
    """(tenant_id, apartment_id, building_id) for a tenant user inside this client."""
    row = db.execute(
        select(Tenant.id, Apartment.id, Building.id)
        .join(Apartment, Apartment.id == Tenant.apartment_id)
        .join(Building, Building.id == Apartment.building_id)
        .where(Tenant.user_id == int(user_id), Building.client_id == int(client_id))
        .order_by(Tenant.is_primary.desc(), Tenant.id.asc())
        .limit(1)
    ).first()
    if row is None:
        return None
    return int(row[0]), int(row[1]), int(row[2])


def _principal_from_user(db: Session, *, client_slug: str, user: AppUser) -> Principal:
    if user.is_banned:
        raise HTTPException(status_code=403, detail="User is banned")

    client = _resolve_client(db, client_slug=client_slug)
    mem = _get_membership(db, client_id=int(client.id), user_id=int(user.id))
    if mem is None:
        raise HTTPException(status_code=403, detail="Not a member of this client")

    tenant_id = apartment_id = building_id = None
    if mem.role == "tenant":
        ctx = _tenant_context(db, client_id=int(client.id), user_id=int(user.id))
        if ctx is not None:
            tenant_id, apartment_id, building_id = ctx

    return Principal(
        client_id=int(client.id),
        client_slug=str(client.slug),
        user_id=int(user.id),
        email=str(user.email),
        role=str(mem.role),
        tenant_id=tenant_id,
        building_id=building_id,
        apartment_id=apartment_id,
    )


def _dev_provision(db: Session, *, client_slug: str, email: str, role_hint: str) -> AppUser | None:
    client = db.scalar(select(Client).where(Client.slug == client_slug))
    if client is None:
        client = Client(slug=client_slug, name=client_slug, created_at=datetime.utcnow())
        db.add(client)
        db.commit()
        db.refresh(client)

    user = _get_user_by_email(db, email=email)
    if user is None:
        user = AppUser(email=email, display_name=email.split("@")[0], created_at=datetime.utcnow())
        db.add(user)
        db.commit()
        db.refresh(user)

    mem = _get_membership(db, client_id=int(client.id), user_id=int(user.id))
    if mem is None:
        role = role_hint if role_hint in ROLE_ORDER else "client"
        db.add(ClientMembership(client_id=int(client.id), user_id=int(user.id), role=role, created_at=datetime.utcnow()))
        db.commit()
    return user


# -------------------------
# get_principal
# -------------------------
def get_principal(
    request: Request,
    db: Session = Depends(get_db),
    x_client_slug: Optional[str] = Header(default=None, alias="X-Client-Slug"),
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> Principal:
    """
    Auth modes supported (in priority order):
      1) JWT cookie (HttpOnly) OR Authorization: Bearer <token>
      2) dev header spoofing (ONLY if settings.auth_mode == "dev")
    """
    client_slug = str(x_client_slug or "").strip()
    if not client_slug:
        raise HTTPException(status_code=401, detail="Missing X-Client-Slug (active client context).")

    token = request.cookies.get(settings.jwt_cookie_name) if settings.jwt_cookie_name else None
    if not token and authorization and str(authorization).lower().startswith("bearer "):
        token = str(authorization).split(" ", 1)[1].strip()

    if token:
        claims = decode_access_token(token)
        sub = str(claims.get("sub") or "")
        if not sub.isdigit():
            raise HTTPException(status_code=401, detail="Token missing sub")

        user = db.get(AppUser, int(sub))
        if user is None:
            raise HTTPException(status_code=401, detail="Unknown user")
        return _principal_from_user(db, client_slug=client_slug, user=user)

    if settings.auth_mode == "dev":
        email = (request.headers.get(settings.dev_header_user_email) or "").strip().lower()
        role_hint = (request.headers.get(settings.dev_header_user_role) or "client").strip().lower()
        if not email:
            raise HTTPException(status_code=401, detail="Missing X-User-Email for dev auth")

        user = _get_user_by_email(db, email=email)
        if user is None and settings.dev_auto_provision:
            user = _dev_provision(db, client_slug=client_slug, email=email, role_hint=role_hint)
        elif user is not None and settings.dev_auto_provision:
            _dev_provision(db, client_slug=client_slug, email=email, role_hint=role_hint)

        if user is None:
            raise HTTPException(status_code=401, detail="Dev auth could not provision user/client")
        return _principal_from_user(db, client_slug=client_slug, user=user)

    raise HTTPException(status_code=401, detail="Not authenticated")


def require_client(p: Principal = Depends(get_principal)) -> Principal:
    _require_role(p, "client")
    return p


def require_admin(p: Principal = Depends(get_principal)) -> Principal:
    _require_role(p, "admin")
    return p


def require_tenant(p: Principal = Depends(get_principal)) -> Principal:
    if p.role != "tenant" or p.tenant_id is None:
        raise HTTPException(status_code=403, detail="User is not a tenant")
    return p
