# backend/app/routers/auth.py
from __future__ import annotations

import secrets
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..auth import (
    Principal,
    create_access_token,
    get_principal,
    hash_password,
    require_admin,
    require_client,
    verify_password,
)
from ..config import settings
from ..db import get_db
from ..domain.audit import audit_write
from ..domain.errors import ActionError, ConflictError
from ..domain.server_log import track_action
from ..models import AppUser, Client, ClientMembership
from ..schemas import ChangePasswordIn, InviteTenantIn, LoginIn, PrincipalOut, RegisterIn
from ..services.ownership import must_get_tenant
from ..services.subscription_service import start_trial

router = APIRouter(prefix="/auth", tags=["auth"])


def _now() -> datetime:
    return datetime.utcnow()


def _set_auth_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        settings.jwt_cookie_name,
        token,
        httponly=True,
        secure=bool(settings.jwt_cookie_secure),
        samesite=str(settings.jwt_cookie_samesite),
        max_age=int(settings.jwt_exp_minutes) * 60,
        path="/",
    )


@router.post("/register")
def register(payload: RegisterIn, response: Response, db: Session = Depends(get_db)):
    """
    Create user + (optional) client with a `client` membership and a trial
    subscription. Logs the user in when a client was created.
    """
    email = payload.email.strip().lower()
    slug = (payload.client_slug or "").strip() or None

    with track_action(db, "register", payload={"email": email, "client_slug": slug}, type="auth") as extra:
        if db.scalar(select(AppUser).where(AppUser.email == email)):
            raise ConflictError("Email already registered")

        user = AppUser(
            email=email,
            display_name=email.split("@")[0],
            password_hash=hash_password(payload.password),
            created_at=_now(),
        )
        db.add(user)
        db.flush()

        created_client = None
        if slug:
            if db.scalar(select(Client).where(Client.slug == slug)):
                raise ConflictError("client_slug already exists")

            client = Client(slug=slug, name=payload.client_name or slug, email=email, created_at=_now())
            db.add(client)
            db.flush()
            db.add(ClientMembership(client_id=client.id, user_id=user.id, role="client", created_at=_now()))
            start_trial(db, client_id=client.id)
            created_client = {"client_id": int(client.id), "client_slug": str(client.slug)}
        extra["user_id"] = int(user.id)

    token = None
    if created_client:
        token = create_access_token(user_id=int(user.id))
        _set_auth_cookie(response, token)

    return {"success": True, "user_id": int(user.id), "created_client": created_client, "access_token": token}


@router.post("/login")
def login(payload: LoginIn, response: Response, db: Session = Depends(get_db)):
    email = payload.email.strip().lower()

    with track_action(db, "login", payload={"email": email, "client_slug": payload.client_slug}, type="auth"):
        user = db.scalar(select(AppUser).where(AppUser.email == email))
        if user is None or not user.password_hash or not verify_password(payload.password, user.password_hash):
            raise ActionError("Invalid credentials", status_code=401)
        if user.is_banned:
            raise ActionError("User is banned", status_code=403)

        client = db.scalar(select(Client).where(Client.slug == payload.client_slug))
        if client is None:
            raise ActionError("Unknown client", status_code=401)
        mem = db.scalar(
            select(ClientMembership).where(
                ClientMembership.client_id == client.id, ClientMembership.user_id == user.id
            )
        )
        if mem is None:
            raise ActionError("Not a member of this client", status_code=403)

        user.last_login_at = _now()
        db.add(user)

    token = create_access_token(user_id=int(user.id))
    _set_auth_cookie(response, token)
    return {
        "success": True,
        "user_id": int(user.id),
        "client_slug": str(client.slug),
        "role": str(mem.role),
        "access_token": token,
    }


@router.post("/logout")
def logout(response: Response):
    response.delete_cookie(settings.jwt_cookie_name, path="/")
    return {"success": True}


@router.get("/me", response_model=PrincipalOut)
def me(p: Principal = Depends(get_principal)):
    return PrincipalOut(**p.__dict__)


@router.get("/clients")
def my_clients(db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    rows = db.execute(
        select(Client.slug, Client.name, ClientMembership.role)
        .select_from(ClientMembership)
        .join(Client, Client.id == ClientMembership.client_id)
        .where(ClientMembership.user_id == int(p.user_id))
        .order_by(Client.slug.asc())
    ).all()
    return [{"client_slug": r[0], "client_name": r[1], "role": r[2]} for r in rows]


@router.post("/change-password")
def change_password(payload: ChangePasswordIn, db: Session = Depends(get_db), p: Principal = Depends(get_principal)):
    with track_action(db, "changePassword", user_id=p.user_id, client_id=p.client_id, type="auth"):
        user = db.get(AppUser, p.user_id)
        if user is None or not user.password_hash or not verify_password(payload.current_password, user.password_hash):
            raise ActionError("Current password is incorrect", status_code=401)
        user.password_hash = hash_password(payload.new_password)
        db.add(user)
    return {"success": True}


@router.post("/invite-tenant")
def invite_tenant(payload: InviteTenantIn, db: Session = Depends(get_db), p: Principal = Depends(require_client)):
    """
    Gives a tenant row a login: creates (or reuses) the user by the tenant's
    email, adds a `tenant` membership in this client and links tenant.user_id.
    Returns a one-time password when none was supplied.
    """
    tenant = must_get_tenant(db, client_id=p.client_id, tenant_id=payload.tenant_id)
    if not tenant.email:
        raise ActionError("Tenant has no email")

    temp_password = payload.password or secrets.token_urlsafe(9)
    with track_action(
        db, "inviteTenant", user_id=p.user_id, client_id=p.client_id, payload={"tenant_id": tenant.id}, type="auth"
    ):
        email = tenant.email.strip().lower()
        user = db.scalar(select(AppUser).where(AppUser.email == email))
        created = user is None
        if user is None:
            user = AppUser(
                email=email,
                display_name=f"{tenant.first_name} {tenant.last_name}".strip(),
                password_hash=hash_password(temp_password),
                created_at=_now(),
            )
            db.add(user)
            db.flush()

        mem = db.scalar(
            select(ClientMembership).where(
                ClientMembership.client_id == p.client_id, ClientMembership.user_id == user.id
            )
        )
        if mem is None:
            db.add(ClientMembership(client_id=p.client_id, user_id=user.id, role="tenant", created_at=_now()))
        elif mem.role != "tenant":
            raise ConflictError("User already belongs to this client with another role")

        before = tenant.model_dump()
        tenant.user_id = user.id
        db.add(tenant)
        db.flush()
        audit_write(
            db,
            client_id=p.client_id,
            actor_user_id=p.user_id,
            action="tenant.invite",
            entity_type="Tenant",
            entity_id=tenant.id,
            before=before,
            after=tenant.model_dump(),
        )

    return {
        "success": True,
        "user_id": int(user.id),
        "tenant_id": int(tenant.id),
        "temporary_password": temp_password if created and not payload.password else None,
    }


def _set_ban(db: Session, *, user_id: int, banned: bool, p: Principal) -> dict:
    if int(user_id) == int(p.user_id):
        raise HTTPException(status_code=400, detail="Cannot ban yourself")
    with track_action(
        db, "banUser" if banned else "unbanUser", user_id=p.user_id, payload={"target_user_id": user_id}, type="auth"
    ):
        user = db.get(AppUser, int(user_id))
        if user is None:
            raise ActionError("user not found", status_code=404)
        before = user.model_dump()
        user.is_banned = banned
        db.add(user)
        db.flush()
        audit_write(
            db,
            client_id=None,
            actor_user_id=p.user_id,
            action="user.ban" if banned else "user.unban",
            entity_type="AppUser",
            entity_id=user.id,
            before={k: v for k, v in before.items() if k != "password_hash"},
            after={k: v for k, v in user.model_dump().items() if k != "password_hash"},
        )
    return {"success": True, "user_id": int(user.id), "is_banned": banned}


@router.post("/users/{user_id}/ban")
def ban_user(user_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_admin)):
    return _set_ban(db, user_id=user_id, banned=True, p=p)


@router.post("/users/{user_id}/unban")
def unban_user(user_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_admin)):
    return _set_ban(db, user_id=user_id, banned=False, p=p)
