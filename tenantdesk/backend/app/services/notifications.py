# backend/app/services/notifications.py
from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Optional

from sqlalchemy import insert, select
from sqlalchemy.orm import Session

from ..config import settings
from ..models import Apartment, AppUser, Notification, Tenant
from .email import notification_digest_email, send_email

log = logging.getLogger("tenantdesk.notifications")

NOTIFICATION_FIELDS = (
    "user_id",
    "type",
    "title",
    "description",
    "url",
    "action_token",
    "is_read",
    "building_id",
    "announcement_id",
    "created_at",
)


@dataclass
class EmitResult:
    inserted: int = 0
    users: int = 0
    emails_sent: int = 0
    email_errors: int = 0


def _row(r: dict[str, Any], now: datetime) -> dict[str, Any]:
    out = {k: r.get(k) for k in NOTIFICATION_FIELDS}
    out["type"] = out["type"] or "system"
    out["title"] = out["title"] or ""
    out["description"] = out["description"] or ""
    out["is_read"] = bool(out["is_read"])
    out["created_at"] = out["created_at"] or now
    return out


def email_contacts(db: Session, user_ids: Iterable[int]) -> dict[int, str]:
    """
    user_id -> email for users who may receive notification email.
    A user linked to any tenant row with email_opt_in off is left out.
    """
    ids = sorted({int(u) for u in user_ids if u is not None})
    if not ids:
        return {}

    opted_out = set(
        db.scalars(select(Tenant.user_id).where(Tenant.user_id.in_(ids), Tenant.email_opt_in.is_(False))).all()
    )
    users = db.execute(select(AppUser.id, AppUser.email).where(AppUser.id.in_(ids))).all()
    return {int(uid): str(email) for uid, email in users if email and uid not in opted_out}


def emit_notifications(
    db: Session,
    rows: list[dict[str, Any]],
    *,
    send_digest: bool = True,
    batch_size: Optional[int] = None,
) -> EmitResult:
    """
    Inserts notification rows in fixed-size batches (flushed, not committed),
    then sends each recipient a single digest email of their new items.
    """
    result = EmitResult()
    if not rows:
        return result

    now = datetime.utcnow()
    size = int(batch_size or settings.notification_insert_batch)
    prepared = [_row(r, now) for r in rows]
    for i in range(0, len(prepared), size):
        chunk = prepared[i : i + size]
        db.execute(insert(Notification), chunk)
        result.inserted += len(chunk)
    db.flush()

    by_user: "OrderedDict[int, list[str]]" = OrderedDict()
    for r in prepared:
        if r["user_id"] is None:
            continue
        by_user.setdefault(int(r["user_id"]), []).append(r["title"])
    result.users = len(by_user)

    if send_digest and by_user:
        contacts = email_contacts(db, by_user.keys())
        for uid, titles in by_user.items():
            to = contacts.get(uid)
            if not to:
                continue
            subject, body = notification_digest_email(titles=titles)
            ok, _err = send_email(to, subject, body)
            if ok:
                result.emails_sent += 1
            else:
                result.email_errors += 1

    log.info(
        "notifications emitted inserted=%s users=%s emails_sent=%s",
        result.inserted,
        result.users,
        result.emails_sent,
    )
    return result


def tenant_recipients(db: Session, building_ids: Iterable[int]) -> list[Tenant]:
    """Tenants with a login in the given buildings."""
    ids = [int(b) for b in building_ids]
    if not ids:
        return []
    q = (
        select(Tenant)
        .join(Apartment, Apartment.id == Tenant.apartment_id)
        .where(Apartment.building_id.in_(ids), Tenant.user_id.is_not(None))
        .order_by(Tenant.id.asc())
    )
    return list(db.scalars(q).all())
