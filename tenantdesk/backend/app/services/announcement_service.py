# backend/app/services/announcement_service.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from ..domain.catalogs import validate_announcement_category
from ..domain.errors import ActionError
from ..models import Announcement, AnnouncementBuilding, Building
from .notifications import EmitResult, emit_notifications, tenant_recipients


def building_ids_of(db: Session, announcement_id: int) -> list[int]:
    return list(
        db.scalars(
            select(AnnouncementBuilding.building_id)
            .where(AnnouncementBuilding.announcement_id == announcement_id)
            .order_by(AnnouncementBuilding.building_id.asc())
        ).all()
    )


def set_buildings(db: Session, *, announcement: Announcement, building_ids: list[int]) -> list[int]:
    wanted = sorted({int(b) for b in building_ids})
    if wanted:
        owned = set(
            db.scalars(
                select(Building.id).where(Building.id.in_(wanted), Building.client_id == announcement.client_id)
            ).all()
        )
        missing = [b for b in wanted if b not in owned]
        if missing:
            raise ActionError(f"Unknown buildings: {missing}", status_code=404)

    db.execute(delete(AnnouncementBuilding).where(AnnouncementBuilding.announcement_id == announcement.id))
    for b in wanted:
        db.add(AnnouncementBuilding(announcement_id=announcement.id, building_id=b))
    db.flush()
    return wanted


def validate_category(category: Optional[str], subcategory: Optional[str], *, publishing: bool) -> None:
    try:
        validate_announcement_category(category, subcategory, publishing=publishing)
    except ValueError as e:
        raise ActionError(str(e))


def publish_announcement(db: Session, announcement: Announcement, *, now: Optional[datetime] = None) -> EmitResult:
    """
    Marks the announcement published and notifies every tenant user in its
    target buildings. Not committed here.
    """
    validate_category(announcement.category, announcement.subcategory, publishing=True)

    building_ids = building_ids_of(db, announcement.id)
    if not building_ids:
        raise ActionError("Announcement has no target buildings")

    now = now or datetime.utcnow()
    announcement.status = "published"
    announcement.published_at = now
    announcement.schedule_enabled = False
    announcement.updated_at = now
    db.add(announcement)
    db.flush()

    seen: set[int] = set()
    rows = []
    for t in tenant_recipients(db, building_ids):
        if t.user_id in seen:
            continue
        seen.add(int(t.user_id))
        rows.append(
            {
                "user_id": int(t.user_id),
                "type": "announcement",
                "title": announcement.title,
                "description": (announcement.message or "")[:280],
                "url": f"/dashboard/announcements/{announcement.id}",
                "action_token": f"announcement_published_{announcement.id}",
                "building_id": t.apartment.building_id,
                "announcement_id": announcement.id,
                "created_at": now,
            }
        )
    return emit_notifications(db, rows)


def unpublish_announcement(db: Session, announcement: Announcement) -> None:
    announcement.status = "draft"
    announcement.published_at = None
    announcement.updated_at = datetime.utcnow()
    db.add(announcement)
    db.flush()
