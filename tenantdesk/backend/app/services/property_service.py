# backend/app/services/property_service.py
from __future__ import annotations

import logging
from collections import defaultdict
from typing import Iterable, Optional, Sequence

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from ..clients.storage import StorageClient, StorageError
from ..domain.errors import ActionError, ConflictError
from ..domain.server_log import log_server_action
from ..models import (
    Announcement,
    AnnouncementBuilding,
    AnnouncementDocument,
    AnnouncementImage,
    Apartment,
    ApartmentImage,
    Building,
    BuildingImage,
    CalendarEvent,
    Client,
    ClientMembership,
    ClientSubscription,
    IncidentComment,
    IncidentImage,
    IncidentReport,
    Poll,
    PollOption,
    PollVote,
    PostComment,
    PostReaction,
    Tenant,
    TenantPost,
)

log = logging.getLogger("tenantdesk.property")

CAPACITY_REACHED = "Maximum number of apartments for this building has been reached."


# -------------------------
# Apartments
# -------------------------
def apartment_exists(db: Session, *, building_id: int, apartment_number: str) -> Optional[int]:
    return db.scalar(
        select(Apartment.id).where(
            Apartment.building_id == int(building_id),
            Apartment.apartment_number == str(apartment_number).strip(),
        )
    )


def ensure_capacity(db: Session, *, building: Building) -> None:
    limit = int(building.number_of_apartments or 0)
    count = db.scalar(select(func.count(Apartment.id)).where(Apartment.building_id == building.id)) or 0
    if int(count) >= limit:
        raise ActionError(CAPACITY_REACHED)


def create_apartment(db: Session, *, building: Building, values: dict) -> Apartment:
    ensure_capacity(db, building=building)

    number = str(values.get("apartment_number") or "").strip()
    if apartment_exists(db, building_id=building.id, apartment_number=number):
        raise ConflictError(f"Apartment {number} already exists in this building.")

    row = Apartment(**{**values, "apartment_number": number, "building_id": building.id})
    db.add(row)
    db.flush()
    return row


# -------------------------
# Storage cleanup
# -------------------------
def remove_stored_files(
    db: Session,
    storage: StorageClient,
    files: Iterable[tuple[str, str]],
    *,
    client_id: Optional[int] = None,
) -> int:
    """
    Removes (bucket, path) pairs from object storage before their rows go.
    A storage failure is recorded and swallowed so the row delete continues.
    """
    by_bucket: dict[str, list[str]] = defaultdict(list)
    for bucket, path in files:
        if path:
            by_bucket[bucket].append(path)

    removed = 0
    for bucket, paths in by_bucket.items():
        try:
            removed += storage.remove(bucket, paths)
        except StorageError as e:
            log.warning("storage cleanup failed bucket=%s files=%s", bucket, len(paths), extra={"client_id": client_id})
            log_server_action(
                db,
                action="removeStoredFiles",
                status="fail",
                client_id=client_id,
                payload={"bucket": bucket, "paths": paths},
                error=str(e),
                type="external",
                commit=False,
            )
    return removed


def _stored_files(rows: Sequence[object]) -> list[tuple[str, str]]:
    return [(r.storage_bucket, r.storage_path) for r in rows]  # type: ignore[attr-defined]


# -------------------------
# Cascading deletes (ordered, not atomic across storage)
# -------------------------
def delete_tenant(db: Session, tenant: Tenant) -> None:
    post_ids = select(TenantPost.id).where(TenantPost.tenant_id == tenant.id)
    db.execute(delete(PostComment).where(PostComment.post_id.in_(post_ids)))
    db.execute(delete(PostComment).where(PostComment.tenant_id == tenant.id))
    db.execute(delete(PostReaction).where(PostReaction.post_id.in_(post_ids)))
    db.execute(delete(PostReaction).where(PostReaction.tenant_id == tenant.id))
    db.execute(delete(TenantPost).where(TenantPost.tenant_id == tenant.id))
    db.execute(delete(PollVote).where(PollVote.tenant_id == tenant.id))
    db.execute(
        update(IncidentReport).where(IncidentReport.created_by_tenant_id == tenant.id).values(created_by_tenant_id=None)
    )
    db.delete(tenant)
    db.flush()


def delete_apartment(
    db: Session, storage: StorageClient, apartment: Apartment, *, client_id: Optional[int] = None
) -> None:
    images = list(db.scalars(select(ApartmentImage).where(ApartmentImage.apartment_id == apartment.id)).all())
    remove_stored_files(db, storage, _stored_files(images), client_id=client_id)

    db.execute(update(IncidentReport).where(IncidentReport.apartment_id == apartment.id).values(apartment_id=None))
    db.execute(update(PollVote).where(PollVote.apartment_id == apartment.id).values(apartment_id=None))

    for tenant in db.scalars(select(Tenant).where(Tenant.apartment_id == apartment.id)).all():
        delete_tenant(db, tenant)

    db.execute(delete(ApartmentImage).where(ApartmentImage.apartment_id == apartment.id))
    db.delete(apartment)
    db.flush()


def _delete_incidents(db: Session, storage: StorageClient, incident_ids: list[int], *, client_id: Optional[int]) -> None:
    if not incident_ids:
        return
    images = list(db.scalars(select(IncidentImage).where(IncidentImage.incident_id.in_(incident_ids))).all())
    remove_stored_files(db, storage, _stored_files(images), client_id=client_id)
    db.execute(delete(IncidentImage).where(IncidentImage.incident_id.in_(incident_ids)))
    db.execute(delete(IncidentComment).where(IncidentComment.incident_id.in_(incident_ids)))
    db.execute(delete(IncidentReport).where(IncidentReport.id.in_(incident_ids)))


def delete_poll(db: Session, poll: Poll) -> None:
    db.execute(delete(PollVote).where(PollVote.poll_id == poll.id))
    db.execute(delete(PollOption).where(PollOption.poll_id == poll.id))
    db.delete(poll)
    db.flush()


def delete_building(db: Session, storage: StorageClient, building: Building) -> None:
    client_id = int(building.client_id)

    images = list(db.scalars(select(BuildingImage).where(BuildingImage.building_id == building.id)).all())
    remove_stored_files(db, storage, _stored_files(images), client_id=client_id)

    incident_ids = list(db.scalars(select(IncidentReport.id).where(IncidentReport.building_id == building.id)).all())
    _delete_incidents(db, storage, incident_ids, client_id=client_id)

    for poll in db.scalars(select(Poll).where(Poll.building_id == building.id)).all():
        delete_poll(db, poll)

    post_ids = select(TenantPost.id).where(TenantPost.building_id == building.id)
    db.execute(delete(PostComment).where(PostComment.post_id.in_(post_ids)))
    db.execute(delete(PostReaction).where(PostReaction.post_id.in_(post_ids)))
    db.execute(delete(TenantPost).where(TenantPost.building_id == building.id))

    db.execute(delete(AnnouncementBuilding).where(AnnouncementBuilding.building_id == building.id))
    db.execute(delete(CalendarEvent).where(CalendarEvent.building_id == building.id))

    for apartment in db.scalars(select(Apartment).where(Apartment.building_id == building.id)).all():
        delete_apartment(db, storage, apartment, client_id=client_id)

    db.execute(delete(BuildingImage).where(BuildingImage.building_id == building.id))
    db.delete(building)
    db.flush()


def delete_announcement(
    db: Session, storage: StorageClient, announcement: Announcement, *, client_id: Optional[int] = None
) -> None:
    images = list(
        db.scalars(select(AnnouncementImage).where(AnnouncementImage.announcement_id == announcement.id)).all()
    )
    docs = list(
        db.scalars(select(AnnouncementDocument).where(AnnouncementDocument.announcement_id == announcement.id)).all()
    )
    remove_stored_files(db, storage, _stored_files(images) + _stored_files(docs), client_id=client_id)
    db.execute(delete(AnnouncementImage).where(AnnouncementImage.announcement_id == announcement.id))
    db.execute(delete(AnnouncementDocument).where(AnnouncementDocument.announcement_id == announcement.id))
    db.execute(delete(AnnouncementBuilding).where(AnnouncementBuilding.announcement_id == announcement.id))
    db.delete(announcement)
    db.flush()


def delete_client(db: Session, storage: StorageClient, client: Client) -> None:
    for building in db.scalars(select(Building).where(Building.client_id == client.id)).all():
        delete_building(db, storage, building)

    for ann in db.scalars(select(Announcement).where(Announcement.client_id == client.id)).all():
        delete_announcement(db, storage, ann, client_id=int(client.id))

    remaining = list(db.scalars(select(IncidentReport.id).where(IncidentReport.client_id == client.id)).all())
    _delete_incidents(db, storage, remaining, client_id=int(client.id))
    for poll in db.scalars(select(Poll).where(Poll.client_id == client.id)).all():
        delete_poll(db, poll)

    db.execute(delete(CalendarEvent).where(CalendarEvent.client_id == client.id))
    db.execute(delete(ClientSubscription).where(ClientSubscription.client_id == client.id))
    db.execute(delete(ClientMembership).where(ClientMembership.client_id == client.id))
    db.delete(client)
    db.flush()
