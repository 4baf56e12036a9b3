# backend/app/models.py
from __future__ import annotations

from datetime import date, datetime
from typing import Any, List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Index,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db import Base


class _Dumpable:
    """Column snapshot used for audit before/after payloads."""

    def model_dump(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for col in self.__table__.columns:  # type: ignore[attr-defined]
            v = getattr(self, col.key)
            if isinstance(v, (datetime, date)):
                v = v.isoformat()
            out[col.key] = v
        return out


# -----------------------------
# Clients + users (multitenant RBAC)
# -----------------------------
class Client(_Dumpable, Base):
    __tablename__ = "clients"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    slug: Mapped[str] = mapped_column(String(80), nullable=False, unique=True, index=True)
    name: Mapped[str] = mapped_column(String(160), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    contact_person: Mapped[Optional[str]] = mapped_column(String(160), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")  # active|inactive|suspended
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class AppUser(_Dumpable, Base):
    __tablename__ = "app_users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(200), nullable=False, unique=True, index=True)
    display_name: Mapped[Optional[str]] = mapped_column(String(160), nullable=True)
    password_hash: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    is_banned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class ClientMembership(Base):
    __tablename__ = "client_memberships"
    __table_args__ = (UniqueConstraint("client_id", "user_id", name="uq_client_memberships_client_user"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    client_id: Mapped[int] = mapped_column(Integer, ForeignKey("clients.id"), index=True, nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("app_users.id"), index=True, nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="client")  # admin|client|tenant
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class ServerLog(Base):
    __tablename__ = "server_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    client_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    action: Mapped[str] = mapped_column(String(160), nullable=False, index=True)
    payload: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    status: Mapped[str] = mapped_column(String(10), nullable=False)  # success|fail
    error: Mapped[str] = mapped_column(Text, nullable=False, default="")
    duration_ms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    type: Mapped[str] = mapped_column(String(20), nullable=False, default="action")
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, index=True)


class AuditEvent(Base):
    __tablename__ = "audit_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    client_id: Mapped[Optional[int]] = mapped_column(Integer, index=True, nullable=True)
    actor_user_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    action: Mapped[str] = mapped_column(String(80), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(80), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(80), nullable=False)

    before_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    after_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


# -----------------------------
# Buildings / apartments / tenants
# -----------------------------
class Building(_Dumpable, Base):
    __tablename__ = "buildings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    client_id: Mapped[int] = mapped_column(Integer, ForeignKey("clients.id"), nullable=False, index=True)

    street_address: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[str] = mapped_column(String(120), nullable=False)
    region: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    number_of_apartments: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    stories_high: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    is_recently_built: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    has_parking_lot: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    has_elevator: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    has_bicycle_room: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    has_gas_heating: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    has_central_heating: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    has_solar_power: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    apartments: Mapped[List["Apartment"]] = relationship(back_populates="building")
    images: Mapped[List["BuildingImage"]] = relationship(back_populates="building")


class BuildingImage(Base):
    __tablename__ = "building_images"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    building_id: Mapped[int] = mapped_column(Integer, ForeignKey("buildings.id"), nullable=False, index=True)
    storage_bucket: Mapped[str] = mapped_column(String(80), nullable=False)
    storage_path: Mapped[str] = mapped_column(String(500), nullable=False)
    is_cover_image: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    building: Mapped["Building"] = relationship(back_populates="images")


class Apartment(_Dumpable, Base):
    __tablename__ = "apartments"
    __table_args__ = (UniqueConstraint("building_id", "apartment_number", name="uq_apartments_building_number"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    building_id: Mapped[int] = mapped_column(Integer, ForeignKey("buildings.id"), nullable=False, index=True)

    apartment_number: Mapped[str] = mapped_column(String(20), nullable=False)
    floor: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    square_meters: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    room_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    apartment_type: Mapped[str] = mapped_column(String(20), nullable=False, default="residential")
    rental_status: Mapped[str] = mapped_column(String(20), nullable=False, default="owned")
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    building: Mapped["Building"] = relationship(back_populates="apartments")
    tenants: Mapped[List["Tenant"]] = relationship(back_populates="apartment")
    images: Mapped[List["ApartmentImage"]] = relationship(back_populates="apartment")


class ApartmentImage(Base):
    __tablename__ = "apartment_images"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    apartment_id: Mapped[int] = mapped_column(Integer, ForeignKey("apartments.id"), nullable=False, index=True)
    storage_bucket: Mapped[str] = mapped_column(String(80), nullable=False)
    storage_path: Mapped[str] = mapped_column(String(500), nullable=False)
    is_cover_image: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    apartment: Mapped["Apartment"] = relationship(back_populates="images")


class Tenant(_Dumpable, Base):
    __tablename__ = "tenants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    apartment_id: Mapped[int] = mapped_column(Integer, ForeignKey("apartments.id"), nullable=False, index=True)
    user_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("app_users.id", ondelete="SET NULL"), nullable=True, index=True
    )

    first_name: Mapped[str] = mapped_column(String(80), nullable=False)
    last_name: Mapped[str] = mapped_column(String(80), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    phone_number: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    date_of_birth: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    is_primary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    move_in_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    tenant_type: Mapped[str] = mapped_column(String(20), nullable=False, default="owner")
    email_opt_in: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    apartment: Mapped["Apartment"] = relationship(back_populates="tenants")


# -----------------------------
# Announcements
# -----------------------------
class Announcement(_Dumpable, Base):
    __tablename__ = "announcements"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    client_id: Mapped[int] = mapped_column(Integer, ForeignKey("clients.id"), nullable=False, index=True)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False, default="")
    category: Mapped[Optional[str]] = mapped_column(String(60), nullable=True)
    subcategory: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")  # draft|published
    pinned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    schedule_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    scheduled_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    scheduled_timezone: Mapped[Optional[str]] = mapped_column(String(60), nullable=True)
    published_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    buildings: Mapped[List["AnnouncementBuilding"]] = relationship(back_populates="announcement")


Index("ix_announcements_status_schedule", Announcement.status, Announcement.schedule_enabled)


class AnnouncementBuilding(Base):
    __tablename__ = "announcement_buildings"
    __table_args__ = (UniqueConstraint("announcement_id", "building_id", name="uq_announcement_buildings_pair"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    announcement_id: Mapped[int] = mapped_column(Integer, ForeignKey("announcements.id"), nullable=False, index=True)
    building_id: Mapped[int] = mapped_column(Integer, ForeignKey("buildings.id"), nullable=False, index=True)

    announcement: Mapped["Announcement"] = relationship(back_populates="buildings")


class AnnouncementImage(Base):
    __tablename__ = "announcement_images"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    announcement_id: Mapped[int] = mapped_column(Integer, ForeignKey("announcements.id"), nullable=False, index=True)
    storage_bucket: Mapped[str] = mapped_column(String(80), nullable=False)
    storage_path: Mapped[str] = mapped_column(String(500), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class AnnouncementDocument(Base):
    __tablename__ = "announcement_documents"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    announcement_id: Mapped[int] = mapped_column(Integer, ForeignKey("announcements.id"), nullable=False, index=True)
    storage_bucket: Mapped[str] = mapped_column(String(80), nullable=False)
    storage_path: Mapped[str] = mapped_column(String(500), nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    mime_type: Mapped[str] = mapped_column(String(120), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


# -----------------------------
# Incidents
# -----------------------------
class IncidentReport(_Dumpable, Base):
    __tablename__ = "incident_reports"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    client_id: Mapped[int] = mapped_column(Integer, ForeignKey("clients.id"), nullable=False, index=True)
    building_id: Mapped[int] = mapped_column(Integer, ForeignKey("buildings.id"), nullable=False, index=True)
    apartment_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("apartments.id"), nullable=True)

    created_by_user_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("app_users.id"), nullable=True)
    created_by_tenant_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("tenants.id"), nullable=True)
    assigned_to_user_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("app_users.id"), nullable=True)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    category: Mapped[str] = mapped_column(String(30), nullable=False, default="administrative")
    priority: Mapped[str] = mapped_column(String(10), nullable=False, default="medium")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="open")
    is_emergency: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    closed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    comments: Mapped[List["IncidentComment"]] = relationship(back_populates="incident")
    images: Mapped[List["IncidentImage"]] = relationship(back_populates="incident")


class IncidentComment(Base):
    __tablename__ = "incident_comments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    incident_id: Mapped[int] = mapped_column(Integer, ForeignKey("incident_reports.id"), nullable=False, index=True)
    author_user_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("app_users.id"), nullable=True)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    incident: Mapped["IncidentReport"] = relationship(back_populates="comments")


class IncidentImage(Base):
    __tablename__ = "incident_images"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    incident_id: Mapped[int] = mapped_column(Integer, ForeignKey("incident_reports.id"), nullable=False, index=True)
    storage_bucket: Mapped[str] = mapped_column(String(80), nullable=False)
    storage_path: Mapped[str] = mapped_column(String(500), nullable=False)
    uploaded_by_user_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("app_users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    incident: Mapped["IncidentReport"] = relationship(back_populates="images")


# -----------------------------
# Polls
# -----------------------------
class Poll(_Dumpable, Base):
    __tablename__ = "polls"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    client_id: Mapped[int] = mapped_column(Integer, ForeignKey("clients.id"), nullable=False, index=True)
    building_id: Mapped[int] = mapped_column(Integer, ForeignKey("buildings.id"), nullable=False, index=True)

    type: Mapped[str] = mapped_column(String(20), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    max_choices: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    allow_change_until_deadline: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    allow_abstain: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    allow_comments: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    allow_anonymous: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    rule: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    supermajority_percent: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    threshold_percent: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    winners_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    score_aggregation: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)

    starts_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    ends_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    closed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    options: Mapped[List["PollOption"]] = relationship(back_populates="poll", order_by="PollOption.sort_order")
    votes: Mapped[List["PollVote"]] = relationship(back_populates="poll")


class PollOption(Base):
    __tablename__ = "poll_options"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    poll_id: Mapped[int] = mapped_column(Integer, ForeignKey("polls.id"), nullable=False, index=True)
    label: Mapped[str] = mapped_column(String(200), nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    poll: Mapped["Poll"] = relationship(back_populates="options")


class PollVote(Base):
    __tablename__ = "poll_votes"
    __table_args__ = (UniqueConstraint("poll_id", "tenant_id", name="uq_poll_votes_poll_tenant"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    poll_id: Mapped[int] = mapped_column(Integer, ForeignKey("polls.id"), nullable=False, index=True)
    tenant_id: Mapped[int] = mapped_column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    apartment_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("apartments.id"), nullable=True)

    status: Mapped[str] = mapped_column(String(10), nullable=False, default="cast")  # cast|revoked
    abstain: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_anonymous: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    choice_bool: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    choice_option_ids: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    ranks: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)  # [{option_id, rank}]
    scores: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)  # [{option_id, score}]

    cast_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    poll: Mapped["Poll"] = relationship(back_populates="votes")


# -----------------------------
# Subscriptions / billing
# -----------------------------
class SubscriptionPlan(_Dumpable, Base):
    __tablename__ = "subscription_plans"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(80), nullable=False, unique=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")  # active|inactive

    base_price_per_month: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    is_discounted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    discount_percentage: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    can_bill_yearly: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    yearly_discount_percentage: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    max_apartments: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    features_json: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class ClientSubscription(_Dumpable, Base):
    __tablename__ = "client_subscriptions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    client_id: Mapped[int] = mapped_column(Integer, ForeignKey("clients.id"), nullable=False, index=True)
    plan_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("subscription_plans.id"), nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="trialing")  # trialing|active|canceled|expired
    is_billed_yearly: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    total_price: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    next_payment_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


# -----------------------------
# Notifications / calendar
# -----------------------------
class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("app_users.id"), nullable=True, index=True)
    type: Mapped[str] = mapped_column(String(20), nullable=False, default="system")
    title: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    url: Mapped[Optional[str]] = mapped_column(String(300), nullable=True)
    action_token: Mapped[Optional[str]] = mapped_column(String(160), nullable=True, index=True)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    building_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("buildings.id", ondelete="SET NULL"), nullable=True
    )
    announcement_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("announcements.id", ondelete="SET NULL"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class CalendarEvent(_Dumpable, Base):
    __tablename__ = "calendar_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    client_id: Mapped[int] = mapped_column(Integer, ForeignKey("clients.id"), nullable=False, index=True)
    building_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("buildings.id"), nullable=True, index=True)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    all_day: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    calendar_event_type: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    start_date_time: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    end_date_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


# -----------------------------
# Social feed
# -----------------------------
class TenantPost(_Dumpable, Base):
    __tablename__ = "tenant_posts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    tenant_id: Mapped[int] = mapped_column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    building_id: Mapped[int] = mapped_column(Integer, ForeignKey("buildings.id"), nullable=False, index=True)
    content_text: Mapped[str] = mapped_column(Text, nullable=False)
    image_path: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    reactions: Mapped[List["PostReaction"]] = relationship(back_populates="post")


class PostReaction(Base):
    __tablename__ = "post_reactions"
    __table_args__ = (UniqueConstraint("post_id", "tenant_id", name="uq_post_reactions_post_tenant"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    post_id: Mapped[int] = mapped_column(Integer, ForeignKey("tenant_posts.id"), nullable=False, index=True)
    tenant_id: Mapped[int] = mapped_column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    emoji: Mapped[str] = mapped_column(String(32), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    post: Mapped["TenantPost"] = relationship(back_populates="reactions")


class PostComment(Base):
    __tablename__ = "post_comments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    post_id: Mapped[int] = mapped_column(Integer, ForeignKey("tenant_posts.id"), nullable=False, index=True)
    tenant_id: Mapped[int] = mapped_column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    content_text: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
