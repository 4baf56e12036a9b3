# backend/app/schemas.py
from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import Any, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .domain.catalogs import (
    APARTMENT_TYPES,
    CLIENT_STATUSES,
    DECISION_RULES,
    INCIDENT_CATEGORIES,
    INCIDENT_PRIORITIES,
    INCIDENT_STATUSES,
    POLL_TYPES,
    RENTAL_STATUSES,
    SCORE_AGGREGATIONS,
    TENANT_TYPES,
)

PHONE_RE = re.compile(r"^\+\d{7,15}$")


def _one_of(value: Optional[str], allowed: tuple[str, ...], field: str) -> Optional[str]:
    if value is not None and value not in allowed:
        raise ValueError(f"{field} must be one of {', '.join(allowed)}")
    return value


def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Datetime columns hold naive UTC; offsets sent by clients are applied here."""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


# -------------------- Auth --------------------

class RegisterIn(BaseModel):
    email: str
    password: str = Field(min_length=8)
    client_slug: Optional[str] = None
    client_name: Optional[str] = None


class LoginIn(BaseModel):
    email: str
    password: str
    client_slug: str


class ChangePasswordIn(BaseModel):
    current_password: str
    new_password: str = Field(min_length=8)


class InviteTenantIn(BaseModel):
    tenant_id: int
    password: Optional[str] = None


class PrincipalOut(BaseModel):
    client_id: int
    client_slug: str
    user_id: int
    email: str
    role: str
    tenant_id: Optional[int] = None
    building_id: Optional[int] = None
    apartment_id: Optional[int] = None


# -------------------- Clients --------------------

class ClientCreate(BaseModel):
    slug: str = Field(min_length=2, max_length=80)
    name: str
    email: Optional[str] = None
    contact_person: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    status: str = "active"

    @field_validator("status")
    @classmethod
    def _status(cls, v: str) -> str:
        return _one_of(v, CLIENT_STATUSES, "status")


class ClientOut(ClientCreate):
    id: int
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class ClientStatusIn(BaseModel):
    status: str

    @field_validator("status")
    @classmethod
    def _status(cls, v: str) -> str:
        return _one_of(v, CLIENT_STATUSES, "status")


# -------------------- Buildings / apartments --------------------

class BuildingCreate(BaseModel):
    street_address: str
    city: str
    region: Optional[str] = None
    description: Optional[str] = None
    number_of_apartments: int = Field(default=0, ge=0)
    stories_high: int = Field(default=1, ge=1)
    is_recently_built: bool = False
    has_parking_lot: bool = False
    has_elevator: bool = False
    has_bicycle_room: bool = False
    has_gas_heating: bool = False
    has_central_heating: bool = False
    has_solar_power: bool = False
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    is_active: bool = True


class BuildingOut(BuildingCreate):
    id: int
    client_id: int
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class ImageIn(BaseModel):
    storage_path: str
    storage_bucket: Optional[str] = None
    is_cover_image: bool = False


class ImageOut(BaseModel):
    id: int
    storage_bucket: str
    storage_path: str
    is_cover_image: bool
    model_config = ConfigDict(from_attributes=True)


class AttachmentIn(BaseModel):
    storage_path: str
    storage_bucket: Optional[str] = None


class IncidentImageOut(BaseModel):
    id: int
    incident_id: int
    storage_bucket: str
    storage_path: str
    uploaded_by_user_id: Optional[int] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class ApartmentCreate(BaseModel):
    building_id: int
    apartment_number: str = Field(min_length=1, max_length=20)
    floor: int = 0
    square_meters: Optional[int] = Field(default=None, ge=0)
    room_count: Optional[int] = Field(default=None, ge=0)
    apartment_type: str = "residential"
    rental_status: str = "owned"
    notes: Optional[str] = None

    @field_validator("apartment_type")
    @classmethod
    def _type(cls, v: str) -> str:
        return _one_of(v, APARTMENT_TYPES, "apartment_type")

    @field_validator("rental_status")
    @classmethod
    def _rental(cls, v: str) -> str:
        return _one_of(v, RENTAL_STATUSES, "rental_status")


class ApartmentOut(ApartmentCreate):
    id: int
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


# -------------------- Tenants --------------------

class TenantCreate(BaseModel):
    apartment_id: int
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    email: Optional[str] = None
    phone_number: Optional[str] = None
    date_of_birth: Optional[date] = None
    is_primary: bool = False
    move_in_date: Optional[date] = None
    tenant_type: str = "owner"
    email_opt_in: bool = True
    notes: Optional[str] = None

    @field_validator("tenant_type")
    @classmethod
    def _type(cls, v: str) -> str:
        return _one_of(v, TENANT_TYPES, "tenant_type")

    @field_validator("phone_number")
    @classmethod
    def _phone(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v == "":
            return None
        v = v.replace(" ", "")
        if not PHONE_RE.match(v):
            raise ValueError("phone_number must be in international format, e.g. +381641234567")
        return v

    @model_validator(mode="after")
    def _primary_contact(self) -> "TenantCreate":
        if self.is_primary and (not self.email or not self.phone_number):
            raise ValueError("Primary tenant requires email and phone number")
        return self


class TenantOut(TenantCreate):
    id: int
    user_id: Optional[int] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)

    # stored rows are trusted; skip the contact rule on output
    @model_validator(mode="after")
    def _primary_contact(self) -> "TenantOut":
        return self


# -------------------- Announcements --------------------

class AnnouncementUpsert(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    message: str = ""
    category: Optional[str] = None
    subcategory: Optional[str] = None
    pinned: bool = False
    building_ids: List[int] = Field(default_factory=list)
    schedule_enabled: bool = False
    scheduled_at: Optional[datetime] = None
    scheduled_timezone: Optional[str] = None

    @model_validator(mode="after")
    def _schedule(self) -> "AnnouncementUpsert":
        if self.schedule_enabled and self.scheduled_at is None:
            raise ValueError("scheduled_at is required when scheduling is enabled")
        if self.scheduled_at is not None and self.scheduled_at.tzinfo is not None:
            # stored as wall-clock time in scheduled_timezone, or UTC without one
            tz = None
            if self.scheduled_timezone:
                try:
                    tz = ZoneInfo(self.scheduled_timezone)
                except (ZoneInfoNotFoundError, ValueError):
                    tz = None
            if tz is None:
                self.scheduled_at = _naive_utc(self.scheduled_at)
                self.scheduled_timezone = None
            else:
                self.scheduled_at = self.scheduled_at.astimezone(tz).replace(tzinfo=None)
        return self


class AnnouncementOut(BaseModel):
    id: int
    client_id: int
    title: str
    message: str
    category: Optional[str] = None
    subcategory: Optional[str] = None
    status: str
    pinned: bool
    schedule_enabled: bool
    scheduled_at: Optional[datetime] = None
    scheduled_timezone: Optional[str] = None
    published_at: Optional[datetime] = None
    created_at: datetime
    building_ids: List[int] = Field(default_factory=list)
    model_config = ConfigDict(from_attributes=True)


class AnnouncementImageOut(BaseModel):
    id: int
    announcement_id: int
    storage_bucket: str
    storage_path: str
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class AnnouncementDocumentIn(AttachmentIn):
    file_name: str = Field(min_length=1, max_length=255)


class AnnouncementDocumentOut(AnnouncementImageOut):
    file_name: str
    mime_type: str


# -------------------- Incidents --------------------

class IncidentCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = ""
    category: str = "administrative"
    priority: str = "medium"
    is_emergency: bool = False

    @field_validator("category")
    @classmethod
    def _category(cls, v: str) -> str:
        return _one_of(v, INCIDENT_CATEGORIES, "category")

    @field_validator("priority")
    @classmethod
    def _priority(cls, v: str) -> str:
        return _one_of(v, INCIDENT_PRIORITIES, "priority")


class IncidentUpdate(BaseModel):
    status: Optional[str] = None
    priority: Optional[str] = None
    assigned_to_user_id: Optional[int] = None

    @field_validator("status")
    @classmethod
    def _status(cls, v: Optional[str]) -> Optional[str]:
        return _one_of(v, INCIDENT_STATUSES, "status")

    @field_validator("priority")
    @classmethod
    def _priority(cls, v: Optional[str]) -> Optional[str]:
        return _one_of(v, INCIDENT_PRIORITIES, "priority")


class IncidentOut(BaseModel):
    id: int
    client_id: int
    building_id: int
    apartment_id: Optional[int] = None
    created_by_user_id: Optional[int] = None
    created_by_tenant_id: Optional[int] = None
    assigned_to_user_id: Optional[int] = None
    title: str
    description: str
    category: str
    priority: str
    status: str
    is_emergency: bool
    resolved_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class CommentIn(BaseModel):
    message: str = Field(min_length=1)


class CommentOut(BaseModel):
    id: int
    incident_id: int
    author_user_id: Optional[int] = None
    message: str
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


# -------------------- Polls --------------------

class PollOptionIn(BaseModel):
    label: str = Field(min_length=1, max_length=200)


class PollOptionOut(BaseModel):
    id: int
    label: str
    sort_order: int
    model_config = ConfigDict(from_attributes=True)


class PollUpsert(BaseModel):
    building_id: int
    type: str
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    max_choices: Optional[int] = Field(default=None, ge=1)
    allow_change_until_deadline: bool = False
    allow_abstain: bool = True
    allow_comments: bool = False
    allow_anonymous: bool = False
    rule: Optional[str] = None
    supermajority_percent: Optional[float] = Field(default=None, gt=50, le=100)
    threshold_percent: Optional[float] = Field(default=None, gt=0, le=100)
    winners_count: Optional[int] = Field(default=None, ge=1)
    score_aggregation: Optional[str] = None
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    options: List[PollOptionIn] = Field(default_factory=list)

    @field_validator("type")
    @classmethod
    def _type(cls, v: str) -> str:
        return _one_of(v, POLL_TYPES, "type")

    @field_validator("rule")
    @classmethod
    def _rule(cls, v: Optional[str]) -> Optional[str]:
        return _one_of(v, DECISION_RULES, "rule")

    @field_validator("score_aggregation")
    @classmethod
    def _agg(cls, v: Optional[str]) -> Optional[str]:
        return _one_of(v, SCORE_AGGREGATIONS, "score_aggregation")

    @field_validator("starts_at", "ends_at")
    @classmethod
    def _utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _naive_utc(v)

    @model_validator(mode="after")
    def _shape(self) -> "PollUpsert":
        if self.type != "yes_no" and len(self.options) < 2:
            raise ValueError("At least two options are required")
        if self.starts_at and self.ends_at and self.ends_at <= self.starts_at:
            raise ValueError("ends_at must be after starts_at")
        if self.rule == "supermajority" and self.supermajority_percent is None:
            raise ValueError("supermajority_percent is required for supermajority rule")
        if self.rule == "threshold" and self.threshold_percent is None:
            raise ValueError("threshold_percent is required for threshold rule")
        if self.rule == "top_k" and self.winners_count is None:
            raise ValueError("winners_count is required for top_k rule")
        return self


class PollOut(BaseModel):
    id: int
    client_id: int
    building_id: int
    type: str
    title: str
    description: Optional[str] = None
    max_choices: Optional[int] = None
    allow_change_until_deadline: bool
    allow_abstain: bool
    allow_comments: bool
    allow_anonymous: bool
    rule: Optional[str] = None
    supermajority_percent: Optional[float] = None
    threshold_percent: Optional[float] = None
    winners_count: Optional[int] = None
    score_aggregation: Optional[str] = None
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    status: str
    created_at: datetime
    closed_at: Optional[datetime] = None
    options: List[PollOptionOut] = Field(default_factory=list)
    model_config = ConfigDict(from_attributes=True)


class RankIn(BaseModel):
    option_id: int
    rank: int = Field(ge=1)


class ScoreIn(BaseModel):
    option_id: int
    score: float


class VoteIn(BaseModel):
    abstain: bool = False
    is_anonymous: bool = False
    comment: Optional[str] = None
    choice_bool: Optional[bool] = None
    choice_option_ids: List[int] = Field(default_factory=list)
    ranks: List[RankIn] = Field(default_factory=list)
    scores: List[ScoreIn] = Field(default_factory=list)


class VoteOut(BaseModel):
    id: int
    poll_id: int
    tenant_id: int
    status: str
    abstain: bool
    cast_at: datetime
    model_config = ConfigDict(from_attributes=True)


class PollResultOut(BaseModel):
    poll_id: int
    ballots: int
    abstentions: int
    values: dict[str, float]
    winners: List[str]
    decided: bool
    rounds: List[dict[str, int]] = Field(default_factory=list)


# -------------------- Subscriptions --------------------

class PlanUpsert(BaseModel):
    name: str = Field(min_length=1, max_length=80)
    description: Optional[str] = None
    status: str = "active"
    base_price_per_month: float = Field(default=0.0, ge=0)
    is_discounted: bool = False
    discount_percentage: float = Field(default=0.0, ge=0, le=100)
    can_bill_yearly: bool = False
    yearly_discount_percentage: float = Field(default=0.0, ge=0, le=100)
    max_apartments: Optional[int] = Field(default=None, ge=0)
    features_json: Optional[List[str]] = None


class PlanOut(PlanUpsert):
    id: int
    model_config = ConfigDict(from_attributes=True)


class SubscribeIn(BaseModel):
    plan_id: int
    is_billed_yearly: bool = False


class SubscriptionOut(BaseModel):
    id: int
    client_id: int
    plan_id: Optional[int] = None
    status: str
    is_billed_yearly: bool
    total_price: float
    next_payment_date: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


# -------------------- Notifications / calendar --------------------

class NotificationOut(BaseModel):
    id: int
    user_id: Optional[int] = None
    type: str
    title: str
    description: str
    url: Optional[str] = None
    action_token: Optional[str] = None
    is_read: bool
    building_id: Optional[int] = None
    announcement_id: Optional[int] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class CalendarEventUpsert(BaseModel):
    building_id: Optional[int] = None
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    all_day: bool = False
    calendar_event_type: Optional[str] = None
    start_date_time: datetime
    end_date_time: datetime

    @field_validator("start_date_time", "end_date_time")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return _naive_utc(v)

    @model_validator(mode="after")
    def _range(self) -> "CalendarEventUpsert":
        if self.end_date_time < self.start_date_time:
            raise ValueError("end_date_time must not be before start_date_time")
        return self


class CalendarEventOut(CalendarEventUpsert):
    id: int
    client_id: int
    model_config = ConfigDict(from_attributes=True)


# -------------------- Social --------------------

class PostCreate(BaseModel):
    content_text: str = Field(min_length=1)
    image_path: Optional[str] = None
    is_public: bool = True


class ReactIn(BaseModel):
    emoji: str


class ReactionOut(BaseModel):
    emoji: str
    count: int
    user_reacted: bool


class PostOut(BaseModel):
    id: int
    tenant_id: int
    building_id: int
    content_text: str
    image_path: Optional[str] = None
    image_url: Optional[str] = None
    is_public: bool
    created_at: datetime
    reactions: List[ReactionOut] = Field(default_factory=list)
    user_reaction: Optional[str] = None
    comments_count: int = 0


class PostCommentIn(BaseModel):
    content_text: str = Field(min_length=1, max_length=2000)


class PostCommentOut(BaseModel):
    id: int
    post_id: int
    tenant_id: int
    content_text: str
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


# -------------------- Storage --------------------

class SignFileIn(BaseModel):
    path: str
    bucket: Optional[str] = None
    ttl_seconds: Optional[int] = None


class SignFilesIn(BaseModel):
    paths: List[str]
    bucket: Optional[str] = None
    ttl_seconds: Optional[int] = None


class RemoveFilesIn(BaseModel):
    paths: List[str]
    bucket: Optional[str] = None


# -------------------- Audit --------------------

class ServerLogOut(BaseModel):
    id: int
    user_id: Optional[int] = None
    client_id: Optional[int] = None
    action: str
    payload: Optional[dict[str, Any]] = None
    status: str
    error: str
    duration_ms: int
    type: str
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class AuditEventOut(BaseModel):
    id: int
    client_id: Optional[int] = None
    actor_user_id: Optional[int] = None
    action: str
    entity_type: str
    entity_id: str
    before_json: Optional[str] = None
    after_json: Optional[str] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)
