# backend/app/domain/catalogs.py
"""
Closed value sets shared by schemas, services and migrations.

Kept as plain tuples/dicts so pydantic Literal types and DB string columns
can both reference them.
"""
from __future__ import annotations

ROLES = ("admin", "client", "tenant")
CLIENT_STATUSES = ("active", "inactive", "suspended")

APARTMENT_TYPES = ("residential", "business", "mixed_use", "vacation", "storage", "garage", "utility")
RENTAL_STATUSES = ("owned", "rented", "for_rent", "vacant")
TENANT_TYPES = ("owner", "renter", "relative", "other")

INCIDENT_STATUSES = ("open", "in_progress", "on_hold", "resolved", "closed", "cancelled")
INCIDENT_PRIORITIES = ("low", "medium", "high", "urgent")
INCIDENT_CATEGORIES = (
    "plumbing",
    "electrical",
    "noise",
    "cleaning",
    "common_area",
    "heating",
    "cooling",
    "structural",
    "interior",
    "outdoorsafety",
    "security",
    "pests",
    "administrative",
    "parking",
    "it",
    "waste",
)

POLL_TYPES = ("yes_no", "single_choice", "multiple_choice", "ranked_choice", "score")
POLL_STATUSES = ("draft", "scheduled", "active", "closed", "archived")
VOTE_STATUSES = ("cast", "revoked")
DECISION_RULES = ("plurality", "absolute_majority", "supermajority", "threshold", "top_k")
SCORE_AGGREGATIONS = ("sum", "avg")

SUBSCRIPTION_STATUSES = ("trialing", "active", "canceled", "expired")

NOTIFICATION_TYPES = ("system", "message", "reminder", "alert", "announcement", "other")

ANNOUNCEMENT_STATUSES = ("draft", "published")

ANNOUNCEMENT_CATEGORIES: dict[str, tuple[str, ...]] = {
    "community_general": (
        "general_updates",
        "community_news",
        "lost_found",
        "rules_policy_changes",
        "seasonal_greetings",
        "resident_welcome_messages",
    ),
    "events_activities": (
        "upcoming_meetings",
        "social_events",
        "workshops_classes",
        "sports_recreational",
        "volunteer_opportunities",
        "holiday_decorations_competitions",
    ),
    "maintenance_operations": (
        "scheduled_maintenance",
        "emergency_maintenance",
        "renovation_construction_notices",
        "utility_outages",
        "pest_control_schedules",
        "waste_collection_recycling_updates",
        "parking_lot_changes",
    ),
    "safety_security": (
        "fire_drills_safety_training",
        "security_alerts",
        "weather_alerts",
        "emergency_contacts_procedures",
        "health_safety_protocols",
    ),
    "financial_administrative": (
        "rent_fee_reminders",
        "payment_deadlines",
        "budget_financial_reports",
        "special_assessments_dues_increases",
        "insurance_notices",
        "tax_related_announcements",
    ),
    "resident_services": (
        "package_delivery_notices",
        "new_amenities",
        "internet_wifi_changes",
        "facility_booking_confirmations",
        "concierge_updates",
        "lost_key_access_card_info",
    ),
    "voting_governance": (
        "meeting_agendas",
        "voting_announcements",
        "poll_results",
        "board_decisions_minutes_summaries",
    ),
    "urgent_priority": (
        "emergency_evacuation_instructions",
        "immediate_utility_cutoff_alerts",
        "missing_person_pet_alerts",
        "hazard_warnings",
    ),
}


def validate_announcement_category(category: str | None, subcategory: str | None, *, publishing: bool) -> None:
    """
    Category is optional on drafts. A published announcement needs a known
    category, and a subcategory belonging to it.
    """
    if not category:
        if publishing:
            raise ValueError("Category required")
        if subcategory:
            raise ValueError("Subcategory given without category")
        return

    subs = ANNOUNCEMENT_CATEGORIES.get(category)
    if subs is None:
        raise ValueError(f"Unknown category: {category}")

    if subcategory:
        if subcategory not in subs:
            raise ValueError(f"Subcategory {subcategory} does not belong to {category}")
    elif publishing and subs:
        raise ValueError("Subcategory required")


# announcement documents: extension -> content type
DOCUMENT_TYPES: dict[str, str] = {
    "pdf": "application/pdf",
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "xls": "application/vnd.ms-excel",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "csv": "text/csv",
    "txt": "text/plain",
    "ppt": "application/vnd.ms-powerpoint",
    "pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "odt": "application/vnd.oasis.opendocument.text",
    "ods": "application/vnd.oasis.opendocument.spreadsheet",
    "zip": "application/zip",
}


def document_mime_type(file_name: str) -> str:
    """Content type for an allowed document name; ValueError otherwise."""
    name = str(file_name or "").strip().lower()
    ext = name.rsplit(".", 1)[-1] if "." in name else ""
    if ext not in DOCUMENT_TYPES:
        raise ValueError(f"File type not allowed: {file_name}")
    return DOCUMENT_TYPES[ext]
