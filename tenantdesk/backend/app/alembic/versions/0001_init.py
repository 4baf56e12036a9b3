"""initial tenantdesk schema

Revision ID: 0001_init
Revises:
Create Date: 2026-10-01
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect

revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def _has_table(name: str) -> bool:
    return name in inspect(op.get_bind()).get_table_names()


def _ts(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.DateTime(), nullable=nullable)


def _flag(name: str, default: str = "false") -> sa.Column:
    # Postgres needs true/false for boolean defaults (not 0/1)
    return sa.Column(name, sa.Boolean(), nullable=False, server_default=sa.text(default))


def upgrade() -> None:
    # -------------------------
    # Clients / users / RBAC
    # -------------------------
    if not _has_table("clients"):
        op.create_table(
            "clients",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("slug", sa.String(80), nullable=False),
            sa.Column("name", sa.String(160), nullable=False),
            sa.Column("email", sa.String(200), nullable=True),
            sa.Column("contact_person", sa.String(160), nullable=True),
            sa.Column("phone", sa.String(40), nullable=True),
            sa.Column("address", sa.String(255), nullable=True),
            sa.Column("status", sa.String(20), nullable=False, server_default="active"),
            _ts("created_at"),
            _ts("updated_at"),
        )
        op.create_index("ix_clients_slug", "clients", ["slug"], unique=True)

    if not _has_table("app_users"):
        op.create_table(
            "app_users",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("email", sa.String(200), nullable=False),
            sa.Column("display_name", sa.String(160), nullable=True),
            sa.Column("password_hash", sa.String(255), nullable=True),
            _flag("is_banned"),
            _ts("last_login_at", nullable=True),
            _ts("created_at"),
        )
        op.create_index("ix_app_users_email", "app_users", ["email"], unique=True)

    if not _has_table("client_memberships"):
        op.create_table(
            "client_memberships",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("client_id", sa.Integer(), sa.ForeignKey("clients.id"), nullable=False),
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("app_users.id"), nullable=False),
            sa.Column("role", sa.String(20), nullable=False, server_default="client"),
            _ts("created_at"),
            sa.UniqueConstraint("client_id", "user_id", name="uq_client_memberships_client_user"),
        )
        op.create_index("ix_client_memberships_client_id", "client_memberships", ["client_id"])
        op.create_index("ix_client_memberships_user_id", "client_memberships", ["user_id"])

    if not _has_table("server_logs"):
        op.create_table(
            "server_logs",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("user_id", sa.Integer(), nullable=True),
            sa.Column("client_id", sa.Integer(), nullable=True),
            sa.Column("action", sa.String(160), nullable=False),
            sa.Column("payload", sa.JSON(), nullable=True),
            sa.Column("status", sa.String(10), nullable=False),
            sa.Column("error", sa.Text(), nullable=False, server_default=""),
            sa.Column("duration_ms", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("type", sa.String(20), nullable=False, server_default="action"),
            _ts("created_at"),
        )
        for col in ("user_id", "client_id", "action", "created_at"):
            op.create_index(f"ix_server_logs_{col}", "server_logs", [col])

    if not _has_table("audit_events"):
        op.create_table(
            "audit_events",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("client_id", sa.Integer(), nullable=True),
            sa.Column("actor_user_id", sa.Integer(), nullable=True),
            sa.Column("action", sa.String(80), nullable=False),
            sa.Column("entity_type", sa.String(80), nullable=False),
            sa.Column("entity_id", sa.String(80), nullable=False),
            sa.Column("before_json", sa.Text(), nullable=True),
            sa.Column("after_json", sa.Text(), nullable=True),
            _ts("created_at"),
        )
        op.create_index("ix_audit_events_client_id", "audit_events", ["client_id"])

    # -------------------------
    # Buildings / apartments / tenants
    # -------------------------
    if not _has_table("buildings"):
        op.create_table(
            "buildings",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("client_id", sa.Integer(), sa.ForeignKey("clients.id"), nullable=False),
            sa.Column("street_address", sa.String(255), nullable=False),
            sa.Column("city", sa.String(120), nullable=False),
            sa.Column("region", sa.String(120), nullable=True),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("number_of_apartments", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("stories_high", sa.Integer(), nullable=False, server_default="1"),
            _flag("is_recently_built"),
            _flag("has_parking_lot"),
            _flag("has_elevator"),
            _flag("has_bicycle_room"),
            _flag("has_gas_heating"),
            _flag("has_central_heating"),
            _flag("has_solar_power"),
            sa.Column("latitude", sa.Float(), nullable=True),
            sa.Column("longitude", sa.Float(), nullable=True),
            _flag("is_active", "true"),
            _ts("created_at"),
            _ts("updated_at"),
        )
        op.create_index("ix_buildings_client_id", "buildings", ["client_id"])

    if not _has_table("building_images"):
        op.create_table(
            "building_images",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("building_id", sa.Integer(), sa.ForeignKey("buildings.id"), nullable=False),
            sa.Column("storage_bucket", sa.String(80), nullable=False),
            sa.Column("storage_path", sa.String(500), nullable=False),
            _flag("is_cover_image"),
            _ts("created_at"),
        )
        op.create_index("ix_building_images_building_id", "building_images", ["building_id"])

    if not _has_table("apartments"):
        op.create_table(
            "apartments",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("building_id", sa.Integer(), sa.ForeignKey("buildings.id"), nullable=False),
            sa.Column("apartment_number", sa.String(20), nullable=False),
            sa.Column("floor", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("square_meters", sa.Integer(), nullable=True),
            sa.Column("room_count", sa.Integer(), nullable=True),
            sa.Column("apartment_type", sa.String(20), nullable=False, server_default="residential"),
            sa.Column("rental_status", sa.String(20), nullable=False, server_default="owned"),
            sa.Column("notes", sa.Text(), nullable=True),
            _ts("created_at"),
            _ts("updated_at"),
            sa.UniqueConstraint("building_id", "apartment_number", name="uq_apartments_building_number"),
        )
        op.create_index("ix_apartments_building_id", "apartments", ["building_id"])

    if not _has_table("apartment_images"):
        op.create_table(
            "apartment_images",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("apartment_id", sa.Integer(), sa.ForeignKey("apartments.id"), nullable=False),
            sa.Column("storage_bucket", sa.String(80), nullable=False),
            sa.Column("storage_path", sa.String(500), nullable=False),
            _flag("is_cover_image"),
            _ts("created_at"),
        )
        op.create_index("ix_apartment_images_apartment_id", "apartment_images", ["apartment_id"])

    if not _has_table("tenants"):
        op.create_table(
            "tenants",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("apartment_id", sa.Integer(), sa.ForeignKey("apartments.id"), nullable=False),
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("app_users.id", ondelete="SET NULL"), nullable=True),
            sa.Column("first_name", sa.String(80), nullable=False),
            sa.Column("last_name", sa.String(80), nullable=False),
            sa.Column("email", sa.String(200), nullable=True),
            sa.Column("phone_number", sa.String(20), nullable=True),
            sa.Column("date_of_birth", sa.Date(), nullable=True),
            _flag("is_primary"),
            sa.Column("move_in_date", sa.Date(), nullable=True),
            sa.Column("tenant_type", sa.String(20), nullable=False, server_default="owner"),
            _flag("email_opt_in", "true"),
            sa.Column("notes", sa.Text(), nullable=True),
            _ts("created_at"),
            _ts("updated_at"),
        )
        op.create_index("ix_tenants_apartment_id", "tenants", ["apartment_id"])
        op.create_index("ix_tenants_user_id", "tenants", ["user_id"])

    # -------------------------
    # Announcements
    # -------------------------
    if not _has_table("announcements"):
        op.create_table(
            "announcements",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("client_id", sa.Integer(), sa.ForeignKey("clients.id"), nullable=False),
            sa.Column("title", sa.String(200), nullable=False),
            sa.Column("message", sa.Text(), nullable=False, server_default=""),
            sa.Column("category", sa.String(60), nullable=True),
            sa.Column("subcategory", sa.String(80), nullable=True),
            sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
            _flag("pinned"),
            _flag("schedule_enabled"),
            _ts("scheduled_at", nullable=True),
            sa.Column("scheduled_timezone", sa.String(60), nullable=True),
            _ts("published_at", nullable=True),
            _ts("created_at"),
            _ts("updated_at"),
        )
        op.create_index("ix_announcements_client_id", "announcements", ["client_id"])
        op.create_index("ix_announcements_status_schedule", "announcements", ["status", "schedule_enabled"])

    if not _has_table("announcement_buildings"):
        op.create_table(
            "announcement_buildings",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("announcement_id", sa.Integer(), sa.ForeignKey("announcements.id"), nullable=False),
            sa.Column("building_id", sa.Integer(), sa.ForeignKey("buildings.id"), nullable=False),
            sa.UniqueConstraint("announcement_id", "building_id", name="uq_announcement_buildings_pair"),
        )
        op.create_index("ix_announcement_buildings_announcement_id", "announcement_buildings", ["announcement_id"])
        op.create_index("ix_announcement_buildings_building_id", "announcement_buildings", ["building_id"])

    # -------------------------
    # Incidents
    # -------------------------
    if not _has_table("incident_reports"):
        op.create_table(
            "incident_reports",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("client_id", sa.Integer(), sa.ForeignKey("clients.id"), nullable=False),
            sa.Column("building_id", sa.Integer(), sa.ForeignKey("buildings.id"), nullable=False),
            sa.Column("apartment_id", sa.Integer(), sa.ForeignKey("apartments.id"), nullable=True),
            sa.Column("created_by_user_id", sa.Integer(), sa.ForeignKey("app_users.id"), nullable=True),
            sa.Column("created_by_tenant_id", sa.Integer(), sa.ForeignKey("tenants.id"), nullable=True),
            sa.Column("assigned_to_user_id", sa.Integer(), sa.ForeignKey("app_users.id"), nullable=True),
            sa.Column("title", sa.String(200), nullable=False),
            sa.Column("description", sa.Text(), nullable=False, server_default=""),
            sa.Column("category", sa.String(30), nullable=False, server_default="administrative"),
            sa.Column("priority", sa.String(10), nullable=False, server_default="medium"),
            sa.Column("status", sa.String(20), nullable=False, server_default="open"),
            _flag("is_emergency"),
            _ts("resolved_at", nullable=True),
            _ts("closed_at", nullable=True),
            _ts("created_at"),
            _ts("updated_at"),
        )
        op.create_index("ix_incident_reports_client_id", "incident_reports", ["client_id"])
        op.create_index("ix_incident_reports_building_id", "incident_reports", ["building_id"])

    if not _has_table("incident_comments"):
        op.create_table(
            "incident_comments",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("incident_id", sa.Integer(), sa.ForeignKey("incident_reports.id"), nullable=False),
            sa.Column("author_user_id", sa.Integer(), sa.ForeignKey("app_users.id"), nullable=True),
            sa.Column("message", sa.Text(), nullable=False),
            _ts("created_at"),
        )
        op.create_index("ix_incident_comments_incident_id", "incident_comments", ["incident_id"])

    if not _has_table("incident_images"):
        op.create_table(
            "incident_images",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("incident_id", sa.Integer(), sa.ForeignKey("incident_reports.id"), nullable=False),
            sa.Column("storage_bucket", sa.String(80), nullable=False),
            sa.Column("storage_path", sa.String(500), nullable=False),
            sa.Column("uploaded_by_user_id", sa.Integer(), sa.ForeignKey("app_users.id"), nullable=True),
            _ts("created_at"),
        )
        op.create_index("ix_incident_images_incident_id", "incident_images", ["incident_id"])

    # -------------------------
    # Polls
    # -------------------------
    if not _has_table("polls"):
        op.create_table(
            "polls",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("client_id", sa.Integer(), sa.ForeignKey("clients.id"), nullable=False),
            sa.Column("building_id", sa.Integer(), sa.ForeignKey("buildings.id"), nullable=False),
            sa.Column("type", sa.String(20), nullable=False),
            sa.Column("title", sa.String(200), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("max_choices", sa.Integer(), nullable=True),
            _flag("allow_change_until_deadline"),
            _flag("allow_abstain", "true"),
            _flag("allow_comments"),
            _flag("allow_anonymous"),
            sa.Column("rule", sa.String(20), nullable=True),
            sa.Column("supermajority_percent", sa.Float(), nullable=True),
            sa.Column("threshold_percent", sa.Float(), nullable=True),
            sa.Column("winners_count", sa.Integer(), nullable=True),
            sa.Column("score_aggregation", sa.String(10), nullable=True),
            _ts("starts_at", nullable=True),
            _ts("ends_at", nullable=True),
            sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
            _ts("created_at"),
            _ts("closed_at", nullable=True),
        )
        op.create_index("ix_polls_client_id", "polls", ["client_id"])
        op.create_index("ix_polls_building_id", "polls", ["building_id"])

    if not _has_table("poll_options"):
        op.create_table(
            "poll_options",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("poll_id", sa.Integer(), sa.ForeignKey("polls.id"), nullable=False),
            sa.Column("label", sa.String(200), nullable=False),
            sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        )
        op.create_index("ix_poll_options_poll_id", "poll_options", ["poll_id"])

    if not _has_table("poll_votes"):
        op.create_table(
            "poll_votes",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("poll_id", sa.Integer(), sa.ForeignKey("polls.id"), nullable=False),
            sa.Column("tenant_id", sa.Integer(), sa.ForeignKey("tenants.id"), nullable=False),
            sa.Column("apartment_id", sa.Integer(), sa.ForeignKey("apartments.id"), nullable=True),
            sa.Column("status", sa.String(10), nullable=False, server_default="cast"),
            _flag("abstain"),
            _flag("is_anonymous"),
            sa.Column("comment", sa.Text(), nullable=True),
            sa.Column("choice_bool", sa.Boolean(), nullable=True),
            sa.Column("choice_option_ids", sa.JSON(), nullable=True),
            sa.Column("ranks", sa.JSON(), nullable=True),
            sa.Column("scores", sa.JSON(), nullable=True),
            _ts("cast_at"),
            sa.UniqueConstraint("poll_id", "tenant_id", name="uq_poll_votes_poll_tenant"),
        )
        op.create_index("ix_poll_votes_poll_id", "poll_votes", ["poll_id"])
        op.create_index("ix_poll_votes_tenant_id", "poll_votes", ["tenant_id"])

    # -------------------------
    # Subscriptions
    # -------------------------
    if not _has_table("subscription_plans"):
        op.create_table(
            "subscription_plans",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("name", sa.String(80), nullable=False, unique=True),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("status", sa.String(20), nullable=False, server_default="active"),
            sa.Column("base_price_per_month", sa.Float(), nullable=False, server_default="0"),
            _flag("is_discounted"),
            sa.Column("discount_percentage", sa.Float(), nullable=False, server_default="0"),
            _flag("can_bill_yearly"),
            sa.Column("yearly_discount_percentage", sa.Float(), nullable=False, server_default="0"),
            sa.Column("max_apartments", sa.Integer(), nullable=True),
            sa.Column("features_json", sa.JSON(), nullable=True),
            _ts("created_at"),
            _ts("updated_at"),
        )

    if not _has_table("client_subscriptions"):
        op.create_table(
            "client_subscriptions",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("client_id", sa.Integer(), sa.ForeignKey("clients.id"), nullable=False),
            sa.Column("plan_id", sa.Integer(), sa.ForeignKey("subscription_plans.id"), nullable=True),
            sa.Column("status", sa.String(20), nullable=False, server_default="trialing"),
            _flag("is_billed_yearly"),
            sa.Column("total_price", sa.Float(), nullable=False, server_default="0"),
            _ts("next_payment_date", nullable=True),
            _ts("created_at"),
            _ts("updated_at"),
        )
        op.create_index("ix_client_subscriptions_client_id", "client_subscriptions", ["client_id"])

    # -------------------------
    # Notifications / calendar / social
    # -------------------------
    if not _has_table("notifications"):
        op.create_table(
            "notifications",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("app_users.id"), nullable=True),
            sa.Column("type", sa.String(20), nullable=False, server_default="system"),
            sa.Column("title", sa.String(200), nullable=False, server_default=""),
            sa.Column("description", sa.Text(), nullable=False, server_default=""),
            sa.Column("url", sa.String(300), nullable=True),
            sa.Column("action_token", sa.String(160), nullable=True),
            _flag("is_read"),
            sa.Column("building_id", sa.Integer(), sa.ForeignKey("buildings.id", ondelete="SET NULL"), nullable=True),
            sa.Column(
                "announcement_id",
                sa.Integer(),
                sa.ForeignKey("announcements.id", ondelete="SET NULL"),
                nullable=True,
            ),
            _ts("created_at"),
        )
        op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
        op.create_index("ix_notifications_action_token", "notifications", ["action_token"])

    if not _has_table("calendar_events"):
        op.create_table(
            "calendar_events",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("client_id", sa.Integer(), sa.ForeignKey("clients.id"), nullable=False),
            sa.Column("building_id", sa.Integer(), sa.ForeignKey("buildings.id"), nullable=True),
            sa.Column("title", sa.String(200), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            _flag("all_day"),
            sa.Column("calendar_event_type", sa.String(40), nullable=True),
            _ts("start_date_time"),
            _ts("end_date_time"),
            _ts("created_at"),
        )
        op.create_index("ix_calendar_events_client_id", "calendar_events", ["client_id"])
        op.create_index("ix_calendar_events_building_id", "calendar_events", ["building_id"])
        op.create_index("ix_calendar_events_start_date_time", "calendar_events", ["start_date_time"])

    if not _has_table("tenant_posts"):
        op.create_table(
            "tenant_posts",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("tenant_id", sa.Integer(), sa.ForeignKey("tenants.id"), nullable=False),
            sa.Column("building_id", sa.Integer(), sa.ForeignKey("buildings.id"), nullable=False),
            sa.Column("content_text", sa.Text(), nullable=False),
            sa.Column("image_path", sa.String(500), nullable=True),
            _flag("is_public", "true"),
            _ts("created_at"),
            _ts("updated_at"),
        )
        op.create_index("ix_tenant_posts_tenant_id", "tenant_posts", ["tenant_id"])
        op.create_index("ix_tenant_posts_building_id", "tenant_posts", ["building_id"])

    if not _has_table("post_reactions"):
        op.create_table(
            "post_reactions",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("post_id", sa.Integer(), sa.ForeignKey("tenant_posts.id"), nullable=False),
            sa.Column("tenant_id", sa.Integer(), sa.ForeignKey("tenants.id"), nullable=False),
            sa.Column("emoji", sa.String(32), nullable=False),
            _ts("created_at"),
            sa.UniqueConstraint("post_id", "tenant_id", name="uq_post_reactions_post_tenant"),
        )
        op.create_index("ix_post_reactions_post_id", "post_reactions", ["post_id"])
        op.create_index("ix_post_reactions_tenant_id", "post_reactions", ["tenant_id"])


def downgrade() -> None:
    for table in (
        "post_reactions",
        "tenant_posts",
        "calendar_events",
        "notifications",
        "client_subscriptions",
        "subscription_plans",
        "poll_votes",
        "poll_options",
        "polls",
        "incident_images",
        "incident_comments",
        "incident_reports",
        "announcement_buildings",
        "announcements",
        "tenants",
        "apartment_images",
        "apartments",
        "building_images",
        "buildings",
        "audit_events",
        "server_logs",
        "client_memberships",
        "app_users",
        "clients",
    ):
        if _has_table(table):
            op.drop_table(table)
