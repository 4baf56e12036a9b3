"""announcement attachments and post comments

Revision ID: 0002_attachments_comments
Revises: 0001_init
Create Date: 2026-10-19
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect

revision = "0002_attachments_comments"
down_revision = "0001_init"
branch_labels = None
depends_on = None


def _has_table(name: str) -> bool:
    return name in inspect(op.get_bind()).get_table_names()


def upgrade() -> None:
    if not _has_table("announcement_images"):
        op.create_table(
            "announcement_images",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("announcement_id", sa.Integer(), sa.ForeignKey("announcements.id"), nullable=False),
            sa.Column("storage_bucket", sa.String(80), nullable=False),
            sa.Column("storage_path", sa.String(500), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False),
        )
        op.create_index("ix_announcement_images_announcement_id", "announcement_images", ["announcement_id"])

    if not _has_table("announcement_documents"):
        op.create_table(
            "announcement_documents",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("announcement_id", sa.Integer(), sa.ForeignKey("announcements.id"), nullable=False),
            sa.Column("storage_bucket", sa.String(80), nullable=False),
            sa.Column("storage_path", sa.String(500), nullable=False),
            sa.Column("file_name", sa.String(255), nullable=False),
            sa.Column("mime_type", sa.String(120), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False),
        )
        op.create_index(
            "ix_announcement_documents_announcement_id", "announcement_documents", ["announcement_id"]
        )

    if not _has_table("post_comments"):
        op.create_table(
            "post_comments",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("post_id", sa.Integer(), sa.ForeignKey("tenant_posts.id"), nullable=False),
            sa.Column("tenant_id", sa.Integer(), sa.ForeignKey("tenants.id"), nullable=False),
            sa.Column("content_text", sa.Text(), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
        )
        op.create_index("ix_post_comments_post_id", "post_comments", ["post_id"])
        op.create_index("ix_post_comments_tenant_id", "post_comments", ["tenant_id"])


def downgrade() -> None:
    for table in ("post_comments", "announcement_documents", "announcement_images"):
        if _has_table(table):
            op.drop_table(table)
