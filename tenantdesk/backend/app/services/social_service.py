# backend/app/services/social_service.py
from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..clients.storage import StorageClient, StorageError
from ..config import settings
from ..domain.errors import ActionError
from ..domain.reactions import compute_reaction_aggregates, toggle_decision
from ..models import PostComment, PostReaction, TenantPost

log = logging.getLogger("tenantdesk.social")


def react(db: Session, *, post: TenantPost, tenant_id: int, emoji: str) -> dict[str, Any]:
    emoji = (emoji or "").strip()
    if not emoji:
        raise ActionError("Emoji is required")

    row = db.scalar(select(PostReaction).where(PostReaction.post_id == post.id, PostReaction.tenant_id == tenant_id))
    action = toggle_decision(row.emoji if row is not None else None, emoji)

    if action == "added":
        db.add(PostReaction(post_id=post.id, tenant_id=tenant_id, emoji=emoji, created_at=datetime.utcnow()))
    elif action == "removed":
        db.delete(row)
    else:
        row.emoji = emoji
        row.created_at = datetime.utcnow()
        db.add(row)
    db.flush()
    return {"action": action, "emoji": None if action == "removed" else emoji}


def list_posts(
    db: Session,
    *,
    building_id: int,
    current_tenant_id: Optional[int],
    storage: Optional[StorageClient] = None,
    limit: int = 50,
    offset: int = 0,
) -> list[dict[str, Any]]:
    """Feed for one building with reaction aggregates and signed image urls."""
    posts = list(
        db.scalars(
            select(TenantPost)
            .where(TenantPost.building_id == building_id)
            .where((TenantPost.is_public.is_(True)) | (TenantPost.tenant_id == current_tenant_id))
            .order_by(TenantPost.created_at.desc(), TenantPost.id.desc())
            .limit(limit)
            .offset(offset)
        ).all()
    )
    if not posts:
        return []

    ids = [p.id for p in posts]
    reaction_rows = db.execute(
        select(PostReaction.post_id, PostReaction.emoji, PostReaction.tenant_id)
        .where(PostReaction.post_id.in_(ids))
        .order_by(PostReaction.created_at.asc(), PostReaction.id.asc())
    ).mappings().all()
    reaction_map, user_map = compute_reaction_aggregates(reaction_rows, current_tenant_id)
    comment_counts = dict(
        db.execute(
            select(PostComment.post_id, func.count(PostComment.id))
            .where(PostComment.post_id.in_(ids))
            .group_by(PostComment.post_id)
        ).all()
    )

    urls: dict[str, str] = {}
    paths = [p.image_path for p in posts if p.image_path]
    if storage is not None and paths:
        try:
            urls = storage.sign_paths(settings.storage_default_bucket, paths)
        except StorageError:
            # feed still renders without images
            log.warning("signing post images failed", extra={"building_id": building_id})

    out = []
    for p in posts:
        out.append(
            {
                "id": p.id,
                "tenant_id": p.tenant_id,
                "building_id": p.building_id,
                "content_text": p.content_text,
                "image_path": p.image_path,
                "image_url": urls.get((p.image_path or "").lstrip("/")),
                "is_public": p.is_public,
                "created_at": p.created_at,
                "reactions": [asdict(r) for r in reaction_map.get(p.id, [])],
                "user_reaction": user_map.get(p.id),
                "comments_count": int(comment_counts.get(p.id, 0)),
            }
        )
    return out


def list_comments(db: Session, *, post: TenantPost) -> list[PostComment]:
    q = select(PostComment).where(PostComment.post_id == post.id).order_by(PostComment.created_at.asc(), PostComment.id)
    return list(db.scalars(q).all())


def add_comment(db: Session, *, post: TenantPost, tenant_id: int, content_text: str) -> PostComment:
    text = (content_text or "").strip()
    if not text:
        raise ActionError("Comment cannot be empty")
    now = datetime.utcnow()
    row = PostComment(post_id=post.id, tenant_id=tenant_id, content_text=text, created_at=now, updated_at=now)
    db.add(row)
    db.flush()
    return row


def own_comment(db: Session, *, comment_id: int, tenant_id: int, building_id: int) -> PostComment:
    """A comment in the tenant's building, written by that tenant."""
    row = db.scalar(
        select(PostComment)
        .join(TenantPost, TenantPost.id == PostComment.post_id)
        .where(PostComment.id == comment_id, TenantPost.building_id == building_id)
    )
    if row is None:
        raise ActionError("Comment not found", status_code=404)
    if row.tenant_id != tenant_id:
        raise ActionError("You can only change your own comments", status_code=403)
    return row
