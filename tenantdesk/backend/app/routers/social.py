# backend/app/routers/social.py
from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import delete
from sqlalchemy.orm import Session

from ..auth import Principal, require_tenant
from ..clients.storage import StorageClient, get_storage
from ..db import get_db
from ..domain.server_log import track_action
from ..models import PostComment, PostReaction, TenantPost
from ..schemas import PostCommentIn, PostCommentOut, PostCreate, PostOut, ReactIn
from ..services.ownership import must_get_post, must_scope_path
from ..services.social_service import add_comment, list_comments, list_posts, own_comment, react

router = APIRouter(prefix="/social", tags=["social"])


@router.get("/posts", response_model=list[PostOut])
def feed(
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    storage: StorageClient = Depends(get_storage),
    p: Principal = Depends(require_tenant),
):
    return list_posts(
        db,
        building_id=int(p.building_id),
        current_tenant_id=p.tenant_id,
        storage=storage if storage.enabled() else None,
        limit=limit,
        offset=offset,
    )


@router.post("/posts", response_model=PostOut)
def create_post(payload: PostCreate, db: Session = Depends(get_db), p: Principal = Depends(require_tenant)):
    with track_action(db, "createPost", user_id=p.user_id, client_id=p.client_id):
        now = datetime.utcnow()
        row = TenantPost(
            tenant_id=p.tenant_id,
            building_id=p.building_id,
            content_text=payload.content_text.strip(),
            image_path=must_scope_path(client_id=p.client_id, path=payload.image_path) if payload.image_path else None,
            is_public=payload.is_public,
            created_at=now,
            updated_at=now,
        )
        db.add(row)
        db.flush()
    return PostOut(
        id=row.id,
        tenant_id=row.tenant_id,
        building_id=row.building_id,
        content_text=row.content_text,
        image_path=row.image_path,
        is_public=row.is_public,
        created_at=row.created_at,
    )


@router.delete("/posts/{post_id}")
def remove_post(post_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_tenant)):
    row = must_get_post(db, building_id=int(p.building_id), post_id=post_id)
    if row.tenant_id != p.tenant_id:
        raise HTTPException(status_code=403, detail="Only the author can delete a post")
    with track_action(db, "deletePost", user_id=p.user_id, client_id=p.client_id, payload={"post_id": row.id}):
        db.execute(delete(PostComment).where(PostComment.post_id == row.id))
        db.execute(delete(PostReaction).where(PostReaction.post_id == row.id))
        db.delete(row)
    return {"success": True}


@router.post("/posts/{post_id}/react")
def react_to_post(post_id: int, payload: ReactIn, db: Session = Depends(get_db), p: Principal = Depends(require_tenant)):
    post = must_get_post(db, building_id=int(p.building_id), post_id=post_id)
    with track_action(
        db, "reactToPost", user_id=p.user_id, client_id=p.client_id, payload={"post_id": post.id, "emoji": payload.emoji}
    ) as extra:
        out = react(db, post=post, tenant_id=int(p.tenant_id), emoji=payload.emoji)
        extra["result"] = out["action"]
    return {"success": True, **out}


@router.get("/posts/{post_id}/comments", response_model=list[PostCommentOut])
def post_comments(post_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_tenant)):
    post = must_get_post(db, building_id=int(p.building_id), post_id=post_id)
    return list_comments(db, post=post)


@router.post("/posts/{post_id}/comments", response_model=PostCommentOut)
def comment_on_post(
    post_id: int, payload: PostCommentIn, db: Session = Depends(get_db), p: Principal = Depends(require_tenant)
):
    post = must_get_post(db, building_id=int(p.building_id), post_id=post_id)
    with track_action(db, "createPostComment", user_id=p.user_id, client_id=p.client_id, payload={"post_id": post.id}):
        row = add_comment(db, post=post, tenant_id=int(p.tenant_id), content_text=payload.content_text)
    return row


@router.put("/comments/{comment_id}", response_model=PostCommentOut)
def edit_comment(
    comment_id: int, payload: PostCommentIn, db: Session = Depends(get_db), p: Principal = Depends(require_tenant)
):
    with track_action(
        db, "updatePostComment", user_id=p.user_id, client_id=p.client_id, payload={"comment_id": comment_id}
    ):
        row = own_comment(db, comment_id=comment_id, tenant_id=int(p.tenant_id), building_id=int(p.building_id))
        row.content_text = payload.content_text.strip()
        row.updated_at = datetime.utcnow()
        db.add(row)
        db.flush()
    return row


@router.delete("/comments/{comment_id}")
def remove_comment(comment_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_tenant)):
    with track_action(
        db, "deletePostComment", user_id=p.user_id, client_id=p.client_id, payload={"comment_id": comment_id}
    ):
        row = own_comment(db, comment_id=comment_id, tenant_id=int(p.tenant_id), building_id=int(p.building_id))
        db.delete(row)
    return {"success": True}
