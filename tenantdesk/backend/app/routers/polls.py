# backend/app/routers/polls.py
from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from ..auth import Principal, require_client, require_tenant
from ..db import get_db
from ..domain.audit import audit_write
from ..domain.errors import ActionError
from ..domain.server_log import track_action
from ..models import Poll
from ..schemas import PollOut, PollResultOut, PollUpsert, VoteIn, VoteOut
from ..services.ownership import must_get_building, must_get_poll
from ..services.poll_service import (
    activate_poll,
    cast_vote,
    close_poll,
    poll_results,
    replace_options,
    revoke_vote,
)
from ..services.property_service import delete_poll

router = APIRouter(prefix="/polls", tags=["polls"])


@router.get("", response_model=list[PollOut])
def list_polls(
    building_id: int | None = Query(default=None),
    status: str | None = Query(default=None),
    limit: int = Query(default=200, ge=1, le=2000),
    db: Session = Depends(get_db),
    p: Principal = Depends(require_client),
):
    q = select(Poll).where(Poll.client_id == p.client_id).order_by(desc(Poll.created_at)).limit(limit)
    if building_id is not None:
        q = q.where(Poll.building_id == building_id)
    if status:
        q = q.where(Poll.status == status)
    return list(db.scalars(q).all())


@router.get("/tenant", response_model=list[PollOut])
def tenant_polls(db: Session = Depends(get_db), p: Principal = Depends(require_tenant)):
    q = (
        select(Poll)
        .where(
            Poll.client_id == p.client_id,
            Poll.building_id == p.building_id,
            Poll.status.in_(("active", "scheduled")),
        )
        .order_by(Poll.ends_at.asc(), Poll.id.asc())
    )
    return list(db.scalars(q).all())


@router.get("/{poll_id}", response_model=PollOut)
def get_poll(poll_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_client)):
    return must_get_poll(db, client_id=p.client_id, poll_id=poll_id)


@router.post("", response_model=PollOut)
def create_poll(payload: PollUpsert, db: Session = Depends(get_db), p: Principal = Depends(require_client)):
    must_get_building(db, client_id=p.client_id, building_id=payload.building_id)
    with track_action(db, "createPoll", user_id=p.user_id, client_id=p.client_id):
        row = Poll(**payload.model_dump(exclude={"options"}), client_id=p.client_id, status="draft")
        db.add(row)
        db.flush()
        replace_options(db, poll=row, labels=[o.label for o in payload.options])
        audit_write(
            db,
            client_id=p.client_id,
            actor_user_id=p.user_id,
            action="poll.create",
            entity_type="Poll",
            entity_id=row.id,
            after=row.model_dump(),
        )
    return row


@router.put("/{poll_id}", response_model=PollOut)
def update_poll(
    poll_id: int, payload: PollUpsert, db: Session = Depends(get_db), p: Principal = Depends(require_client)
):
    row = must_get_poll(db, client_id=p.client_id, poll_id=poll_id)
    if payload.building_id != row.building_id:
        must_get_building(db, client_id=p.client_id, building_id=payload.building_id)

    with track_action(db, "updatePoll", user_id=p.user_id, client_id=p.client_id, payload={"poll_id": row.id}):
        if row.status not in ("draft", "scheduled"):
            raise ActionError(f"A {row.status} poll cannot be edited")
        before = row.model_dump()
        for k, v in payload.model_dump(exclude={"options"}).items():
            setattr(row, k, v)
        db.add(row)
        db.flush()
        replace_options(db, poll=row, labels=[o.label for o in payload.options])
        audit_write(
            db,
            client_id=p.client_id,
            actor_user_id=p.user_id,
            action="poll.update",
            entity_type="Poll",
            entity_id=row.id,
            before=before,
            after=row.model_dump(),
        )
    return row


@router.post("/{poll_id}/activate", response_model=PollOut)
def activate(poll_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_client)):
    row = must_get_poll(db, client_id=p.client_id, poll_id=poll_id)
    with track_action(db, "activatePoll", user_id=p.user_id, client_id=p.client_id, payload={"poll_id": row.id}):
        activate_poll(row, datetime.utcnow())
        db.add(row)
    return row


@router.post("/{poll_id}/close", response_model=PollOut)
def close(poll_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_client)):
    row = must_get_poll(db, client_id=p.client_id, poll_id=poll_id)
    with track_action(db, "closePoll", user_id=p.user_id, client_id=p.client_id, payload={"poll_id": row.id}):
        close_poll(row, datetime.utcnow())
        db.add(row)
    return row


@router.post("/{poll_id}/archive", response_model=PollOut)
def archive(poll_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_client)):
    row = must_get_poll(db, client_id=p.client_id, poll_id=poll_id)
    with track_action(db, "archivePoll", user_id=p.user_id, client_id=p.client_id, payload={"poll_id": row.id}):
        if row.status != "closed":
            raise ActionError("Only closed polls can be archived")
        row.status = "archived"
        db.add(row)
    return row


@router.delete("/{poll_id}")
def remove_poll(poll_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_client)):
    row = must_get_poll(db, client_id=p.client_id, poll_id=poll_id)
    with track_action(db, "deletePoll", user_id=p.user_id, client_id=p.client_id, payload={"poll_id": row.id}):
        audit_write(
            db,
            client_id=p.client_id,
            actor_user_id=p.user_id,
            action="poll.delete",
            entity_type="Poll",
            entity_id=row.id,
            before=row.model_dump(),
        )
        delete_poll(db, row)
    return {"success": True}


@router.get("/{poll_id}/results", response_model=PollResultOut)
def results(poll_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_client)):
    row = must_get_poll(db, client_id=p.client_id, poll_id=poll_id)
    r = poll_results(db, row)
    return PollResultOut(
        poll_id=row.id,
        ballots=r.ballots,
        abstentions=r.abstentions,
        values={str(k): v for k, v in r.values.items()},
        winners=[str(w) for w in r.winners],
        decided=r.decided,
        rounds=[{str(k): v for k, v in rnd.items()} for rnd in r.rounds],
    )


@router.post("/{poll_id}/vote", response_model=VoteOut)
def vote(poll_id: int, payload: VoteIn, db: Session = Depends(get_db), p: Principal = Depends(require_tenant)):
    row = must_get_poll(db, client_id=p.client_id, poll_id=poll_id)
    if row.building_id != p.building_id:
        raise ActionError("poll not found", status_code=404)
    with track_action(db, "castVote", user_id=p.user_id, client_id=p.client_id, payload={"poll_id": row.id}):
        v = cast_vote(
            db,
            poll=row,
            tenant_id=int(p.tenant_id),
            apartment_id=p.apartment_id,
            vote=payload.model_dump(),
        )
    return v


@router.delete("/{poll_id}/vote", response_model=VoteOut)
def revoke(poll_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_tenant)):
    row = must_get_poll(db, client_id=p.client_id, poll_id=poll_id)
    if row.building_id != p.building_id:
        raise ActionError("poll not found", status_code=404)
    with track_action(db, "revokeVote", user_id=p.user_id, client_id=p.client_id, payload={"poll_id": row.id}):
        v = revoke_vote(db, poll=row, tenant_id=int(p.tenant_id))
    return v
