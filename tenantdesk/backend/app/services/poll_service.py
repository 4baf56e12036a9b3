# backend/app/services/poll_service.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from ..domain.errors import ActionError, ConflictError
from ..domain.poll_tally import Ballot, PollResult, tally
from ..models import Poll, PollOption, PollVote


def replace_options(db: Session, *, poll: Poll, labels: list[str]) -> None:
    if poll.votes:
        raise ConflictError("Options cannot change once votes were cast")
    db.execute(delete(PollOption).where(PollOption.poll_id == poll.id))
    for i, label in enumerate(labels):
        db.add(PollOption(poll_id=poll.id, label=label.strip(), sort_order=i))
    db.flush()
    db.refresh(poll)


def _option_ids(poll: Poll) -> list[int]:
    return [int(o.id) for o in sorted(poll.options, key=lambda o: (o.sort_order, o.id))]


def validate_ballot(poll: Poll, vote: dict[str, Any]) -> dict[str, Any]:
    """
    Checks a submitted ballot against the poll's type and settings.
    Returns the column values to store.
    """
    valid = set(_option_ids(poll))
    out: dict[str, Any] = {
        "abstain": bool(vote.get("abstain")),
        "is_anonymous": bool(vote.get("is_anonymous")),
        "comment": (vote.get("comment") or None),
        "choice_bool": None,
        "choice_option_ids": None,
        "ranks": None,
        "scores": None,
    }

    if out["is_anonymous"] and not poll.allow_anonymous:
        raise ActionError("Anonymous voting is not allowed for this poll")
    if out["comment"] and not poll.allow_comments:
        raise ActionError("Comments are not allowed for this poll")

    if out["abstain"]:
        if not poll.allow_abstain:
            raise ActionError("Abstaining is not allowed for this poll")
        return out

    if poll.type == "yes_no":
        if vote.get("choice_bool") is None:
            raise ActionError("A yes/no answer is required")
        out["choice_bool"] = bool(vote["choice_bool"])
        return out

    if poll.type in ("single_choice", "multiple_choice"):
        ids = [int(x) for x in (vote.get("choice_option_ids") or [])]
        if len(set(ids)) != len(ids):
            raise ActionError("Duplicate options in ballot")
        if any(i not in valid for i in ids):
            raise ActionError("Ballot references an option outside this poll")
        if poll.type == "single_choice" and len(ids) != 1:
            raise ActionError("Select exactly one option")
        if poll.type == "multiple_choice":
            if not ids:
                raise ActionError("Select at least one option")
            if poll.max_choices and len(ids) > int(poll.max_choices):
                raise ActionError(f"Select at most {poll.max_choices} options")
        out["choice_option_ids"] = ids
        return out

    if poll.type == "ranked_choice":
        ranks = [{"option_id": int(r["option_id"]), "rank": int(r["rank"])} for r in (vote.get("ranks") or [])]
        if not ranks:
            raise ActionError("Rank at least one option")
        if any(r["option_id"] not in valid for r in ranks):
            raise ActionError("Ballot references an option outside this poll")
        if len({r["option_id"] for r in ranks}) != len(ranks) or len({r["rank"] for r in ranks}) != len(ranks):
            raise ActionError("Each option and each rank may appear once")
        out["ranks"] = ranks
        return out

    if poll.type == "score":
        scores = [{"option_id": int(s["option_id"]), "score": float(s["score"])} for s in (vote.get("scores") or [])]
        if not scores:
            raise ActionError("Score at least one option")
        if any(s["option_id"] not in valid for s in scores):
            raise ActionError("Ballot references an option outside this poll")
        if len({s["option_id"] for s in scores}) != len(scores):
            raise ActionError("Each option may be scored once")
        out["scores"] = scores
        return out

    raise ActionError(f"Unsupported poll type: {poll.type}")


def ensure_open(poll: Poll, now: datetime) -> None:
    if poll.status != "active":
        raise ActionError("Poll is not active")
    if poll.ends_at is not None and now > poll.ends_at:
        raise ActionError("Poll has ended")


def cast_vote(
    db: Session,
    *,
    poll: Poll,
    tenant_id: int,
    apartment_id: Optional[int],
    vote: dict[str, Any],
    now: Optional[datetime] = None,
) -> PollVote:
    now = now or datetime.utcnow()
    ensure_open(poll, now)
    values = validate_ballot(poll, vote)

    row = db.scalar(select(PollVote).where(PollVote.poll_id == poll.id, PollVote.tenant_id == tenant_id))
    if row is not None and row.status == "cast" and not poll.allow_change_until_deadline:
        raise ConflictError("You have already voted in this poll")

    if row is None:
        row = PollVote(poll_id=poll.id, tenant_id=tenant_id)
    for k, v in values.items():
        setattr(row, k, v)
    row.apartment_id = apartment_id
    row.status = "cast"
    row.cast_at = now
    db.add(row)
    db.flush()
    return row


def revoke_vote(db: Session, *, poll: Poll, tenant_id: int, now: Optional[datetime] = None) -> PollVote:
    now = now or datetime.utcnow()
    ensure_open(poll, now)
    if not poll.allow_change_until_deadline:
        raise ActionError("Votes cannot be changed for this poll")

    row = db.scalar(select(PollVote).where(PollVote.poll_id == poll.id, PollVote.tenant_id == tenant_id))
    if row is None or row.status != "cast":
        raise ActionError("No vote to revoke", status_code=404)
    row.status = "revoked"
    db.add(row)
    db.flush()
    return row


def poll_results(db: Session, poll: Poll) -> PollResult:
    votes = db.scalars(select(PollVote).where(PollVote.poll_id == poll.id, PollVote.status == "cast")).all()
    ballots = [
        Ballot(
            abstain=bool(v.abstain),
            choice_bool=v.choice_bool,
            choice_option_ids=tuple(v.choice_option_ids or ()),
            ranks=tuple(v.ranks or ()),
            scores=tuple(v.scores or ()),
        )
        for v in votes
    ]
    return tally(
        poll_type=poll.type,
        option_ids=_option_ids(poll),
        ballots=ballots,
        rule=poll.rule,
        supermajority_percent=poll.supermajority_percent,
        threshold_percent=poll.threshold_percent,
        winners_count=poll.winners_count,
        score_aggregation=poll.score_aggregation,
    )


def activate_poll(poll: Poll, now: datetime) -> None:
    if poll.status not in ("draft", "scheduled"):
        raise ActionError(f"Cannot activate a {poll.status} poll")
    if poll.type != "yes_no" and len(poll.options) < 2:
        raise ActionError("At least two options are required")
    if poll.starts_at is not None and poll.starts_at > now:
        poll.status = "scheduled"
    else:
        poll.status = "active"
        poll.starts_at = poll.starts_at or now


def close_poll(poll: Poll, now: datetime) -> None:
    if poll.status not in ("active", "scheduled"):
        raise ActionError(f"Cannot close a {poll.status} poll")
    poll.status = "closed"
    poll.closed_at = now


def run_poll_schedule(db: Session, *, now: Optional[datetime] = None) -> dict[str, Any]:
    """Starts scheduled polls whose start passed and closes active polls past their end."""
    now = now or datetime.utcnow()

    to_start = db.scalars(
        select(Poll).where(Poll.status == "scheduled", Poll.starts_at.is_not(None), Poll.starts_at <= now)
    ).all()
    for p in to_start:
        p.status = "active"
    db.flush()

    to_close = db.scalars(
        select(Poll).where(Poll.status == "active", Poll.ends_at.is_not(None), Poll.ends_at <= now)
    ).all()
    for p in to_close:
        p.status = "closed"
        p.closed_at = now

    db.flush()
    return {
        "activated": [int(p.id) for p in to_start],
        "closed": [int(p.id) for p in to_close],
    }
