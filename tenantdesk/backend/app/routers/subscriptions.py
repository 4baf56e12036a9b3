# backend/app/routers/subscriptions.py
from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..auth import Principal, require_admin, require_client
from ..db import get_db
from ..domain.audit import audit_write
from ..domain.errors import ActionError, ConflictError
from ..domain.server_log import track_action
from ..models import ClientSubscription, SubscriptionPlan
from ..schemas import PlanOut, PlanUpsert, SubscribeIn, SubscriptionOut
from ..services.subscription_service import cancel, current_subscription, price_for, subscribe

router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])


def _must_get_plan(db: Session, plan_id: int) -> SubscriptionPlan:
    row = db.get(SubscriptionPlan, int(plan_id))
    if row is None:
        raise HTTPException(status_code=404, detail="plan not found")
    return row


@router.get("/plans", response_model=list[PlanOut])
def list_plans(include_inactive: bool = Query(default=False), db: Session = Depends(get_db)):
    q = select(SubscriptionPlan).order_by(SubscriptionPlan.base_price_per_month.asc())
    if not include_inactive:
        q = q.where(SubscriptionPlan.status == "active")
    return list(db.scalars(q).all())


@router.get("/plans/{plan_id}/price")
def plan_price(plan_id: int, billed_yearly: bool = Query(default=False), db: Session = Depends(get_db)):
    plan = _must_get_plan(db, plan_id)
    return {"plan_id": plan.id, "billed_yearly": billed_yearly, "total_price": price_for(plan, billed_yearly=billed_yearly)}


@router.post("/plans", response_model=PlanOut)
def create_plan(payload: PlanUpsert, db: Session = Depends(get_db), p: Principal = Depends(require_admin)):
    with track_action(db, "createSubscriptionPlan", user_id=p.user_id, payload={"name": payload.name}):
        if db.scalar(select(SubscriptionPlan).where(SubscriptionPlan.name == payload.name)):
            raise ConflictError("plan name already exists")
        row = SubscriptionPlan(**payload.model_dump())
        db.add(row)
        db.flush()
        audit_write(
            db,
            client_id=None,
            actor_user_id=p.user_id,
            action="plan.create",
            entity_type="SubscriptionPlan",
            entity_id=row.id,
            after=row.model_dump(),
        )
    return row


@router.put("/plans/{plan_id}", response_model=PlanOut)
def update_plan(plan_id: int, payload: PlanUpsert, db: Session = Depends(get_db), p: Principal = Depends(require_admin)):
    row = _must_get_plan(db, plan_id)
    with track_action(db, "updateSubscriptionPlan", user_id=p.user_id, payload={"plan_id": plan_id}):
        clash = db.scalar(
            select(SubscriptionPlan).where(SubscriptionPlan.name == payload.name, SubscriptionPlan.id != plan_id)
        )
        if clash:
            raise ConflictError("plan name already exists")
        before = row.model_dump()
        for k, v in payload.model_dump().items():
            setattr(row, k, v)
        row.updated_at = datetime.utcnow()
        db.add(row)
        db.flush()
        audit_write(
            db,
            client_id=None,
            actor_user_id=p.user_id,
            action="plan.update",
            entity_type="SubscriptionPlan",
            entity_id=row.id,
            before=before,
            after=row.model_dump(),
        )
    return row


@router.delete("/plans/{plan_id}")
def delete_plan(plan_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_admin)):
    row = _must_get_plan(db, plan_id)
    with track_action(db, "deleteSubscriptionPlan", user_id=p.user_id, payload={"plan_id": plan_id}):
        in_use = db.scalar(select(ClientSubscription.id).where(ClientSubscription.plan_id == row.id).limit(1))
        if in_use is not None:
            raise ActionError("Plan is in use by a client subscription; deactivate it instead", status_code=409)
        audit_write(
            db,
            client_id=None,
            actor_user_id=p.user_id,
            action="plan.delete",
            entity_type="SubscriptionPlan",
            entity_id=row.id,
            before=row.model_dump(),
        )
        db.delete(row)
    return {"success": True}


@router.get("/current", response_model=SubscriptionOut | None)
def get_current(db: Session = Depends(get_db), p: Principal = Depends(require_client)):
    return current_subscription(db, client_id=p.client_id)


@router.post("/subscribe", response_model=SubscriptionOut)
def subscribe_to_plan(payload: SubscribeIn, db: Session = Depends(get_db), p: Principal = Depends(require_client)):
    plan = _must_get_plan(db, payload.plan_id)
    with track_action(
        db, "subscribe", user_id=p.user_id, client_id=p.client_id, payload=payload.model_dump()
    ):
        row = subscribe(db, client_id=p.client_id, plan=plan, billed_yearly=payload.is_billed_yearly)
        audit_write(
            db,
            client_id=p.client_id,
            actor_user_id=p.user_id,
            action="subscription.subscribe",
            entity_type="ClientSubscription",
            entity_id=row.id,
            after=row.model_dump(),
        )
    return row


@router.post("/cancel", response_model=SubscriptionOut)
def cancel_subscription(db: Session = Depends(get_db), p: Principal = Depends(require_client)):
    with track_action(db, "cancelSubscription", user_id=p.user_id, client_id=p.client_id):
        row = cancel(db, client_id=p.client_id)
        audit_write(
            db,
            client_id=p.client_id,
            actor_user_id=p.user_id,
            action="subscription.cancel",
            entity_type="ClientSubscription",
            entity_id=row.id,
            after=row.model_dump(),
        )
    return row
