# backend/app/services/subscription_service.py
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..config import settings
from ..domain.errors import ActionError
from ..domain.pricing import plan_total_price
from ..models import ClientSubscription, SubscriptionPlan

DEFAULT_PLANS = (
    {"name": "Basic", "base_price_per_month": 19.0, "max_apartments": 50, "can_bill_yearly": True, "yearly_discount_percentage": 10.0},
    {"name": "Standard", "base_price_per_month": 49.0, "max_apartments": 250, "can_bill_yearly": True, "yearly_discount_percentage": 15.0},
    {"name": "Premium", "base_price_per_month": 99.0, "max_apartments": None, "can_bill_yearly": True, "yearly_discount_percentage": 20.0},
)


def ensure_default_plans(db: Session) -> None:
    existing = set(db.scalars(select(SubscriptionPlan.name)).all())
    for plan in DEFAULT_PLANS:
        if plan["name"] in existing:
            continue
        db.add(SubscriptionPlan(**plan))
    db.flush()


def current_subscription(db: Session, *, client_id: int) -> Optional[ClientSubscription]:
    return db.scalar(
        select(ClientSubscription)
        .where(ClientSubscription.client_id == int(client_id))
        .order_by(ClientSubscription.id.desc())
        .limit(1)
    )


def price_for(plan: SubscriptionPlan, *, billed_yearly: bool) -> float:
    try:
        return plan_total_price(
            base_price_per_month=plan.base_price_per_month,
            is_discounted=plan.is_discounted,
            discount_percentage=plan.discount_percentage,
            billed_yearly=billed_yearly,
            can_bill_yearly=plan.can_bill_yearly,
            yearly_discount_percentage=plan.yearly_discount_percentage,
        )
    except ValueError as e:
        raise ActionError(str(e))


def start_trial(db: Session, *, client_id: int, now: Optional[datetime] = None) -> ClientSubscription:
    now = now or datetime.utcnow()
    row = ClientSubscription(
        client_id=int(client_id),
        plan_id=None,
        status="trialing",
        total_price=0.0,
        next_payment_date=now + timedelta(days=int(settings.trial_days)),
        created_at=now,
        updated_at=now,
    )
    db.add(row)
    db.flush()
    return row


def subscribe(
    db: Session,
    *,
    client_id: int,
    plan: SubscriptionPlan,
    billed_yearly: bool,
    now: Optional[datetime] = None,
) -> ClientSubscription:
    """Starts or changes the client's plan; the billing period restarts now."""
    if plan.status != "active":
        raise ActionError("Plan is not available")

    now = now or datetime.utcnow()
    row = current_subscription(db, client_id=client_id)
    if row is None:
        row = ClientSubscription(client_id=int(client_id), created_at=now)

    row.plan_id = plan.id
    row.is_billed_yearly = bool(billed_yearly)
    row.total_price = price_for(plan, billed_yearly=billed_yearly)
    row.status = "active"
    row.next_payment_date = now + timedelta(days=365 if billed_yearly else 30)
    row.updated_at = now
    db.add(row)
    db.flush()
    return row


def cancel(db: Session, *, client_id: int) -> ClientSubscription:
    row = current_subscription(db, client_id=client_id)
    if row is None:
        raise ActionError("No subscription", status_code=404)
    if row.status in ("canceled", "expired"):
        raise ActionError(f"Subscription already {row.status}")
    row.status = "canceled"
    row.updated_at = datetime.utcnow()
    db.add(row)
    db.flush()
    return row
