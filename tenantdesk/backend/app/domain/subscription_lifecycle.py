# backend/app/domain/subscription_lifecycle.py
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

DAY_SECONDS = 60 * 60 * 24


@dataclass(frozen=True)
class SubscriptionCheck:
    expired: bool
    new_status: str
    days_until_expiration: Optional[int]
    reminder_due: bool


def days_until(next_payment_date: datetime, now: datetime) -> int:
    """Whole days remaining, rounded up (23 hours left counts as 1 day)."""
    return math.ceil((next_payment_date - now).total_seconds() / DAY_SECONDS)


def evaluate_subscription(
    *,
    status: str,
    next_payment_date: Optional[datetime],
    now: datetime,
    reminder_days: Iterable[int] = (7, 3, 1),
) -> SubscriptionCheck:
    """
    A subscription is expired once canceled or once its next payment date has
    passed. Otherwise, when the remaining whole days hit one of reminder_days,
    the client is due an "ending soon" reminder.
    """
    expired = status == "canceled" or (next_payment_date is not None and next_payment_date < now)

    remaining: Optional[int] = None
    reminder_due = False
    if next_payment_date is not None and not expired and status != "expired":
        remaining = days_until(next_payment_date, now)
        reminder_due = remaining in set(reminder_days)

    return SubscriptionCheck(
        expired=expired,
        new_status="expired" if expired else status,
        days_until_expiration=remaining,
        reminder_due=reminder_due,
    )
