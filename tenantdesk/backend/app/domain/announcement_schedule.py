# backend/app/domain/announcement_schedule.py
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def scheduled_at_utc(scheduled_at: datetime, tzid: Optional[str]) -> datetime:
    """
    scheduled_at is stored as the wall-clock time the author picked.
    Interpreted in tzid when given (unknown zones fall back to UTC);
    returned as naive UTC to compare with datetime.utcnow().
    """
    if scheduled_at.tzinfo is not None:
        return scheduled_at.astimezone(timezone.utc).replace(tzinfo=None)

    tz = timezone.utc
    if tzid:
        try:
            tz = ZoneInfo(tzid)
        except (ZoneInfoNotFoundError, ValueError):
            tz = timezone.utc
    return scheduled_at.replace(tzinfo=tz).astimezone(timezone.utc).replace(tzinfo=None)


def is_due(
    *,
    schedule_enabled: bool,
    scheduled_at: Optional[datetime],
    tzid: Optional[str],
    now: datetime,
    forward_grace_seconds: int = 30,
) -> bool:
    """Anything at or before now + grace is due, however far in the past."""
    if not schedule_enabled or scheduled_at is None:
        return False
    return scheduled_at_utc(scheduled_at, tzid) <= now + timedelta(seconds=forward_grace_seconds)
