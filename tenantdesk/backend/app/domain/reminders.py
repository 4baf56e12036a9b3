# backend/app/domain/reminders.py
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Sequence


def reminder_query_range(
    now: datetime, offsets_minutes: Sequence[int], window_minutes: int
) -> tuple[datetime, datetime]:
    """Start-time range that can contain any due reminder on this tick."""
    window = timedelta(minutes=window_minutes)
    lo = now + timedelta(minutes=min(offsets_minutes)) - window
    hi = now + timedelta(minutes=max(offsets_minutes)) + window
    return lo, hi


def due_offsets(
    start: datetime, now: datetime, offsets_minutes: Sequence[int], window_minutes: int
) -> list[int]:
    """
    Offsets whose target moment (start - offset) falls within the tolerance
    window of now, so the cron cadence does not have to be exact.
    """
    diff = (start - now).total_seconds()
    window = window_minutes * 60
    return [m for m in offsets_minutes if abs(diff - m * 60) <= window]


def calendar_reminder_token(offset_minutes: int, event_id: int) -> str:
    return f"calendar_event_reminder_{int(offset_minutes)}m_{int(event_id)}"
