"""
Time helpers and timezone normalization.

HeritageTrail stores every timestamp as a timezone-aware datetime so visit
records and journal entries from different devices sort correctly.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal
from zoneinfo import ZoneInfo

TimeOfDay = Literal["morning", "afternoon", "evening"]


def ensure_tz(dt: datetime, timezone: str) -> datetime:
    """Ensure `dt` has tzinfo; attach `timezone` if naive."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=ZoneInfo(timezone))
    return dt


def now_in(timezone: str) -> datetime:
    """Return the current time as an aware datetime in `timezone`."""
    return datetime.now(ZoneInfo(timezone))


def time_of_day(dt: datetime) -> TimeOfDay:
    """Bucket a local wall-clock time: 06-12 morning, 12-18 afternoon, otherwise evening."""
    if 6 <= dt.hour < 12:
        return "morning"
    if 12 <= dt.hour < 18:
        return "afternoon"
    return "evening"
