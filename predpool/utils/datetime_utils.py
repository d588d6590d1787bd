"""Datetime helpers for the API layer.

TIME CONVENTION:
All stored datetimes (kickoff_at, deadline_at, updated_at) are UTC and
timezone-aware. Match days shown to players follow the pool's display
timezone (Moscow by default), so a 01:30 MSK kickoff belongs to that MSK
date even though it is the previous day in UTC.
"""

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from ..config import settings


def display_zone() -> ZoneInfo:
    return ZoneInfo(settings.display_timezone)


def now_utc() -> datetime:
    """Get the current time in UTC, timezone-aware."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC; convert aware ones to UTC.

    SQLite hands back naive values even for ``DateTime(timezone=True)``
    columns, so comparisons go through here.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def match_day(kickoff_at: datetime) -> date:
    """Calendar day of a kickoff in the display timezone."""
    return ensure_utc(kickoff_at).astimezone(display_zone()).date()

