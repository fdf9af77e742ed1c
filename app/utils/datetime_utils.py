"""
Timezone-aware datetime helpers.
- Store and compute in UTC in DB.
- API responses expose datetimes as ISO-8601 UTC with Z; display helpers use settings.TZ.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from app.core.config import settings

UTC = timezone.utc


def local_zone() -> ZoneInfo:
    """Display timezone configured for the pharmacy (settings.TZ)."""
    return ZoneInfo(settings.TZ)


def now_utc() -> datetime:
    """Current time in UTC (timezone-aware). Use for clock_in_time, clock_out_time, created_at, etc."""
    return datetime.now(UTC)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """If dt is naive, treat as UTC and return timezone-aware UTC. If already aware, convert to UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    else:
        dt = dt.astimezone(UTC)
    return dt


def iso_8601_utc(dt: Optional[datetime]) -> Optional[str]:
    """ISO-8601 with Z for UTC. Used for all API response datetime fields."""
    if dt is None:
        return None
    utc = ensure_utc(dt)
    s = utc.isoformat()
    if s.endswith("+00:00"):
        s = s[:-6] + "Z"
    return s


def elapsed_since(start: Optional[datetime], now: Optional[datetime] = None) -> timedelta:
    """Elapsed time from start to now (never negative). Naive datetimes are treated as UTC."""
    if start is None:
        return timedelta(0)
    delta = ensure_utc(now or now_utc()) - ensure_utc(start)
    return max(delta, timedelta(0))


def format_hours_minutes(delta: timedelta) -> str:
    """Whole hours and minutes, e.g. '7h 45m'. Seconds are truncated."""
    total_minutes = int(delta.total_seconds() // 60)
    hours, minutes = divmod(max(total_minutes, 0), 60)
    return f"{hours}h {minutes}m"


def hours_between(start: datetime, end: datetime) -> float:
    """Hours between two datetimes, rounded to 2 decimals."""
    seconds = (ensure_utc(end) - ensure_utc(start)).total_seconds()
    return round(max(seconds, 0) / 3600, 2)
