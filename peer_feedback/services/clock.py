from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(moment: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; everything we store is UTC."""
    if moment is None:
        return None
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def format_completed_at(moment: datetime, tz_name: str) -> str:
    """Long human form, e.g. 'Monday, 19 October 2026 at 3:04:05 pm'."""
    local = as_utc(moment).astimezone(ZoneInfo(tz_name))
    hour = local.hour % 12 or 12
    meridiem = "am" if local.hour < 12 else "pm"
    return f"{local:%A}, {local.day} {local:%B} {local.year} at {hour}:{local:%M:%S} {meridiem}"
