# utils/dates.py
# Timestamp normalization: everything becomes an aware UTC datetime
from __future__ import annotations
from datetime import datetime, date, timezone
from typing import Any

from shopdesk.utils.exceptions import ValidationError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_datetime(value: Any) -> datetime | None:
    """
    Accepts datetime/date, ISO-8601 strings, epoch seconds or milliseconds,
    and exported timestamp maps ({"_seconds": ..} / {"seconds": ..}).
    Naive values are taken as UTC. Returns None when nothing usable is found.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    elif isinstance(value, bool):
        return None
    elif isinstance(value, (int, float)):
        # > year 2286 in seconds means the value is milliseconds
        secs = value / 1000 if value > 1e10 else value
        dt = datetime.fromtimestamp(secs, tz=timezone.utc)
    elif isinstance(value, dict):
        secs = value.get("_seconds", value.get("seconds"))
        if secs is None:
            return None
        nanos = value.get("_nanoseconds", value.get("nanoseconds", 0)) or 0
        dt = datetime.fromtimestamp(float(secs) + nanos / 1e9, tz=timezone.utc)
    elif isinstance(value, str):
        s = value.strip()
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(s)
        except ValueError:
            return None
    else:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_iso(value: Any) -> Any:
    """ISO-8601 string for anything to_datetime understands; other values pass through."""
    dt = to_datetime(value)
    return dt.isoformat() if dt else value


def parse_query_date(value: str | None, field: str) -> datetime | None:
    if value is None or str(value).strip() == "":
        return None
    dt = to_datetime(value)
    if dt is None:
        raise ValidationError(f"Invalid {field}: {value}")
    return dt
