"""Time utilities (UTC storage, ISO-8601 on the wire)."""

from datetime import datetime, timezone, tzinfo
from typing import Optional


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_utc(dt: datetime, naive_assumed_tz: tzinfo = timezone.utc) -> datetime:
    """Convert datetime to UTC; naive values are interpreted in naive_assumed_tz."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=naive_assumed_tz)
    return dt.astimezone(timezone.utc)


def to_iso(dt: datetime) -> str:
    """UTC ISO string with a trailing Z."""
    return to_utc(dt).isoformat().replace("+00:00", "Z")


def parse_iso(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO timestamp written by to_iso (or any offset-aware ISO string)."""
    if not value:
        return None
    return to_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
