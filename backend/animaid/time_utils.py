from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Optional


# Clock signature used by the services; tests inject a fixed clock.
Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_epoch(dt: datetime) -> int:
    """Integer seconds since epoch. Naive datetimes are treated as UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp())


def from_epoch(seconds: int) -> datetime:
    """Inverse of to_epoch, returning a UTC-naive datetime."""
    return datetime.fromtimestamp(int(seconds), tz=timezone.utc).replace(tzinfo=None)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")
