from __future__ import annotations
from datetime import datetime, timedelta, timezone


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


def to_iso(dt: datetime) -> str:
    """Serialise a datetime the way every timestamp column stores it."""
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt.isoformat(timespec="seconds") + "Z"


def utc_now_iso() -> str:
    return to_iso(utc_now())


def days_ago_iso(days: int, now: datetime | None = None) -> str:
    return to_iso((now or utc_now()) - timedelta(days=days))


def parse_iso(ts: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp string into an aware UTC datetime.
    Naive values are treated as UTC. Returns None if ts is falsy or unparseable.
    """
    if not ts:
        return None
    try:
        dt = datetime.fromisoformat(ts.replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def seconds_between(start_iso: str | None, end_iso: str | None) -> float | None:
    """Return seconds between start and end, or None when either is missing."""
    s = parse_iso(start_iso)
    e = parse_iso(end_iso)
    if not s or not e:
        return None
    return max((e - s).total_seconds(), 0.0)


def format_duration(seconds: float | None) -> str:
    """Render a duration as HH:MM:SS; hours may exceed 24."""
    if seconds is None:
        return "00:00:00"
    total = int(round(seconds))
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"
