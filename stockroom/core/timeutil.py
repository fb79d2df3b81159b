from __future__ import annotations

from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def resolve_now(now: datetime | None) -> datetime:
    """Return ``now`` as an aware UTC datetime, defaulting to the clock."""

    if now is None:
        return utcnow()
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)


def to_iso(dt: datetime) -> str:
    return resolve_now(dt).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso(ts: str | None) -> datetime | None:
    """Parse an ISO-8601 date or timestamp string.

    Date-only values mean midnight UTC and naive timestamps are taken as UTC.
    Returns None if ts is falsy; raises ``ValueError`` for garbage.
    """
    if not ts:
        return None
    dt = datetime.fromisoformat(ts.strip().replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def whole_days_between(start: datetime, end: datetime) -> int:
    """Return floor((end - start) / 1 day), never negative."""
    seconds = (end - start).total_seconds()
    if seconds <= 0:
        return 0
    return int(seconds // 86400)
