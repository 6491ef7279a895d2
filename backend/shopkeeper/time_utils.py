from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """Current UTC time as a naive datetime (how every timestamp is stored)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Read an ISO-8601 date or datetime from a query string into naive UTC.

    Blank input gives None. Values without an offset are taken as UTC;
    values with "Z" or an offset are shifted to UTC. Raises ValueError on
    anything fromisoformat cannot read.
    """
    if value is None or not value.strip():
        return None

    raw = value.strip()
    if raw.endswith("Z"):
        raw = f"{raw[:-1]}+00:00"

    parsed = datetime.fromisoformat(raw)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def parse_range_end(value: Optional[str]) -> Optional[datetime]:
    """
    Upper bound of an inclusive date range.

    A bare date ("2026-10-17") means the whole day, so it is widened to the
    last microsecond of that day.
    """
    parsed = parse_iso_datetime(value)
    if parsed is not None and len(value.strip()) == 10:
        parsed += timedelta(days=1) - timedelta(microseconds=1)
    return parsed


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """Second-precision ISO-8601 with a trailing "Z"; naive input is UTC."""
    if dt is None:
        return None
    aware = dt if dt.tzinfo is not None else dt.replace(tzinfo=timezone.utc)
    return aware.astimezone(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")
