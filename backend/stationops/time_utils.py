from __future__ import annotations

from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

from flask import current_app, has_app_context


def station_timezone() -> ZoneInfo:
    name = "UTC"
    if has_app_context():
        name = current_app.config.get("STATION_TIMEZONE") or "UTC"
    return ZoneInfo(name)


def station_now() -> datetime:
    """Server-side 'now' on the station wall clock (naive, canonical)."""
    return datetime.now(station_timezone()).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string and normalize to station-local naive datetime.

    - None / "" -> None
    - "YYYY-MM-DDTHH:MM" (naive) is interpreted as station wall-clock time
    - "...Z" or "...+/-HH:MM" is converted to the station timezone and tzinfo is stripped
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    # Accept trailing Z
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)

    if dt.tzinfo is None:
        return dt

    return dt.astimezone(station_timezone()).replace(tzinfo=None)


def to_iso(dt: Optional[datetime]) -> Optional[str]:
    """Serialize a station-local datetime as ISO-8601 (seconds precision)."""
    if dt is None:
        return None
    return dt.replace(microsecond=0).isoformat()
