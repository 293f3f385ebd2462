"""
Date helpers.
Records carry ISO-8601 strings: date-only ("2024-10-01") or full timestamps
("2024-10-01T09:00:00.000Z"). Naive values are treated as UTC.
"""
from datetime import date, datetime, timezone
from typing import Optional

import pytz

from ..errors import ValidationError


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def iso_now() -> str:
    return to_iso(utc_now())


def to_iso(dt: datetime) -> str:
    """Millisecond UTC timestamp with a Z suffix."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=pytz.UTC)
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso(value: Optional[str]) -> Optional[datetime]:
    """Parse a stored date/timestamp; returns None for blank or unparseable values."""
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(text)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=pytz.UTC)
    return dt


def parse_bound(value: Optional[str], name: str) -> Optional[datetime]:
    """Parse a request bound; blank means unbounded, garbage is a 400."""
    if value is None or value == "":
        return None
    dt = parse_iso(value)
    if dt is None:
        raise ValidationError(f"{name} must be an ISO-8601 date")
    return dt


def start_of_day(dt: Optional[datetime]) -> Optional[date]:
    return dt.date() if dt else None


def within(value, lower, upper) -> bool:
    """Inclusive range check; a missing value only passes when there are no bounds."""
    if lower is None and upper is None:
        return True
    if value is None:
        return False
    if lower is not None and value < lower:
        return False
    if upper is not None and value > upper:
        return False
    return True
