# logplatform/utils/timeutil.py
"""
Timestamp helpers shared by the hot store, the archive and the API.

Convention: datetimes are naive UTC everywhere inside the process (the same
choice SQLite forces on us), truncated to milliseconds, and rendered as
ISO 8601 with a trailing "Z" at every boundary.
"""

from __future__ import annotations

from datetime import datetime, time, timezone

from dateutil import parser as dtparser

EPOCH = datetime(1970, 1, 1)


def utcnow() -> datetime:
    return truncate_ms(datetime.now(timezone.utc).replace(tzinfo=None))


def truncate_ms(dt: datetime) -> datetime:
    return dt.replace(microsecond=(dt.microsecond // 1000) * 1000)


def to_utc_naive(dt: datetime) -> datetime:
    """tz-aware -> converted to UTC; tz-naive -> assumed to already be UTC."""
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def parse_timestamp(value: str) -> datetime:
    """
    Parse an ISO 8601 string to a naive UTC datetime (millisecond precision).

    Raises ValueError for anything dateutil cannot read as ISO 8601.
    """
    if not isinstance(value, str) or not value.strip():
        raise ValueError("timestamp must be a non-empty string")
    return truncate_ms(to_utc_naive(dtparser.isoparse(value.strip())))


def iso_z(dt: datetime) -> str:
    return to_utc_naive(dt).isoformat(timespec="milliseconds") + "Z"


def start_of_day(dt: datetime) -> datetime:
    return datetime.combine(dt.date(), time.min)
