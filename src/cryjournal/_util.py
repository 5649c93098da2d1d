"""Shared low-level time helpers used across the package."""

from __future__ import annotations

from datetime import datetime
from typing import Union

Instant = Union[int, float, datetime]

MS_PER_HOUR = 60 * 60 * 1000


def _now_local() -> datetime:
    return datetime.now().astimezone()


def _with_local_tz(dt: datetime) -> datetime:
    # naive values resolve through the local zone at that instant
    return dt.astimezone()


def to_ms(value: Instant) -> int:
    """Milliseconds since the epoch. Naive datetimes are read as local time."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            # astimezone() on a naive value resolves through the local zone
            value = value.astimezone()
        return int(round(value.timestamp() * 1000))
    return int(value)


def from_ms(ms: int) -> datetime:
    return datetime.fromtimestamp(ms / 1000).astimezone()


def hour_label(hour: int) -> str:
    # 0 -> "12 AM", 13 -> "1 PM"
    if hour == 0:
        return "12 AM"
    if hour == 12:
        return "12 PM"
    return f"{hour} AM" if hour < 12 else f"{hour - 12} PM"


def _fmt_time(dt: datetime) -> str:
    # Windows-safe formatting
    try:
        return dt.strftime("%-I:%M %p")
    except ValueError:
        return dt.strftime("%I:%M %p").lstrip("0")
