"""
Calendar-day keys in the device's local timezone.

A day key is a zero-padded ``YYYY-MM-DD`` string. It is always derived
from the local calendar date of an instant, never from a UTC
serialisation, so an entry written at 11:30 PM stays on the day it was
written.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Union

from ._util import Instant, from_ms, to_ms


def local_day_key(instant: Instant) -> str:
    if isinstance(instant, datetime):
        dt = instant.astimezone()
    else:
        dt = from_ms(to_ms(instant))
    return f"{dt.year:04d}-{dt.month:02d}-{dt.day:02d}"


def date_day_key(d: date) -> str:
    return f"{d.year:04d}-{d.month:02d}-{d.day:02d}"


def day_key_to_date(key: str) -> date:
    """Inverse of :func:`local_day_key` at day granularity. Raises ValueError."""
    return date.fromisoformat(key)


def local_midnight(day: Union[str, date]) -> datetime:
    """Aware datetime for 00:00 local time on ``day``."""
    if isinstance(day, str):
        day = day_key_to_date(day)
    return datetime(day.year, day.month, day.day).astimezone()


def is_day_key(value: object) -> bool:
    if not isinstance(value, str) or len(value) != 10:
        return False
    try:
        day_key_to_date(value)
    except ValueError:
        return False
    return True
