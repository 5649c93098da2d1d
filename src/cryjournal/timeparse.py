from __future__ import annotations

import re
from datetime import date, datetime, timedelta
from typing import Optional

from ._util import _now_local, _with_local_tz

_DAYWORDS = {"today": 0, "yesterday": -1, "tomorrow": 1}

_DATE_TIME_FORMATS = [
    "%Y-%m-%d %I:%M%p",
    "%Y-%m-%d %I:%M %p",
    "%Y-%m-%d %I%p",
    "%Y-%m-%d %H:%M",
    "%Y/%m/%d %I:%M%p",
    "%Y/%m/%d %I:%M %p",
    "%Y/%m/%d %H:%M",
]

_TIME_FORMATS = [
    "%I:%M%p",
    "%I:%M %p",
    "%I%p",
    "%H:%M",
]


def parse_when(value: Optional[str], now: Optional[datetime] = None) -> datetime:
    """
    Parse flexible user time into an aware local datetime.
    Accepts:
      - None / blank -> now
      - ISO 8601 (with or without tz; naive assumed local)
      - "7:34am", "7:34 am", "19:34", "7am" (today)
      - "2026-02-25 7:34am", "2026-02-25 19:34"
      - relative: "3 days ago", "2 hours ago", "15 minutes ago"
      - keywords: "today 14:30", "yesterday 9am", "tomorrow 7pm"
    Raises ValueError when nothing matches.
    """
    now = _with_local_tz(now) if now else _now_local()
    if not value or not value.strip():
        return now

    raw = value.strip()
    s = raw.lower()

    try:
        return _with_local_tz(datetime.fromisoformat(raw))
    except ValueError:
        pass

    m = re.fullmatch(r"(\d+)\s*(day|days|hour|hours|minute|minutes)\s*ago", s)
    if m:
        n = int(m.group(1))
        unit = m.group(2)
        if "day" in unit:
            return now - timedelta(days=n)
        if "hour" in unit:
            return now - timedelta(hours=n)
        return now - timedelta(minutes=n)

    m = re.fullmatch(r"(today|yesterday|tomorrow)\s+(.+)", s)
    if m:
        base = now + timedelta(days=_DAYWORDS[m.group(1)])
        return _parse_time_only(m.group(2), base)

    for fmt in _DATE_TIME_FORMATS:
        try:
            return datetime.strptime(raw, fmt).astimezone()
        except ValueError:
            continue

    try:
        return _parse_time_only(raw, now)
    except ValueError:
        pass

    raise ValueError(
        f"Could not parse time {value!r}. Try '2026-02-25T07:34:00', "
        f"'2026-02-25 7:34am', '7:34am', 'yesterday 9am' or '3 days ago'."
    )


def _parse_time_only(time_str: str, base_dt: datetime) -> datetime:
    """Apply a time like '9am', '7:34am', '14:30' to base_dt's local date."""
    s = time_str.strip().lower()
    for fmt in _TIME_FORMATS:
        try:
            t = datetime.strptime(s, fmt)
        except ValueError:
            continue
        naive = datetime(base_dt.year, base_dt.month, base_dt.day, t.hour, t.minute)
        return naive.astimezone()
    raise ValueError(f"Could not parse time-only value: {time_str!r}")


def parse_day(value: Optional[str], now: Optional[datetime] = None) -> date:
    """'today', 'yesterday', 'N days ago' or YYYY-MM-DD."""
    now = _with_local_tz(now) if now else _now_local()
    if not value or not value.strip():
        return now.date()
    s = value.strip().lower()
    if s in _DAYWORDS:
        return now.date() + timedelta(days=_DAYWORDS[s])
    m = re.fullmatch(r"(\d+)\s*days?\s*ago", s)
    if m:
        return now.date() - timedelta(days=int(m.group(1)))
    try:
        return date.fromisoformat(s)
    except ValueError as e:
        raise ValueError(f"Could not parse day {value!r}. Try 'today', 'yesterday' or 2026-02-25.") from e


def parse_month(value: Optional[str], now: Optional[datetime] = None) -> tuple[int, int]:
    """'YYYY-MM' -> (year, month); blank -> current month."""
    now = _with_local_tz(now) if now else _now_local()
    if not value or not value.strip():
        return now.year, now.month
    m = re.fullmatch(r"(\d{4})-(\d{1,2})", value.strip())
    if not m or not 1 <= int(m.group(2)) <= 12:
        raise ValueError(f"Could not parse month {value!r}. Try 2026-02.")
    return int(m.group(1)), int(m.group(2))
