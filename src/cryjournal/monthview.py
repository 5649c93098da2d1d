"""Per-day crying counts laid out as a Sunday-first month grid."""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional

from ._util import from_ms
from .daykey import date_day_key, local_day_key
from .models import JournalEntry


@dataclass
class CalendarDay:
    day: int
    date: str
    cry_count: int

    @property
    def has_cried(self) -> bool:
        return self.cry_count > 0


@dataclass
class MonthSummary:
    year: int
    month: int
    total_cries: int
    days_with_crying: int
    dry_days: int


def cry_counts_by_day(entries: Iterable[JournalEntry]) -> dict[str, int]:
    counts: dict[str, int] = {}
    for e in entries:
        if e.was_crying:
            key = local_day_key(e.created_at)
            counts[key] = counts.get(key, 0) + 1
    return counts


def month_grid(year: int, month: int, counts: dict[str, int]) -> list[list[Optional[CalendarDay]]]:
    first_weekday, days_in_month = calendar.monthrange(year, month)
    # monthrange is Monday-first; the grid starts on Sunday
    lead = (first_weekday + 1) % 7

    weeks: list[list[Optional[CalendarDay]]] = []
    week: list[Optional[CalendarDay]] = [None] * lead
    for day in range(1, days_in_month + 1):
        key = date_day_key(date(year, month, day))
        week.append(CalendarDay(day, key, counts.get(key, 0)))
        if len(week) == 7:
            weeks.append(week)
            week = []
    if week:
        week.extend([None] * (7 - len(week)))
        weeks.append(week)
    return weeks


def month_summary(entries: Iterable[JournalEntry], year: int, month: int) -> MonthSummary:
    total = 0
    days: set[str] = set()
    for e in entries:
        if not e.was_crying:
            continue
        dt = from_ms(e.created_at)
        if dt.year == year and dt.month == month:
            total += 1
            days.add(local_day_key(dt))
    days_in_month = calendar.monthrange(year, month)[1]
    return MonthSummary(
        year=year,
        month=month,
        total_cries=total,
        days_with_crying=len(days),
        dry_days=days_in_month - len(days),
    )
