"""
Streak and pattern statistics over a journal snapshot.

Everything here is a pure function of (entries, crying days, now): the
caller decides when to recompute. An optional ``Timeframe`` restricts the
entries and crying days considered. The 7/30-day totals and the six-month
trend ignore the timeframe and are always measured back from ``now``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from ._util import MS_PER_HOUR, Instant, _now_local, _with_local_tz, from_ms, hour_label, to_ms
from .daykey import day_key_to_date, local_day_key, local_midnight
from .models import CryIntensity, CryingDay, JournalEntry

WEEKDAYS = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

TREND_MONTHS = 6
REMINDER_AFTER_HOURS = 24


# -------------------------
# Timeframes
# -------------------------

@dataclass(frozen=True)
class Timeframe:
    """Inclusive [start, end] window."""
    start: datetime
    end: datetime

    def contains(self, instant: Instant) -> bool:
        return to_ms(self.start) <= to_ms(instant) <= to_ms(self.end)

    def contains_day(self, day_key: str) -> bool:
        return local_day_key(self.start) <= day_key <= local_day_key(self.end)


def timeframe_for(window: str, now: Optional[datetime] = None) -> Optional[Timeframe]:
    """
    Preset windows ending now: "7", "30", "90", "365" (days, counting today)
    or "all" (None). Raises ValueError for anything else.
    """
    if window == "all":
        return None
    days = int(window)
    if days < 1:
        raise ValueError(f"window must be at least one day (got {window!r})")
    now = _with_local_tz(now) if now else _now_local()
    start = local_midnight(now.date() - timedelta(days=days - 1))
    return Timeframe(start, now)


# -------------------------
# Result records
# -------------------------

@dataclass
class Streaks:
    current_dry: int = 0
    longest_dry: int = 0
    current_cry: int = 0
    longest_cry: int = 0


@dataclass
class MonthCount:
    year: int
    month: int
    label: str
    count: int


@dataclass
class CryStats:
    total_cries: int = 0
    total_entries: int = 0
    cries_last_7_days: int = 0
    cries_last_30_days: int = 0
    weekday_counts: list[int] = field(default_factory=lambda: [0] * 7)
    max_weekday_count: int = 1
    most_emotional_day: str = WEEKDAYS[0]
    peak_hour: int = 0
    peak_time_label: str = "12 AM"
    monthly_trend: list[MonthCount] = field(default_factory=list)
    max_month_count: int = 1
    streaks: Streaks = field(default_factory=Streaks)
    intensity_counts: dict[int, int] = field(default_factory=lambda: {int(i): 0 for i in CryIntensity})
    average_intensity: float = 0.0
    dominant_intensity: Optional[int] = None
    avg_per_week: float = 0.0

    @property
    def longest_dry_streak(self) -> int:
        return self.streaks.longest_dry

    @property
    def current_dry_streak(self) -> int:
        return self.streaks.current_dry

    @property
    def longest_cry_streak(self) -> int:
        return self.streaks.longest_cry

    @property
    def current_cry_streak(self) -> int:
        return self.streaks.current_cry


# -------------------------
# Pieces
# -------------------------

def compute_streaks(days: Iterable[date], today: date) -> Streaks:
    """
    Walk the distinct crying dates in ascending order.

    A gap of one day extends the current run of crying days; a larger gap
    closes the run and leaves ``gap - 1`` dry days behind it. The days since
    the latest crying date also count as a (current) dry streak.
    """
    ordinals = sorted({d.toordinal() for d in days})
    if not ordinals:
        return Streaks()

    longest_dry = 0
    longest_cry = 0
    run = 1
    for prev, cur in zip(ordinals, ordinals[1:]):
        gap = cur - prev
        if gap > 1:
            longest_dry = max(longest_dry, gap - 1)
            longest_cry = max(longest_cry, run)
            run = 1
        elif gap == 1:
            run += 1
    longest_cry = max(longest_cry, run)

    today_ord = today.toordinal()
    current_dry = max(0, today_ord - ordinals[-1])
    longest_dry = max(longest_dry, current_dry)

    current_cry = 0
    check = today_ord
    for o in reversed(ordinals):
        if check - o in (0, 1):
            current_cry += 1
            check = o
        else:
            break

    return Streaks(
        current_dry=current_dry,
        longest_dry=longest_dry,
        current_cry=current_cry,
        longest_cry=longest_cry,
    )


def _cries_since(days: Iterable[CryingDay], cutoff: datetime) -> int:
    return sum(d.count for d in days if local_midnight(d.date) >= cutoff)


def _shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    y, m0 = divmod(year * 12 + (month - 1) + delta, 12)
    return y, m0 + 1


def monthly_trend(days: Iterable[CryingDay], today: date, months: int = TREND_MONTHS) -> list[MonthCount]:
    totals: dict[tuple[int, int], int] = {}
    for d in days:
        day = day_key_to_date(d.date)
        key = (day.year, day.month)
        totals[key] = totals.get(key, 0) + d.count

    out: list[MonthCount] = []
    for back in range(months - 1, -1, -1):
        y, m = _shift_month(today.year, today.month, -back)
        out.append(MonthCount(y, m, MONTHS[m - 1], totals.get((y, m), 0)))
    return out


def _argmax(counts: list[int]) -> int:
    # first index wins ties
    return counts.index(max(counts))


def _avg_per_week(total: int, days: list[CryingDay], now: datetime) -> float:
    if total <= 0 or not days:
        return 0.0
    earliest = min(local_midnight(d.date) for d in days)
    weeks = math.ceil((now - earliest) / timedelta(days=7))
    return total / max(1, weeks)


# -------------------------
# Entry point
# -------------------------

def compute_stats(
    entries: Iterable[JournalEntry],
    crying_days: Iterable[CryingDay],
    timeframe: Optional[Timeframe] = None,
    now: Optional[datetime] = None,
) -> CryStats:
    now = _with_local_tz(now) if now else _now_local()
    today = now.date()

    all_days = list(crying_days)
    entries = list(entries)
    if timeframe is not None:
        entries = [e for e in entries if timeframe.contains(e.created_at)]
        days = [d for d in all_days if timeframe.contains_day(d.date)]
    else:
        days = all_days

    stats = CryStats()
    stats.total_cries = sum(d.count for d in days)
    stats.total_entries = len(entries)
    stats.cries_last_7_days = _cries_since(all_days, now - timedelta(days=7))
    stats.cries_last_30_days = _cries_since(all_days, now - timedelta(days=30))

    hour_counts = [0] * 24
    for e in entries:
        if not e.was_crying:
            continue
        dt = from_ms(e.created_at)
        # Monday=0 in Python; shift to Sunday-first
        stats.weekday_counts[(dt.weekday() + 1) % 7] += 1
        hour_counts[dt.hour] += 1
        if e.intensity is not None:
            stats.intensity_counts[int(e.intensity)] += 1

    stats.max_weekday_count = max(max(stats.weekday_counts), 1)
    stats.most_emotional_day = WEEKDAYS[_argmax(stats.weekday_counts)]
    stats.peak_hour = _argmax(hour_counts)
    stats.peak_time_label = hour_label(stats.peak_hour)

    stats.monthly_trend = monthly_trend(all_days, today)
    stats.max_month_count = max([m.count for m in stats.monthly_trend] + [1])

    stats.streaks = compute_streaks((day_key_to_date(d.date) for d in days), today)

    rated = sum(stats.intensity_counts.values())
    if rated:
        stats.average_intensity = sum(k * n for k, n in stats.intensity_counts.items()) / rated
        best = 0
        for level in sorted(stats.intensity_counts):
            if stats.intensity_counts[level] > best:
                best = stats.intensity_counts[level]
                stats.dominant_intensity = level

    stats.avg_per_week = _avg_per_week(stats.total_cries, days, now)
    return stats


def insight(stats: CryStats) -> str:
    if stats.total_cries == 0:
        return "Start tracking your emotional moments to see patterns emerge."
    if stats.current_dry_streak > 7:
        return (
            f"You've been dry for {stats.current_dry_streak} days. "
            "Remember, it's okay to let it out sometimes."
        )
    if stats.cries_last_7_days > 5:
        return "You've been very in touch with your emotions lately. That takes courage."
    return f"{stats.most_emotional_day}s seem to bring out your feelings. Be gentle with yourself."


def reminder_delay_seconds(last_cry: Optional[Instant], now: Optional[datetime] = None) -> int:
    """Seconds until a reminder is due, REMINDER_AFTER_HOURS after the last cry."""
    full = REMINDER_AFTER_HOURS * 60 * 60
    if last_cry is None:
        return full
    now_ms = to_ms(now or _now_local())
    remaining_h = REMINDER_AFTER_HOURS - (now_ms - to_ms(last_cry)) / MS_PER_HOUR
    if remaining_h <= 0:
        return 1
    return max(1, math.floor(remaining_h * 60 * 60))

