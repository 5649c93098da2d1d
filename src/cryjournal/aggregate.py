"""
Crying-day aggregate: one bucket per local day holding the number of
crying entries written on that day and the instant of the latest one.

Buckets are a denormalised index of the entry collection. The entry store
calls ``apply_add`` / ``apply_update`` / ``apply_delete`` inside each of
its own mutations so that, for every day D,

    buckets[D].count == number of crying entries on local day D

holds after every call. Zero-count buckets are never kept.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Any, Iterable, Optional

from ._util import MS_PER_HOUR, _now_local, to_ms
from .daykey import local_day_key
from .models import CryingDay, JournalEntry

log = logging.getLogger(__name__)


class CryingDayIndex:
    def __init__(self, days: Iterable[CryingDay] = ()):
        self._days: dict[str, CryingDay] = {}
        for d in days:
            if d.count <= 0:
                log.warning("Dropping crying-day bucket %s with count %d", d.date, d.count)
                continue
            if d.date in self._days:
                # duplicate rows for one day: fold them together
                prev = self._days[d.date]
                prev.count += d.count
                prev.timestamp = max(prev.timestamp, d.timestamp)
                continue
            self._days[d.date] = CryingDay(d.date, d.timestamp, d.count)

    @classmethod
    def from_entries(cls, entries: Iterable[JournalEntry]) -> CryingDayIndex:
        index = cls()
        for e in entries:
            if not e.was_crying:
                continue
            day = local_day_key(e.created_at)
            bucket = index._days.get(day)
            if bucket is None:
                index._days[day] = CryingDay(day, e.created_at, 1)
            else:
                bucket.count += 1
                bucket.timestamp = max(bucket.timestamp, e.created_at)
        return index

    # ---- reconciliation ----

    def apply_add(self, entry: JournalEntry) -> None:
        if not entry.was_crying:
            return
        day = local_day_key(entry.created_at)
        bucket = self._days.get(day)
        if bucket is None:
            self._days[day] = CryingDay(day, entry.created_at, 1)
        else:
            bucket.count += 1
            bucket.timestamp = entry.created_at

    def apply_update(self, old_was_crying: bool, old_created_at: int, entry: JournalEntry) -> None:
        old_day = local_day_key(old_created_at)
        new_day = local_day_key(entry.created_at)
        moved = old_day != new_day

        if old_was_crying and moved:
            self._decrement(old_day)

        if entry.was_crying:
            bucket = self._days.get(new_day)
            if bucket is None:
                self._days[new_day] = CryingDay(new_day, entry.created_at, 1)
            elif not old_was_crying or moved:
                bucket.count += 1
                bucket.timestamp = max(bucket.timestamp, entry.created_at)
        elif old_was_crying and not moved:
            self._decrement(old_day)

    def apply_delete(self, entry: JournalEntry) -> None:
        if entry.was_crying:
            self._decrement(local_day_key(entry.created_at))

    def _decrement(self, day: str) -> None:
        bucket = self._days.get(day)
        if bucket is None:
            log.warning("No crying-day bucket for %s to decrement", day)
            return
        bucket.count = max(0, bucket.count - 1)
        if bucket.count == 0:
            del self._days[day]

    # ---- queries ----

    def get(self, day: str) -> Optional[CryingDay]:
        bucket = self._days.get(day)
        return None if bucket is None else replace(bucket)

    def all(self) -> list[CryingDay]:
        return [replace(d) for d in self._days.values()]

    def counts(self) -> dict[str, int]:
        return {k: d.count for k, d in self._days.items()}

    def total(self) -> int:
        return sum(d.count for d in self._days.values())

    def last_cry_instant(self) -> Optional[int]:
        if not self._days:
            return None
        return max(d.timestamp for d in self._days.values())

    def hours_since_last_cry(self, now: Optional[datetime] = None) -> Optional[int]:
        last = self.last_cry_instant()
        if last is None:
            return None
        now_ms = to_ms(now or _now_local())
        return (now_ms - last) // MS_PER_HOUR

    def to_rows(self) -> list[dict[str, Any]]:
        return [d.to_dict() for d in sorted(self._days.values(), key=lambda d: d.date, reverse=True)]

    def __len__(self) -> int:
        return len(self._days)

    def __contains__(self, day: object) -> bool:
        return day in self._days
