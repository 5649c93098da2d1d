"""
Journal store: the single in-process owner of the entry collection and
its crying-day aggregate.

Each mutation runs change -> reconcile aggregate -> persist synchronously,
so callers never observe the aggregate out of step with the entries. The
in-memory collections are authoritative for the process lifetime; storage
is read once in ``load()``.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Optional

from ._util import Instant, _now_local, to_ms
from .aggregate import CryingDayIndex
from .daykey import local_day_key
from .errors import PersistenceError
from .models import CryingDay, JournalEntry, normalize_intensity
from .stats import CryStats, Timeframe, compute_stats
from .storage import CRYING_DAYS_KEY, ENTRIES_KEY, PersistenceAdapter

log = logging.getLogger(__name__)


def _decode_rows(rows: Any, decode: Callable[[dict[str, Any]], Any], key: str) -> list[Any]:
    if rows is None:
        return []
    if not isinstance(rows, list):
        log.warning("Stored %r is not a list; starting with an empty collection", key)
        return []
    out = []
    for i, row in enumerate(rows):
        if not isinstance(row, dict):
            log.warning("Skipping non-object row %d in %r", i, key)
            continue
        try:
            out.append(decode(row))
        except (KeyError, TypeError, ValueError, OverflowError) as e:
            log.warning("Skipping malformed row %d in %r: %s", i, key, e)
    return out


class JournalStore:
    def __init__(self, adapter: PersistenceAdapter, *, strict: bool = False):
        self.adapter = adapter
        self.strict = strict
        self._entries: list[JournalEntry] = []
        self._crying = CryingDayIndex()

    @classmethod
    def open(cls, adapter: PersistenceAdapter, *, strict: bool = False) -> JournalStore:
        store = cls(adapter, strict=strict)
        store.load()
        return store

    # -------------------------
    # Loading / persistence
    # -------------------------

    def load(self) -> None:
        entries = _decode_rows(self.adapter.load(ENTRIES_KEY), JournalEntry.from_dict, ENTRIES_KEY)
        days = _decode_rows(self.adapter.load(CRYING_DAYS_KEY), CryingDay.from_dict, CRYING_DAYS_KEY)

        seen: set[str] = set()
        unique: list[JournalEntry] = []
        for e in entries:
            if e.id in seen:
                log.warning("Skipping duplicate entry id %s", e.id)
                continue
            seen.add(e.id)
            unique.append(e)

        self._entries = sorted(unique, key=lambda e: e.created_at, reverse=True)
        self._crying = CryingDayIndex(days)

        expected = CryingDayIndex.from_entries(self._entries)
        if expected.counts() != self._crying.counts():
            log.warning("Stored crying days disagree with stored entries; rebuilding them")
            self._crying = expected
            self._persist(CRYING_DAYS_KEY, self._crying.to_rows())

        log.debug("Loaded %d entries and %d crying days", len(self._entries), len(self._crying))

    def _persist(self, key: str, rows: list[dict[str, Any]]) -> None:
        try:
            self.adapter.save(key, rows)
            return
        except PersistenceError as e:
            log.warning("Saving %r failed (%s); retrying once", key, e.details.get("reason"))
        try:
            self.adapter.save(key, rows)
        except PersistenceError as e:
            if self.strict:
                raise
            log.error("Saving %r failed again; changes are kept in memory only: %s", key, e)

    def _persist_entries(self) -> None:
        self._persist(ENTRIES_KEY, [e.to_dict() for e in self._entries])

    def _persist_crying(self) -> None:
        self._persist(CRYING_DAYS_KEY, self._crying.to_rows())

    def _sort(self) -> None:
        # stable: among equal timestamps the earlier list position wins
        self._entries.sort(key=lambda e: e.created_at, reverse=True)

    def _new_id(self) -> str:
        taken = {e.id for e in self._entries}
        while True:
            entry_id = f"{int(time.time() * 1000)}{uuid.uuid4().hex[:8]}"
            if entry_id not in taken:
                return entry_id

    # -------------------------
    # Mutations
    # -------------------------

    def add(
        self,
        content: str,
        was_crying: bool,
        timestamp: Optional[Instant] = None,
        intensity: Optional[int] = None,
    ) -> str:
        """
        Record a new entry and return its id.

        ``timestamp`` is when the moment happened (default: now). A stray
        intensity on a non-crying entry is discarded.
        """
        was_crying = bool(was_crying)
        entry = JournalEntry(
            id=self._new_id(),
            content=content,
            created_at=to_ms(timestamp if timestamp is not None else _now_local()),
            was_crying=was_crying,
            intensity=normalize_intensity(was_crying, intensity),
        )
        self._entries.insert(0, entry)
        self._sort()
        self._crying.apply_add(entry)

        self._persist_entries()
        if entry.was_crying:
            self._persist_crying()
        log.debug("Added entry %s (crying=%s)", entry.id, entry.was_crying)
        return entry.id

    def update(
        self,
        entry_id: str,
        content: str,
        was_crying: bool,
        timestamp: Instant,
        intensity: Optional[int] = None,
    ) -> bool:
        """Rewrite an entry in place. Returns False when the id is unknown."""
        entry = self._find(entry_id)
        if entry is None:
            log.debug("Update ignored: no entry %s", entry_id)
            return False

        was_crying = bool(was_crying)
        new_intensity = normalize_intensity(was_crying, intensity)
        old_was_crying, old_created_at = entry.was_crying, entry.created_at

        entry.content = content
        entry.was_crying = was_crying
        entry.created_at = to_ms(timestamp)
        entry.intensity = new_intensity
        self._sort()
        self._crying.apply_update(old_was_crying, old_created_at, entry)

        self._persist_entries()
        self._persist_crying()
        return True

    def delete(self, entry_id: str) -> bool:
        """Remove an entry and its share of the crying-day counts."""
        for i, e in enumerate(self._entries):
            if e.id == entry_id:
                break
        else:
            log.debug("Delete ignored: no entry %s", entry_id)
            return False

        entry = self._entries.pop(i)
        self._crying.apply_delete(entry)

        self._persist_entries()
        if entry.was_crying:
            self._persist_crying()
        return True

    def rebuild_aggregate(self) -> None:
        self._crying = CryingDayIndex.from_entries(self._entries)
        self._persist_crying()

    # -------------------------
    # Queries
    # -------------------------

    def _find(self, entry_id: str) -> Optional[JournalEntry]:
        for e in self._entries:
            if e.id == entry_id:
                return e
        return None

    def get(self, entry_id: str) -> Optional[JournalEntry]:
        e = self._find(entry_id)
        return None if e is None else replace(e)

    def all(self) -> list[JournalEntry]:
        return [replace(e) for e in self._entries]

    def entries_for_day(self, day_key: str) -> list[JournalEntry]:
        return [replace(e) for e in self._entries if local_day_key(e.created_at) == day_key]

    def crying_days(self) -> list[CryingDay]:
        return self._crying.all()

    @property
    def crying_index(self) -> CryingDayIndex:
        return self._crying

    def last_cry_instant(self) -> Optional[int]:
        return self._crying.last_cry_instant()

    def hours_since_last_cry(self, now: Optional[datetime] = None) -> Optional[int]:
        return self._crying.hours_since_last_cry(now)

    def statistics(self, timeframe: Optional[Timeframe] = None, now: Optional[datetime] = None) -> CryStats:
        return compute_stats(self._entries, self._crying.all(), timeframe=timeframe, now=now)

    def __len__(self) -> int:
        return len(self._entries)
