"""Tests for CryingDayIndex reconciliation and queries."""

from __future__ import annotations

from datetime import datetime

from cryjournal._util import MS_PER_HOUR, to_ms
from cryjournal.aggregate import CryingDayIndex
from cryjournal.models import CryingDay, JournalEntry


def _entry(when: datetime, crying: bool = True, entry_id: str = "e1") -> JournalEntry:
    return JournalEntry(id=entry_id, content="x", created_at=to_ms(when), was_crying=crying)


# ---- add ----


def test_add_non_crying_is_noop():
    idx = CryingDayIndex()
    idx.apply_add(_entry(datetime(2024, 3, 1, 10), crying=False))
    assert len(idx) == 0


def test_add_creates_then_increments():
    idx = CryingDayIndex()
    idx.apply_add(_entry(datetime(2024, 3, 1, 10)))
    idx.apply_add(_entry(datetime(2024, 3, 1, 8), entry_id="e2"))
    bucket = idx.get("2024-03-01")
    assert bucket.count == 2
    # the most recently recorded entry sets the timestamp
    assert bucket.timestamp == to_ms(datetime(2024, 3, 1, 8))


# ---- update ----


def test_update_same_day_still_crying_does_not_double_count():
    idx = CryingDayIndex()
    e = _entry(datetime(2024, 3, 1, 10))
    idx.apply_add(e)
    old = e.created_at
    e.created_at = to_ms(datetime(2024, 3, 1, 15))
    idx.apply_update(True, old, e)
    assert idx.get("2024-03-01").count == 1


def test_update_toggle_off_removes_bucket():
    idx = CryingDayIndex()
    e = _entry(datetime(2024, 3, 1, 10))
    idx.apply_add(e)
    e.was_crying = False
    idx.apply_update(True, e.created_at, e)
    assert "2024-03-01" not in idx


def test_update_toggle_on_creates_bucket():
    idx = CryingDayIndex()
    e = _entry(datetime(2024, 3, 1, 10), crying=False)
    idx.apply_add(e)
    e.was_crying = True
    idx.apply_update(False, e.created_at, e)
    assert idx.get("2024-03-01").count == 1


def test_update_move_between_days():
    idx = CryingDayIndex()
    a = _entry(datetime(2024, 3, 1, 10), entry_id="a")
    b = _entry(datetime(2024, 3, 1, 12), entry_id="b")
    idx.apply_add(a)
    idx.apply_add(b)
    old = a.created_at
    a.created_at = to_ms(datetime(2024, 3, 5, 9))
    idx.apply_update(True, old, a)
    assert idx.get("2024-03-01").count == 1
    assert idx.get("2024-03-05").count == 1


def test_update_move_into_existing_bucket_increments():
    idx = CryingDayIndex()
    a = _entry(datetime(2024, 3, 1, 10), entry_id="a")
    b = _entry(datetime(2024, 3, 5, 12), entry_id="b")
    idx.apply_add(a)
    idx.apply_add(b)
    old = a.created_at
    a.created_at = to_ms(datetime(2024, 3, 5, 9))
    idx.apply_update(True, old, a)
    assert "2024-03-01" not in idx
    assert idx.get("2024-03-05").count == 2
    assert idx.get("2024-03-05").timestamp == to_ms(datetime(2024, 3, 5, 12))


def test_update_move_and_stop_crying():
    idx = CryingDayIndex()
    a = _entry(datetime(2024, 3, 1, 10))
    idx.apply_add(a)
    old = a.created_at
    a.created_at = to_ms(datetime(2024, 3, 5, 9))
    a.was_crying = False
    idx.apply_update(True, old, a)
    assert len(idx) == 0


# ---- delete ----


def test_delete_decrements_and_drops():
    idx = CryingDayIndex()
    a = _entry(datetime(2024, 3, 1, 10), entry_id="a")
    b = _entry(datetime(2024, 3, 1, 11), entry_id="b")
    idx.apply_add(a)
    idx.apply_add(b)
    idx.apply_delete(a)
    assert idx.get("2024-03-01").count == 1
    idx.apply_delete(b)
    assert "2024-03-01" not in idx


def test_decrement_missing_bucket_is_ignored():
    idx = CryingDayIndex()
    idx.apply_delete(_entry(datetime(2024, 3, 1, 10)))
    assert len(idx) == 0


# ---- construction ----


def test_zero_count_buckets_are_dropped_on_load():
    idx = CryingDayIndex([CryingDay("2024-03-01", 1, 0), CryingDay("2024-03-02", 2, 1)])
    assert idx.counts() == {"2024-03-02": 1}


def test_duplicate_buckets_are_folded():
    idx = CryingDayIndex([CryingDay("2024-03-01", 5, 1), CryingDay("2024-03-01", 9, 2)])
    bucket = idx.get("2024-03-01")
    assert (bucket.count, bucket.timestamp) == (3, 9)


def test_from_entries_groups_by_local_day():
    entries = [
        _entry(datetime(2024, 3, 1, 23, 30), entry_id="a"),
        _entry(datetime(2024, 3, 2, 0, 30), entry_id="b"),
        _entry(datetime(2024, 3, 2, 9), entry_id="c"),
        _entry(datetime(2024, 3, 3, 9), crying=False, entry_id="d"),
    ]
    idx = CryingDayIndex.from_entries(entries)
    assert idx.counts() == {"2024-03-01": 1, "2024-03-02": 2}
    assert idx.get("2024-03-02").timestamp == to_ms(datetime(2024, 3, 2, 9))


def test_returned_buckets_are_copies():
    idx = CryingDayIndex()
    idx.apply_add(_entry(datetime(2024, 3, 1, 10)))
    idx.all()[0].count = 99
    assert idx.get("2024-03-01").count == 1


# ---- queries ----


def test_last_cry_and_hours_since():
    idx = CryingDayIndex()
    assert idx.last_cry_instant() is None
    assert idx.hours_since_last_cry() is None

    idx.apply_add(_entry(datetime(2024, 3, 1, 10), entry_id="a"))
    idx.apply_add(_entry(datetime(2024, 3, 3, 10), entry_id="b"))
    last = to_ms(datetime(2024, 3, 3, 10))
    assert idx.last_cry_instant() == last

    now = datetime(2024, 3, 4, 11, 59).astimezone()
    assert idx.hours_since_last_cry(now) == 25
    assert idx.hours_since_last_cry(now) == (to_ms(now) - last) // MS_PER_HOUR


def test_rows_are_sorted_newest_day_first():
    idx = CryingDayIndex()
    idx.apply_add(_entry(datetime(2024, 3, 1, 10), entry_id="a"))
    idx.apply_add(_entry(datetime(2024, 3, 3, 10), entry_id="b"))
    assert [r["date"] for r in idx.to_rows()] == ["2024-03-03", "2024-03-01"]
