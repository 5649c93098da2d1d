from __future__ import annotations

import argparse
import logging
from datetime import datetime
from typing import Any

from ._util import _fmt_time, _now_local, from_ms
from .daykey import date_day_key
from .errors import InvalidIntensityError
from .models import CRY_INTENSITY_EMOJIS, CRY_INTENSITY_LABELS, JournalEntry
from .monthview import cry_counts_by_day, month_grid, month_summary
from .paths import describe_source, resolve_data_path
from .stats import WEEKDAYS, insight, reminder_delay_seconds, timeframe_for
from .storage import JsonFileAdapter
from .store import JournalStore
from .timeparse import parse_day, parse_month, parse_when

MAX_CONTENT = 500


# -------------------------
# Helpers
# -------------------------

def _open_store(args: argparse.Namespace) -> JournalStore:
    return JournalStore.open(JsonFileAdapter(args.data_path))


def _when(value: str | None) -> datetime:
    try:
        return parse_when(value)
    except ValueError as e:
        raise SystemExit(str(e)) from e


def _content(text: str) -> str:
    text = text.strip()
    if not text:
        raise SystemExit("--text must not be empty")
    if len(text) > MAX_CONTENT:
        raise SystemExit(f"--text is limited to {MAX_CONTENT} characters (got {len(text)})")
    return text


def _entry_line(e: JournalEntry) -> str:
    dt = from_ms(e.created_at)
    if e.was_crying:
        mark = CRY_INTENSITY_EMOJIS[e.intensity] if e.intensity else "😢"
    else:
        mark = "😊"
    line = f"{dt.date().isoformat()} {_fmt_time(dt)} {mark} {e.content}"
    if e.intensity:
        line += f" [{CRY_INTENSITY_LABELS[e.intensity]}]"
    return f"{line}  ({e.id})"


def _bar(count: int, top: int, width: int = 20) -> str:
    if count <= 0:
        return ""
    return "▇" * max(1, round(width * count / max(top, 1)))


# -------------------------
# Commands
# -------------------------

def cmd_init(args: argparse.Namespace) -> None:
    store = _open_store(args)
    store.rebuild_aggregate()
    print(f"✅ Initialized journal: {args.data_path} ({len(store)} entries)")


def cmd_where(args: argparse.Namespace) -> None:
    print(args.data_path)
    print(f"↳ using {describe_source(args.data_arg, args.profile)}")


def cmd_add(args: argparse.Namespace) -> None:
    store = _open_store(args)
    try:
        entry_id = store.add(_content(args.text), args.crying, _when(args.time), args.intensity)
    except InvalidIntensityError as e:
        raise SystemExit(e.message) from e
    entry = store.get(entry_id)
    print(f"📝 Logged: {_entry_line(entry)}")


def cmd_edit(args: argparse.Namespace) -> None:
    store = _open_store(args)
    current = store.get(args.id)
    if current is None:
        raise SystemExit(f"No entry with id {args.id!r}")

    text = _content(args.text) if args.text is not None else current.content
    when = _when(args.time) if args.time else current.created_at
    crying = current.was_crying if args.crying is None else args.crying
    intensity = args.intensity if args.intensity is not None else current.intensity

    try:
        store.update(args.id, text, crying, when, intensity)
    except InvalidIntensityError as e:
        raise SystemExit(e.message) from e
    print(f"✏️ Updated: {_entry_line(store.get(args.id))}")


def cmd_delete(args: argparse.Namespace) -> None:
    store = _open_store(args)
    if not store.delete(args.id):
        raise SystemExit(f"No entry with id {args.id!r}")
    print(f"🗑️ Deleted entry {args.id}")


def cmd_list(args: argparse.Namespace) -> None:
    store = _open_store(args)
    entries = store.all()
    if not entries:
        print("No journal entries yet.")
        return
    print("=== Journal (newest first) ===")
    for e in entries[: args.limit]:
        print(_entry_line(e))


def cmd_day(args: argparse.Namespace) -> None:
    try:
        day = parse_day(args.day)
    except ValueError as e:
        raise SystemExit(str(e)) from e
    key = date_day_key(day)

    store = _open_store(args)
    entries = store.entries_for_day(key)
    if not entries:
        print(f"No entries on {key}.")
        return
    print(f"=== {key} ({len(entries)} entries) ===")
    for e in entries:
        print(_entry_line(e))


def cmd_stats(args: argparse.Namespace) -> None:
    store = _open_store(args)
    now = _now_local()
    try:
        timeframe = timeframe_for(args.window, now)
    except ValueError as e:
        raise SystemExit(str(e)) from e
    s = store.statistics(timeframe, now)
    label = "all time" if timeframe is None else f"last {args.window} days"

    print(f"=== Crying Stats ({label}) ===")
    print(f"- total cries: {s.total_cries}")
    print(f"- journal entries: {s.total_entries}")
    print(f"- last 7 days: {s.cries_last_7_days}")
    print(f"- last 30 days: {s.cries_last_30_days}")
    print(f"- average per week: {s.avg_per_week:.1f}")

    print("\n[STREAKS]")
    print(f"- dry: {s.current_dry_streak} days (longest {s.longest_dry_streak})")
    print(f"- crying: {s.current_cry_streak} days (longest {s.longest_cry_streak})")

    print("\n[PATTERNS]")
    print(f"- most emotional day: {s.most_emotional_day}")
    print(f"- peak time: {s.peak_time_label}")
    for name, count in zip(WEEKDAYS, s.weekday_counts):
        print(f"{name}: {count:>3} {_bar(count, s.max_weekday_count)}")

    print("\n[Last 6 months]")
    for m in s.monthly_trend:
        print(f"{m.label} {m.year}: {m.count:>3} {_bar(m.count, s.max_month_count)}")

    print("\n[Intensity]")
    for level, count in s.intensity_counts.items():
        print(f"{CRY_INTENSITY_LABELS[level]:<17}: {count:>3}")
    if s.dominant_intensity is not None:
        print(f"- average: {s.average_intensity:.1f}, most often: {CRY_INTENSITY_LABELS[s.dominant_intensity]}")

    print(f"\n💬 {insight(s)}")


def cmd_last_cry(args: argparse.Namespace) -> None:
    store = _open_store(args)
    last = store.last_cry_instant()
    if last is None:
        print("No cries logged yet.")
        return
    dt = from_ms(last)
    hours = store.hours_since_last_cry()
    print(f"😢 Last cry: {dt.date().isoformat()} {_fmt_time(dt)} ({hours} hours ago)")
    delay = reminder_delay_seconds(last)
    print(f"⏰ 24h reminder due in {delay // 3600}h {delay % 3600 // 60}m")


def cmd_calendar(args: argparse.Namespace) -> None:
    try:
        year, month = parse_month(args.month)
    except ValueError as e:
        raise SystemExit(str(e)) from e

    store = _open_store(args)
    entries = store.all()
    weeks = month_grid(year, month, cry_counts_by_day(entries))

    print(datetime(year, month, 1).strftime("=== %B %Y ==="))
    print("  ".join(f"{w[:2]:>3}" for w in WEEKDAYS))
    for week in weeks:
        cells: list[Any] = []
        for d in week:
            if d is None:
                cells.append("   ")
            elif d.has_cried:
                cells.append(f"{d.day:>2}*")
            else:
                cells.append(f"{d.day:>2} ")
        print("  ".join(cells))

    summary = month_summary(entries, year, month)
    print(f"\n- cries: {summary.total_cries}")
    print(f"- days with crying: {summary.days_with_crying}")
    print(f"- dry days: {summary.dry_days}")


def main(argv=None) -> None:
    p = argparse.ArgumentParser(prog="cj", description="Crying journal")
    p.add_argument("--data", default=None, help="Path to data JSON (overrides env/default)")
    p.add_argument("--profile", default=None, help="Profile name (e.g. dev/test)")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    sub = p.add_subparsers(dest="cmd", required=True)
    sub.add_parser("init", help="Create the data file and rebuild crying-day counts").set_defaults(func=cmd_init)
    sub.add_parser("where", help="Show which data file is active and why").set_defaults(func=cmd_where)

    add = sub.add_parser("add", help="Write a journal entry")
    add.add_argument("--text", required=True)
    add.add_argument("--crying", action="store_true", help="This entry records a cry")
    add.add_argument("--intensity", type=int, choices=[1, 2, 3, 4], default=None,
                     help="1 single tear … 4 mental breakdown (only with --crying)")
    add.add_argument("--time", default=None, help="ISO, human, or relative (e.g. yesterday 11pm)")
    add.set_defaults(func=cmd_add)

    edit = sub.add_parser("edit", help="Change an existing entry")
    edit.add_argument("id")
    edit.add_argument("--text", default=None)
    edit.add_argument("--crying", dest="crying", action="store_true", default=None)
    edit.add_argument("--not-crying", dest="crying", action="store_false")
    edit.add_argument("--intensity", type=int, choices=[1, 2, 3, 4], default=None)
    edit.add_argument("--time", default=None)
    edit.set_defaults(func=cmd_edit)

    delete = sub.add_parser("delete", help="Delete an entry")
    delete.add_argument("id")
    delete.set_defaults(func=cmd_delete)

    lst = sub.add_parser("list", help="List entries")
    lst.add_argument("--limit", type=int, default=50)
    lst.set_defaults(func=cmd_list)

    day = sub.add_parser("day", help="Entries written on one day")
    day.add_argument("day", nargs="?", default=None, help="today, yesterday, 3 days ago or YYYY-MM-DD")
    day.set_defaults(func=cmd_day)

    stats = sub.add_parser("stats", help="Streaks and patterns")
    stats.add_argument("--window", choices=["7", "30", "90", "365", "all"], default="all")
    stats.set_defaults(func=cmd_stats)

    sub.add_parser("last-cry", help="Time since the last cry").set_defaults(func=cmd_last_cry)

    cal = sub.add_parser("calendar", help="Month view of crying days")
    cal.add_argument("--month", default=None, help="YYYY-MM (default: this month)")
    cal.set_defaults(func=cmd_calendar)

    args = p.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    args.data_arg = args.data
    args.data_path = resolve_data_path(args.data, args.profile)

    args.func(args)


if __name__ == "__main__":
    main()
