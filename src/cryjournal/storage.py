"""
Persistence adapters.

The core talks to storage through two logical keys, each holding a full
collection; every save replaces the stored collection for its key.
"""

from __future__ import annotations

import json
import logging
import os
import time
from pathlib import Path
from typing import Any, Optional, Protocol

from .errors import PersistenceError

log = logging.getLogger(__name__)

ENTRIES_KEY = "journal_entries"
CRYING_DAYS_KEY = "crying_days"


class PersistenceAdapter(Protocol):
    def load(self, key: str) -> Optional[list[Any]]:
        ...

    def save(self, key: str, rows: list[Any]) -> None:
        ...


def _ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def load_json(path: Path) -> dict[str, Any]:
    """
    Safe load:
    - missing/empty file -> {}
    - corrupt or not UTF-8 -> backs up raw bytes next to the file, then resets to {}
    - valid JSON that is not an object -> {}
    Always returns a dict.
    """
    path = Path(path)
    if not path.exists():
        return {}

    raw = path.read_bytes()
    if not raw.strip():
        return {}

    try:
        data = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        backup = path.with_suffix(f".corrupt-{int(time.time())}.json")
        backup.write_bytes(raw)
        log.warning("Corrupt data file %s (%s); backed up to %s and starting fresh", path, e, backup)
        save_json(path, {})
        return {}

    if not isinstance(data, dict):
        log.warning("Data file %s does not hold a JSON object; ignoring its contents", path)
        return {}
    return data


def save_json(path: Path, data: Any) -> None:
    """
    Atomic-ish save:
    - write to temp file in same directory
    - flush + fsync
    - os.replace to target
    - chmod 0600 best-effort
    """
    path = Path(path)
    _ensure_parent(path)

    tmp = path.with_name(path.name + ".tmp")

    payload = json.dumps(
        data,
        indent=2,
        sort_keys=True,
        ensure_ascii=False,
    ) + "\n"

    with open(tmp, "w", encoding="utf-8") as f:
        f.write(payload)
        f.flush()
        os.fsync(f.fileno())

    os.replace(tmp, path)

    try:
        os.chmod(path, 0o600)
    except OSError:
        pass


class JsonFileAdapter:
    """Both collections live as top-level keys of one JSON document."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self, key: str) -> Optional[list[Any]]:
        data = load_json(self.path)
        if key not in data:
            return None
        rows = data[key]
        if not isinstance(rows, list):
            log.warning("Stored %r in %s is not a list; treating it as empty", key, self.path)
            return []
        return rows

    def save(self, key: str, rows: list[Any]) -> None:
        try:
            data = load_json(self.path)
            data[key] = rows
            save_json(self.path, data)
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceError(key, str(e)) from e


class MemoryAdapter:
    """Dict-backed adapter. ``fail_writes`` makes the next N saves fail."""

    def __init__(self, initial: dict[str, list[Any]] | None = None):
        self.data: dict[str, list[Any]] = {k: list(v) for k, v in (initial or {}).items()}
        self.fail_writes = 0
        self.saves = 0

    def load(self, key: str) -> Optional[list[Any]]:
        rows = self.data.get(key)
        return None if rows is None else json.loads(json.dumps(rows))

    def save(self, key: str, rows: list[Any]) -> None:
        if self.fail_writes > 0:
            self.fail_writes -= 1
            raise PersistenceError(key, "simulated write failure")
        self.data[key] = json.loads(json.dumps(rows))
        self.saves += 1
