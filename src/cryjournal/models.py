"""
Plain data records exchanged with callers.

Stored rows keep camelCase field names (``createdAt``, ``wasCrying``) so a
data file written by older builds of the app loads unchanged.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Optional

from ._util import from_ms
from .daykey import is_day_key
from .errors import InvalidIntensityError

log = logging.getLogger(__name__)


def _stored_instant(value: Any, name: str) -> int:
    """Milliseconds from a stored row. Raises ValueError for anything unusable."""
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise ValueError(f"bad {name} {value!r}")
    ms = int(value)
    try:
        from_ms(ms)
    except (OverflowError, OSError, ValueError) as e:
        raise ValueError(f"{name} out of range: {value!r}") from e
    return ms


class CryIntensity(IntEnum):
    SINGLE_TEAR = 1
    TEARY = 2
    FULL_CRY = 3
    MENTAL_BREAKDOWN = 4


CRY_INTENSITY_LABELS = {
    CryIntensity.SINGLE_TEAR: "Single tear",
    CryIntensity.TEARY: "Teary eyes",
    CryIntensity.FULL_CRY: "Full cry",
    CryIntensity.MENTAL_BREAKDOWN: "Mental breakdown",
}

CRY_INTENSITY_EMOJIS = {
    CryIntensity.SINGLE_TEAR: "🥲",
    CryIntensity.TEARY: "😢",
    CryIntensity.FULL_CRY: "😭",
    CryIntensity.MENTAL_BREAKDOWN: "🫠",
}


def normalize_intensity(was_crying: bool, intensity: Any) -> Optional[CryIntensity]:
    """
    Apply the write-path rule for intensity:
      - not crying -> always None, whatever the caller passed
      - crying     -> None or a value in 1..4, anything else raises
    """
    if not was_crying or intensity is None:
        return None
    if isinstance(intensity, bool) or (isinstance(intensity, float) and not intensity.is_integer()):
        raise InvalidIntensityError(intensity)
    try:
        return CryIntensity(int(intensity))
    except (TypeError, ValueError) as e:
        raise InvalidIntensityError(intensity) from e


@dataclass
class JournalEntry:
    id: str
    content: str
    created_at: int
    was_crying: bool = False
    intensity: Optional[CryIntensity] = None

    def to_dict(self) -> dict[str, Any]:
        row: dict[str, Any] = {
            "id": self.id,
            "content": self.content,
            "createdAt": self.created_at,
            "wasCrying": self.was_crying,
        }
        if self.intensity is not None:
            row["intensity"] = int(self.intensity)
        return row

    @classmethod
    def from_dict(cls, row: dict[str, Any]) -> JournalEntry:
        """Decode a stored row. Raises ValueError/KeyError/TypeError on bad rows."""
        entry_id = row["id"]
        if not isinstance(entry_id, str) or not entry_id:
            raise ValueError(f"bad id {entry_id!r}")
        created_at = _stored_instant(row["createdAt"], "createdAt")
        was_crying = bool(row.get("wasCrying", False))
        try:
            intensity = normalize_intensity(was_crying, row.get("intensity"))
        except InvalidIntensityError:
            log.warning("Dropping invalid intensity %r on entry %s", row.get("intensity"), entry_id)
            intensity = None
        return cls(
            id=entry_id,
            content=str(row.get("content", "")),
            created_at=created_at,
            was_crying=was_crying,
            intensity=intensity,
        )


@dataclass
class CryingDay:
    date: str
    timestamp: int
    count: int = 1

    def to_dict(self) -> dict[str, Any]:
        return {"date": self.date, "timestamp": self.timestamp, "count": self.count}

    @classmethod
    def from_dict(cls, row: dict[str, Any]) -> CryingDay:
        day = row["date"]
        if not is_day_key(day):
            raise ValueError(f"bad date {day!r}")
        ts = _stored_instant(row["timestamp"], "timestamp")
        count = row.get("count")
        if count is None:
            # rows written before counts existed mean one cry
            count = 1
        if isinstance(count, bool) or not isinstance(count, int):
            raise ValueError(f"bad count {count!r}")
        return cls(date=day, timestamp=ts, count=count)
