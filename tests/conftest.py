"""Shared fixtures: a fixed local timezone and an in-memory store."""

from __future__ import annotations

import os
import time
from datetime import datetime

import pytest

from cryjournal.storage import MemoryAdapter
from cryjournal.store import JournalStore

# Pinned at import so module-level instants in test files are built in the
# same zone the tests run in (UTC-5 / UTC-4, DST on 2024-03-10).
os.environ["TZ"] = "America/New_York"
if hasattr(time, "tzset"):
    time.tzset()


@pytest.fixture()
def adapter() -> MemoryAdapter:
    return MemoryAdapter()


@pytest.fixture()
def store(adapter) -> JournalStore:
    return JournalStore.open(adapter)


def local(*args) -> datetime:
    """Aware local datetime from naive components."""
    return datetime(*args).astimezone()
