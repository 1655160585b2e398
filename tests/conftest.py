"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from obs_source_tracker.bus import Bus
from obs_source_tracker.store import AggregationStore


@pytest.fixture(scope="module")
def anyio_backend():
    """Configure anyio to use asyncio backend."""
    return "asyncio"


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


@pytest.fixture
def clock() -> ManualClock:
    """Clock starting at 2024-05-01 12:00:00 UTC."""
    return ManualClock(datetime(2024, 5, 1, 12, 0, 0, tzinfo=UTC))


@pytest.fixture
def store():
    """In-memory aggregation store."""
    store = AggregationStore()
    yield store
    store.close()


@pytest.fixture
def bus() -> Bus:
    return Bus()
