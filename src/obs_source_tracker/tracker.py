"""Visibility tracker.

Owns the set of sources currently on screen and the start of each
visibility session. Live events and inventory polls both go through
`apply_visibility`, which is idempotent: repeating the state a source is
already in changes nothing, so polls and events never double count.

On a show the tracker counts one show in the aggregation sink; on a hide it
adds the elapsed whole seconds. Both writes and the notification happen
synchronously in the caller's turn.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, date, datetime
from typing import Any, Protocol

from .bus import EventDefinition
from .events import SourceUpdated, SourceUpdatedProps
from .store import DailyAggregate

logger = logging.getLogger(__name__)


class AggregationSink(Protocol):
    """Durable per-day, per-source counters."""

    def increment_show(self, day: date, source_name: str, at: datetime) -> None: ...

    def add_duration(self, day: date, source_name: str, seconds: int) -> None: ...

    def read_day(self, day: date) -> list[DailyAggregate]: ...


class NotificationSink(Protocol):
    """Fire-and-forget fan-out to observers."""

    def publish(self, event_def: EventDefinition[Any], properties: Any) -> None: ...


def utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass
class ActiveSource:
    """A source that is currently visible."""

    name: str
    session_start: datetime


class VisibilityTracker:
    """Tracks visible sources and converts sessions into counters."""

    def __init__(
        self,
        sink: AggregationSink,
        notifier: NotificationSink | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._sink = sink
        self._notifier = notifier
        self._clock = clock
        self._active: dict[str, ActiveSource] = {}
        # Sequence number of the last live event per source
        self._event_seq = 0
        self._last_event: dict[str, int] = {}

    @property
    def active_sources(self) -> list[str]:
        """Names of the visible sources, sorted."""
        return sorted(self._active)

    def is_active(self, name: str) -> bool:
        return name in self._active

    def today(self) -> date:
        """Current day according to the tracker clock."""
        return self._clock().date()

    def session_start(self, name: str) -> datetime | None:
        active = self._active.get(name)
        return active.session_start if active else None

    def apply_visibility(self, name: str, is_visible: bool, now: datetime | None = None) -> bool:
        """Apply an observed visibility state for `name`.

        Args:
            name: Source name
            is_visible: Whether the source is currently shown
            now: Observation time (defaults to the tracker clock)

        Returns:
            True if the observation changed the active set
        """
        now = now or self._clock()
        active = self._active.get(name)

        if is_visible:
            if active is not None:
                return False
            self._active[name] = ActiveSource(name=name, session_start=now)
            logger.info(f"Source visible: {name}")
            # The in-memory transition stands even if the write fails
            try:
                self._sink.increment_show(now.date(), name, at=now)
            except Exception:
                logger.exception(f"Failed to count show for {name}")
        else:
            if active is None:
                return False
            elapsed = (now - active.session_start).total_seconds()
            duration = max(0, math.floor(elapsed))
            del self._active[name]
            logger.info(f"Source hidden: {name}, duration {duration}s")
            try:
                self._sink.add_duration(now.date(), name, duration)
            except Exception:
                logger.exception(f"Failed to add {duration}s for {name}")

        self.publish_snapshot(now.date())
        return True

    def apply_event(self, name: str, is_visible: bool, now: datetime | None = None) -> bool:
        """Apply a state reported by a live OBS event.

        Same as `apply_visibility`, but remembered so a poll cycle that
        started earlier can discard its older observation of `name`.
        """
        self._event_seq += 1
        self._last_event[name] = self._event_seq
        return self.apply_visibility(name, is_visible, now)

    @property
    def event_mark(self) -> int:
        """Marker to pass to `had_event_since` later."""
        return self._event_seq

    def had_event_since(self, name: str, mark: int) -> bool:
        return self._last_event.get(name, 0) > mark

    def clear(self) -> list[str]:
        """Forget every open session without recording durations.

        Returns:
            Names of the sessions that were dropped
        """
        dropped = self.active_sources
        self._active.clear()
        if dropped:
            logger.info(f"Dropped {len(dropped)} open session(s): {', '.join(dropped)}")
            self.publish_snapshot()
        return dropped

    def snapshot(self, day: date | None = None) -> list[DailyAggregate]:
        """Counters for `day` (today by default); empty if the sink fails."""
        day = day or self.today()
        try:
            return self._sink.read_day(day)
        except Exception:
            logger.exception(f"Failed to read counters for {day}")
            return []

    def publish_snapshot(self, day: date | None = None) -> None:
        """Publish the active set and the counters for `day` (today by default)."""
        if self._notifier is None:
            return
        props = SourceUpdatedProps(active_sources=self.active_sources, data=self.snapshot(day))
        try:
            self._notifier.publish(SourceUpdated, props)
        except Exception:
            logger.exception("Failed to publish source update")
