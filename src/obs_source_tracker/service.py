"""Tracker service.

Wires one aggregation store, one bus, one visibility tracker and one OBS
connection together and runs the connection as a background task.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

from .bus import Bus
from .client import ObsConnection
from .config import TrackerConfig
from .store import AggregationStore, DailyAggregate
from .tracker import VisibilityTracker

logger = logging.getLogger(__name__)


class TrackerService:
    """Owns the tracker components for the lifetime of the process."""

    def __init__(
        self,
        config: TrackerConfig | None = None,
        *,
        store: AggregationStore | None = None,
        bus: Bus | None = None,
    ):
        self.config = config or TrackerConfig.from_env()
        self.store = store if store is not None else AggregationStore(self.config.db_path)
        self.bus = bus or Bus()
        self.tracker = VisibilityTracker(self.store, self.bus)
        self.connection = ObsConnection(self.config, self.tracker, bus=self.bus)
        self._task: asyncio.Task[None] | None = None
        self._background: set[asyncio.Task[int | None]] = set()

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def is_ready(self) -> bool:
        return self.connection.is_ready

    @property
    def active_sources(self) -> list[str]:
        return self.tracker.active_sources

    def today(self) -> list[DailyAggregate]:
        """Today's counters."""
        return self.tracker.snapshot()

    def notify(self) -> None:
        """Publish a fresh snapshot (after metadata edits)."""
        self.tracker.publish_snapshot()

    async def start(self) -> None:
        if self.is_running:
            return
        logger.info(f"Starting tracker for {self.config.obs_url}")
        self._task = asyncio.create_task(self.connection.run())

    async def stop(self) -> None:
        logger.info("Stopping tracker")
        await self.connection.stop()
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        background = list(self._background)
        for task in background:
            task.cancel()
        # Let cancelled polls unwind before the store closes
        await asyncio.gather(*background, return_exceptions=True)
        self.store.close()

    def force_update(self) -> bool:
        """Schedule an immediate poll cycle.

        Returns:
            False if the connection is not ready
        """
        if not self.connection.is_ready:
            logger.info("Force update skipped: OBS connection not ready")
            return False
        task = asyncio.create_task(self.connection.poller.poll_once())
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return True
