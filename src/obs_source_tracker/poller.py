"""Inventory poll driver.

OBS does not push full inventory state, so once the connection is READY the
poll driver enumerates every scene and every item in it at a fixed
interval and feeds the results through the same transition function as
live events. Because that function is idempotent, polling an unchanged
state never counts anything twice.

Each scene is applied as its answer arrives, so a live event that lands
mid-cycle is never overwritten by an older poll observation. A failed
scene request costs that scene, and the cycle then only ever shows
sources. The loop never raises.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from .errors import RequestError
from .tracker import VisibilityTracker

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 2.0


class RequestSender(Protocol):
    async def send_request(
        self, request_type: str, request_data: dict[str, Any] | None = None
    ) -> dict[str, Any]: ...


@dataclass
class _PollCycle:
    """What one poll cycle has seen so far."""

    mark: int
    enabled: set[str] = field(default_factory=set)
    hidden: set[str] = field(default_factory=set)
    failed: bool = False


class PollDriver:
    """Periodically re-enumerates scenes and scene items."""

    def __init__(
        self,
        requests: RequestSender,
        tracker: VisibilityTracker,
        interval: float = DEFAULT_POLL_INTERVAL,
    ):
        self._requests = requests
        self._tracker = tracker
        self.interval = interval
        self._task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start polling now and every `interval` seconds."""
        if self.is_running:
            return
        self._task = asyncio.create_task(self._run())
        logger.info(f"Polling OBS inventory every {self.interval}s")

    def cancel(self) -> None:
        """Cancel the poll loop without waiting for it."""
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def stop(self) -> None:
        """Cancel the poll loop and wait for it to finish."""
        task = self._task
        self._task = None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def _run(self) -> None:
        while True:
            await self.poll_once()
            await asyncio.sleep(self.interval)

    async def poll_once(self) -> int | None:
        """Run one poll cycle.

        Items reported enabled are applied as soon as their scene answers.
        Hides wait until every scene has answered and are dropped when any
        scene failed. A source with a live event after the cycle started
        keeps the event's state.

        Returns:
            Number of sources observed, or None if the scene list failed
        """
        cycle = _PollCycle(mark=self._tracker.event_mark)
        try:
            scene_list = await self._requests.send_request("GetSceneList")
        except RequestError as e:
            logger.warning(f"GetSceneList failed: {e}")
            return None
        except Exception:
            logger.exception("Unexpected error listing scenes")
            return None

        scene_names = [
            scene["sceneName"]
            for scene in scene_list.get("scenes") or []
            if isinstance(scene, dict) and isinstance(scene.get("sceneName"), str)
        ]
        await asyncio.gather(*(self._poll_scene(name, cycle) for name in scene_names))

        hidden = cycle.hidden - cycle.enabled
        if cycle.failed:
            if hidden:
                logger.info(f"Skipping {len(hidden)} hide(s) after an incomplete poll cycle")
        else:
            for name in sorted(hidden):
                if not self._tracker.had_event_since(name, cycle.mark):
                    self._tracker.apply_visibility(name, False)
        return len(cycle.enabled | cycle.hidden)

    async def _poll_scene(self, scene_name: str, cycle: _PollCycle) -> None:
        try:
            items = await self._list_items(scene_name)
        except RequestError as e:
            logger.warning(f"GetSceneItemList failed for {scene_name}: {e}")
            cycle.failed = True
            return
        except Exception:
            logger.exception(f"Unexpected error listing items of {scene_name}")
            cycle.failed = True
            return

        for name, enabled in items:
            if not enabled:
                cycle.hidden.add(name)
                continue
            cycle.enabled.add(name)
            if not self._tracker.had_event_since(name, cycle.mark):
                self._tracker.apply_visibility(name, True)

    async def _list_items(self, scene_name: str) -> list[tuple[str, bool]]:
        response = await self._requests.send_request("GetSceneItemList", {"sceneName": scene_name})
        items: list[tuple[str, bool]] = []
        for item in response.get("sceneItems") or []:
            if not isinstance(item, dict):
                continue
            name = item.get("sourceName")
            if isinstance(name, str) and name:
                items.append((name, bool(item.get("sceneItemEnabled"))))
        return items
