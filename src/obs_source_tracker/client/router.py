"""Inbound frame routing.

Every text frame from OBS is decoded and sent to exactly one place:
handshake frames to the HandshakeSequencer, responses to the
RequestCorrelator, visibility events to the VisibilityTracker. Anything
else is logged and dropped; nothing here closes the connection.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from ..errors import FrameError, RequestError
from ..protocol import Frame, OpCode
from ..tracker import VisibilityTracker
from .correlator import RequestCorrelator
from .handshake import HandshakeSequencer

logger = logging.getLogger(__name__)

ITEM_ENABLE_STATE_CHANGED = "SceneItemEnableStateChanged"


class FrameRouter:
    """Demultiplexes inbound frames by opcode."""

    def __init__(
        self,
        handshake: HandshakeSequencer,
        correlator: RequestCorrelator,
        tracker: VisibilityTracker,
    ):
        self._handshake = handshake
        self._correlator = correlator
        self._tracker = tracker
        self._lookups: set[asyncio.Task[None]] = set()

    @property
    def pending_lookups(self) -> int:
        return len(self._lookups)

    async def dispatch(self, raw: str | bytes) -> None:
        """Route one raw frame."""
        try:
            frame = Frame.from_json(raw)
        except FrameError as e:
            logger.warning(f"Dropping malformed frame: {e}")
            return

        opcode = frame.opcode
        if opcode in (OpCode.HELLO, OpCode.IDENTIFIED):
            await self._handshake.handle(frame)
        elif opcode == OpCode.REQUEST_RESPONSE:
            if frame.request_id is None:
                logger.warning("Dropping response without requestId")
                return
            self._correlator.resolve(frame)
        elif opcode == OpCode.EVENT:
            self._handle_event(frame)
        else:
            logger.info(f"Dropping frame with unhandled op {frame.op}")

    def _handle_event(self, frame: Frame) -> None:
        event_type = frame.event_type
        if event_type is None:
            logger.warning("Dropping event without eventType")
            return
        if event_type != ITEM_ENABLE_STATE_CHANGED:
            logger.debug(f"Ignoring OBS event {event_type}")
            return

        data = frame.event_data
        enabled = data.get("sceneItemEnabled")
        if not isinstance(enabled, bool):
            logger.warning(f"Dropping {event_type} without sceneItemEnabled")
            return

        name = data.get("sourceName") or data.get("sceneItemName")
        if isinstance(name, str) and name:
            self._tracker.apply_event(name, enabled)
            return

        scene_name = data.get("sceneName")
        item_id = data.get("sceneItemId")
        if isinstance(scene_name, str) and isinstance(item_id, int):
            # obs-websocket 5 identifies the item by id; look its source up
            task = asyncio.create_task(self._lookup_and_apply(scene_name, item_id, enabled))
            self._lookups.add(task)
            task.add_done_callback(self._lookups.discard)
            return

        logger.warning(f"Dropping {event_type} without a source reference")

    async def _lookup_and_apply(self, scene_name: str, item_id: int, enabled: bool) -> None:
        request_data: dict[str, Any] = {"sceneName": scene_name, "sceneItemId": item_id}
        try:
            response = await self._correlator.send_request("GetSceneItemSource", request_data)
        except RequestError as e:
            logger.warning(f"Source lookup for {scene_name}#{item_id} failed: {e}")
            return

        name = response.get("sourceName")
        if not isinstance(name, str) or not name:
            logger.warning(f"Source lookup for {scene_name}#{item_id} returned no name")
            return
        self._tracker.apply_event(name, enabled)

    def cancel_lookups(self) -> None:
        """Cancel source lookups still waiting on OBS."""
        for task in list(self._lookups):
            task.cancel()
        self._lookups.clear()
