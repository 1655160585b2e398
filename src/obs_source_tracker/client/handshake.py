"""Connection handshake.

    AWAITING_HELLO --Hello/Identify--> IDENTIFYING --Identified--> READY

Application requests are only legal once READY. Handshake frames that
arrive in any other state are logged and ignored.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum
from typing import Protocol

from ..protocol import RPC_VERSION, TRACKER_SUBSCRIPTIONS, Frame, OpCode

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    """Connection state machine."""

    DISCONNECTED = "disconnected"
    AWAITING_HELLO = "awaiting_hello"
    IDENTIFYING = "identifying"
    READY = "ready"


class HandshakePeer(Protocol):
    """The connection side the sequencer drives."""

    @property
    def state(self) -> ConnectionState: ...

    def set_state(self, state: ConnectionState) -> None: ...

    async def send_frame(self, frame: Frame) -> None: ...


class HandshakeSequencer:
    """Drives Hello -> Identify -> Identified for one connection."""

    def __init__(
        self,
        peer: HandshakePeer,
        on_ready: Callable[[Frame], None] | None = None,
        rpc_version: int = RPC_VERSION,
        event_subscriptions: int = TRACKER_SUBSCRIPTIONS,
    ):
        self._peer = peer
        self._on_ready = on_ready
        self.rpc_version = rpc_version
        self.event_subscriptions = event_subscriptions

    async def handle(self, frame: Frame) -> None:
        """Handle a Hello or Identified frame."""
        if frame.op == OpCode.HELLO:
            await self._handle_hello(frame)
        elif frame.op == OpCode.IDENTIFIED:
            await self._handle_identified(frame)
        else:
            logger.debug(f"Not a handshake frame: op={frame.op}")

    async def _handle_hello(self, frame: Frame) -> None:
        if self._peer.state != ConnectionState.AWAITING_HELLO:
            logger.warning(f"Ignoring Hello in state {self._peer.state.value}")
            return

        server_rpc = frame.d.get("rpcVersion")
        logger.info(
            f"OBS Hello received (obs-websocket {frame.d.get('obsWebSocketVersion', '?')}, "
            f"rpcVersion {server_rpc})"
        )
        if "authentication" in frame.d:
            logger.warning("OBS requires authentication, which is not supported; identifying anyway")

        self._peer.set_state(ConnectionState.IDENTIFYING)
        await self._peer.send_frame(Frame.identify(self.rpc_version, self.event_subscriptions))
        logger.info("Identify sent")

    async def _handle_identified(self, frame: Frame) -> None:
        if self._peer.state != ConnectionState.IDENTIFYING:
            logger.warning(f"Ignoring Identified in state {self._peer.state.value}")
            return

        self._peer.set_state(ConnectionState.READY)
        logger.info(
            f"Identified with OBS (negotiated rpcVersion {frame.d.get('negotiatedRpcVersion')})"
        )
        if self._on_ready is not None:
            self._on_ready(frame)
