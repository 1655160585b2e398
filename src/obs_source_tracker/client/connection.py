"""Persistent WebSocket connection to OBS.

Owns the socket and the connection state, and wires the handshake,
correlator, router and poll driver together. When the socket closes or
errors for any reason the connection fails pending requests, drops open
visibility sessions without recording them, and reconnects after a fixed
delay, forever.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

import websockets

from ..bus import Bus
from ..config import TrackerConfig
from ..errors import TransportLostError
from ..events import (
    TrackerConnected,
    TrackerConnectedProps,
    TrackerDisconnected,
    TrackerDisconnectedProps,
)
from ..poller import PollDriver
from ..protocol import Frame
from ..tracker import VisibilityTracker
from .correlator import RequestCorrelator
from .handshake import ConnectionState, HandshakeSequencer
from .router import FrameRouter

logger = logging.getLogger(__name__)

# websockets.connect-compatible factory: url -> async context manager
Connector = Callable[..., Any]


class ObsConnection:
    """Client side of the obs-websocket control connection.

    Usage:
        connection = ObsConnection(TrackerConfig(), tracker, bus=bus)
        task = asyncio.create_task(connection.run())
        ...
        await connection.stop()
    """

    def __init__(
        self,
        config: TrackerConfig,
        tracker: VisibilityTracker,
        *,
        bus: Bus | None = None,
        connect: Connector = websockets.connect,
    ):
        self.config = config
        self._tracker = tracker
        self._bus = bus
        self._connect = connect
        self._ws: Any = None
        self._state = ConnectionState.DISCONNECTED
        self._stopping = False

        self.correlator = RequestCorrelator(
            self.send_frame,
            lambda: self.is_ready,
            timeout=config.request_timeout,
        )
        self.handshake = HandshakeSequencer(
            self,
            on_ready=self._on_ready,
            rpc_version=config.rpc_version,
        )
        self.router = FrameRouter(self.handshake, self.correlator, tracker)
        self.poller = PollDriver(self.correlator, tracker, interval=config.poll_interval)

    @property
    def state(self) -> ConnectionState:
        """Current connection state."""
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state == ConnectionState.READY

    def set_state(self, state: ConnectionState) -> None:
        if state != self._state:
            logger.debug(f"Connection state {self._state.value} -> {state.value}")
            self._state = state

    async def send_frame(self, frame: Frame) -> None:
        """Write one frame to OBS.

        Raises:
            TransportLostError: If there is no open socket
        """
        ws = self._ws
        if ws is None:
            raise TransportLostError("not connected to OBS")
        try:
            await ws.send(frame.to_json())
        except websockets.exceptions.ConnectionClosed as e:
            raise TransportLostError(f"connection closed: {e}") from e

    async def run(self) -> None:
        """Connect and keep reconnecting until stop() is called."""
        self._stopping = False
        while not self._stopping:
            try:
                await self._run_once()
            except asyncio.CancelledError:
                self._handle_transport_lost("cancelled")
                raise
            except (OSError, TransportLostError, websockets.exceptions.WebSocketException) as e:
                logger.warning(f"OBS connection error: {e}")
            except Exception as e:
                logger.exception(f"Unexpected OBS connection error: {e}")

            self._handle_transport_lost("connection closed")
            if self._stopping:
                break
            logger.info(f"Reconnecting to OBS in {self.config.reconnect_delay}s")
            await asyncio.sleep(self.config.reconnect_delay)

    async def _run_once(self) -> None:
        url = self.config.obs_url
        logger.info(f"Connecting to OBS at {url}")
        async with self._connect(url) as ws:
            self._ws = ws
            self.set_state(ConnectionState.AWAITING_HELLO)
            logger.info("Connected to OBS WebSocket, awaiting Hello")
            async for message in ws:
                await self.router.dispatch(message)
        logger.info("OBS WebSocket connection closed")

    async def stop(self) -> None:
        """Stop reconnecting and close the socket."""
        self._stopping = True
        await self.poller.stop()
        ws = self._ws
        if ws is not None:
            await ws.close()

    def _on_ready(self, frame: Frame) -> None:
        self.poller.start()
        if self._bus is not None:
            self._bus.publish(
                TrackerConnected,
                TrackerConnectedProps(
                    obs_url=self.config.obs_url,
                    rpc_version=frame.d.get("negotiatedRpcVersion"),
                ),
            )

    def _handle_transport_lost(self, reason: str) -> None:
        was_connected = self._ws is not None or self._state != ConnectionState.DISCONNECTED
        self._ws = None
        self.poller.cancel()
        self.router.cancel_lookups()
        self.correlator.fail_all(reason)
        dropped = self._tracker.clear()
        self.set_state(ConnectionState.DISCONNECTED)

        if was_connected and self._bus is not None:
            self._bus.publish(
                TrackerDisconnected,
                TrackerDisconnectedProps(obs_url=self.config.obs_url, dropped_sessions=dropped),
            )
