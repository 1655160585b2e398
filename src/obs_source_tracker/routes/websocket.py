"""WebSocket endpoint for dashboards.

URL: /ws

Protocol:
1. Server sends `initial_data` with the active sources and today's counters
2. Server forwards every bus event as `{"type": ..., "properties": ...}`
3. Client messages are ignored except `{"type": "ping"}`, answered with pong
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging

from starlette.routing import WebSocketRoute
from starlette.websockets import WebSocket, WebSocketDisconnect

logger = logging.getLogger(__name__)


async def websocket_endpoint(websocket: WebSocket) -> None:
    """Stream tracker notifications to one dashboard client."""
    service = websocket.app.state.service
    await websocket.accept()
    # Subscribe before the snapshot so no update falls between the two
    queue = service.bus.subscribe()
    receiver = asyncio.create_task(_receive_loop(websocket))

    try:
        await websocket.send_text(
            json.dumps(
                {
                    "type": "initial_data",
                    "properties": {
                        "active_sources": service.active_sources,
                        "data": [row.model_dump() for row in service.today()],
                    },
                }
            )
        )

        while not receiver.done():
            getter = asyncio.create_task(queue.get())
            done, _ = await asyncio.wait({getter, receiver}, return_when=asyncio.FIRST_COMPLETED)
            if getter not in done:
                getter.cancel()
                break
            await websocket.send_text(json.dumps(getter.result()))

    except WebSocketDisconnect:
        logger.info("Dashboard WebSocket client disconnected")
    except Exception as e:
        logger.exception(f"Dashboard WebSocket error: {e}")
    finally:
        service.bus.unsubscribe(queue)
        receiver.cancel()
        with contextlib.suppress(asyncio.CancelledError, WebSocketDisconnect):
            await receiver


async def _receive_loop(websocket: WebSocket) -> None:
    """Answer pings until the client disconnects."""
    while True:
        try:
            text = await websocket.receive_text()
        except WebSocketDisconnect:
            return
        try:
            message = json.loads(text)
        except json.JSONDecodeError:
            continue
        if isinstance(message, dict) and message.get("type") == "ping":
            await websocket.send_text(json.dumps({"type": "pong"}))


websocket_routes = [
    WebSocketRoute("/ws", websocket_endpoint),
]
