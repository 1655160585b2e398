"""HTTP, SSE and WebSocket routes."""

from .api import api_routes
from .events import event_routes
from .health import health_routes
from .websocket import websocket_routes

__all__ = [
    "api_routes",
    "event_routes",
    "health_routes",
    "websocket_routes",
]
