"""OBS Source Tracker application.

Creates the Starlette ASGI application with all routes.

Route organization:
- /health - Health check
- /api/* - Counters, reports and source metadata
- /event - SSE event streaming
- /ws - WebSocket dashboard feed

The tracker service is attached to `app.state.service` and, unless disabled,
runs for the lifetime of the application.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.routing import Route, WebSocketRoute

from .routes import api_routes, event_routes, health_routes, websocket_routes
from .service import TrackerService


def create_app(service: TrackerService | None = None, *, start_tracker: bool = True) -> Starlette:
    """Create the tracker application.

    Args:
        service: Tracker service to expose (built from the environment if omitted)
        start_tracker: If False, the OBS connection is never started

    Returns:
        Configured Starlette application
    """
    service = service or TrackerService()

    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        if start_tracker:
            await service.start()
        try:
            yield
        finally:
            await service.stop()

    routes: list[Route | WebSocketRoute] = []
    routes.extend(health_routes)
    routes.extend(api_routes)
    routes.extend(event_routes)
    routes.extend(websocket_routes)

    # Dashboards are served from anywhere on the local network
    middleware = [
        Middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["*"],
            allow_headers=["*"],
        ),
    ]

    app = Starlette(routes=routes, middleware=middleware, lifespan=lifespan)
    app.state.service = service
    return app
