"""Health check endpoint."""

from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route


async def health_check(request: Request) -> JSONResponse:
    """Health check endpoint."""
    service = request.app.state.service
    return JSONResponse(
        {
            "status": "ok",
            "obs_connected": service.is_ready,
            "obs_state": service.connection.state.value,
        }
    )


health_routes = [
    Route("/health", health_check, methods=["GET"]),
]
