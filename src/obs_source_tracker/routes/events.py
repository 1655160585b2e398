"""SSE event streaming endpoint."""

import json

from starlette.requests import Request
from starlette.responses import StreamingResponse
from starlette.routing import Route

from ..events import SourceUpdated, SourceUpdatedProps


async def sse_endpoint(request: Request) -> StreamingResponse:
    """SSE endpoint - streams every tracker notification.

    The first event is the current snapshot so clients can render
    immediately.
    """
    service = request.app.state.service

    async def event_stream():
        initial = {
            "type": SourceUpdated.type,
            "properties": SourceUpdatedProps(
                active_sources=service.active_sources,
                data=service.today(),
            ).model_dump(mode="json"),
        }
        yield f"data: {json.dumps(initial)}\n\n"

        try:
            async for event in service.bus.stream():
                if await request.is_disconnected():
                    break
                yield f"data: {json.dumps(event)}\n\n"
        except GeneratorExit:
            pass

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        },
    )


event_routes = [
    Route("/event", sse_endpoint, methods=["GET"]),
]
