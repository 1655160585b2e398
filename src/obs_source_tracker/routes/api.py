"""REST endpoints for counters, reports and source metadata."""

import json
import logging
from datetime import date
from typing import Any

from pydantic import BaseModel, ValidationError
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from ..store import SourceMetadata

logger = logging.getLogger(__name__)

# =============================================================================
# Request Models
# =============================================================================


class CreateMetadataRequest(BaseModel):
    """Request to create (or replace) metadata for a source."""

    source_name: str
    title: str
    category: str
    brand: str = ""


class UpdateMetadataRequest(BaseModel):
    """Request to update existing metadata."""

    title: str
    category: str
    brand: str = ""


# =============================================================================
# Helpers
# =============================================================================


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


async def _read_json(request: Request) -> dict[str, Any] | None:
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    return body if isinstance(body, dict) else None


# =============================================================================
# Counters
# =============================================================================


async def list_sources(request: Request) -> JSONResponse:
    """Today's counters, most recently shown first."""
    service = request.app.state.service
    return JSONResponse([row.model_dump() for row in service.today()])


async def active_sources(request: Request) -> JSONResponse:
    """Sources currently on screen."""
    service = request.app.state.service
    active = service.active_sources
    return JSONResponse(
        {
            "active_sources": active,
            "total_active": len(active),
            "obs_connected": service.is_ready,
        }
    )


async def force_update(request: Request) -> JSONResponse:
    """Trigger an immediate inventory poll."""
    service = request.app.state.service
    if not service.force_update():
        return _error("OBS connection not ready", 503)
    return JSONResponse({"message": "Manual update triggered"})


# =============================================================================
# Reports
# =============================================================================


async def report_dates(request: Request) -> JSONResponse:
    """Days with recorded counters, newest first."""
    service = request.app.state.service
    return JSONResponse(service.store.list_dates())


async def daily_report(request: Request) -> JSONResponse:
    """Counters for ?date=YYYY-MM-DD (default today), most shown first."""
    service = request.app.state.service
    raw_date = request.query_params.get("date")
    try:
        day = date.fromisoformat(raw_date) if raw_date else service.tracker.today()
    except ValueError:
        return _error(f"Invalid date: {raw_date}", 400)

    rows = service.store.read_day(day, order="count")
    return JSONResponse([row.model_dump() for row in rows])


# =============================================================================
# Metadata
# =============================================================================


async def list_metadata(request: Request) -> JSONResponse:
    service = request.app.state.service
    return JSONResponse([m.model_dump() for m in service.store.list_metadata()])


async def create_metadata(request: Request) -> JSONResponse:
    service = request.app.state.service
    body = await _read_json(request)
    if body is None:
        return _error("Invalid JSON format", 400)
    try:
        req = CreateMetadataRequest(**body)
    except ValidationError:
        return _error("Missing required fields: source_name, title, category", 400)

    service.store.upsert_metadata(SourceMetadata(**req.model_dump()))
    service.notify()
    logger.info(f"Metadata saved for {req.source_name}")
    return JSONResponse(
        {"success": True, "message": f"Metadata for {req.source_name} saved successfully"}
    )


async def update_metadata(request: Request) -> JSONResponse:
    service = request.app.state.service
    source_name = request.path_params["source_name"]
    body = await _read_json(request)
    if body is None:
        return _error("Invalid JSON format", 400)
    try:
        req = UpdateMetadataRequest(**body)
    except ValidationError:
        return _error("Missing required fields: title, category", 400)

    if not service.store.update_metadata(source_name, req.title, req.category, req.brand):
        return _error(f"No metadata for {source_name}", 404)
    service.notify()
    return JSONResponse(
        {"success": True, "message": f"Metadata for {source_name} updated successfully"}
    )


async def delete_metadata(request: Request) -> JSONResponse:
    service = request.app.state.service
    source_name = request.path_params["source_name"]
    if not service.store.delete_metadata(source_name):
        return _error(f"No metadata for {source_name}", 404)
    service.notify()
    return JSONResponse(
        {"success": True, "message": f"Metadata for {source_name} deleted successfully"}
    )


api_routes = [
    Route("/api/sources", list_sources, methods=["GET"]),
    Route("/api/active", active_sources, methods=["GET"]),
    Route("/api/force-update", force_update, methods=["GET", "POST"]),
    Route("/api/reports/dates", report_dates, methods=["GET"]),
    Route("/api/reports/daily", daily_report, methods=["GET"]),
    Route("/api/metadata", list_metadata, methods=["GET"]),
    Route("/api/metadata", create_metadata, methods=["POST"]),
    Route("/api/metadata/{source_name}", update_metadata, methods=["PUT"]),
    Route("/api/metadata/{source_name}", delete_metadata, methods=["DELETE"]),
]
