"""SOS alert endpoint.

This is the thin FastAPI adapter. It parses the JSON body, checks the
coordinates and inserts a row into the ``sos`` table.
"""

from __future__ import annotations

import json

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from smartsos.backend.wire import parse_number
from smartsos.core.geo import is_valid_coordinate
from smartsos.core.models import DEFAULT_ALERT_RADIUS_M
from smartsos.storage.base import SOS_TABLE

router = APIRouter(prefix="/api")

log = structlog.get_logger()


def _error(status: int, message: str) -> JSONResponse:
    return JSONResponse(content={"success": False, "error": message}, status_code=status)


async def read_json_object(request: Request) -> dict | None:
    """Decode the request body as a JSON object, or None if it is not one."""
    try:
        body = json.loads(await request.body())
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    return body if isinstance(body, dict) else None


def check_coordinates(body: dict) -> str:
    """Return an error message, or "" when ``lat``/``lang`` are usable."""
    lat = parse_number(body.get("lat"))
    lon = parse_number(body.get("lang"))
    if lat is None or lon is None:
        return "lat and lang must be numeric"
    if not is_valid_coordinate(lat, lon):
        return "lat/lang out of range"
    return ""


@router.post("/add-demo")
async def add_sos_alert(request: Request) -> JSONResponse:
    """Record an SOS alert sent by a device.

    Body: {"lat": "12.97", "lang": "77.59", "radius": 1, "message": "..."}
    """
    from smartsos.main import get_stats, get_store

    stats = get_stats()
    body = await read_json_object(request)
    if body is None:
        stats.record_alert_rejected()
        return _error(400, "invalid JSON")

    problem = check_coordinates(body)
    if problem:
        stats.record_alert_rejected()
        return _error(422, problem)

    radius = parse_number(body.get("radius"))
    message = body.get("message")
    row = {
        "lat": body["lat"],
        "lang": body["lang"],
        "radius": radius if radius is not None else DEFAULT_ALERT_RADIUS_M,
        "message": message if isinstance(message, str) else "",
    }

    try:
        stored = await get_store().insert(SOS_TABLE, row)
    except Exception:
        log.error("sos_insert_failed", exc_info=True)
        stats.record_storage_error()
        return JSONResponse(content={"error": "Internal server error"}, status_code=500)

    stats.record_alert()
    log.info("sos_alert_received", id=stored["id"], lat=row["lat"], lang=row["lang"])
    return JSONResponse(content={"success": True, "data": [stored]}, status_code=201)
