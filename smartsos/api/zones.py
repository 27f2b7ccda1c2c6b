"""Danger-zone listing endpoint."""

from __future__ import annotations

import structlog
from fastapi import APIRouter
from fastapi.responses import JSONResponse

from smartsos.storage.base import ZONES_TABLE

router = APIRouter(prefix="/api")

log = structlog.get_logger()

_ZONE_COLUMNS = ("id", "lat", "lang", "radius", "message")


@router.get("/danger-zones")
async def list_danger_zones() -> JSONResponse:
    """Return every danger zone as ``[{id, lat, lang, radius, message}]``.

    Rows are returned as stored; clients filter out malformed ones.
    """
    from smartsos.main import get_stats, get_store

    stats = get_stats()
    stats.record_zone_request()
    try:
        rows = await get_store().select(ZONES_TABLE)
    except Exception:
        log.error("zone_select_failed", exc_info=True)
        stats.record_storage_error()
        return JSONResponse(content={"error": "Failed to fetch danger zones"}, status_code=500)

    zones = [{col: row.get(col) for col in _ZONE_COLUMNS} for row in rows]
    return JSONResponse(content=zones)
