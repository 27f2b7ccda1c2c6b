"""Health check and monitoring endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from smartsos.storage.base import REPORTS_TABLE, SOS_TABLE, ZONES_TABLE

router = APIRouter(prefix="/api")

VERSION = "0.1.0"


@router.get("/health")
async def health() -> dict:
    """Basic health check."""
    from smartsos.main import get_config, get_stats, get_store

    store = get_store()
    snapshot = get_stats().snapshot()
    return {
        "status": "ok",
        "version": VERSION,
        "env": get_config().server.env,
        "uptime_seconds": snapshot["uptime_seconds"],
        "zones": len(await store.select(ZONES_TABLE)),
    }


@router.get("/stats")
async def stats() -> dict:
    """Request counters plus current row counts per table."""
    from smartsos.main import get_stats, get_store

    store = get_store()
    result = get_stats().snapshot()
    result["tables"] = {
        table: len(await store.select(table))
        for table in (ZONES_TABLE, SOS_TABLE, REPORTS_TABLE)
    }
    return result
