"""Hazard report endpoints and uploaded-image serving."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import FileResponse, JSONResponse

from smartsos.api.alerts import check_coordinates, read_json_object
from smartsos.storage.base import REPORTS_TABLE

router = APIRouter()

log = structlog.get_logger()


def _error(status: int, message: str) -> JSONResponse:
    return JSONResponse(content={"success": False, "error": message}, status_code=status)


@router.post("/api/reports")
async def submit_report(request: Request) -> JSONResponse:
    """Record a hazard report.

    Body: {"lat": "...", "lang": "...", "dsc": "...", "img": "data:image/...;base64,..." | null}

    An image data URL is written to media storage first and its public URL
    is stored in place of the data.
    """
    from smartsos.main import get_media, get_stats, get_store

    stats = get_stats()
    body = await read_json_object(request)
    if body is None:
        stats.record_report_rejected()
        return _error(400, "invalid JSON")

    problem = check_coordinates(body)
    if problem:
        stats.record_report_rejected()
        return _error(422, problem)

    description = body.get("dsc")
    if not isinstance(description, str) or not description.strip():
        stats.record_report_rejected()
        return _error(422, "dsc is required")

    img = body.get("img")
    image_url = None
    if img:
        if not isinstance(img, str):
            stats.record_report_rejected()
            return _error(422, "img must be a data URL")
        if img.startswith(("http://", "https://")):
            image_url = img
        else:
            try:
                image_url = get_media().save_data_url(img)
            except ValueError as e:
                stats.record_report_rejected()
                return _error(422, f"img: {e}")
            except OSError:
                log.error("media_write_failed", exc_info=True)
                stats.record_storage_error()
                return JSONResponse(content={"error": "Internal server error"}, status_code=500)

    row = {"lat": body["lat"], "lang": body["lang"], "dsc": description, "img": image_url}
    try:
        stored = await get_store().insert(REPORTS_TABLE, row)
    except Exception:
        log.error("report_insert_failed", exc_info=True)
        stats.record_storage_error()
        return JSONResponse(content={"error": "Internal server error"}, status_code=500)

    stats.record_report(with_image=image_url is not None)
    log.info("hazard_report_received", id=stored["id"], has_image=image_url is not None)
    return JSONResponse(content={"success": True, "data": [stored]}, status_code=201)


@router.get("/media/{name}", response_model=None)
async def get_media_file(name: str) -> FileResponse | JSONResponse:
    from smartsos.main import get_media

    path = get_media().path_for(name)
    if path is None:
        return JSONResponse(content={"error": "not found"}, status_code=404)
    return FileResponse(path)
