"""JSON wire format of the safety backend.

The backend names longitude ``lang``. That name is part of the external
contract and only appears in this module; everything inside the core uses
``GeoPoint.longitude``.
"""

from __future__ import annotations

import math
from typing import Any

import structlog

from smartsos.core.geo import is_valid_coordinate
from smartsos.core.models import (
    DEFAULT_ZONE_RADIUS_M,
    DangerZone,
    EmergencyPayload,
    GeoPoint,
    HazardReport,
)

log = structlog.get_logger()


def parse_number(value: Any) -> float | None:
    """Return ``value`` as a finite float, or None if it is not numeric.

    Numbers and numeric strings are accepted; the backend stores
    coordinates as text.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        if not value.strip():
            return None
        try:
            number = float(value)
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def zone_from_wire(row: Any, default_radius_m: float = DEFAULT_ZONE_RADIUS_M) -> DangerZone | None:
    """Parse one danger-zone row. Returns None for a malformed row."""
    if not isinstance(row, dict):
        return None
    lat = parse_number(row.get("lat"))
    lon = parse_number(row.get("lang"))
    if lat is None or lon is None or not is_valid_coordinate(lat, lon):
        return None

    radius = parse_number(row.get("radius"))
    if radius is None or radius <= 0:
        radius = default_radius_m

    message = row.get("message")
    return DangerZone(
        id=row.get("id"),
        center=GeoPoint(lat, lon),
        radius_m=radius,
        message=message if isinstance(message, str) else None,
    )


def zones_from_wire(body: list, default_radius_m: float = DEFAULT_ZONE_RADIUS_M) -> list[DangerZone]:
    """Parse a zone listing, silently dropping malformed rows."""
    zones: list[DangerZone] = []
    dropped = 0
    for row in body:
        zone = zone_from_wire(row, default_radius_m)
        if zone is None:
            dropped += 1
            continue
        zones.append(zone)
    if dropped:
        log.debug("zone_rows_dropped", dropped=dropped, kept=len(zones))
    return zones


def payload_to_wire(payload: EmergencyPayload) -> dict:
    """Body of ``POST /api/add-demo``. Coordinates travel as strings."""
    return {
        "lat": str(payload.position.latitude),
        "lang": str(payload.position.longitude),
        "radius": payload.radius_m,
        "message": payload.message,
    }


def report_to_wire(report: HazardReport) -> dict:
    """Body of ``POST /api/reports``."""
    return {
        "lat": str(report.position.latitude),
        "lang": str(report.position.longitude),
        "dsc": report.description,
        "img": report.image_data_url,
    }
