"""Great-circle distance helpers."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from smartsos.core.models import GeoPoint

# Mean Earth radius in meters (for Haversine).
EARTH_RADIUS_M = 6_371_000.0


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in meters between two points."""
    rlat1, rlat2 = math.radians(lat1), math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)
    a = math.sin(dlat / 2) ** 2 + math.cos(rlat1) * math.cos(rlat2) * math.sin(dlon / 2) ** 2
    # Rounding can push ``a`` a hair past 1 for antipodal points.
    a = min(1.0, a)
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(a))


def distance_m(a: GeoPoint, b: GeoPoint) -> float:
    return haversine_m(a.latitude, a.longitude, b.latitude, b.longitude)


def is_valid_coordinate(latitude: float, longitude: float) -> bool:
    """True for finite coordinates within the WGS84 ranges."""
    if not (math.isfinite(latitude) and math.isfinite(longitude)):
        return False
    return -90.0 <= latitude <= 90.0 and -180.0 <= longitude <= 180.0
