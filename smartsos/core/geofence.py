"""Zone membership classification.

A zone is a circle (center + radius in meters). A user is inside when the
great-circle distance to the center is at most the radius; the boundary
itself counts as inside.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from smartsos.core.geo import distance_m

if TYPE_CHECKING:
    from smartsos.core.models import DangerZone, GeoPoint


def is_inside(user: GeoPoint, zone: DangerZone) -> bool:
    return distance_m(user, zone.center) <= zone.radius_m


def any_zone_contains(user: GeoPoint | None, zones: Iterable[DangerZone]) -> bool:
    """True if any zone contains ``user``. False with no fix or no zones."""
    if user is None:
        return False
    return any(is_inside(user, zone) for zone in zones)


def zones_containing(user: GeoPoint | None, zones: Iterable[DangerZone]) -> list[DangerZone]:
    """All zones containing ``user``, in snapshot order."""
    if user is None:
        return []
    return [zone for zone in zones if is_inside(user, zone)]
