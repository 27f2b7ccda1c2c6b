"""SmartSOS: core internal data models.

These are plain dataclasses with no framework dependencies.
Wire dicts (with the ``lat``/``lang`` field names) are converted to/from
these at the boundary, see ``smartsos.backend.wire``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


# Radius used when a zone row carries no usable radius.
DEFAULT_ZONE_RADIUS_M = 200.0

# Radius attached to an outgoing SOS alert.
DEFAULT_ALERT_RADIUS_M = 1

DEFAULT_ALERT_MESSAGE = "Urgent Assistance Required."


@dataclass(frozen=True)
class GeoPoint:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class PositionFix:
    """A raw reading from a location source."""
    latitude: float
    longitude: float
    accuracy_m: float = 0.0
    timestamp_ms: int = 0

    @property
    def point(self) -> GeoPoint:
        return GeoPoint(self.latitude, self.longitude)


@dataclass(frozen=True)
class DangerZone:
    id: object
    center: GeoPoint
    radius_m: float = DEFAULT_ZONE_RADIUS_M
    message: str | None = None


@dataclass(frozen=True)
class MotionSample:
    """Acceleration including gravity, in m/s²."""
    x: float
    y: float
    z: float
    timestamp_ms: int


class AlertStatus(str, Enum):
    IDLE = "idle"
    COUNTING_DOWN = "counting_down"
    CANCELLED = "cancelled"
    DISPATCHING = "dispatching"
    SENT = "sent"
    FAILED = "failed"


ACTIVE_STATUSES = frozenset({AlertStatus.COUNTING_DOWN, AlertStatus.DISPATCHING})


@dataclass
class AlertActivation:
    started_at_ms: int
    countdown_remaining: int
    status: AlertStatus = AlertStatus.COUNTING_DOWN
    trigger_source: str = "press"


@dataclass(frozen=True)
class EmergencyPayload:
    position: GeoPoint
    radius_m: float = DEFAULT_ALERT_RADIUS_M
    message: str = DEFAULT_ALERT_MESSAGE


@dataclass(frozen=True)
class HazardReport:
    position: GeoPoint
    description: str
    image_data_url: str | None = None


@dataclass(frozen=True)
class Notice:
    """A transient user-visible message (toast)."""
    title: str
    description: str
    variant: str = "default"  # "default", "destructive" or "warning"
