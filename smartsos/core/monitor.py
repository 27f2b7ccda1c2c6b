"""Geofence monitor: the live "in danger" signal.

Re-evaluates the classifier whenever the tracker produces a fix or the
poller replaces the zone snapshot, and reports entry/exit transitions.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from smartsos.core.geofence import zones_containing
from smartsos.core.models import Notice
from smartsos.core.sos import Notifier, log_notice

if TYPE_CHECKING:
    from smartsos.core.location import LocationTracker
    from smartsos.core.models import DangerZone, GeoPoint
    from smartsos.core.poller import ZonePoller

log = structlog.get_logger()

DANGER_NOTICE = Notice(
    "Potential Danger Zone",
    "You are approaching an area inside a danger zone. Please be vigilant.",
    "warning",
)


@dataclass(frozen=True)
class DangerState:
    in_danger: bool
    zones: tuple[DangerZone, ...] = ()


DangerListener = Callable[[DangerState], None]


class GeofenceMonitor:
    def __init__(
        self,
        tracker: LocationTracker,
        poller: ZonePoller,
        *,
        notifier: Notifier = log_notice,
    ) -> None:
        self._tracker = tracker
        self._poller = poller
        self._notify = notifier
        self._state = DangerState(False)
        self._listeners: list[DangerListener] = []
        self._attached = False

    @property
    def state(self) -> DangerState:
        return self._state

    @property
    def in_danger(self) -> bool:
        return self._state.in_danger

    @property
    def active_zones(self) -> tuple[DangerZone, ...]:
        return self._state.zones

    def add_listener(self, listener: DangerListener) -> None:
        self._listeners.append(listener)

    def attach(self) -> None:
        """Subscribe to tracker fixes and poller snapshots."""
        if self._attached:
            return
        self._tracker.add_listener(self._on_fix)
        self._poller.add_listener(self._on_snapshot)
        self._attached = True
        self.evaluate()

    def detach(self) -> None:
        if not self._attached:
            return
        self._tracker.remove_listener(self._on_fix)
        self._poller.remove_listener(self._on_snapshot)
        self._attached = False

    def _on_fix(self, point: GeoPoint) -> None:
        self.evaluate()

    def _on_snapshot(self, zones: tuple[DangerZone, ...]) -> None:
        self.evaluate()

    def evaluate(self) -> DangerState:
        """Classify the latest fix against the current snapshot."""
        user = self._tracker.latest
        inside = tuple(zones_containing(user, self._poller.snapshot))
        new = DangerState(bool(inside), inside)
        old, self._state = self._state, new

        if new.in_danger and not old.in_danger:
            log.info("danger_zone_entered", zones=[z.id for z in inside],
                     lat=user.latitude, lon=user.longitude)
            self._notify(DANGER_NOTICE)
        elif old.in_danger and not new.in_danger:
            log.info("danger_zone_exited", zones=[z.id for z in old.zones])

        if new != old:
            for listener in list(self._listeners):
                try:
                    listener(new)
                except Exception:
                    log.error("danger_listener_failed", exc_info=True)
        return new
