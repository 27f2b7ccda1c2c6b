"""Safety session: wires the client core together for one device.

This is the only client-side module that knows about all the pieces.
Every timer and subscription it starts is released by ``stop()``.
"""

from __future__ import annotations

from typing import Any, TYPE_CHECKING

import structlog

from smartsos.core.location import LocationTracker
from smartsos.core.monitor import GeofenceMonitor
from smartsos.core.motion import MotionTrigger, ShakeDetector
from smartsos.core.poller import ZonePoller
from smartsos.core.reporting import HazardReporter
from smartsos.core.sos import Notifier, SosTrigger, log_notice

if TYPE_CHECKING:
    from smartsos.backend.base import AlertSubmitter, ZoneSource
    from smartsos.config import AppConfig
    from smartsos.core.models import AlertStatus
    from smartsos.devices.base import LocationSource, MotionSource

log = structlog.get_logger()


class SafetySession:
    def __init__(
        self,
        config: AppConfig,
        *,
        zone_source: ZoneSource,
        submitter: AlertSubmitter,
        location_source: LocationSource,
        motion_source: MotionSource | None = None,
        notifier: Notifier = log_notice,
    ) -> None:
        self.config = config
        self.tracker = LocationTracker(
            location_source,
            high_accuracy=config.location.high_accuracy,
            maximum_age_ms=config.location.maximum_age_ms,
            fix_timeout_seconds=config.location.fix_timeout_seconds,
            watch_retry_seconds=config.location.watch_retry_seconds,
        )
        self.poller = ZonePoller(
            zone_source,
            interval_seconds=config.zones.poll_interval_seconds,
        )
        self.monitor = GeofenceMonitor(self.tracker, self.poller, notifier=notifier)
        self.sos = SosTrigger(
            self.tracker,
            submitter,
            notifier=notifier,
            countdown_seconds=config.sos.countdown_seconds,
            tick_seconds=config.sos.tick_seconds,
            alert_radius_m=config.sos.alert_radius_m,
            alert_message=config.sos.message,
        )
        self.reporter = HazardReporter(self.tracker, submitter)

        self.motion: MotionTrigger | None = None
        if motion_source is not None and config.motion.enabled:
            detector = ShakeDetector(
                threshold=config.motion.shake_threshold,
                cooldown_ms=config.motion.cooldown_ms,
                min_interval_ms=config.motion.min_sample_interval_ms,
            )
            self.motion = MotionTrigger(
                motion_source,
                on_shake=lambda: self.sos.press(source="shake"),
                detector=detector,
            )
        self._started = False

    @property
    def in_danger(self) -> bool:
        return self.monitor.in_danger

    @property
    def alert_status(self) -> AlertStatus:
        return self.sos.status

    def press_sos(self) -> bool:
        return self.sos.press()

    def cancel_sos(self) -> bool:
        return self.sos.cancel()

    async def report_hazard(self, description: str, image_data_url: str | None = None) -> Any:
        return await self.reporter.submit(description, image_data_url)

    async def start(self) -> None:
        if self._started:
            return
        self._started = True
        self.monitor.attach()
        self.tracker.start()
        self.poller.start()
        motion_active = False
        if self.motion is not None:
            motion_active = await self.motion.start()
        log.info("safety_session_started", motion_active=motion_active,
                 poll_interval_seconds=self.config.zones.poll_interval_seconds)

    async def stop(self) -> None:
        if not self._started:
            return
        self._started = False
        if self.motion is not None:
            await self.motion.stop()
        await self.sos.close()
        await self.poller.stop()
        await self.tracker.stop()
        self.monitor.detach()
        log.info("safety_session_stopped")

    async def __aenter__(self) -> SafetySession:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()
