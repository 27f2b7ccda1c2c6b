"""Shake detection on the device accelerometer.

A shake is a large change in acceleration between two samples taken at
least ``min_interval_ms`` apart:

    delta = |x - x'| + |y - y'| + |z - z'|

It fires when ``delta > threshold`` and at least ``cooldown_ms`` have
passed since the previous accepted shake. Samples arriving sooner than
``min_interval_ms`` after the retained sample are ignored entirely.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import TYPE_CHECKING

import structlog

from smartsos.core.errors import MotionPermissionDenied

if TYPE_CHECKING:
    from smartsos.core.models import MotionSample
    from smartsos.devices.base import MotionSource

log = structlog.get_logger()

# Empirically tuned on phones; configurable via MotionConfig.
SHAKE_THRESHOLD = 25.0
SHAKE_COOLDOWN_MS = 5000
MIN_SAMPLE_INTERVAL_MS = 150


class ShakeDetector:
    """Stateful shake detector. Retains only the previous sample."""

    def __init__(
        self,
        threshold: float = SHAKE_THRESHOLD,
        cooldown_ms: int = SHAKE_COOLDOWN_MS,
        min_interval_ms: int = MIN_SAMPLE_INTERVAL_MS,
    ) -> None:
        self.threshold = threshold
        self.cooldown_ms = cooldown_ms
        self.min_interval_ms = min_interval_ms
        self._previous: MotionSample | None = None
        self.last_shake_ms: int | None = None

    def reset(self) -> None:
        self._previous = None
        self.last_shake_ms = None

    def update(self, sample: MotionSample) -> bool:
        """Feed one sample. Returns True if it completes an accepted shake."""
        previous = self._previous
        if previous is None:
            self._previous = sample
            return False
        if sample.timestamp_ms - previous.timestamp_ms < self.min_interval_ms:
            return False

        delta = (abs(sample.x - previous.x)
                 + abs(sample.y - previous.y)
                 + abs(sample.z - previous.z))
        self._previous = sample

        if delta <= self.threshold:
            return False
        if (self.last_shake_ms is not None
                and sample.timestamp_ms - self.last_shake_ms < self.cooldown_ms):
            log.debug("shake_suppressed", delta=round(delta, 1),
                      since_last_ms=sample.timestamp_ms - self.last_shake_ms)
            return False

        self.last_shake_ms = sample.timestamp_ms
        log.info("shake_detected", delta=round(delta, 1))
        return True


class MotionTrigger:
    """Feeds motion samples to a ShakeDetector and calls ``on_shake``.

    ``on_shake`` is the same entry point as a manual SOS press; whether an
    alert actually starts is decided there.
    """

    def __init__(
        self,
        source: MotionSource,
        on_shake: Callable[[], object],
        detector: ShakeDetector | None = None,
        retry_seconds: float = 2.0,
    ) -> None:
        self._source = source
        self._on_shake = on_shake
        self.detector = detector or ShakeDetector()
        self._retry = retry_seconds
        self._task: asyncio.Task | None = None
        self._permission_checked = False
        self.permission_granted = False

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> bool:
        """Ask for motion permission once and subscribe if granted.

        Returns whether the trigger is active. A refusal keeps the trigger
        off for the rest of the session; it is not retried.
        """
        if self.active:
            return True
        if not self._permission_checked:
            self._permission_checked = True
            try:
                await self._source.request_permission()
                self.permission_granted = True
            except MotionPermissionDenied as e:
                log.info("motion_trigger_inactive", reason=str(e))
        if not self.permission_granted:
            return False

        self._task = asyncio.create_task(self._consume())
        log.info("motion_trigger_started",
                 threshold=self.detector.threshold,
                 cooldown_ms=self.detector.cooldown_ms)
        return True

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        self.detector.reset()
        log.info("motion_trigger_stopped")

    def handle_sample(self, sample: MotionSample) -> bool:
        if not self.detector.update(sample):
            return False
        try:
            self._on_shake()
        except Exception:
            log.error("shake_handler_failed", exc_info=True)
        return True

    async def _consume(self) -> None:
        while True:
            try:
                async for sample in self._source.samples():
                    self.handle_sample(sample)
                return
            except Exception:
                log.error("motion_stream_failed", retry_seconds=self._retry,
                          exc_info=True)
            await asyncio.sleep(self._retry)
