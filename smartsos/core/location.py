"""Location tracker: one-shot fixes and a continuous watch.

Both modes go through the same LocationSource. Raw readings are normalized
into GeoPoints; invalid or stale readings never reach consumers.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

import structlog

from smartsos.core.errors import LocationUnavailable
from smartsos.core.geo import is_valid_coordinate

if TYPE_CHECKING:
    from smartsos.core.models import GeoPoint, PositionFix
    from smartsos.devices.base import LocationSource

log = structlog.get_logger()

FixListener = Callable[["GeoPoint"], None]

# Consecutive stale fixes after which the drop is logged as a warning.
STALE_WARNING_COUNT = 5


def _now_ms() -> int:
    return int(time.time() * 1000)


class LocationTracker:
    """Acquires positions from a LocationSource on behalf of the core."""

    def __init__(
        self,
        source: LocationSource,
        *,
        high_accuracy: bool = True,
        maximum_age_ms: int = 1000,
        fix_timeout_seconds: float = 10.0,
        watch_retry_seconds: float = 2.0,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._source = source
        self._high_accuracy = high_accuracy
        self._maximum_age_ms = maximum_age_ms
        self._fix_timeout = fix_timeout_seconds
        self._watch_retry = watch_retry_seconds
        self._clock = clock
        self._latest: GeoPoint | None = None
        self._listeners: list[FixListener] = []
        self._watch_task: asyncio.Task | None = None
        self.stale_streak = 0

    @property
    def latest(self) -> GeoPoint | None:
        """Most recent accepted fix from the continuous watch."""
        return self._latest

    @property
    def watching(self) -> bool:
        return self._watch_task is not None and not self._watch_task.done()

    def add_listener(self, listener: FixListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: FixListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _normalize(self, fix: PositionFix) -> GeoPoint | None:
        if not is_valid_coordinate(fix.latitude, fix.longitude):
            return None
        return fix.point

    def _is_stale(self, fix: PositionFix) -> bool:
        # Timestamps are compared against the host clock. Fixes without a
        # timestamp are taken as fresh.
        if not fix.timestamp_ms or self._maximum_age_ms <= 0:
            return False
        return self._clock() - fix.timestamp_ms > self._maximum_age_ms

    async def current_position(self) -> GeoPoint:
        """Request a single fix.

        Raises:
            LocationUnavailable: On denial, timeout, no signal or an
                invalid reading.
        """
        try:
            fix = await asyncio.wait_for(
                self._source.get_current_position(
                    high_accuracy=self._high_accuracy,
                    maximum_age_ms=self._maximum_age_ms,
                ),
                timeout=self._fix_timeout,
            )
        except asyncio.TimeoutError as e:
            raise LocationUnavailable(
                f"no fix within {self._fix_timeout:g}s") from e
        except LocationUnavailable:
            raise
        except Exception as e:
            log.error("location_source_error", exc_info=True)
            raise LocationUnavailable(f"location source failed: {e}") from e

        point = self._normalize(fix)
        if point is None:
            raise LocationUnavailable(
                f"invalid fix {fix.latitude}, {fix.longitude}")
        return point

    def start(self, on_fix: FixListener | None = None) -> None:
        """Begin the continuous watch. Idempotent."""
        if on_fix is not None:
            self.add_listener(on_fix)
        if self.watching:
            return
        self._watch_task = asyncio.create_task(self._watch())
        log.debug("location_watch_started", high_accuracy=self._high_accuracy,
                  maximum_age_ms=self._maximum_age_ms)

    async def stop(self) -> None:
        """Stop watching and release the source subscription."""
        task, self._watch_task = self._watch_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        log.debug("location_watch_stopped")

    async def _watch(self) -> None:
        while True:
            try:
                async for fix in self._source.watch_position(
                    high_accuracy=self._high_accuracy,
                    maximum_age_ms=self._maximum_age_ms,
                ):
                    self._accept(fix)
                return
            except LocationUnavailable as e:
                log.warning("location_watch_error", error=str(e),
                            retry_seconds=self._watch_retry)
            except Exception:
                log.error("location_watch_failed",
                          retry_seconds=self._watch_retry, exc_info=True)
            await asyncio.sleep(self._watch_retry)

    def _accept(self, fix: PositionFix) -> None:
        point = self._normalize(fix)
        if point is None:
            log.debug("location_fix_invalid", lat=fix.latitude, lon=fix.longitude)
            return
        if self._is_stale(fix):
            self.stale_streak += 1
            age_ms = self._clock() - fix.timestamp_ms
            if self.stale_streak == STALE_WARNING_COUNT:
                # Usually a source stamping fixes with a different clock.
                log.warning("location_fixes_all_stale", dropped=self.stale_streak,
                            age_ms=age_ms, maximum_age_ms=self._maximum_age_ms)
            else:
                log.debug("location_fix_stale", age_ms=age_ms)
            return
        self.stale_streak = 0
        self._latest = point
        for listener in list(self._listeners):
            try:
                listener(point)
            except Exception:
                log.error("location_listener_failed", exc_info=True)
