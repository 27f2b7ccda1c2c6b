"""In-process scripted device sources.

Readings are either given up front or pushed while a consumer is
subscribed. Used by the simulator and the test-suite; zero dependencies.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Iterable

from smartsos.core.errors import LocationUnavailable, MotionPermissionDenied
from smartsos.core.models import MotionSample, PositionFix

# Pushed onto a subscriber queue to end its stream.
_END = object()


class _Broadcast:
    """Fan-out of pushed items to every live subscriber queue."""

    def __init__(self) -> None:
        self._subscribers: list[asyncio.Queue] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, item: object) -> None:
        for queue in list(self._subscribers):
            queue.put_nowait(item)

    async def stream(self, initial: Iterable[object]) -> AsyncIterator:
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers.append(queue)
        try:
            for item in initial:
                yield item
            while True:
                item = await queue.get()
                if item is _END:
                    return
                if isinstance(item, BaseException):
                    raise item
                yield item
        finally:
            self._subscribers.remove(queue)


class ScriptedLocationSource:
    """LocationSource that replays fixes.

    ``get_current_position`` returns the most recent fix (pushed or given)
    unless ``error`` is set, in which case it raises it.
    """

    def __init__(
        self,
        fixes: Iterable[PositionFix] = (),
        *,
        error: Exception | None = None,
    ) -> None:
        self._fixes = list(fixes)
        self._current = self._fixes[-1] if self._fixes else None
        self._broadcast = _Broadcast()
        self.error = error
        self.position_requests = 0

    @property
    def active_watches(self) -> int:
        return self._broadcast.subscriber_count

    def push(self, fix: PositionFix) -> None:
        self._current = fix
        self._broadcast.publish(fix)

    def fail(self, error: Exception) -> None:
        """Deliver ``error`` to every active watch."""
        self._broadcast.publish(error)

    def close(self) -> None:
        self._broadcast.publish(_END)

    async def get_current_position(
        self, *, high_accuracy: bool = True, maximum_age_ms: int = 0,
    ) -> PositionFix:
        self.position_requests += 1
        if self.error is not None:
            raise self.error
        if self._current is None:
            raise LocationUnavailable("position unavailable")
        return self._current

    def watch_position(
        self, *, high_accuracy: bool = True, maximum_age_ms: int = 0,
    ) -> AsyncIterator[PositionFix]:
        return self._broadcast.stream(self._fixes)


class ScriptedMotionSource:
    """MotionSource that replays samples, optionally refusing permission."""

    def __init__(
        self,
        samples: Iterable[MotionSample] = (),
        *,
        grant: bool = True,
    ) -> None:
        self._samples = list(samples)
        self._broadcast = _Broadcast()
        self.grant = grant
        self.permission_requests = 0

    @property
    def active_subscriptions(self) -> int:
        return self._broadcast.subscriber_count

    def push(self, sample: MotionSample) -> None:
        self._broadcast.publish(sample)

    def fail(self, error: Exception) -> None:
        """Deliver ``error`` to every active subscription."""
        self._broadcast.publish(error)

    def close(self) -> None:
        self._broadcast.publish(_END)

    async def request_permission(self) -> None:
        self.permission_requests += 1
        if not self.grant:
            raise MotionPermissionDenied("motion access refused")

    def samples(self) -> AsyncIterator[MotionSample]:
        return self._broadcast.stream(self._samples)
