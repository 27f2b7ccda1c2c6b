"""Zone poller: keeps an in-memory snapshot of the danger zones.

Every ``interval_seconds`` a poll is launched as its own task, so a slow
fetch never delays the next tick. Polls may overlap; whichever completes
last replaces the snapshot. A failed poll leaves the previous snapshot in
place and the loop carries on.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

import structlog

from smartsos.core.errors import ZonePollFailure

if TYPE_CHECKING:
    from smartsos.backend.base import ZoneSource
    from smartsos.core.models import DangerZone

log = structlog.get_logger()

SnapshotListener = Callable[[tuple["DangerZone", ...]], None]

DEFAULT_POLL_INTERVAL_SECONDS = 5.0


class ZonePoller:
    """Periodically refreshes the danger-zone snapshot from a ZoneSource."""

    def __init__(
        self,
        source: ZoneSource,
        *,
        interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._source = source
        self._interval = interval_seconds
        self._sleep = sleep
        self._snapshot: tuple[DangerZone, ...] = ()
        self._listeners: list[SnapshotListener] = []
        self._loop_task: asyncio.Task | None = None
        self._in_flight: set[asyncio.Task] = set()
        self.polls_completed = 0
        self.polls_failed = 0

    @property
    def snapshot(self) -> tuple[DangerZone, ...]:
        """The zones from the most recently completed poll."""
        return self._snapshot

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    def add_listener(self, listener: SnapshotListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: SnapshotListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def poll_once(self) -> bool:
        """Fetch once and replace the snapshot. Returns False on failure."""
        try:
            zones = await self._source.fetch_zones()
        except ZonePollFailure as e:
            self.polls_failed += 1
            log.warning("zone_poll_failed", error=str(e),
                        kept_zones=len(self._snapshot))
            return False
        except Exception:
            self.polls_failed += 1
            log.error("zone_poll_error", kept_zones=len(self._snapshot),
                      exc_info=True)
            return False

        self._snapshot = tuple(zones)
        self.polls_completed += 1
        log.debug("zones_refreshed", count=len(self._snapshot))
        for listener in list(self._listeners):
            try:
                listener(self._snapshot)
            except Exception:
                log.error("zone_listener_failed", exc_info=True)
        return True

    def start(self) -> None:
        """Start polling immediately and then every interval. Idempotent."""
        if self.running:
            return
        self._loop_task = asyncio.create_task(self._run())
        log.info("zone_poller_started", interval_seconds=self._interval)

    async def stop(self) -> None:
        """Cancel the polling loop and every poll still in flight."""
        tasks = list(self._in_flight)
        if self._loop_task is not None:
            tasks.append(self._loop_task)
            self._loop_task = None
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._in_flight.clear()
        log.info("zone_poller_stopped")

    def _launch_poll(self) -> None:
        task = asyncio.create_task(self.poll_once())
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def _run(self) -> None:
        while True:
            self._launch_poll()
            await self._sleep(self._interval)
