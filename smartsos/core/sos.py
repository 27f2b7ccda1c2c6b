"""SOS trigger: countdown, cancel and dispatch of an emergency alert.

Two layers:

``SosStateMachine``
    Pure transition logic, no timers and no I/O::

        IDLE --press--> COUNTING_DOWN
        COUNTING_DOWN --tick, remaining > 1--> COUNTING_DOWN (remaining - 1)
        COUNTING_DOWN --tick, remaining <= 1--> DISPATCHING (remaining = 0)
        COUNTING_DOWN --cancel--> CANCELLED --> IDLE
        DISPATCHING --submitted--> SENT --> IDLE
        DISPATCHING --location or submission error--> FAILED --> IDLE

    A press while COUNTING_DOWN or DISPATCHING is ignored, not queued.

``SosTrigger``
    The asyncio driver. Runs one countdown task per activation, asks the
    LocationTracker for exactly one fix, builds the EmergencyPayload,
    hands it to the AlertSubmitter and reports the outcome as a Notice.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

import structlog

from smartsos.core.errors import LocationUnavailable, SubmissionFailure
from smartsos.core.models import (
    ACTIVE_STATUSES,
    DEFAULT_ALERT_MESSAGE,
    DEFAULT_ALERT_RADIUS_M,
    AlertActivation,
    AlertStatus,
    EmergencyPayload,
    Notice,
)

if TYPE_CHECKING:
    from smartsos.backend.base import AlertSubmitter
    from smartsos.core.location import LocationTracker

log = structlog.get_logger()

COUNTDOWN_SECONDS = 3
TICK_SECONDS = 1.0

TransitionListener = Callable[[AlertStatus, AlertStatus, "AlertActivation | None"], None]
Notifier = Callable[[Notice], None]


def _now_ms() -> int:
    return int(time.time() * 1000)


def log_notice(notice: Notice) -> None:
    """Default notifier: write the notice to the log."""
    log.info("notice", title=notice.title, description=notice.description,
             variant=notice.variant)


class SosStateMachine:
    """Explicit state machine for a single device session."""

    def __init__(
        self,
        countdown_seconds: int = COUNTDOWN_SECONDS,
        listener: TransitionListener | None = None,
    ) -> None:
        self.countdown_seconds = countdown_seconds
        self._listener = listener
        self._status = AlertStatus.IDLE
        self._activation: AlertActivation | None = None
        self.last_outcome: AlertStatus | None = None

    @property
    def status(self) -> AlertStatus:
        return self._status

    @property
    def activation(self) -> AlertActivation | None:
        return self._activation

    @property
    def remaining(self) -> int:
        return self._activation.countdown_remaining if self._activation else 0

    @property
    def active(self) -> bool:
        return self._status in ACTIVE_STATUSES

    def _move(self, new: AlertStatus) -> None:
        old, self._status = self._status, new
        if self._activation is not None:
            self._activation.status = new
        if self._listener is not None:
            self._listener(old, new, self._activation)

    def _finish(self, outcome: AlertStatus) -> None:
        self._move(outcome)
        self.last_outcome = outcome
        self._activation = None
        self._move(AlertStatus.IDLE)

    def press(self, now_ms: int, source: str = "press") -> bool:
        """Start a countdown. Returns False if an alert is already active."""
        if self._status is not AlertStatus.IDLE:
            return False
        self._activation = AlertActivation(
            started_at_ms=now_ms,
            countdown_remaining=self.countdown_seconds,
            trigger_source=source,
        )
        self._move(AlertStatus.COUNTING_DOWN)
        return True

    def tick(self) -> int:
        """Advance the countdown by one second. Returns the remaining count.

        Has no effect outside COUNTING_DOWN.
        """
        if self._status is not AlertStatus.COUNTING_DOWN:
            return self.remaining
        activation = self._activation
        if activation.countdown_remaining > 1:
            activation.countdown_remaining -= 1
        else:
            activation.countdown_remaining = 0
            self._move(AlertStatus.DISPATCHING)
        return activation.countdown_remaining

    def cancel(self) -> bool:
        """Abort a running countdown. Returns False if nothing to cancel."""
        if self._status is not AlertStatus.COUNTING_DOWN:
            return False
        self._finish(AlertStatus.CANCELLED)
        return True

    def dispatch_succeeded(self) -> None:
        self._require_dispatching()
        self._finish(AlertStatus.SENT)

    def location_failed(self) -> None:
        self._require_dispatching()
        self._finish(AlertStatus.FAILED)

    def submission_failed(self) -> None:
        self._require_dispatching()
        self._finish(AlertStatus.FAILED)

    def _require_dispatching(self) -> None:
        if self._status is not AlertStatus.DISPATCHING:
            raise RuntimeError(f"no dispatch in progress (status={self._status.value})")


class SosTrigger:
    """Single authority for whether an alert is in flight on this device.

    ``press`` is the one entry point shared by the SOS button and the
    motion trigger.
    """

    def __init__(
        self,
        tracker: LocationTracker,
        submitter: AlertSubmitter,
        *,
        notifier: Notifier = log_notice,
        on_sent: Callable[[EmergencyPayload], None] | None = None,
        countdown_seconds: int = COUNTDOWN_SECONDS,
        tick_seconds: float = TICK_SECONDS,
        alert_radius_m: float = DEFAULT_ALERT_RADIUS_M,
        alert_message: str = DEFAULT_ALERT_MESSAGE,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], int] = _now_ms,
        listener: TransitionListener | None = None,
    ) -> None:
        self._tracker = tracker
        self._submitter = submitter
        self._notify = notifier
        self._on_sent = on_sent
        self._tick_seconds = tick_seconds
        self._alert_radius_m = alert_radius_m
        self._alert_message = alert_message
        self._sleep = sleep
        self._clock = clock
        self.machine = SosStateMachine(countdown_seconds, listener=listener)
        self._task: asyncio.Task | None = None

    @property
    def status(self) -> AlertStatus:
        return self.machine.status

    @property
    def remaining(self) -> int:
        return self.machine.remaining

    def press(self, source: str = "press") -> bool:
        """Start an SOS countdown. Ignored while another alert is active."""
        if not self.machine.press(self._clock(), source):
            log.info("sos_press_ignored", source=source,
                     status=self.machine.status.value)
            return False
        log.info("sos_countdown_started", source=source,
                 seconds=self.machine.countdown_seconds)
        self._task = asyncio.create_task(self._run_activation())
        return True

    def cancel(self) -> bool:
        """Cancel a running countdown. No network call is made."""
        if not self.machine.cancel():
            return False
        if self._task is not None:
            self._task.cancel()
        log.info("sos_cancelled")
        self._notify(Notice("Emergency Cancelled",
                            "Emergency alert has been cancelled."))
        return True

    async def wait_settled(self) -> None:
        """Wait until the current activation (if any) has finished."""
        task = self._task
        if task is not None:
            await asyncio.wait({task})

    async def close(self) -> None:
        """Drop any activation in progress, e.g. when the session ends."""
        if self.machine.status is AlertStatus.COUNTING_DOWN:
            self.cancel()
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.wait({task})

    async def _run_activation(self) -> None:
        machine = self.machine
        while machine.status is AlertStatus.COUNTING_DOWN:
            await self._sleep(self._tick_seconds)
            remaining = machine.tick()
            log.debug("sos_tick", remaining=remaining)
        if machine.status is not AlertStatus.DISPATCHING:
            return
        try:
            await self._dispatch()
        except asyncio.CancelledError:
            if machine.status is AlertStatus.DISPATCHING:
                log.warning("sos_dispatch_abandoned")
                machine.submission_failed()
            raise

    async def _dispatch(self) -> None:
        try:
            position = await self._tracker.current_position()
        except Exception as e:
            if isinstance(e, LocationUnavailable):
                log.warning("sos_location_unavailable", error=str(e))
            else:
                log.error("sos_location_error", exc_info=True)
            self.machine.location_failed()
            self._notify(Notice("Location Access Denied",
                                "Please enable GPS to send alert.",
                                "destructive"))
            return

        payload = EmergencyPayload(
            position=position,
            radius_m=self._alert_radius_m,
            message=self._alert_message,
        )
        try:
            await self._submitter.submit_alert(payload)
        except Exception as e:
            if isinstance(e, SubmissionFailure):
                log.warning("sos_submission_failed", error=str(e),
                            status_code=e.status_code)
            else:
                log.error("sos_submission_error", exc_info=True)
            self.machine.submission_failed()
            self._notify(Notice("Failed to send alert", "Please try again.",
                                "destructive"))
            return

        log.info("sos_dispatched", lat=position.latitude, lon=position.longitude)
        self.machine.dispatch_succeeded()
        self._notify(Notice("Emergency Alert Sent!",
                            f"Location: {position.latitude}, {position.longitude}",
                            "destructive"))
        if self._on_sent is not None:
            try:
                self._on_sent(payload)
            except Exception:
                log.error("sos_on_sent_failed", exc_info=True)
