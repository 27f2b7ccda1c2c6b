"""Tests for the SOS state machine and its asyncio driver."""

from __future__ import annotations

import asyncio

import pytest

from smartsos.core.errors import LocationUnavailable
from smartsos.core.location import LocationTracker
from smartsos.core.models import AlertStatus, GeoPoint, PositionFix
from smartsos.core.sos import SosStateMachine, SosTrigger
from smartsos.devices.scripted import ScriptedLocationSource

HERE = PositionFix(12.9716, 77.5946)


# -- State machine ---------------------------------------------------------


def test_press_starts_countdown_at_three():
    machine = SosStateMachine()
    assert machine.status is AlertStatus.IDLE
    assert machine.press(now_ms=1000) is True
    assert machine.status is AlertStatus.COUNTING_DOWN
    assert machine.remaining == 3
    assert machine.activation.started_at_ms == 1000


def test_three_ticks_reach_dispatching():
    machine = SosStateMachine()
    machine.press(now_ms=0)
    remaining = [machine.tick() for _ in range(3)]
    assert remaining == [2, 1, 0]
    assert machine.status is AlertStatus.DISPATCHING


def test_dispatching_happens_exactly_on_third_tick():
    machine = SosStateMachine()
    machine.press(now_ms=0)
    machine.tick()
    machine.tick()
    assert machine.status is AlertStatus.COUNTING_DOWN
    machine.tick()
    assert machine.status is AlertStatus.DISPATCHING


def test_cancel_returns_to_idle():
    transitions = []
    machine = SosStateMachine(listener=lambda old, new, act: transitions.append((old, new)))
    machine.press(now_ms=0)
    machine.tick()
    assert machine.cancel() is True
    assert machine.status is AlertStatus.IDLE
    assert machine.last_outcome is AlertStatus.CANCELLED
    assert transitions == [
        (AlertStatus.IDLE, AlertStatus.COUNTING_DOWN),
        (AlertStatus.COUNTING_DOWN, AlertStatus.CANCELLED),
        (AlertStatus.CANCELLED, AlertStatus.IDLE),
    ]


def test_press_while_active_is_ignored():
    machine = SosStateMachine()
    machine.press(now_ms=0)
    machine.tick()
    assert machine.press(now_ms=500) is False
    assert machine.remaining == 2

    machine.tick()
    machine.tick()
    assert machine.status is AlertStatus.DISPATCHING
    assert machine.press(now_ms=3000) is False
    assert machine.status is AlertStatus.DISPATCHING


def test_cancel_outside_countdown_is_rejected():
    machine = SosStateMachine()
    assert machine.cancel() is False
    machine.press(now_ms=0)
    for _ in range(3):
        machine.tick()
    assert machine.cancel() is False
    assert machine.status is AlertStatus.DISPATCHING


def test_tick_outside_countdown_is_noop():
    machine = SosStateMachine()
    assert machine.tick() == 0
    assert machine.status is AlertStatus.IDLE


def test_dispatch_outcomes():
    machine = SosStateMachine()
    machine.press(now_ms=0)
    for _ in range(3):
        machine.tick()
    machine.dispatch_succeeded()
    assert machine.status is AlertStatus.IDLE
    assert machine.last_outcome is AlertStatus.SENT

    machine.press(now_ms=0)
    for _ in range(3):
        machine.tick()
    machine.location_failed()
    assert machine.status is AlertStatus.IDLE
    assert machine.last_outcome is AlertStatus.FAILED


def test_outcome_without_dispatch_raises():
    machine = SosStateMachine()
    with pytest.raises(RuntimeError):
        machine.dispatch_succeeded()


# -- Driver ----------------------------------------------------------------


class GatedSleep:
    """Sleep replacement that blocks until released by the test."""

    def __init__(self) -> None:
        self.calls = 0
        self._gate: asyncio.Queue = asyncio.Queue()

    async def __call__(self, seconds: float) -> None:
        self.calls += 1
        await self._gate.get()

    def release(self, n: int = 1) -> None:
        for _ in range(n):
            self._gate.put_nowait(None)


def make_trigger(location, submitter, notices, **kwargs):
    tracker = LocationTracker(location, fix_timeout_seconds=1.0)
    return SosTrigger(tracker, submitter, notifier=notices.append, tick_seconds=0, **kwargs)


@pytest.mark.asyncio
async def test_press_sends_alert_after_countdown(submitter, notices):
    sent = []
    location = ScriptedLocationSource([HERE])
    trigger = make_trigger(location, submitter, notices, on_sent=sent.append)

    assert trigger.press() is True
    await trigger.wait_settled()

    assert trigger.status is AlertStatus.IDLE
    assert trigger.machine.last_outcome is AlertStatus.SENT
    assert len(submitter.alerts) == 1
    payload = submitter.alerts[0]
    assert payload.position == GeoPoint(12.9716, 77.5946)
    assert payload.radius_m == 1
    assert sent == [payload]
    assert location.position_requests == 1
    assert notices[-1].title == "Emergency Alert Sent!"
    assert notices[-1].description == "Location: 12.9716, 77.5946"


@pytest.mark.asyncio
async def test_cancel_during_countdown_makes_no_network_call(submitter, notices):
    sleep = GatedSleep()
    location = ScriptedLocationSource([HERE])
    trigger = make_trigger(location, submitter, notices, sleep=sleep)

    trigger.press()
    sleep.release(1)
    await asyncio.sleep(0)
    await asyncio.sleep(0)
    assert trigger.remaining == 2

    assert trigger.cancel() is True
    await trigger.wait_settled()

    assert trigger.status is AlertStatus.IDLE
    assert trigger.machine.last_outcome is AlertStatus.CANCELLED
    assert submitter.alerts == []
    assert location.position_requests == 0
    assert notices[-1].title == "Emergency Cancelled"


@pytest.mark.asyncio
async def test_second_press_is_ignored(submitter, notices):
    sleep = GatedSleep()
    trigger = make_trigger(ScriptedLocationSource([HERE]), submitter, notices, sleep=sleep)

    assert trigger.press() is True
    assert trigger.press() is False
    assert trigger.press(source="shake") is False

    sleep.release(3)
    await trigger.wait_settled()
    assert len(submitter.alerts) == 1


@pytest.mark.asyncio
async def test_location_failure_returns_to_idle(submitter, notices):
    location = ScriptedLocationSource(error=LocationUnavailable("permission denied"))
    trigger = make_trigger(location, submitter, notices)

    trigger.press()
    await trigger.wait_settled()

    assert trigger.status is AlertStatus.IDLE
    assert trigger.machine.last_outcome is AlertStatus.FAILED
    assert submitter.alerts == []
    assert notices[-1].title == "Location Access Denied"


@pytest.mark.asyncio
async def test_submission_failure_returns_to_idle(failing_submitter, notices):
    trigger = make_trigger(ScriptedLocationSource([HERE]), failing_submitter, notices)

    trigger.press()
    await trigger.wait_settled()

    assert trigger.status is AlertStatus.IDLE
    assert trigger.machine.last_outcome is AlertStatus.FAILED
    assert len(failing_submitter.alerts) == 1
    assert notices[-1].title == "Failed to send alert"


@pytest.mark.asyncio
async def test_trigger_can_fire_again_after_completion(submitter, notices):
    trigger = make_trigger(ScriptedLocationSource([HERE]), submitter, notices)

    trigger.press()
    await trigger.wait_settled()
    assert trigger.press() is True
    await trigger.wait_settled()
    assert len(submitter.alerts) == 2


@pytest.mark.asyncio
async def test_close_abandons_countdown(submitter, notices):
    sleep = GatedSleep()
    trigger = make_trigger(ScriptedLocationSource([HERE]), submitter, notices, sleep=sleep)

    trigger.press()
    await trigger.close()
    assert trigger.status is AlertStatus.IDLE
    assert submitter.alerts == []


@pytest.mark.asyncio
async def test_location_driver_error_returns_to_idle(submitter, notices):
    location = ScriptedLocationSource([HERE], error=PermissionError("gps driver"))
    trigger = make_trigger(location, submitter, notices)

    trigger.press()
    await trigger.wait_settled()

    assert trigger.status is AlertStatus.IDLE
    assert trigger.machine.last_outcome is AlertStatus.FAILED
    assert notices[-1].title == "Location Access Denied"

    location.error = None
    assert trigger.press() is True
    await trigger.wait_settled()
    assert len(submitter.alerts) == 1


class BrokenTracker:
    async def current_position(self):
        raise RuntimeError("tracker crashed")


@pytest.mark.asyncio
async def test_unexpected_tracker_error_returns_to_idle(submitter, notices):
    trigger = SosTrigger(BrokenTracker(), submitter, notifier=notices.append, tick_seconds=0)

    trigger.press()
    await trigger.wait_settled()

    assert trigger.status is AlertStatus.IDLE
    assert trigger.machine.last_outcome is AlertStatus.FAILED
    assert notices[-1].title == "Location Access Denied"
    assert trigger.press() is True
    await trigger.close()
