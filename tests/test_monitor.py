"""Tests for the geofence monitor."""

from __future__ import annotations

import asyncio

import pytest

from smartsos.core.location import LocationTracker
from smartsos.core.models import DangerZone, GeoPoint, PositionFix
from smartsos.core.monitor import GeofenceMonitor
from smartsos.core.poller import ZonePoller
from smartsos.devices.scripted import ScriptedLocationSource

ZONE = DangerZone(id=7, center=GeoPoint(12.9716, 77.5946), radius_m=200, message="Dark alley")


async def settle(rounds: int = 5) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


class StaticSource:
    def __init__(self, zones) -> None:
        self.zones = zones

    async def fetch_zones(self):
        return list(self.zones)


@pytest.mark.asyncio
async def test_enter_and_exit_zone(notices):
    states = []
    location = ScriptedLocationSource()
    tracker = LocationTracker(location)
    poller = ZonePoller(StaticSource([ZONE]))
    monitor = GeofenceMonitor(tracker, poller, notifier=notices.append)
    monitor.add_listener(states.append)
    monitor.attach()

    await poller.poll_once()
    assert monitor.in_danger is False  # no fix yet

    tracker.start()
    await settle()
    location.push(PositionFix(12.9716, 77.5946))
    await settle()
    assert monitor.in_danger is True
    assert monitor.active_zones == (ZONE,)
    assert notices[-1].title == "Potential Danger Zone"

    location.push(PositionFix(12.9816, 77.5946))
    await settle()
    assert monitor.in_danger is False
    assert [s.in_danger for s in states] == [True, False]

    await tracker.stop()
    monitor.detach()


@pytest.mark.asyncio
async def test_new_snapshot_reclassifies_current_fix(notices):
    location = ScriptedLocationSource()
    tracker = LocationTracker(location)
    source = StaticSource([])
    poller = ZonePoller(source)
    monitor = GeofenceMonitor(tracker, poller, notifier=notices.append)
    monitor.attach()

    tracker.start()
    await settle()
    location.push(PositionFix(12.9720, 77.5946))
    await settle()
    assert monitor.in_danger is False

    source.zones = [ZONE]
    await poller.poll_once()
    assert monitor.in_danger is True

    source.zones = []
    await poller.poll_once()
    assert monitor.in_danger is False
    await tracker.stop()


@pytest.mark.asyncio
async def test_repeated_fixes_inside_notify_once(notices):
    location = ScriptedLocationSource()
    tracker = LocationTracker(location)
    poller = ZonePoller(StaticSource([ZONE]))
    monitor = GeofenceMonitor(tracker, poller, notifier=notices.append)
    monitor.attach()
    await poller.poll_once()

    tracker.start()
    await settle()
    location.push(PositionFix(12.9716, 77.5946))
    location.push(PositionFix(12.9717, 77.5946))
    await settle()
    assert monitor.in_danger is True
    assert len(notices) == 1
    await tracker.stop()
