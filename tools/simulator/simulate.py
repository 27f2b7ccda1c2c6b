#!/usr/bin/env python3
"""SmartSOS device simulator.

Walks a virtual phone through the danger zones of a running backend and
prints what the safety core does: zone entries/exits and SOS outcomes.

Usage:
    # Walk north from the center of Bangalore for two minutes
    python -m tools.simulator.simulate --server http://localhost:4001 --start 12.9716,77.5946

    # Shake the phone 20 seconds in (fires an SOS after the countdown)
    python -m tools.simulator.simulate --shake-at 20

    # Press SOS at 10 s, then cancel it a second later
    python -m tools.simulator.simulate --sos-at 10 --cancel-after 1
"""

from __future__ import annotations

import argparse
import asyncio
import math
import random
import time
from dataclasses import dataclass

from smartsos.backend.client import BackendClient
from smartsos.config import AppConfig
from smartsos.core.models import MotionSample, Notice, PositionFix
from smartsos.devices.scripted import ScriptedLocationSource, ScriptedMotionSource
from smartsos.main import setup_logging
from smartsos.session import SafetySession


@dataclass
class SimWalker:
    lat: float
    lon: float
    bearing: float
    speed_mps: float


def move_walker(walker: SimWalker, dt_seconds: float) -> None:
    """Move along the current bearing, with small random turns."""
    walker.bearing = (walker.bearing + random.uniform(-10, 10)) % 360
    distance_m = walker.speed_mps * dt_seconds
    bearing_rad = math.radians(walker.bearing)

    # Approximate: 1 degree latitude ≈ 111,000 m
    walker.lat += (distance_m * math.cos(bearing_rad)) / 111_000
    walker.lon += (distance_m * math.sin(bearing_rad)) / (111_000 * math.cos(math.radians(walker.lat)))


def shake_samples(start_ms: int) -> list[MotionSample]:
    """A short, violent back-and-forth shake."""
    samples = []
    for i in range(6):
        sign = 1 if i % 2 == 0 else -1
        samples.append(MotionSample(x=sign * 20.0, y=sign * 15.0, z=9.8 + sign * 10.0,
                                    timestamp_ms=start_ms + i * 200))
    return samples


def print_notice(notice: Notice) -> None:
    print(f"  [{notice.variant}] {notice.title}: {notice.description}")


async def run_simulation(args: argparse.Namespace) -> None:
    config = AppConfig()
    config.backend.base_url = args.server
    config.zones.poll_interval_seconds = args.poll_interval
    config.logging.level = args.log_level
    setup_logging(config.logging)

    start_lat, start_lon = args.start
    walker = SimWalker(lat=start_lat, lon=start_lon, bearing=args.bearing, speed_mps=args.speed)
    now_ms = int(time.time() * 1000)
    location = ScriptedLocationSource([PositionFix(walker.lat, walker.lon, 5.0, now_ms)])
    motion = ScriptedMotionSource()

    print(f"Starting simulation against {args.server}")
    print(f"  Start: {start_lat:.5f}, {start_lon:.5f}  bearing {args.bearing}°  {args.speed} m/s")
    print(f"  Duration: {args.duration}s")
    print()

    async with BackendClient(args.server, timeout_seconds=config.backend.timeout_seconds) as client:
        session = SafetySession(
            config,
            zone_source=client,
            submitter=client,
            location_source=location,
            motion_source=motion,
            notifier=print_notice,
        )
        async with session:
            start = time.monotonic()
            shaken = pressed = False
            while (elapsed := time.monotonic() - start) < args.duration:
                move_walker(walker, args.step)
                now_ms = int(time.time() * 1000)
                location.push(PositionFix(walker.lat, walker.lon, 5.0, now_ms))

                if args.shake_at is not None and not shaken and elapsed >= args.shake_at:
                    shaken = True
                    print(f"{elapsed:6.1f}s shaking device")
                    for sample in shake_samples(now_ms):
                        motion.push(sample)

                if args.sos_at is not None and not pressed and elapsed >= args.sos_at:
                    pressed = True
                    print(f"{elapsed:6.1f}s pressing SOS")
                    session.press_sos()
                    if args.cancel_after is not None:
                        await asyncio.sleep(args.cancel_after)
                        print(f"{time.monotonic() - start:6.1f}s cancelling SOS")
                        session.cancel_sos()

                await asyncio.sleep(args.step)

            await session.sos.wait_settled()
            print(f"\nSimulation complete after {time.monotonic() - start:.1f}s")
            print(f"  Final position: {walker.lat:.5f}, {walker.lon:.5f}")
            print(f"  Zones known: {len(session.poller.snapshot)}")
            print(f"  In danger: {session.in_danger}")
            print(f"  Last SOS outcome: {session.sos.machine.last_outcome}")


def main():
    parser = argparse.ArgumentParser(description="SmartSOS device simulator")
    parser.add_argument("--server", default="http://localhost:4001", help="Backend URL")
    parser.add_argument("--start", type=str, default="12.9716,77.5946",
                        help="Start lat,lon (default: Bangalore)")
    parser.add_argument("--bearing", type=float, default=0.0, help="Initial bearing in degrees")
    parser.add_argument("--speed", type=float, default=1.4, help="Walking speed in m/s")
    parser.add_argument("--duration", type=float, default=120, help="Simulation duration in seconds")
    parser.add_argument("--step", type=float, default=1.0, help="Seconds between position fixes")
    parser.add_argument("--poll-interval", type=float, default=5.0, help="Zone poll interval")
    parser.add_argument("--shake-at", type=float, default=None, help="Shake the device at T seconds")
    parser.add_argument("--sos-at", type=float, default=None, help="Press SOS at T seconds")
    parser.add_argument("--cancel-after", type=float, default=None,
                        help="Cancel a pressed SOS after N seconds")
    parser.add_argument("--log-level", default="warning", help="Log level for the core")

    args = parser.parse_args()

    # Parse start
    lat, lon = args.start.split(",")
    args.start = (float(lat), float(lon))

    asyncio.run(run_simulation(args))


if __name__ == "__main__":
    main()
