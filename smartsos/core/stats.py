"""Backend statistics.

In-memory counters for the safety backend. No framework dependencies.
"""

from __future__ import annotations

import threading
import time


class ServerStats:
    """Thread-safe request and outcome counters."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._started_at = time.time()

        self.zone_requests: int = 0
        self.alerts_received: int = 0
        self.alerts_rejected: int = 0
        self.reports_received: int = 0
        self.reports_rejected: int = 0
        self.images_stored: int = 0
        self.storage_errors: int = 0
        self.last_alert_at: float | None = None

    def record_zone_request(self) -> None:
        with self._lock:
            self.zone_requests += 1

    def record_alert(self) -> None:
        with self._lock:
            self.alerts_received += 1
            self.last_alert_at = time.time()

    def record_alert_rejected(self) -> None:
        with self._lock:
            self.alerts_rejected += 1

    def record_report(self, *, with_image: bool = False) -> None:
        with self._lock:
            self.reports_received += 1
            if with_image:
                self.images_stored += 1

    def record_report_rejected(self) -> None:
        with self._lock:
            self.reports_rejected += 1

    def record_storage_error(self) -> None:
        with self._lock:
            self.storage_errors += 1

    def snapshot(self) -> dict:
        """Return a JSON-serializable snapshot of all stats."""
        with self._lock:
            return {
                "uptime_seconds": round(time.time() - self._started_at, 1),
                "zone_requests": self.zone_requests,
                "alerts_received": self.alerts_received,
                "alerts_rejected": self.alerts_rejected,
                "reports_received": self.reports_received,
                "reports_rejected": self.reports_rejected,
                "images_stored": self.images_stored,
                "storage_errors": self.storage_errors,
                "seconds_since_last_alert": (
                    round(time.time() - self.last_alert_at, 1)
                    if self.last_alert_at is not None else None
                ),
            }
