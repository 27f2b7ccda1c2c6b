"""Tests for ServerStats."""

from __future__ import annotations

from smartsos.core.stats import ServerStats


def test_initial_stats():
    snap = ServerStats().snapshot()
    assert snap["alerts_received"] == 0
    assert snap["reports_received"] == 0
    assert snap["zone_requests"] == 0
    assert snap["seconds_since_last_alert"] is None


def test_alert_counters():
    stats = ServerStats()
    stats.record_alert()
    stats.record_alert()
    stats.record_alert_rejected()

    snap = stats.snapshot()
    assert snap["alerts_received"] == 2
    assert snap["alerts_rejected"] == 1
    assert snap["seconds_since_last_alert"] is not None


def test_report_and_storage_counters():
    stats = ServerStats()
    stats.record_report()
    stats.record_report(with_image=True)
    stats.record_report_rejected()
    stats.record_storage_error()
    stats.record_zone_request()

    snap = stats.snapshot()
    assert snap["reports_received"] == 2
    assert snap["images_stored"] == 1
    assert snap["reports_rejected"] == 1
    assert snap["storage_errors"] == 1
    assert snap["zone_requests"] == 1
