"""Tests for the backend HTTP client (the alert submission adapter)."""

from __future__ import annotations

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from smartsos.backend.client import BackendClient
from smartsos.core.errors import SubmissionFailure, ZonePollFailure
from smartsos.core.models import EmergencyPayload, GeoPoint, HazardReport


@pytest.fixture
async def backend():
    """BackendClient talking to the in-process FastAPI app."""
    from smartsos.main import app

    http = AsyncClient(transport=ASGITransport(app=app), base_url="http://test")
    async with http:
        yield BackendClient("http://test", http_client=http)


def mock_backend(handler) -> BackendClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return BackendClient("http://backend", http_client=http)


@pytest.mark.asyncio
async def test_fetch_zones_from_backend(backend):
    zones = await backend.fetch_zones()
    assert [z.id for z in zones] == [1, 2]
    assert zones[0].center == GeoPoint(12.9716, 77.5946)
    # Seed zone 2 has no radius
    assert zones[1].radius_m == 200
    assert zones[1].center.longitude == 77.6245


@pytest.mark.asyncio
async def test_submit_alert_to_backend(backend):
    data = await backend.submit_alert(EmergencyPayload(position=GeoPoint(12.9716, 77.5946)))
    assert data[0]["lat"] == "12.9716"
    assert data[0]["lang"] == "77.5946"
    assert data[0]["message"] == "Urgent Assistance Required."


@pytest.mark.asyncio
async def test_submit_report_to_backend(backend):
    report = HazardReport(position=GeoPoint(1.0, 2.0), description="Open manhole")
    data = await backend.submit_report(report)
    assert data[0]["dsc"] == "Open manhole"


@pytest.mark.asyncio
async def test_malformed_zone_rows_are_filtered():
    def handler(request):
        return httpx.Response(200, json=[
            {"id": 1, "lat": "12.9716", "lang": "77.5946", "radius": 150},
            {"id": 2, "lat": "12.9716"},
            {"id": 3, "lat": "north", "lang": "77.5946"},
        ])

    zones = await mock_backend(handler).fetch_zones()
    assert [z.id for z in zones] == [1]
    assert zones[0].radius_m == 150


@pytest.mark.asyncio
async def test_fetch_zones_failures():
    async def server_error(request):
        return httpx.Response(500, json={"error": "Failed to fetch danger zones"})

    async def not_a_list(request):
        return httpx.Response(200, json={"zones": []})

    async def garbage(request):
        return httpx.Response(200, content=b"<html>")

    async def unreachable(request):
        raise httpx.ConnectError("connection refused", request=request)

    for handler in (server_error, not_a_list, garbage, unreachable):
        with pytest.raises(ZonePollFailure):
            await mock_backend(handler).fetch_zones()


@pytest.mark.asyncio
async def test_submit_alert_non_2xx_is_failure():
    def handler(request):
        return httpx.Response(500, json={"error": "Internal server error"})

    with pytest.raises(SubmissionFailure) as exc_info:
        await mock_backend(handler).submit_alert(EmergencyPayload(position=GeoPoint(1.0, 2.0)))
    assert exc_info.value.status_code == 500


@pytest.mark.asyncio
async def test_submit_alert_transport_error_is_failure():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(SubmissionFailure):
        await mock_backend(handler).submit_alert(EmergencyPayload(position=GeoPoint(1.0, 2.0)))


@pytest.mark.asyncio
async def test_submit_alert_explicit_failure_body():
    def handler(request):
        return httpx.Response(200, json={"success": False, "error": "rejected"})

    with pytest.raises(SubmissionFailure, match="rejected"):
        await mock_backend(handler).submit_alert(EmergencyPayload(position=GeoPoint(1.0, 2.0)))


@pytest.mark.asyncio
async def test_alert_body_uses_wire_names():
    captured = {}

    def handler(request):
        import json

        captured["path"] = request.url.path
        captured["body"] = json.loads(request.content)
        return httpx.Response(201, json={"success": True, "data": []})

    await mock_backend(handler).submit_alert(
        EmergencyPayload(position=GeoPoint(12.5, -3.25), radius_m=1, message="Help"))
    assert captured["path"] == "/api/add-demo"
    assert captured["body"] == {"lat": "12.5", "lang": "-3.25", "radius": 1, "message": "Help"}
