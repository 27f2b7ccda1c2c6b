"""HTTP client for the safety backend.

Implements both ZoneSource and AlertSubmitter on top of a shared
``httpx.AsyncClient``. Transport errors, non-2xx statuses and undecodable
bodies are translated into the domain errors the core understands.
"""

from __future__ import annotations

from typing import Any, TYPE_CHECKING

import httpx
import structlog

from smartsos.backend.wire import payload_to_wire, report_to_wire, zones_from_wire
from smartsos.core.errors import SubmissionFailure, ZonePollFailure
from smartsos.core.models import DEFAULT_ZONE_RADIUS_M

if TYPE_CHECKING:
    from smartsos.core.models import DangerZone, EmergencyPayload, HazardReport

log = structlog.get_logger()

DEFAULT_USER_AGENT = "smartsos/0.1.0"

ZONES_PATH = "/api/danger-zones"
ALERT_PATH = "/api/add-demo"
REPORTS_PATH = "/api/reports"


class BackendClient:
    """ZoneSource + AlertSubmitter backed by the safety backend's REST API."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = 10.0,
        default_radius_m: float = DEFAULT_ZONE_RADIUS_M,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._default_radius_m = default_radius_m
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(
            timeout=timeout_seconds,
            headers={"User-Agent": DEFAULT_USER_AGENT},
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def __aenter__(self) -> BackendClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def fetch_zones(self) -> list[DangerZone]:
        url = self._base_url + ZONES_PATH
        try:
            resp = await self._http.get(url)
            resp.raise_for_status()
            body = resp.json()
        except httpx.HTTPStatusError as e:
            raise ZonePollFailure(f"zone listing returned {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise ZonePollFailure(f"zone listing request failed: {e}") from e
        except ValueError as e:
            raise ZonePollFailure("zone listing is not valid JSON") from e

        if not isinstance(body, list):
            raise ZonePollFailure(f"zone listing is a {type(body).__name__}, expected a list")
        return zones_from_wire(body, self._default_radius_m)

    async def submit_alert(self, payload: EmergencyPayload) -> Any:
        return await self._post(ALERT_PATH, payload_to_wire(payload))

    async def submit_report(self, report: HazardReport) -> Any:
        return await self._post(REPORTS_PATH, report_to_wire(report))

    async def _post(self, path: str, body: dict) -> Any:
        """POST ``body`` and return the ``data`` member of the response."""
        url = self._base_url + path
        try:
            resp = await self._http.post(url, json=body)
            resp.raise_for_status()
            result = resp.json()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            log.warning("submission_rejected", path=path, status=status)
            raise SubmissionFailure(f"{path} returned {status}", status_code=status) from e
        except httpx.HTTPError as e:
            log.warning("submission_transport_error", path=path, error=str(e))
            raise SubmissionFailure(f"{path} request failed: {e}") from e
        except ValueError as e:
            raise SubmissionFailure(f"{path} response is not valid JSON") from e

        if isinstance(result, dict):
            if result.get("success") is False:
                raise SubmissionFailure(f"{path} reported failure: {result.get('error', '')}",
                                        status_code=resp.status_code)
            return result.get("data")
        return result
