"""Backend interfaces (ports) used by the safety core."""

from __future__ import annotations

from typing import Any, Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from smartsos.core.models import DangerZone, EmergencyPayload, HazardReport


class ZoneSource(Protocol):
    """Port: lists the current danger zones.

    Raises ZonePollFailure when the listing cannot be fetched or decoded.
    """

    async def fetch_zones(self) -> list[DangerZone]: ...


class AlertSubmitter(Protocol):
    """Port: delivers finalized alerts and reports.

    Raises SubmissionFailure on transport errors or non-2xx responses.
    """

    async def submit_alert(self, payload: EmergencyPayload) -> Any: ...

    async def submit_report(self, report: HazardReport) -> Any: ...
