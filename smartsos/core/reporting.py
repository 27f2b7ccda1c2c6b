"""Hazard reporting: a description and optional photo, geolocated."""

from __future__ import annotations

from typing import Any, TYPE_CHECKING

import structlog

from smartsos.core.models import HazardReport

if TYPE_CHECKING:
    from smartsos.backend.base import AlertSubmitter
    from smartsos.core.location import LocationTracker

log = structlog.get_logger()

# Starting text for each quick-report category.
ISSUE_TEMPLATES = {
    "fire": "I am reporting a fire emergency. Please help. \nAdditional info: ",
    "earthquake": "I am reporting earthquake activity. Please help. \nAdditional info: ",
    "avalanche": "I am reporting an avalanche. Please help. \nAdditional info: ",
    "accident": "I am reporting an accident. Please help. \nAdditional info: ",
    "flood": "I am reporting flooding. Please help. \nAdditional info: ",
    "other": "I am reporting an emergency situation. Please help. \nAdditional info: ",
}


def template_for(kind: str) -> str:
    try:
        return ISSUE_TEMPLATES[kind]
    except KeyError:
        raise ValueError(f"unknown issue type {kind!r}") from None


class HazardReporter:
    """Builds and submits hazard reports.

    Errors propagate to the caller: LocationUnavailable when no fix can be
    had, SubmissionFailure when the backend rejects the report.
    """

    def __init__(self, tracker: LocationTracker, submitter: AlertSubmitter) -> None:
        self._tracker = tracker
        self._submitter = submitter

    async def submit(self, description: str, image_data_url: str | None = None) -> Any:
        if not description or not description.strip():
            raise ValueError("a description is required")

        position = await self._tracker.current_position()
        report = HazardReport(
            position=position,
            description=description,
            image_data_url=image_data_url or None,
        )
        data = await self._submitter.submit_report(report)
        log.info("hazard_report_submitted", lat=position.latitude,
                 lon=position.longitude, has_image=report.image_data_url is not None)
        return data
