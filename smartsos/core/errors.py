"""Error taxonomy for the safety core.

None of these are fatal: every failure path returns the caller to a
stable, retryable state.
"""

from __future__ import annotations


class SafetyError(Exception):
    """Base class for all SmartSOS domain errors."""


class LocationUnavailable(SafetyError):
    """No position could be obtained (permission denied, timeout, no signal)."""


class MotionPermissionDenied(SafetyError):
    """The platform refused access to motion sensors."""


class ZonePollFailure(SafetyError):
    """The danger-zone listing could not be fetched or decoded."""


class SubmissionFailure(SafetyError):
    """An alert or report was rejected by the backend or never reached it."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
