"""Device capability interfaces (ports).

The core never talks to a platform geolocation or motion API directly; it
calls through these so that real devices, simulators and test fakes are
interchangeable.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from smartsos.core.models import MotionSample, PositionFix


class LocationSource(Protocol):
    """Port: one-shot position requests and a continuous watch.

    Both raise LocationUnavailable on denial or loss of signal. Closing the
    watch iterator (or cancelling its consumer) stops the watch.
    """

    async def get_current_position(
        self, *, high_accuracy: bool, maximum_age_ms: int,
    ) -> PositionFix: ...

    def watch_position(
        self, *, high_accuracy: bool, maximum_age_ms: int,
    ) -> AsyncIterator[PositionFix]: ...


class MotionSource(Protocol):
    """Port: acceleration-including-gravity samples.

    ``request_permission`` raises MotionPermissionDenied on refusal and is a
    no-op on platforms without a permission step.
    """

    async def request_permission(self) -> None: ...

    def samples(self) -> AsyncIterator[MotionSample]: ...
