"""Shared test fixtures."""

from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient

import smartsos.main as main_module
from smartsos.config import AppConfig
from smartsos.core.errors import SubmissionFailure
from smartsos.core.stats import ServerStats
from smartsos.storage.file_media import FileMediaStorage
from smartsos.storage.memory_store import MemorySafetyStore

SEED_ZONES = [
    {"id": 1, "lat": 12.9716, "lang": 77.5946, "radius": 200, "message": "Poorly lit underpass"},
    {"id": 2, "lat": "12.9352", "lang": "77.6245", "radius": None, "message": "Flooding"},
]


@pytest.fixture(autouse=True)
def _init_server(tmp_path):
    """Initialize server singletons for every test, using a temp directory."""
    config = AppConfig()
    config.storage.media_dir = str(tmp_path / "media")
    config.logging.level = "warning"

    # Patch module-level singletons
    main_module._config = config
    main_module._stats = ServerStats()
    main_module._store = MemorySafetyStore(zones=SEED_ZONES)
    main_module._media = FileMediaStorage(
        base_dir=config.storage.media_dir,
        public_url="http://test/media",
    )

    yield

    # Cleanup
    main_module._config = None
    main_module._stats = None
    main_module._store = None
    main_module._media = None


@pytest.fixture
async def client():
    from smartsos.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


class RecordingSubmitter:
    """AlertSubmitter that records calls and can be told to fail."""

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.alerts = []
        self.reports = []

    async def submit_alert(self, payload):
        self.alerts.append(payload)
        if self.error is not None:
            raise self.error
        return [{"id": len(self.alerts)}]

    async def submit_report(self, report):
        self.reports.append(report)
        if self.error is not None:
            raise self.error
        return [{"id": len(self.reports)}]


@pytest.fixture
def submitter():
    return RecordingSubmitter()


@pytest.fixture
def failing_submitter():
    return RecordingSubmitter(error=SubmissionFailure("/api/add-demo returned 500", status_code=500))


@pytest.fixture
def notices():
    return []
