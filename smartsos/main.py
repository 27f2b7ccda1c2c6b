"""SmartSOS safety backend: main entry point.

This is the only server-side file that knows about concrete
implementations. It wires together the store, media storage and API
layers.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from smartsos.api.alerts import router as alerts_router
from smartsos.api.monitoring import VERSION
from smartsos.api.monitoring import router as monitoring_router
from smartsos.api.reports import router as reports_router
from smartsos.api.zones import router as zones_router
from smartsos.config import AppConfig, LoggingConfig, load_config
from smartsos.core.stats import ServerStats
from smartsos.storage.base import MediaStorage, SafetyStore
from smartsos.storage.file_media import FileMediaStorage
from smartsos.storage.memory_store import MemorySafetyStore, load_zone_rows

log = structlog.get_logger()

# Module-level singletons (set during startup)
_store: SafetyStore | None = None
_media: MediaStorage | None = None
_stats: ServerStats | None = None
_config: AppConfig | None = None


def get_store() -> SafetyStore:
    assert _store is not None, "Server not initialized"
    return _store


def get_media() -> MediaStorage:
    assert _media is not None, "Server not initialized"
    return _media


def get_stats() -> ServerStats:
    assert _stats is not None, "Server not initialized"
    return _stats


def get_config() -> AppConfig:
    assert _config is not None, "Server not initialized"
    return _config


def setup_logging(config: LoggingConfig) -> None:
    """Configure structlog based on the logging config."""
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if config.format == "json":
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(config.level.upper()),
        ),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    global _store, _media, _stats, _config

    _config = load_config()
    setup_logging(_config.logging)

    zones: list[dict] = []
    if _config.storage.zones_file:
        zones = load_zone_rows(_config.storage.zones_file)

    log.info("server_starting",
             env=_config.server.env,
             media_dir=_config.storage.media_dir,
             seed_zones=len(zones))

    _stats = ServerStats()
    _store = MemorySafetyStore(zones=zones)
    _media = FileMediaStorage(
        base_dir=_config.storage.media_dir,
        public_url=_config.storage.public_media_url,
    )

    log.info("server_started",
             host=_config.server.host,
             port=_config.server.port)

    yield

    log.info("server_stopped")


app = FastAPI(
    title="SmartSOS",
    description="Personal-safety backend: SOS alerts, hazard reports and danger zones",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(zones_router)
app.include_router(alerts_router)
app.include_router(reports_router)
app.include_router(monitoring_router)


def run() -> None:
    """Console entry point: serve the backend with uvicorn."""
    import uvicorn

    config = load_config()
    uvicorn.run("smartsos.main:app", host=config.server.host, port=config.server.port)
