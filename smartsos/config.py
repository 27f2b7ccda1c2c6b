"""SmartSOS configuration.

Loads from config.yaml if present, with environment variable overrides.
Environment variables use the pattern: SMARTSOS_<SECTION>_<KEY> (uppercase).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path

import yaml


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 4001
    env: str = "dev"  # "dev" or "prod"


@dataclass
class BackendConfig:
    base_url: str = "http://localhost:4001"
    timeout_seconds: float = 10.0


@dataclass
class ZonesConfig:
    poll_interval_seconds: float = 5.0
    default_radius_m: float = 200.0


@dataclass
class LocationConfig:
    high_accuracy: bool = True
    maximum_age_ms: int = 1000
    fix_timeout_seconds: float = 10.0
    watch_retry_seconds: float = 2.0


@dataclass
class SosConfig:
    countdown_seconds: int = 3
    tick_seconds: float = 1.0
    alert_radius_m: float = 1
    message: str = "Urgent Assistance Required."


@dataclass
class MotionConfig:
    enabled: bool = True
    shake_threshold: float = 25.0
    cooldown_ms: int = 5000
    min_sample_interval_ms: int = 150


@dataclass
class StorageConfig:
    media_dir: str = "data/media"
    public_media_url: str = "http://localhost:4001/media"
    zones_file: str = ""  # YAML list of seed danger zones


@dataclass
class LoggingConfig:
    level: str = "info"
    format: str = "console"  # "console" or "json"


@dataclass
class AppConfig:
    server: ServerConfig = field(default_factory=ServerConfig)
    backend: BackendConfig = field(default_factory=BackendConfig)
    zones: ZonesConfig = field(default_factory=ZonesConfig)
    location: LocationConfig = field(default_factory=LocationConfig)
    sos: SosConfig = field(default_factory=SosConfig)
    motion: MotionConfig = field(default_factory=MotionConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _apply_env_overrides(config: AppConfig) -> None:
    """Override config values from environment variables."""
    mapping = {
        "SMARTSOS_SERVER_HOST": lambda v: setattr(config.server, "host", v),
        "SMARTSOS_SERVER_PORT": lambda v: setattr(config.server, "port", int(v)),
        "SMARTSOS_SERVER_ENV": lambda v: setattr(config.server, "env", v),
        "SMARTSOS_BACKEND_BASE_URL": lambda v: setattr(config.backend, "base_url", v),
        "SMARTSOS_BACKEND_TIMEOUT": lambda v: setattr(config.backend, "timeout_seconds", float(v)),
        "SMARTSOS_ZONES_POLL_INTERVAL": lambda v: setattr(config.zones, "poll_interval_seconds", float(v)),
        "SMARTSOS_ZONES_DEFAULT_RADIUS": lambda v: setattr(config.zones, "default_radius_m", float(v)),
        "SMARTSOS_LOCATION_HIGH_ACCURACY": lambda v: setattr(config.location, "high_accuracy", _as_bool(v)),
        "SMARTSOS_LOCATION_MAXIMUM_AGE_MS": lambda v: setattr(config.location, "maximum_age_ms", int(v)),
        "SMARTSOS_LOCATION_FIX_TIMEOUT": lambda v: setattr(config.location, "fix_timeout_seconds", float(v)),
        "SMARTSOS_LOCATION_WATCH_RETRY": lambda v: setattr(config.location, "watch_retry_seconds", float(v)),
        "SMARTSOS_SOS_COUNTDOWN": lambda v: setattr(config.sos, "countdown_seconds", int(v)),
        "SMARTSOS_SOS_TICK_SECONDS": lambda v: setattr(config.sos, "tick_seconds", float(v)),
        "SMARTSOS_SOS_ALERT_RADIUS": lambda v: setattr(config.sos, "alert_radius_m", float(v)),
        "SMARTSOS_SOS_MESSAGE": lambda v: setattr(config.sos, "message", v),
        "SMARTSOS_MOTION_ENABLED": lambda v: setattr(config.motion, "enabled", _as_bool(v)),
        "SMARTSOS_MOTION_SHAKE_THRESHOLD": lambda v: setattr(config.motion, "shake_threshold", float(v)),
        "SMARTSOS_MOTION_COOLDOWN_MS": lambda v: setattr(config.motion, "cooldown_ms", int(v)),
        "SMARTSOS_MOTION_MIN_INTERVAL_MS": lambda v: setattr(config.motion, "min_sample_interval_ms", int(v)),
        "SMARTSOS_STORAGE_MEDIA_DIR": lambda v: setattr(config.storage, "media_dir", v),
        "SMARTSOS_STORAGE_PUBLIC_MEDIA_URL": lambda v: setattr(config.storage, "public_media_url", v),
        "SMARTSOS_STORAGE_ZONES_FILE": lambda v: setattr(config.storage, "zones_file", v),
        "SMARTSOS_LOG_LEVEL": lambda v: setattr(config.logging, "level", v),
        "SMARTSOS_LOG_FORMAT": lambda v: setattr(config.logging, "format", v),
    }
    for env_key, setter in mapping.items():
        val = os.environ.get(env_key)
        if val is not None:
            setter(val)


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load configuration from YAML file + environment overrides."""
    config = AppConfig()

    # Try to load YAML
    if config_path is None:
        config_path = Path(os.environ.get("SMARTSOS_CONFIG", "config.yaml"))
    else:
        config_path = Path(config_path)

    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f) or {}

        for section_field in fields(config):
            values = raw.get(section_field.name)
            if not isinstance(values, dict):
                continue
            section = getattr(config, section_field.name)
            for k, v in values.items():
                if hasattr(section, k):
                    setattr(section, k, v)

    # Environment overrides always win
    _apply_env_overrides(config)
    return config
