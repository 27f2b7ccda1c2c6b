"""Storage interfaces (ports) for the safety backend."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

ZONES_TABLE = "danger_zones"
SOS_TABLE = "sos"
REPORTS_TABLE = "reports"


class SafetyStore(Protocol):
    """Port: row insert/select against named tables."""

    async def insert(self, table: str, row: dict) -> dict: ...

    async def select(self, table: str) -> list[dict]: ...


class MediaStorage(Protocol):
    """Port: stores uploaded images and hands back a public URL."""

    def save_data_url(self, data_url: str) -> str: ...

    def path_for(self, name: str) -> Path | None: ...
