"""In-process implementation of SafetyStore.

Rows live in memory for the lifetime of the server; danger zones can be
seeded from a YAML file at startup.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import structlog
import yaml

from smartsos.storage.base import ZONES_TABLE

log = structlog.get_logger()


def load_zone_rows(path: str | Path) -> list[dict]:
    """Read seed danger-zone rows from a YAML list."""
    with open(path) as f:
        raw = yaml.safe_load(f) or []
    if not isinstance(raw, list):
        raise ValueError(f"{path}: expected a list of zones, got {type(raw).__name__}")
    return [row for row in raw if isinstance(row, dict)]


class MemorySafetyStore:
    """SafetyStore backed by per-table lists. Zero dependencies."""

    def __init__(self, zones: list[dict] | None = None) -> None:
        self._tables: dict[str, list[dict]] = {}
        self._next_id = 1
        for row in zones or []:
            self._insert(ZONES_TABLE, row)

    def _insert(self, table: str, row: dict) -> dict:
        stored = dict(row)
        if stored.get("id") is None:
            stored["id"] = self._next_id
            self._next_id += 1
        stored.setdefault("created_at", datetime.now(timezone.utc).isoformat())
        self._tables.setdefault(table, []).append(stored)
        return dict(stored)

    async def insert(self, table: str, row: dict) -> dict:
        stored = self._insert(table, row)
        log.debug("row_inserted", table=table, id=stored["id"])
        return stored

    async def select(self, table: str) -> list[dict]:
        return [dict(row) for row in self._tables.get(table, [])]

    def count(self, table: str) -> int:
        return len(self._tables.get(table, []))
