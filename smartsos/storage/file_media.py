"""File-based media storage.

Decodes ``data:<mime>;base64,<payload>`` URLs and writes the bytes to
``base_dir`` under a random name. The returned URL is
``<public_url>/<name>``.
"""

from __future__ import annotations

import base64
import binascii
import mimetypes
import re
import uuid
from pathlib import Path

import structlog

log = structlog.get_logger()

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?:;[\w=-]+)*;base64,(?P<data>.*)$", re.DOTALL)

# Refuse anything bigger than this once decoded.
MAX_IMAGE_BYTES = 10 * 1024 * 1024

_SAFE_NAME_RE = re.compile(r"^[0-9a-f]{32}\.[a-z0-9]+$")


class FileMediaStorage:
    """MediaStorage backed by a flat directory on disk."""

    def __init__(self, base_dir: str | Path, public_url: str) -> None:
        self._base_dir = Path(base_dir)
        self._base_dir.mkdir(parents=True, exist_ok=True)
        self._public_url = public_url.rstrip("/")

    def save_data_url(self, data_url: str) -> str:
        """Store an image data URL. Raises ValueError if it is not one."""
        match = _DATA_URL_RE.match(data_url)
        if match is None:
            raise ValueError("not a base64 data URL")
        mime = match.group("mime") or "application/octet-stream"
        if not mime.startswith("image/"):
            raise ValueError(f"unsupported media type {mime}")
        try:
            content = base64.b64decode(match.group("data"), validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError("invalid base64 payload") from e
        if len(content) > MAX_IMAGE_BYTES:
            raise ValueError(f"image exceeds {MAX_IMAGE_BYTES} bytes")

        ext = (mimetypes.guess_extension(mime) or ".bin").lstrip(".")
        name = f"{uuid.uuid4().hex}.{ext}"
        (self._base_dir / name).write_bytes(content)
        log.debug("media_written", name=name, size=len(content), mime=mime)
        return f"{self._public_url}/{name}"

    def path_for(self, name: str) -> Path | None:
        """Resolve a stored file name, or None if unknown or unsafe."""
        if not _SAFE_NAME_RE.match(name):
            return None
        path = self._base_dir / name
        return path if path.is_file() else None
