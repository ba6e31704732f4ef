"""
Local filesystem store for photos captured on the device.
The key it returns is the opaque photo reference recorded by attendance and DPR entries.
"""
import os
import secrets
from datetime import datetime
from pathlib import Path
from typing import BinaryIO, Optional

import structlog

from ..errors import StorageFailure


logger = structlog.get_logger(__name__)

PHOTO_PREFIXES = {"attendance": "ATT", "dpr": "DPR"}


class PhotoStore:
    """Saves captured photos under a base directory."""

    def __init__(self, base_dir: str = "var/photos"):
        self.base_dir = Path(base_dir)

    def _get_path(self, key: str) -> Path:
        """Get the local filesystem path for a given key."""
        clean_key = key.lstrip("/").replace("..", "").replace("\\", "/")
        return self.base_dir / clean_key

    def new_key(self, kind: str, now: Optional[datetime] = None) -> str:
        prefix = PHOTO_PREFIXES.get(kind)
        if prefix is None:
            raise ValueError(f"Unknown photo kind: {kind}")
        stamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
        return f"{prefix}_{stamp}_{secrets.token_hex(4)}.jpg"

    def save(self, src: BinaryIO | bytes, kind: str, now: Optional[datetime] = None) -> str:
        key = self.new_key(kind, now)
        path = self._get_path(key)
        tmp_path = path.with_suffix(".part")
        data = src.read() if hasattr(src, "read") else src
        if not data:
            raise ValueError("Photo is empty")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            # Only a fully written file becomes visible under its key
            tmp_path.replace(path)
        except OSError as e:
            logger.error("photo_write_failed", key=key, error=str(e))
            tmp_path.unlink(missing_ok=True)
            raise StorageFailure(f"Could not save photo {key}") from e
        logger.info("photo_saved", key=key, size_bytes=len(data))
        return key

    def exists(self, key: str) -> bool:
        return self._get_path(key).is_file()
