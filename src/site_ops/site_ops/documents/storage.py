from __future__ import annotations

import logging
import os
import re
import secrets
from datetime import datetime
from pathlib import Path
from typing import Optional

from ..core.exceptions import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


_EXTENSION = re.compile(r"[a-z0-9]+")


def file_extension(filename: str) -> str:
    """Lower-cased suffix of the client file name; any script is allowed in the stem."""
    ext = Path(filename or "").suffix.lstrip(".").lower()
    return ext if _EXTENSION.fullmatch(ext) else ""


class LocalStorage:
    """Files under UPLOAD_FOLDER, addressed by '<owner>/<timestamp>-<random>.<ext>' keys."""

    def __init__(self, root: str | Path):
        self._root = Path(root).resolve()

    @property
    def root(self) -> Path:
        return self._root

    def _path(self, key: str) -> Path:
        path = (self._root / key).resolve()
        if self._root not in path.parents:
            raise ValidationError("Invalid storage key")
        return path

    def save(self, data: bytes, *, owner_id: int, filename: str, now: Optional[datetime] = None) -> str:
        now = now or datetime.now()
        ext = file_extension(filename)
        key = f"{int(owner_id)}/{now.strftime('%Y%m%d%H%M%S')}-{secrets.token_hex(4)}"
        if ext:
            key += f".{ext}"

        path = self._path(key)
        os.makedirs(path.parent, exist_ok=True)
        with open(path, "wb") as f:
            f.write(data)
        logger.info("Stored %s (%d bytes)", key, len(data))
        return key

    def path_for(self, key: str) -> Path:
        path = self._path(key)
        if not path.exists():
            raise NotFoundError("Stored file is missing")
        return path

    def read(self, key: str) -> bytes:
        return self.path_for(key).read_bytes()

    def delete(self, key: str) -> bool:
        path = self._path(key)
        if not path.exists():
            return False
        path.unlink()
        logger.info("Removed %s", key)
        return True
