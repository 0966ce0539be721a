from __future__ import annotations

import logging
import os
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

from werkzeug.utils import secure_filename

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredAsset:
    url: str
    folder: str


class AssetStore(Protocol):
    def upload(self, data: bytes, folder: str, *, extension: str = ".jpg") -> StoredAsset:
        raise NotImplementedError

    def local_path(self, url: str) -> Optional[Path]:
        """Map a URL produced by this store back to a file, if it is local."""

        raise NotImplementedError


class LocalAssetStore:
    """Durable asset store on a filesystem served under ``base_url``."""

    def __init__(self, media_root: str | os.PathLike, base_url: str = "/media"):
        self._root = Path(media_root)
        self._base_url = base_url.rstrip("/")

    def upload(self, data: bytes, folder: str, *, extension: str = ".jpg") -> StoredAsset:
        folder = "/".join(secure_filename(part) for part in folder.split("/") if part) or "misc"
        target_dir = self._root / folder
        target_dir.mkdir(parents=True, exist_ok=True)

        name = f"{uuid.uuid4().hex}{extension or '.jpg'}"
        (target_dir / name).write_bytes(data)

        url = f"{self._base_url}/{folder}/{name}"
        logger.info("Stored asset %s (%d bytes)", url, len(data))
        return StoredAsset(url=url, folder=folder)

    def local_path(self, url: str) -> Optional[Path]:
        prefix = f"{self._base_url}/"
        if not url or not url.startswith(prefix):
            return None
        relative = url[len(prefix):]
        path = (self._root / relative).resolve()
        if self._root.resolve() not in path.parents:
            return None
        return path
