"""Transient storage for uploaded candidate images.

A candidate image lives on local disk for exactly one verification attempt.
``scoped()`` and ``TemporaryAsset`` release it on every exit path, and
``release()`` is safe to call more than once.
"""

from __future__ import annotations

import logging
import os
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

from werkzeug.utils import secure_filename

logger = logging.getLogger(__name__)

_MIME_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/pjpeg": ".jpg",
    "image/png": ".png",
}


@dataclass(frozen=True)
class CandidateImage:
    """Binary image data plus its declared MIME type, as received."""

    data: bytes
    mime_type: str
    filename: str = ""

    def extension(self) -> str:
        suffix = Path(self.filename or "").suffix.lower()
        if suffix:
            return suffix
        return _MIME_EXTENSIONS.get((self.mime_type or "").lower(), "")


class TemporaryAsset:
    def __init__(self, lifecycle: "TemporaryAssetLifecycle", path: Path, mime_type: str):
        self._lifecycle = lifecycle
        self.path = path
        self.mime_type = mime_type

    @property
    def released(self) -> bool:
        return not self.path.exists()

    def release(self) -> bool:
        return self._lifecycle.release(self.path)


class TemporaryAssetLifecycle:
    def __init__(self, upload_dir: str | os.PathLike):
        self._upload_dir = Path(upload_dir)

    def acquire(self, image: CandidateImage) -> TemporaryAsset:
        """Write the upload to transient storage and return its handle."""

        self._upload_dir.mkdir(parents=True, exist_ok=True)
        stem = secure_filename(Path(image.filename or "").stem) or "upload"
        name = f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}-{stem}{image.extension()}"
        path = self._upload_dir / name
        path.write_bytes(image.data)
        logger.debug("Temporary image stored: %s (%d bytes)", path, len(image.data))
        return TemporaryAsset(self, path, image.mime_type)

    def release(self, path: Optional[str | os.PathLike]) -> bool:
        """Delete a transient artifact. Returns True if a file was removed.

        Already-deleted artifacts are ignored; other filesystem errors are
        logged and never raised so cleanup cannot mask the attempt's outcome.
        """

        if not path:
            return False
        target = Path(path)
        try:
            target.unlink()
        except FileNotFoundError:
            return False
        except OSError:
            logger.error("Temporary image cleanup failed: %s", target, exc_info=True)
            return False
        logger.debug("Temporary image cleaned up: %s", target)
        return True

    @contextmanager
    def scoped(self, image: CandidateImage) -> Iterator[TemporaryAsset]:
        asset = self.acquire(image)
        try:
            yield asset
        finally:
            asset.release()
