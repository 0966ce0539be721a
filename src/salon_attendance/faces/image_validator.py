from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable

from ..core.constants import ALLOWED_IMAGE_EXTENSIONS, MAX_IMAGE_BYTES, MIN_IMAGE_BYTES
from ..core.enums import RejectionReason
from .model import ImageValidation


class ImageQualityValidator:
    """Cheap local gate run before any external call.

    Checks, in order: file size within ``[min_bytes, max_bytes]`` then the
    file extension. Anything that is not a readable regular file fails the
    size check.
    """

    def __init__(
        self,
        *,
        min_bytes: int = MIN_IMAGE_BYTES,
        max_bytes: int = MAX_IMAGE_BYTES,
        allowed_extensions: Iterable[str] = ALLOWED_IMAGE_EXTENSIONS,
    ):
        self._min_bytes = int(min_bytes)
        self._max_bytes = int(max_bytes)
        self._allowed = tuple(e.lower() for e in allowed_extensions)

    def validate(self, image_path: str | os.PathLike) -> ImageValidation:
        path = Path(image_path)
        try:
            size = path.stat().st_size
            if not path.is_file():
                return ImageValidation(valid=False, reason=RejectionReason.INVALID_FILE_SIZE)
            with open(path, "rb") as fh:
                fh.read(1)
        except OSError:
            return ImageValidation(valid=False, reason=RejectionReason.INVALID_FILE_SIZE)

        if size < self._min_bytes or size > self._max_bytes:
            return ImageValidation(valid=False, reason=RejectionReason.INVALID_FILE_SIZE, size_bytes=size)

        extension = path.suffix.lower()
        if extension not in self._allowed:
            return ImageValidation(
                valid=False,
                reason=RejectionReason.INVALID_FILE_TYPE,
                size_bytes=size,
                extension=extension,
            )

        return ImageValidation(valid=True, size_bytes=size, extension=extension)
