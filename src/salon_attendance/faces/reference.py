from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

import requests

from ..core.exceptions import ReferenceUnavailableError

logger = logging.getLogger(__name__)

LocalResolver = Callable[[str], Optional[Path]]


class ReferenceImageLoader:
    """Resolve a stored ``reference_image_location`` into image bytes.

    Remote URIs are fetched over HTTP with a bounded timeout; anything else
    is read from disk. ``local_resolver`` lets the durable asset store map
    its own public URLs back to files.
    """

    def __init__(
        self,
        *,
        timeout_seconds: float,
        session: Optional[requests.Session] = None,
        local_resolver: Optional[LocalResolver] = None,
    ):
        self._timeout = float(timeout_seconds)
        self._session = session or requests.Session()
        self._local_resolver = local_resolver

    def load(self, location: str) -> bytes:
        if not location:
            raise ReferenceUnavailableError("No reference image location")

        local = self._local_resolver(location) if self._local_resolver else None
        if local is not None:
            return self._read(local)

        if location.startswith(("http://", "https://")):
            return self._fetch(location)

        if location.startswith("file://"):
            location = location[len("file://"):]
        return self._read(Path(location))

    def _fetch(self, url: str) -> bytes:
        try:
            resp = self._session.get(url, timeout=self._timeout)
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise ReferenceUnavailableError(f"Could not download reference image: {exc}") from exc
        if not resp.content:
            raise ReferenceUnavailableError("Reference image download was empty")
        return resp.content

    @staticmethod
    def _read(path: Path) -> bytes:
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise ReferenceUnavailableError(f"Could not read reference image {path}: {exc}") from exc
        if not data:
            raise ReferenceUnavailableError(f"Reference image {path} is empty")
        return data
