"""Clients for the external face detection / comparison capability.

Every client returns plain dicts shaped like::

    detect_faces  -> {"face_count": int, "details": [...]}
    compare_faces -> {"matches": [{"similarity": float}, ...],
                      "unmatched": [{"similarity": float}, ...]}

``unmatched`` is optional; when a backend reports scores below the
threshold there, the gateways surface them so callers see near-misses.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Protocol

import requests

from ..core.exceptions import ExternalServiceError
from .model import VisionConfig

logger = logging.getLogger(__name__)


class VisionClient(Protocol):
    def detect_faces(self, image_bytes: bytes, *, all_attributes: bool = True) -> Dict[str, Any]:
        raise NotImplementedError

    def compare_faces(self, source_bytes: bytes, target_bytes: bytes, *, similarity_threshold: float) -> Dict[str, Any]:
        raise NotImplementedError


class HttpVisionClient:
    """Talks to a remote vision REST API over ``requests``."""

    def __init__(self, config: VisionConfig, *, session: Optional[requests.Session] = None):
        if not config.api_url:
            raise ValueError("VISION_API_URL is not configured")
        self._base_url = config.api_url.rstrip("/")
        self._timeout = float(config.timeout_seconds)
        self._session = session or requests.Session()
        if config.api_key:
            self._session.headers["Authorization"] = f"Bearer {config.api_key}"

    def _post(self, path: str, *, files: dict, data: dict) -> Dict[str, Any]:
        url = f"{self._base_url}{path}"
        try:
            resp = self._session.post(url, files=files, data=data, timeout=self._timeout)
            resp.raise_for_status()
            return resp.json()
        except requests.Timeout as exc:
            raise ExternalServiceError(f"Vision API timed out after {self._timeout:g}s: {path}") from exc
        except requests.RequestException as exc:
            raise ExternalServiceError(f"Vision API request failed: {path}: {exc}") from exc
        except ValueError as exc:
            raise ExternalServiceError(f"Vision API returned invalid JSON: {path}") from exc

    def detect_faces(self, image_bytes: bytes, *, all_attributes: bool = True) -> Dict[str, Any]:
        payload = self._post(
            "/faces/detect",
            files={"image": ("image", image_bytes)},
            data={"attributes": "ALL" if all_attributes else "DEFAULT"},
        )
        details = list(payload.get("details") or [])
        return {"face_count": int(payload.get("face_count", len(details))), "details": details}

    def compare_faces(self, source_bytes: bytes, target_bytes: bytes, *, similarity_threshold: float) -> Dict[str, Any]:
        payload = self._post(
            "/faces/compare",
            files={"source": ("source", source_bytes), "target": ("target", target_bytes)},
            data={"similarity_threshold": f"{float(similarity_threshold):g}"},
        )
        return {
            "matches": list(payload.get("matches") or []),
            "unmatched": list(payload.get("unmatched") or []),
        }
