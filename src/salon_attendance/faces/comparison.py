from __future__ import annotations

import logging
from typing import Any, Iterable

from ..core.exceptions import ExternalServiceError
from .model import FaceComparison
from .vision_client import VisionClient

logger = logging.getLogger(__name__)


def _best_similarity(entries: Iterable[Any]) -> float:
    best = 0.0
    for entry in entries or []:
        try:
            best = max(best, float(entry["similarity"]))
        except (KeyError, TypeError, ValueError):
            continue
    return best


class FaceComparisonGateway:
    def __init__(self, client: VisionClient):
        self._client = client

    def compare(self, reference_bytes: bytes, candidate_bytes: bytes, threshold_percent: float) -> FaceComparison:
        """Compare a reference face with a candidate face.

        The match decision is re-derived locally as ``similarity >= threshold``
        instead of trusting the remote default. When the service reports no
        match above its threshold, the best below-threshold score (if any) is
        kept so callers can see near-misses.
        """

        threshold = float(threshold_percent)
        try:
            raw = self._client.compare_faces(reference_bytes, candidate_bytes, similarity_threshold=threshold)
        except ExternalServiceError:
            raise
        except Exception as exc:
            raise ExternalServiceError(f"Face comparison failed: {exc}") from exc

        if not isinstance(raw, dict):
            raise ExternalServiceError("Face comparison returned an unexpected payload")

        similarity = _best_similarity(raw.get("matches")) or _best_similarity(raw.get("unmatched"))
        similarity = min(max(similarity, 0.0), 100.0)
        return FaceComparison(similarity=similarity, is_match=similarity >= threshold, threshold=threshold)
