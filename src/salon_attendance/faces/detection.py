from __future__ import annotations

import logging

from ..core.exceptions import ExternalServiceError
from .model import FaceDetection
from .vision_client import VisionClient

logger = logging.getLogger(__name__)


class FaceDetectionGateway:
    """Normalize the external "detect faces" response into a face count.

    No accept/reject decision is made here: registration and verification
    map the count to different reason codes.
    """

    def __init__(self, client: VisionClient, *, all_attributes: bool = True):
        self._client = client
        self._all_attributes = all_attributes

    def detect(self, image_bytes: bytes) -> FaceDetection:
        try:
            raw = self._client.detect_faces(image_bytes, all_attributes=self._all_attributes)
        except ExternalServiceError:
            raise
        except Exception as exc:
            raise ExternalServiceError(f"Face detection failed: {exc}") from exc

        try:
            face_count = int(raw.get("face_count", len(raw.get("details") or [])))
        except (AttributeError, TypeError, ValueError) as exc:
            raise ExternalServiceError("Face detection returned an unexpected payload") from exc

        logger.debug("Detected %d face(s)", face_count)
        return FaceDetection(face_count=max(face_count, 0), raw=raw)
