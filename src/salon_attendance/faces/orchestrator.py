from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from ..assets.temporary import TemporaryAssetLifecycle
from ..core.enums import RejectionReason
from ..core.exceptions import ExternalServiceError, ReferenceUnavailableError
from .comparison import FaceComparisonGateway
from .detection import FaceDetectionGateway
from .image_validator import ImageQualityValidator
from .model import FaceDetection, VerificationResult
from .reference import ReferenceImageLoader

logger = logging.getLogger(__name__)


def _stored_image_failure(detection: FaceDetection) -> Optional[RejectionReason]:
    if detection.has_no_face:
        return RejectionReason.STORED_IMAGE_NO_FACE
    if detection.has_multiple_faces:
        return RejectionReason.STORED_IMAGE_MULTIPLE_FACES
    return None


def _candidate_image_failure(detection: FaceDetection) -> Optional[RejectionReason]:
    if detection.has_no_face:
        return RejectionReason.LOGIN_IMAGE_NO_FACE
    if detection.has_multiple_faces:
        return RejectionReason.LOGIN_IMAGE_MULTIPLE_FACES
    return None


class FaceVerificationOrchestrator:
    """Decide whether a candidate image shows the owner of a reference image.

    Steps run in a fixed order so the cheapest check fails first and every
    rejection names the image that caused it:

    1. local quality gate on the candidate (no network);
    2. load the reference image (``REFERENCE_UNAVAILABLE`` on failure);
    3. detect faces on the reference, then on the candidate;
    4. compare, rejecting with ``LOW_SIMILARITY`` and the score below threshold;
    5. accept.

    External failures in steps 3-4 are rejections (``COMPARISON_FAILED``),
    never accepts. The candidate file is released on every exit path.
    """

    def __init__(
        self,
        *,
        validator: ImageQualityValidator,
        detection: FaceDetectionGateway,
        comparison: FaceComparisonGateway,
        references: ReferenceImageLoader,
        temporary: TemporaryAssetLifecycle,
        default_threshold: float,
    ):
        self._validator = validator
        self._detection = detection
        self._comparison = comparison
        self._references = references
        self._temporary = temporary
        self._default_threshold = float(default_threshold)

    def verify(
        self,
        reference_image_location: Optional[str],
        candidate_image_path: str | os.PathLike,
        *,
        threshold: Optional[float] = None,
    ) -> VerificationResult:
        threshold = self._default_threshold if threshold is None else float(threshold)
        try:
            result = self._verify(reference_image_location, Path(candidate_image_path), threshold)
        finally:
            self._temporary.release(candidate_image_path)

        if result.accepted:
            logger.info("Face verification accepted (similarity=%.2f, threshold=%.2f)", result.similarity, threshold)
        else:
            logger.info(
                "Face verification rejected: %s (similarity=%.2f, threshold=%.2f)",
                result.reason.value if result.reason else None,
                result.similarity,
                threshold,
            )
        return result

    def _verify(self, reference_location: Optional[str], candidate_path: Path, threshold: float) -> VerificationResult:
        quality = self._validator.validate(candidate_path)
        if not quality.valid:
            return VerificationResult.reject(quality.reason or RejectionReason.INVALID_FILE_TYPE)

        if not reference_location:
            return VerificationResult.reject(RejectionReason.REFERENCE_NOT_REGISTERED)

        try:
            reference_bytes = self._references.load(reference_location)
        except ReferenceUnavailableError:
            logger.warning("Reference image unavailable: %s", reference_location, exc_info=True)
            return VerificationResult.reject(RejectionReason.REFERENCE_UNAVAILABLE)

        try:
            candidate_bytes = candidate_path.read_bytes()
        except OSError:
            logger.warning("Candidate image unreadable: %s", candidate_path, exc_info=True)
            return VerificationResult.reject(RejectionReason.INVALID_FILE_SIZE)

        try:
            failure = _stored_image_failure(self._detection.detect(reference_bytes))
            if failure:
                return VerificationResult.reject(failure)

            failure = _candidate_image_failure(self._detection.detect(candidate_bytes))
            if failure:
                return VerificationResult.reject(failure)

            comparison = self._comparison.compare(reference_bytes, candidate_bytes, threshold)
        except ExternalServiceError:
            logger.error("Vision service call failed during verification", exc_info=True)
            return VerificationResult.reject(RejectionReason.COMPARISON_FAILED)

        if not comparison.is_match:
            return VerificationResult.reject(RejectionReason.LOW_SIMILARITY, similarity=comparison.similarity)

        return VerificationResult.accept(comparison.similarity)
