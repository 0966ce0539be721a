from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ..core.enums import SubjectKind
from ..core.exceptions import ExternalServiceError
from ..faces.comparison import FaceComparisonGateway
from ..faces.reference import ReferenceImageLoader
from .model import Subject
from .repository import SubjectRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FaceMatch:
    subject: Subject
    similarity: float


class SubjectFaceMatcher:
    """Find which registered subject, if any, a face belongs to.

    Used for identify-style face login and for rejecting a registration whose
    face is already on file. A subject whose reference cannot be loaded or
    compared is logged and skipped.
    """

    def __init__(self, subjects: SubjectRepository, references: ReferenceImageLoader, comparison: FaceComparisonGateway):
        self._subjects = subjects
        self._references = references
        self._comparison = comparison

    def best_match(self, candidate_bytes: bytes, *, threshold: float, kind: Optional[SubjectKind] = None) -> Optional[FaceMatch]:
        best: Optional[FaceMatch] = None
        for subject in self._subjects.list_with_reference(kind=kind):
            try:
                reference = self._references.load(subject.reference_image_location or "")
                comparison = self._comparison.compare(reference, candidate_bytes, threshold)
            except ExternalServiceError:
                logger.warning("Face comparison skipped for %s", subject.subject_id, exc_info=True)
                continue

            if comparison.is_match and (best is None or comparison.similarity > best.similarity):
                best = FaceMatch(subject=subject, similarity=comparison.similarity)

        return best
