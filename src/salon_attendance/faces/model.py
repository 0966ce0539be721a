from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from ..core.constants import DEFAULT_EXTERNAL_TIMEOUT_SECONDS, DEFAULT_SIMILARITY_THRESHOLD
from ..core.enums import RejectionReason, VerificationContext, message_for


@dataclass(frozen=True)
class VisionConfig:
    """Explicit configuration for the external vision capability.

    Built once from settings and handed to the gateways, so tests can swap
    the client and thresholds without touching process state.
    """

    backend: str = "http"
    api_url: str = ""
    api_key: str = ""
    timeout_seconds: float = DEFAULT_EXTERNAL_TIMEOUT_SECONDS
    thresholds: Mapping[str, float] = field(default_factory=dict)
    default_threshold: float = DEFAULT_SIMILARITY_THRESHOLD

    def threshold_for(self, context: VerificationContext) -> float:
        return float(self.thresholds.get(context.value, self.default_threshold))


@dataclass(frozen=True)
class ImageValidation:
    valid: bool
    reason: Optional[RejectionReason] = None
    size_bytes: Optional[int] = None
    extension: Optional[str] = None


@dataclass(frozen=True)
class FaceDetection:
    """Normalized detection response; policy is left to the caller."""

    face_count: int
    raw: Any = field(default=None, compare=False, repr=False)

    @property
    def has_no_face(self) -> bool:
        return self.face_count == 0

    @property
    def has_multiple_faces(self) -> bool:
        return self.face_count > 1


@dataclass(frozen=True)
class FaceComparison:
    similarity: float
    is_match: bool
    threshold: float


@dataclass(frozen=True)
class VerificationResult:
    accepted: bool
    similarity: float = 0.0
    reason: Optional[RejectionReason] = None
    message: str = ""

    @classmethod
    def accept(cls, similarity: float) -> "VerificationResult":
        return cls(
            accepted=True,
            similarity=float(similarity),
            message=f"Face verification successful! Similarity: {similarity:.2f}%",
        )

    @classmethod
    def reject(cls, reason: RejectionReason, *, similarity: float = 0.0) -> "VerificationResult":
        message = message_for(reason)
        if reason == RejectionReason.LOW_SIMILARITY:
            message = f"{message}. Similarity: {similarity:.2f}%"
        return cls(accepted=False, similarity=float(similarity), reason=reason, message=message)

    def to_dict(self) -> dict:
        return {
            "accepted": self.accepted,
            "similarity": round(self.similarity, 2),
            "reason": self.reason.value if self.reason else None,
            "message": self.message,
        }
