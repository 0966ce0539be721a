from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Optional

from ..assets.store import AssetStore
from ..assets.temporary import CandidateImage, TemporaryAssetLifecycle
from ..common.validators import optional_text, require_non_empty
from ..core.enums import RejectionReason, SubjectKind, message_for
from ..core.exceptions import ExternalServiceError, NotFoundError, ValidationError
from ..faces.detection import FaceDetectionGateway
from ..faces.image_validator import ImageQualityValidator
from ..faces.model import VerificationResult
from ..faces.orchestrator import FaceVerificationOrchestrator
from .matching import SubjectFaceMatcher
from .model import Admin, AnySubject, Employee, GenericUser, Manager, Subject, generate_subject_id
from .repository import SubjectRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NewSubject:
    kind: SubjectKind
    name: str
    email: Optional[str] = None
    phone_number: Optional[str] = None
    id_card_number: Optional[str] = None
    monthly_salary: Optional[str] = None
    role: Optional[str] = None
    created_by: Optional[str] = None


@dataclass(frozen=True)
class RegistrationResult:
    accepted: bool
    subject: Optional[Subject] = None
    reason: Optional[RejectionReason] = None
    message: str = ""

    @classmethod
    def reject(cls, reason: RejectionReason) -> "RegistrationResult":
        return cls(accepted=False, reason=reason, message=message_for(reason))


@dataclass(frozen=True)
class LoginResult:
    accepted: bool
    subject: Optional[Subject] = None
    similarity: float = 0.0
    reason: Optional[RejectionReason] = None
    message: str = ""

    @classmethod
    def reject(cls, reason: RejectionReason, *, similarity: float = 0.0, message: str = "") -> "LoginResult":
        return cls(accepted=False, reason=reason, similarity=similarity, message=message or message_for(reason))


class SubjectService:
    """Account registration and reference-image maintenance.

    Pipeline: validate -> detect exactly one face -> duplicate check ->
    upload to durable storage -> persist. Each stage short-circuits with a
    structured rejection; the transient upload is released on every path.
    """

    def __init__(
        self,
        subjects: SubjectRepository,
        *,
        temporary: TemporaryAssetLifecycle,
        validator: ImageQualityValidator,
        detection: FaceDetectionGateway,
        matcher: SubjectFaceMatcher,
        assets: AssetStore,
        duplicate_threshold: float,
        check_duplicates: bool = True,
    ):
        self._subjects = subjects
        self._temporary = temporary
        self._validator = validator
        self._detection = detection
        self._matcher = matcher
        self._assets = assets
        self._duplicate_threshold = float(duplicate_threshold)
        self._check_duplicates = bool(check_duplicates)

    def get(self, subject_id: str) -> Subject:
        subject = self._subjects.get_by_id(subject_id)
        if not subject:
            raise NotFoundError("Account not found")
        return subject

    def list_subjects(self, *, kind: Optional[SubjectKind] = None):
        return self._subjects.list_all(kind=kind)

    def register(self, new: NewSubject, image: Optional[CandidateImage]) -> RegistrationResult:
        subject = self._build(new)
        if image is None or not image.data:
            return RegistrationResult.reject(RejectionReason.IMAGE_REQUIRED)

        with self._temporary.scoped(image) as asset:
            failure = self._check_reference_candidate(asset.path, image.data)
            if failure:
                return RegistrationResult.reject(failure)

            stored = self._assets.upload(image.data, f"salon-{subject.kind.value}s", extension=image.extension())

        subject = replace(subject, reference_image_location=stored.url)
        self._subjects.create(subject)
        logger.info("Registered %s %s with reference image %s", subject.kind.value, subject.subject_id, stored.url)
        return RegistrationResult(accepted=True, subject=subject, message=f"{subject.kind.value.capitalize()} registered successfully")

    def replace_reference_image(self, subject_id: str, image: Optional[CandidateImage]) -> RegistrationResult:
        """Last-write-wins update of a subject's reference image."""

        subject = self.get(subject_id)
        if image is None or not image.data:
            return RegistrationResult.reject(RejectionReason.IMAGE_REQUIRED)

        with self._temporary.scoped(image) as asset:
            failure = self._check_reference_candidate(asset.path, image.data, exclude=subject.subject_id)
            if failure:
                return RegistrationResult.reject(failure)
            stored = self._assets.upload(image.data, f"salon-{subject.kind.value}s", extension=image.extension())

        self._subjects.update_reference_image(subject.subject_id, stored.url)
        logger.info("Reference image replaced for %s: %s", subject.subject_id, stored.url)
        return RegistrationResult(
            accepted=True,
            subject=replace(subject, reference_image_location=stored.url),
            message="Reference image updated",
        )

    def _check_reference_candidate(self, path, data: bytes, *, exclude: Optional[str] = None) -> Optional[RejectionReason]:
        quality = self._validator.validate(path)
        if not quality.valid:
            return quality.reason

        try:
            detection = self._detection.detect(data)
        except ExternalServiceError:
            logger.error("Face detection failed during registration", exc_info=True)
            return RejectionReason.COMPARISON_FAILED

        if detection.has_no_face:
            return RejectionReason.NO_FACE_DETECTED
        if detection.has_multiple_faces:
            return RejectionReason.MULTIPLE_FACES

        if self._check_duplicates:
            match = self._matcher.best_match(data, threshold=self._duplicate_threshold)
            if match and match.subject.subject_id != exclude:
                logger.info("Face already registered to %s (similarity=%.2f)", match.subject.subject_id, match.similarity)
                return RejectionReason.FACE_ALREADY_REGISTERED
        return None

    def _build(self, new: NewSubject) -> AnySubject:
        name = require_non_empty(new.name, "name")
        subject_id = generate_subject_id(new.kind)

        if new.kind == SubjectKind.EMPLOYEE:
            salary = require_non_empty(new.monthly_salary, "monthly_salary")
            try:
                monthly_salary = float(salary)
            except ValueError:
                raise ValidationError("monthly_salary must be a number")
            if monthly_salary < 0:
                raise ValidationError("monthly_salary must be a number")
            return Employee(
                subject_id=subject_id,
                name=name,
                phone_number=require_non_empty(new.phone_number, "phone_number"),
                id_card_number=require_non_empty(new.id_card_number, "id_card_number"),
                monthly_salary=monthly_salary,
            )

        if new.kind in (SubjectKind.ADMIN, SubjectKind.MANAGER):
            cls = Admin if new.kind == SubjectKind.ADMIN else Manager
            return cls(
                subject_id=subject_id,
                name=name,
                email=require_non_empty(new.email, "email"),
                phone_number=require_non_empty(new.phone_number, "phone_number"),
            )

        return GenericUser(
            subject_id=subject_id,
            name=name,
            role=optional_text(new.role) or "employee",
            created_by=optional_text(new.created_by),
        )


class FaceLoginService:
    """Face-based login: verify a known subject, or identify one by face.

    Token issuance lives outside this package; callers get the matched
    subject and the similarity score.
    """

    def __init__(
        self,
        subjects: SubjectRepository,
        *,
        temporary: TemporaryAssetLifecycle,
        orchestrator: FaceVerificationOrchestrator,
        validator: ImageQualityValidator,
        detection: FaceDetectionGateway,
        matcher: SubjectFaceMatcher,
        threshold: float,
    ):
        self._subjects = subjects
        self._temporary = temporary
        self._orchestrator = orchestrator
        self._validator = validator
        self._detection = detection
        self._matcher = matcher
        self._threshold = float(threshold)

    def login(self, subject_id: str, image: Optional[CandidateImage]) -> LoginResult:
        subject_id = require_non_empty(subject_id, "subject_id")
        subject = self._subjects.get_by_id(subject_id)
        if not subject:
            return LoginResult.reject(RejectionReason.SUBJECT_NOT_FOUND)
        if not subject.is_active:
            return LoginResult.reject(RejectionReason.ACCOUNT_INACTIVE)
        if not subject.reference_image_location:
            return LoginResult.reject(RejectionReason.REFERENCE_NOT_REGISTERED)
        if image is None or not image.data:
            return LoginResult.reject(RejectionReason.IMAGE_REQUIRED)

        with self._temporary.scoped(image) as asset:
            verification: VerificationResult = self._orchestrator.verify(
                subject.reference_image_location, asset.path, threshold=self._threshold
            )

        if not verification.accepted:
            return LoginResult.reject(verification.reason, similarity=verification.similarity, message=verification.message)

        logger.info("Face login for %s (similarity=%.2f)", subject.subject_id, verification.similarity)
        return LoginResult(accepted=True, subject=subject, similarity=verification.similarity, message="Face login successful")

    def identify(self, image: Optional[CandidateImage], *, kind: Optional[SubjectKind] = None) -> LoginResult:
        if image is None or not image.data:
            return LoginResult.reject(RejectionReason.IMAGE_REQUIRED)

        with self._temporary.scoped(image) as asset:
            quality = self._validator.validate(asset.path)
            if not quality.valid:
                return LoginResult.reject(quality.reason)

            try:
                detection = self._detection.detect(image.data)
            except ExternalServiceError:
                logger.error("Face detection failed during face login", exc_info=True)
                return LoginResult.reject(RejectionReason.COMPARISON_FAILED)
            if detection.has_no_face:
                return LoginResult.reject(RejectionReason.NO_FACE_DETECTED)
            if detection.has_multiple_faces:
                return LoginResult.reject(RejectionReason.MULTIPLE_FACES)

            match = self._matcher.best_match(image.data, threshold=self._threshold, kind=kind)

        if not match:
            return LoginResult.reject(RejectionReason.FACE_NOT_RECOGNIZED)
        if not match.subject.is_active:
            return LoginResult.reject(RejectionReason.ACCOUNT_INACTIVE, similarity=match.similarity)

        logger.info("Face identified as %s (similarity=%.2f)", match.subject.subject_id, match.similarity)
        return LoginResult(accepted=True, subject=match.subject, similarity=match.similarity, message="Face login successful")
