from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, List, Optional, Sequence

from ..assets.store import AssetStore
from ..assets.temporary import CandidateImage, TemporaryAssetLifecycle
from ..common.datetime_utils import now_local
from ..common.validators import require_non_empty
from ..core.constants import ATTENDANCE_FOLDER
from ..core.enums import AttendanceStatus, RejectionReason, SubjectKind, TransitionType, message_for
from ..core.exceptions import ValidationError
from ..faces.orchestrator import FaceVerificationOrchestrator
from ..subjects.model import Subject
from ..subjects.repository import SubjectRepository
from .model import AttendanceRecord, ManualAnnotation
from .repository import AttendanceRepository
from .state import transition_conflict

logger = logging.getLogger(__name__)

_SUCCESS_MESSAGES = {
    TransitionType.CHECKIN: "Check-in successful",
    TransitionType.CHECKOUT: "Check-out successful",
}


@dataclass(frozen=True)
class TransitionResult:
    accepted: bool
    transition: TransitionType
    reason: Optional[RejectionReason] = None
    message: str = ""
    similarity: Optional[float] = None
    attendance: Optional[AttendanceRecord] = None

    @classmethod
    def reject(
        cls,
        transition: TransitionType,
        reason: RejectionReason,
        *,
        similarity: Optional[float] = None,
        message: str = "",
    ) -> "TransitionResult":
        return cls(
            accepted=False,
            transition=transition,
            reason=reason,
            message=message or message_for(reason),
            similarity=similarity,
        )

    def to_dict(self) -> dict:
        data = {
            "success": self.accepted,
            "accepted": self.accepted,
            "transition": self.transition.value,
            "message": self.message,
        }
        if self.reason is not None:
            data["reason"] = self.reason.value
        if self.similarity is not None:
            data["similarity"] = round(self.similarity, 2)
        if self.attendance is not None:
            data["attendance"] = self.attendance.to_snapshot()
        return data


@dataclass(frozen=True)
class AbsenceSweep:
    work_date: date
    marked: List[Subject] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "date": self.work_date.isoformat(),
            "count": len(self.marked),
            "absent": [{"subject_id": s.subject_id, "name": s.name, "kind": s.kind.value} for s in self.marked],
        }


def _folder_for(kind: SubjectKind) -> str:
    if kind == SubjectKind.EMPLOYEE:
        return ATTENDANCE_FOLDER
    return f"{kind.value}-{ATTENDANCE_FOLDER}"


class AttendanceService:
    """Face-verified check-in / check-out.

    Order of work for one transition:

    1. resolve the subject and its reference image;
    2. reject transitions that are illegal from today's state, before any
       remote call;
    3. run face verification on the candidate image;
    4. promote the image to durable storage;
    5. persist with a conditional write so a concurrent duplicate loses
       with the same state rejection.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        subjects: SubjectRepository,
        *,
        orchestrator: FaceVerificationOrchestrator,
        temporary: TemporaryAssetLifecycle,
        assets: AssetStore,
        threshold: float,
        clock: Callable[[], datetime] = now_local,
    ):
        self._attendance = attendance
        self._subjects = subjects
        self._orchestrator = orchestrator
        self._temporary = temporary
        self._assets = assets
        self._threshold = float(threshold)
        self._clock = clock

    def check_in(self, subject_id: str, image: Optional[CandidateImage], *, now: Optional[datetime] = None) -> TransitionResult:
        return self.transition(subject_id, TransitionType.CHECKIN, image, now=now)

    def check_out(self, subject_id: str, image: Optional[CandidateImage], *, now: Optional[datetime] = None) -> TransitionResult:
        return self.transition(subject_id, TransitionType.CHECKOUT, image, now=now)

    def transition(
        self,
        subject_id: str,
        transition: TransitionType | str,
        image: Optional[CandidateImage],
        *,
        now: Optional[datetime] = None,
    ) -> TransitionResult:
        subject_id = require_non_empty(subject_id, "subject_id")
        try:
            transition = TransitionType(transition)
        except ValueError:
            raise ValidationError("transition must be 'checkin' or 'checkout'")

        subject = self._subjects.get_by_id(subject_id)
        if not subject:
            return TransitionResult.reject(transition, RejectionReason.SUBJECT_NOT_FOUND)
        if not subject.reference_image_location:
            return TransitionResult.reject(transition, RejectionReason.REFERENCE_NOT_REGISTERED)
        if image is None or not image.data:
            return TransitionResult.reject(transition, RejectionReason.IMAGE_REQUIRED)

        now = now or self._clock()
        today = now.date()

        conflict = transition_conflict(transition, self._attendance.get_for_subject_and_date(subject_id, today))
        if conflict:
            return TransitionResult.reject(transition, conflict)

        with self._temporary.scoped(image) as asset:
            verification = self._orchestrator.verify(
                subject.reference_image_location, asset.path, threshold=self._threshold
            )

        if not verification.accepted:
            return TransitionResult.reject(
                transition,
                verification.reason,
                similarity=verification.similarity,
                message=verification.message,
            )

        stored = self._assets.upload(image.data, _folder_for(subject.kind), extension=image.extension())

        if transition == TransitionType.CHECKIN:
            record = self._attendance.record_checkin(
                subject=subject, work_date=today, check_in_time=now, check_in_image=stored.url
            )
        else:
            record = self._attendance.record_checkout(
                subject_id=subject_id, work_date=today, check_out_time=now, check_out_image=stored.url
            )

        if record is None:
            # Another attempt for the same subject/day committed first.
            conflict = transition_conflict(transition, self._attendance.get_for_subject_and_date(subject_id, today))
            conflict = conflict or (
                RejectionReason.ALREADY_CHECKED_IN
                if transition == TransitionType.CHECKIN
                else RejectionReason.ALREADY_CHECKED_OUT
            )
            logger.info("%s for %s lost a concurrent write; %s left unreferenced", transition.value, subject_id, stored.url)
            return TransitionResult.reject(transition, conflict, similarity=verification.similarity)

        logger.info("%s recorded for %s at %s (similarity=%.2f)", transition.value, subject_id, now.isoformat(), verification.similarity)
        return TransitionResult(
            accepted=True,
            transition=transition,
            message=_SUCCESS_MESSAGES[transition],
            similarity=verification.similarity,
            attendance=record,
        )

    def mark_absent(self, work_date: Optional[date] = None) -> AbsenceSweep:
        """Create an absent record for every subject with nothing for the day.

        Idempotent: subjects that already have a record are left alone.
        """

        work_date = work_date or self._clock().date()
        marked = [
            subject
            for subject in self._subjects.list_all()
            if self._attendance.create_absent_if_missing(subject=subject, work_date=work_date)
        ]
        logger.info("Marked %d subject(s) absent for %s", len(marked), work_date.isoformat())
        return AbsenceSweep(work_date=work_date, marked=marked)

    def apply_manual_override(
        self,
        subject: Subject,
        annotation: ManualAnnotation,
    ) -> AttendanceRecord:
        """Write an approved manual request without face verification."""

        work_date = annotation.requested_time.date()
        current = self._attendance.get_for_subject_and_date(subject.subject_id, work_date)

        check_in_time = annotation.requested_time if annotation.request_type == TransitionType.CHECKIN else None
        check_out_time = annotation.requested_time if annotation.request_type == TransitionType.CHECKOUT else None

        effective_in = check_in_time or (current.check_in_time if current else None)
        effective_out = check_out_time or (current.check_out_time if current else None)
        if effective_in and effective_out and effective_out < effective_in:
            raise ValidationError("check-out time cannot be earlier than check-in time")

        record = self._attendance.apply_manual_override(
            subject=subject,
            work_date=work_date,
            check_in_time=check_in_time,
            check_out_time=check_out_time,
            annotation=annotation,
        )
        logger.warning(
            "Manual %s override for %s on %s approved by %s",
            annotation.request_type.value,
            subject.subject_id,
            work_date.isoformat(),
            annotation.decided_by,
        )
        return record

    def list_records(
        self,
        *,
        work_date: Optional[date] = None,
        subject_id: Optional[str] = None,
        status: Optional[AttendanceStatus | str] = None,
    ) -> Sequence[AttendanceRecord]:
        if status is not None:
            try:
                status = AttendanceStatus(status)
            except ValueError:
                raise ValidationError("status must be one of: present, absent, late")
        return self._attendance.list_records(work_date=work_date, subject_id=subject_id, status=status)
