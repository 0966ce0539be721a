from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from ..attendance.model import AttendanceRecord, ManualAnnotation
from ..attendance.service import AttendanceService
from ..common.datetime_utils import parse_requested_time
from ..common.validators import optional_text, require_non_empty
from ..core.constants import DEFAULT_PENDING_LIMIT
from ..core.enums import RequestStatus, SubjectKind, TransitionType
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..subjects.repository import SubjectRepository
from .model import ManualAttendanceRequest
from .repository import ManualRequestRepository

logger = logging.getLogger(__name__)

_DECIDERS = (SubjectKind.ADMIN, SubjectKind.MANAGER)


@dataclass(frozen=True)
class Decision:
    request: ManualAttendanceRequest
    attendance: Optional[AttendanceRecord] = None

    def to_dict(self) -> dict:
        return {
            "request": self.request.to_dict(),
            "attendance": self.attendance.to_snapshot() if self.attendance else None,
        }


class ManualRequestService:
    """Manual check-in/out requests reviewed by an admin.

    Approval writes the requested time straight onto the attendance record,
    bypassing face verification; the record keeps an annotation of the
    request that produced it.
    """

    def __init__(self, requests: ManualRequestRepository, subjects: SubjectRepository, attendance: AttendanceService):
        self._requests = requests
        self._subjects = subjects
        self._attendance = attendance

    def submit(self, *, subject_id: str, request_type: str, requested_time: str, note: str) -> ManualAttendanceRequest:
        subject_id = require_non_empty(subject_id, "subject_id")
        raw_type = require_non_empty(request_type, "request_type")
        raw_time = require_non_empty(requested_time, "requested_time")
        note = require_non_empty(note, "note")

        try:
            transition = TransitionType(raw_type.lower())
        except ValueError:
            raise ValidationError("request_type must be 'checkin' or 'checkout'")
        try:
            when = parse_requested_time(raw_time)
        except ValueError:
            raise ValidationError("requested_time must be an ISO-8601 date-time")

        subject = self._subjects.get_by_id(subject_id)
        if not subject:
            raise NotFoundError("Account not found")

        request_id = self._requests.create(
            subject_id=subject.subject_id,
            subject_name=subject.name,
            request_type=transition,
            requested_time=when,
            note=note,
        )
        logger.info("Manual %s request %s submitted by %s", transition.value, request_id, subject.subject_id)
        created = self._requests.get(request_id)
        if not created:
            raise NotFoundError("Request not found")
        return created

    def list_pending(self, *, limit: int = DEFAULT_PENDING_LIMIT) -> Sequence[ManualAttendanceRequest]:
        return self._requests.list_pending(limit=limit)

    def decide(self, request_id: int, *, status: str, decided_by: str, admin_notes: str = "") -> Decision:
        try:
            decision = RequestStatus((status or "").strip().lower())
        except ValueError:
            raise ValidationError("status must be 'approved' or 'declined'")
        if decision == RequestStatus.PENDING:
            raise ValidationError("status must be 'approved' or 'declined'")

        decided_by = require_non_empty(decided_by, "decided_by")
        decider = self._subjects.get_by_id(decided_by)
        if not decider or decider.kind not in _DECIDERS:
            raise AuthorizationError("Only admins can decide manual attendance requests")

        req = self._requests.get(int(request_id))
        if not req:
            raise NotFoundError("Request not found")
        if req.status != RequestStatus.PENDING:
            raise ValidationError("Request has already been processed")

        subject = None
        if decision == RequestStatus.APPROVED:
            subject = self._subjects.get_by_id(req.subject_id)
            if not subject:
                raise NotFoundError("Account not found")

        # Claim the request first; the override is only written by the claimant.
        notes = optional_text(admin_notes)
        if not self._requests.decide(
            request_id=req.request_id, status=decision, decided_by=decider.subject_id, admin_notes=notes
        ):
            raise ValidationError("Request has already been processed")

        record = None
        if subject is not None:
            try:
                record = self._attendance.apply_manual_override(
                    subject,
                    ManualAnnotation(
                        request_type=req.request_type,
                        requested_time=req.requested_time,
                        note=req.note,
                        status=RequestStatus.APPROVED,
                        admin_notes=notes,
                        decided_by=decider.subject_id,
                    ),
                )
            except Exception:
                self._requests.reopen(request_id=req.request_id, status=decision)
                raise

        logger.info("Manual request %s %s by %s", req.request_id, decision.value, decider.subject_id)
        updated = self._requests.get(req.request_id)
        if not updated:
            raise NotFoundError("Request not found")
        return Decision(request=updated, attendance=record)
