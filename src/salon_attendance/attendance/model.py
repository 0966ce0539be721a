from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import AttendanceStatus, RequestStatus, SubjectKind, TransitionType


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass(frozen=True)
class ManualAnnotation:
    """Trace of an approved manual request folded into a record."""

    request_type: TransitionType
    requested_time: datetime
    note: str
    status: RequestStatus = RequestStatus.APPROVED
    admin_notes: Optional[str] = None
    decided_by: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "request_type": self.request_type.value,
            "requested_time": self.requested_time.isoformat(),
            "note": self.note,
            "status": self.status.value,
            "admin_notes": self.admin_notes,
            "decided_by": self.decided_by,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ManualAnnotation":
        return cls(
            request_type=TransitionType(data["request_type"]),
            requested_time=datetime.fromisoformat(data["requested_time"]),
            note=data.get("note", ""),
            status=RequestStatus(data.get("status", RequestStatus.APPROVED.value)),
            admin_notes=data.get("admin_notes"),
            decided_by=data.get("decided_by"),
        )


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one attendance record per (subject, day)."""

    attendance_id: int
    subject_id: str
    subject_kind: SubjectKind
    subject_name: str
    work_date: date
    check_in_time: Optional[datetime]
    check_out_time: Optional[datetime]
    status: AttendanceStatus
    check_in_image: Optional[str] = None
    check_out_image: Optional[str] = None
    is_manual_request: bool = False
    manual_request: Optional[ManualAnnotation] = None

    def to_snapshot(self) -> dict:
        return {
            "id": self.attendance_id,
            "subject_id": self.subject_id,
            "subject_kind": self.subject_kind.value,
            "subject_name": self.subject_name,
            "date": self.work_date.isoformat(),
            "check_in_time": _iso(self.check_in_time),
            "check_out_time": _iso(self.check_out_time),
            "check_in_image": self.check_in_image,
            "check_out_image": self.check_out_image,
            "status": self.status.value,
            "is_manual_request": self.is_manual_request,
            "manual_request": self.manual_request.to_dict() if self.manual_request else None,
        }
