from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import AttendanceStatus
from ..subjects.model import Subject
from .model import AttendanceRecord, ManualAnnotation


class AttendanceRepository(Protocol):
    """Persistence for attendance records.

    Implementations must enforce one record per (subject_id, work_date) and
    make the check-in / check-out writes conditional, so that concurrent
    attempts cannot both succeed.
    """

    def get_for_subject_and_date(self, subject_id: str, work_date: date) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def record_checkin(
        self,
        *,
        subject: Subject,
        work_date: date,
        check_in_time: datetime,
        check_in_image: Optional[str],
        status: AttendanceStatus = AttendanceStatus.PRESENT,
    ) -> Optional[AttendanceRecord]:
        """Find-or-create the day's record and set check-in if still unset.

        Returns None when a check-in was already recorded.
        """

        raise NotImplementedError

    def record_checkout(
        self,
        *,
        subject_id: str,
        work_date: date,
        check_out_time: datetime,
        check_out_image: Optional[str],
    ) -> Optional[AttendanceRecord]:
        """Set check-out only if check-in is set and check-out is unset."""

        raise NotImplementedError

    def create_absent_if_missing(self, *, subject: Subject, work_date: date) -> bool:
        raise NotImplementedError

    def apply_manual_override(
        self,
        *,
        subject: Subject,
        work_date: date,
        check_in_time: Optional[datetime],
        check_out_time: Optional[datetime],
        annotation: ManualAnnotation,
    ) -> AttendanceRecord:
        """Admin-approved write that bypasses face verification."""

        raise NotImplementedError

    def list_records(
        self,
        *,
        work_date: Optional[date] = None,
        subject_id: Optional[str] = None,
        status: Optional[AttendanceStatus] = None,
    ) -> Sequence[AttendanceRecord]:
        raise NotImplementedError
