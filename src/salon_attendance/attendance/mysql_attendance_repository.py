from __future__ import annotations

import json
from datetime import date, datetime
from typing import Any, Dict, Optional, Sequence

from mysql.connector.errors import IntegrityError

from ..core.enums import AttendanceStatus, SubjectKind
from ..core.exceptions import NotFoundError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key, load_json
from ..subjects.model import Subject
from .model import AttendanceRecord, ManualAnnotation
from .repository import AttendanceRepository

_COLUMNS = (
    "attendance_id, subject_id, subject_kind, subject_name, work_date, check_in_time, check_out_time, "
    "check_in_image, check_out_image, status, is_manual_request, manual_request"
)


def _to_record(r: Dict[str, Any]) -> AttendanceRecord:
    annotation = load_json(r.get("manual_request"))
    return AttendanceRecord(
        attendance_id=int(r["attendance_id"]),
        subject_id=r["subject_id"],
        subject_kind=SubjectKind(r["subject_kind"]),
        subject_name=r["subject_name"],
        work_date=r["work_date"],
        check_in_time=r.get("check_in_time"),
        check_out_time=r.get("check_out_time"),
        check_in_image=r.get("check_in_image"),
        check_out_image=r.get("check_out_image"),
        status=AttendanceStatus(r["status"]),
        is_manual_request=bool(r.get("is_manual_request", 0)),
        manual_request=ManualAnnotation.from_dict(annotation) if annotation else None,
    )


def _select_one(cur, subject_id: str, work_date: date) -> Optional[AttendanceRecord]:
    cur.execute(
        f"SELECT {_COLUMNS} FROM attendance_records WHERE subject_id=%s AND work_date=%s",
        (subject_id, work_date),
    )
    r = fetchone(cur)
    return _to_record(r) if r else None


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_for_subject_and_date(self, subject_id: str, work_date: date) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            return _select_one(cur, subject_id, work_date)

    def record_checkin(
        self,
        *,
        subject: Subject,
        work_date: date,
        check_in_time: datetime,
        check_in_image: Optional[str],
        status: AttendanceStatus = AttendanceStatus.PRESENT,
    ) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            try:
                cur.execute(
                    """
                    INSERT INTO attendance_records(
                        subject_id, subject_kind, subject_name, work_date, check_in_time, check_in_image, status
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        subject.subject_id,
                        subject.kind.value,
                        subject.name,
                        work_date,
                        check_in_time,
                        check_in_image,
                        status.value,
                    ),
                )
            except IntegrityError as exc:
                if not is_duplicate_key(exc):
                    raise
                # Row already exists (e.g. marked absent); only fill an empty check-in.
                cur.execute(
                    """
                    UPDATE attendance_records
                    SET check_in_time=%s, check_in_image=%s, status=%s
                    WHERE subject_id=%s AND work_date=%s AND check_in_time IS NULL
                    """,
                    (check_in_time, check_in_image, status.value, subject.subject_id, work_date),
                )
                if cur.rowcount == 0:
                    return None
            return _select_one(cur, subject.subject_id, work_date)

    def record_checkout(
        self,
        *,
        subject_id: str,
        work_date: date,
        check_out_time: datetime,
        check_out_image: Optional[str],
    ) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET check_out_time=%s, check_out_image=%s
                WHERE subject_id=%s AND work_date=%s
                  AND check_in_time IS NOT NULL AND check_out_time IS NULL
                """,
                (check_out_time, check_out_image, subject_id, work_date),
            )
            if cur.rowcount == 0:
                return None
            return _select_one(cur, subject_id, work_date)

    def create_absent_if_missing(self, *, subject: Subject, work_date: date) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT IGNORE INTO attendance_records(subject_id, subject_kind, subject_name, work_date, status)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (subject.subject_id, subject.kind.value, subject.name, work_date, AttendanceStatus.ABSENT.value),
            )
            return cur.rowcount > 0

    def apply_manual_override(
        self,
        *,
        subject: Subject,
        work_date: date,
        check_in_time: Optional[datetime],
        check_out_time: Optional[datetime],
        annotation: ManualAnnotation,
    ) -> AttendanceRecord:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance_records(
                    subject_id, subject_kind, subject_name, work_date, check_in_time, check_out_time,
                    status, is_manual_request, manual_request
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,1,%s)
                ON DUPLICATE KEY UPDATE
                    check_in_time = COALESCE(VALUES(check_in_time), check_in_time),
                    check_out_time = COALESCE(VALUES(check_out_time), check_out_time),
                    status = IF(status = 'absent', 'present', status),
                    is_manual_request = 1,
                    manual_request = VALUES(manual_request)
                """,
                (
                    subject.subject_id,
                    subject.kind.value,
                    subject.name,
                    work_date,
                    check_in_time,
                    check_out_time,
                    AttendanceStatus.PRESENT.value,
                    json.dumps(annotation.to_dict()),
                ),
            )
            record = _select_one(cur, subject.subject_id, work_date)
            if record is None:
                raise NotFoundError("Attendance record not found after manual override")
            return record

    def list_records(
        self,
        *,
        work_date: Optional[date] = None,
        subject_id: Optional[str] = None,
        status: Optional[AttendanceStatus] = None,
    ) -> Sequence[AttendanceRecord]:
        clauses: list[str] = []
        params: list[object] = []
        if work_date is not None:
            clauses.append("work_date=%s")
            params.append(work_date)
        if subject_id:
            clauses.append("subject_id=%s")
            params.append(subject_id)
        if status is not None:
            clauses.append("status=%s")
            params.append(status.value)

        sql = f"SELECT {_COLUMNS} FROM attendance_records"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql + " ORDER BY work_date DESC, check_in_time ASC", tuple(params))
            return [_to_record(r) for r in fetchall(cur)]
