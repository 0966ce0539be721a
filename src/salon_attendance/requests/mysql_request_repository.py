from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from ..core.enums import RequestStatus, TransitionType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import ManualAttendanceRequest
from .repository import ManualRequestRepository

_COLUMNS = (
    "request_id, subject_id, subject_name, request_type, requested_time, note, status, "
    "admin_notes, decided_by, created_at, updated_at"
)


def _to_request(r: Dict[str, Any]) -> ManualAttendanceRequest:
    return ManualAttendanceRequest(
        request_id=int(r["request_id"]),
        subject_id=r["subject_id"],
        subject_name=r["subject_name"],
        request_type=TransitionType(r["request_type"]),
        requested_time=r["requested_time"],
        note=r.get("note") or "",
        status=RequestStatus(r["status"]),
        created_at=r["created_at"],
        updated_at=r.get("updated_at"),
        admin_notes=r.get("admin_notes"),
        decided_by=r.get("decided_by"),
    )


class MySQLManualRequestRepository(ManualRequestRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(
        self,
        *,
        subject_id: str,
        subject_name: str,
        request_type: TransitionType,
        requested_time: datetime,
        note: str,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO manual_attendance_requests(subject_id, subject_name, request_type, requested_time, note, status)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (subject_id, subject_name, request_type.value, requested_time, note, RequestStatus.PENDING.value),
            )
            return int(cur.lastrowid)

    def get(self, request_id: int) -> Optional[ManualAttendanceRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM manual_attendance_requests WHERE request_id=%s", (int(request_id),))
            r = fetchone(cur)
            return _to_request(r) if r else None

    def list_pending(self, *, limit: int) -> Sequence[ManualAttendanceRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM manual_attendance_requests
                WHERE status=%s
                ORDER BY created_at DESC, request_id DESC
                LIMIT %s
                """,
                (RequestStatus.PENDING.value, int(limit)),
            )
            return [_to_request(r) for r in fetchall(cur)]

    def decide(
        self,
        *,
        request_id: int,
        status: RequestStatus,
        decided_by: str,
        admin_notes: Optional[str] = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE manual_attendance_requests
                SET status=%s, decided_by=%s, admin_notes=%s
                WHERE request_id=%s AND status=%s
                """,
                (status.value, decided_by, admin_notes, int(request_id), RequestStatus.PENDING.value),
            )
            return cur.rowcount > 0

    def reopen(self, *, request_id: int, status: RequestStatus) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE manual_attendance_requests
                SET status=%s, decided_by=NULL, admin_notes=NULL
                WHERE request_id=%s AND status=%s
                """,
                (RequestStatus.PENDING.value, int(request_id), status.value),
            )
            return cur.rowcount > 0
