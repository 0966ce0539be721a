from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import RequestStatus, TransitionType


@dataclass(frozen=True)
class ManualAttendanceRequest:
    request_id: int
    subject_id: str
    subject_name: str
    request_type: TransitionType
    requested_time: datetime
    note: str
    status: RequestStatus
    created_at: datetime
    updated_at: Optional[datetime] = None
    admin_notes: Optional[str] = None
    decided_by: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.request_id,
            "subject_id": self.subject_id,
            "subject_name": self.subject_name,
            "request_type": self.request_type.value,
            "requested_time": self.requested_time.isoformat(),
            "note": self.note,
            "status": self.status.value,
            "admin_notes": self.admin_notes,
            "decided_by": self.decided_by,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
