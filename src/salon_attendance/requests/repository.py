from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import RequestStatus, TransitionType
from .model import ManualAttendanceRequest


class ManualRequestRepository(Protocol):
    def create(
        self,
        *,
        subject_id: str,
        subject_name: str,
        request_type: TransitionType,
        requested_time: datetime,
        note: str,
    ) -> int:
        raise NotImplementedError

    def get(self, request_id: int) -> Optional[ManualAttendanceRequest]:
        raise NotImplementedError

    def list_pending(self, *, limit: int) -> Sequence[ManualAttendanceRequest]:
        raise NotImplementedError

    def decide(
        self,
        *,
        request_id: int,
        status: RequestStatus,
        decided_by: str,
        admin_notes: Optional[str] = None,
    ) -> bool:
        """Move a pending request to ``status``. False if it was not pending."""

        raise NotImplementedError

    def reopen(self, *, request_id: int, status: RequestStatus) -> bool:
        """Return a request decided as ``status`` to pending."""

        raise NotImplementedError
