"""Per-subject, per-day attendance state machine.

    NoRecord --checkin--> CheckedIn --checkout--> CheckedOut (terminal)

A record created by the absence sweep (or a checkout-only manual override)
has no check-in yet and still counts as ``NoRecord``.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from ..core.enums import RejectionReason, TransitionType
from .model import AttendanceRecord


class AttendanceState(str, Enum):
    NO_RECORD = "NoRecord"
    CHECKED_IN = "CheckedIn"
    CHECKED_OUT = "CheckedOut"


def state_of(record: Optional[AttendanceRecord]) -> AttendanceState:
    if record is None or record.check_in_time is None:
        return AttendanceState.NO_RECORD
    if record.check_out_time is None:
        return AttendanceState.CHECKED_IN
    return AttendanceState.CHECKED_OUT


def transition_conflict(transition: TransitionType, record: Optional[AttendanceRecord]) -> Optional[RejectionReason]:
    """Return why ``transition`` is illegal from the record's state, or None."""

    state = state_of(record)
    if transition == TransitionType.CHECKIN:
        return None if state == AttendanceState.NO_RECORD else RejectionReason.ALREADY_CHECKED_IN

    if state == AttendanceState.NO_RECORD:
        return RejectionReason.NO_CHECKIN_FOUND
    if state == AttendanceState.CHECKED_OUT:
        return RejectionReason.ALREADY_CHECKED_OUT
    return None
