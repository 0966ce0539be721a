from __future__ import annotations

from enum import Enum


class SubjectKind(str, Enum):
    """Account collections whose members can verify with their face."""

    EMPLOYEE = "employee"
    ADMIN = "admin"
    MANAGER = "manager"
    USER = "user"


class AttendanceStatus(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"


class TransitionType(str, Enum):
    CHECKIN = "checkin"
    CHECKOUT = "checkout"


class VerificationContext(str, Enum):
    """Call sites that may carry their own similarity threshold."""

    ATTENDANCE = "attendance"
    LOGIN = "login"
    REGISTRATION = "registration"


class RequestStatus(str, Enum):
    """Manual attendance request workflow states."""

    PENDING = "pending"
    APPROVED = "approved"
    DECLINED = "declined"


class RejectionReason(str, Enum):
    """Reason codes surfaced to callers when an attempt is not accepted."""

    INVALID_FILE_SIZE = "INVALID_FILE_SIZE"
    INVALID_FILE_TYPE = "INVALID_FILE_TYPE"
    NO_FACE_DETECTED = "NO_FACE_DETECTED"
    MULTIPLE_FACES = "MULTIPLE_FACES"
    STORED_IMAGE_NO_FACE = "STORED_IMAGE_NO_FACE"
    LOGIN_IMAGE_NO_FACE = "LOGIN_IMAGE_NO_FACE"
    STORED_IMAGE_MULTIPLE_FACES = "STORED_IMAGE_MULTIPLE_FACES"
    LOGIN_IMAGE_MULTIPLE_FACES = "LOGIN_IMAGE_MULTIPLE_FACES"
    LOW_SIMILARITY = "LOW_SIMILARITY"
    REFERENCE_UNAVAILABLE = "REFERENCE_UNAVAILABLE"
    COMPARISON_FAILED = "COMPARISON_FAILED"
    ALREADY_CHECKED_IN = "ALREADY_CHECKED_IN"
    NO_CHECKIN_FOUND = "NO_CHECKIN_FOUND"
    ALREADY_CHECKED_OUT = "ALREADY_CHECKED_OUT"

    SUBJECT_NOT_FOUND = "SUBJECT_NOT_FOUND"
    REFERENCE_NOT_REGISTERED = "REFERENCE_NOT_REGISTERED"
    IMAGE_REQUIRED = "IMAGE_REQUIRED"
    FACE_NOT_RECOGNIZED = "FACE_NOT_RECOGNIZED"
    FACE_ALREADY_REGISTERED = "FACE_ALREADY_REGISTERED"
    ACCOUNT_INACTIVE = "ACCOUNT_INACTIVE"


REJECTION_MESSAGES = {
    RejectionReason.INVALID_FILE_SIZE: "Image size should be between 10KB and 5MB",
    RejectionReason.INVALID_FILE_TYPE: "Only JPG, JPEG, and PNG images are supported",
    RejectionReason.NO_FACE_DETECTED: "No face detected in image",
    RejectionReason.MULTIPLE_FACES: "Multiple faces detected. Use image with single face.",
    RejectionReason.STORED_IMAGE_NO_FACE: "No faces detected in stored image",
    RejectionReason.LOGIN_IMAGE_NO_FACE: "No faces detected in submitted image",
    RejectionReason.STORED_IMAGE_MULTIPLE_FACES: "Multiple faces detected in stored image",
    RejectionReason.LOGIN_IMAGE_MULTIPLE_FACES: "Multiple faces detected in submitted image. Please retake with only one face.",
    RejectionReason.LOW_SIMILARITY: "Face verification failed",
    RejectionReason.REFERENCE_UNAVAILABLE: "Stored face image could not be loaded",
    RejectionReason.COMPARISON_FAILED: "Face comparison process failed",
    RejectionReason.ALREADY_CHECKED_IN: "Check-in already recorded for today",
    RejectionReason.NO_CHECKIN_FOUND: "No check-in record found for today",
    RejectionReason.ALREADY_CHECKED_OUT: "Check-out already recorded for today",
    RejectionReason.SUBJECT_NOT_FOUND: "Account not found",
    RejectionReason.REFERENCE_NOT_REGISTERED: "Face not registered. Please register your face first.",
    RejectionReason.IMAGE_REQUIRED: "Live picture is required",
    RejectionReason.FACE_NOT_RECOGNIZED: "Face not recognized",
    RejectionReason.FACE_ALREADY_REGISTERED: "Face already registered",
    RejectionReason.ACCOUNT_INACTIVE: "Account is deactivated. Please contact administrator.",
}


def message_for(reason: RejectionReason) -> str:
    return REJECTION_MESSAGES.get(reason, reason.value)
