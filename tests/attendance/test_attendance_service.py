from __future__ import annotations

import threading
from dataclasses import replace
from datetime import date, datetime
from pathlib import Path

import pytest

from salon_attendance.assets.temporary import CandidateImage
from salon_attendance.core.enums import AttendanceStatus, RejectionReason, TransitionType
from salon_attendance.core.exceptions import ValidationError

MORNING = datetime(2026, 3, 2, 8, 30)
EVENING = datetime(2026, 3, 2, 17, 45)


def _picture(data):
    return CandidateImage(data=data, mime_type="image/jpeg", filename="live.jpg")


def _uploads(settings):
    upload_dir = Path(settings.UPLOAD_DIR)
    return list(upload_dir.iterdir()) if upload_dir.exists() else []


@pytest.fixture
def alice(enroll):
    return enroll("EMP20260001", "alice")


@pytest.fixture
def service(container):
    return container.attendance_service


def test_checkin_then_checkout(service, alice, image_bytes, settings):
    checked_in = service.check_in(alice.subject_id, _picture(image_bytes("alice")), now=MORNING)

    assert checked_in.accepted is True
    assert checked_in.attendance.status == AttendanceStatus.PRESENT
    assert checked_in.attendance.check_in_time == MORNING
    assert checked_in.attendance.check_in_image.startswith("/media/attendance/")

    checked_out = service.check_out(alice.subject_id, _picture(image_bytes("alice")), now=EVENING)

    assert checked_out.accepted is True
    assert checked_out.attendance.check_in_time == MORNING
    assert checked_out.attendance.check_out_time == EVENING
    assert checked_out.to_dict()["attendance"]["check_out_time"] == EVENING.isoformat()
    assert _uploads(settings) == []


def test_second_checkin_same_day_rejected_without_remote_calls(service, alice, vision, image_bytes):
    service.check_in(alice.subject_id, _picture(image_bytes("alice")), now=MORNING)
    calls = (vision.detect_calls, vision.compare_calls)

    again = service.check_in(alice.subject_id, _picture(image_bytes("alice")), now=MORNING.replace(hour=9))

    assert again.reason == RejectionReason.ALREADY_CHECKED_IN
    assert (vision.detect_calls, vision.compare_calls) == calls


def test_checkout_without_checkin(service, alice, vision, image_bytes):
    result = service.check_out(alice.subject_id, _picture(image_bytes("alice")), now=EVENING)

    assert result.reason == RejectionReason.NO_CHECKIN_FOUND
    assert vision.detect_calls == 0


def test_checkout_is_write_once(service, alice, image_bytes, attendance_repo):
    service.check_in(alice.subject_id, _picture(image_bytes("alice")), now=MORNING)
    service.check_out(alice.subject_id, _picture(image_bytes("alice")), now=EVENING)

    again = service.check_out(alice.subject_id, _picture(image_bytes("alice")), now=EVENING.replace(hour=19))

    assert again.reason == RejectionReason.ALREADY_CHECKED_OUT
    assert attendance_repo.get_for_subject_and_date(alice.subject_id, MORNING.date()).check_out_time == EVENING


def test_checkin_after_checkout_still_already_checked_in(service, alice, image_bytes):
    service.check_in(alice.subject_id, _picture(image_bytes("alice")), now=MORNING)
    service.check_out(alice.subject_id, _picture(image_bytes("alice")), now=EVENING)

    result = service.check_in(alice.subject_id, _picture(image_bytes("alice")), now=EVENING.replace(hour=20))

    assert result.reason == RejectionReason.ALREADY_CHECKED_IN


def test_new_day_starts_fresh(service, alice, image_bytes):
    service.check_in(alice.subject_id, _picture(image_bytes("alice")), now=MORNING)

    tomorrow = service.check_in(alice.subject_id, _picture(image_bytes("alice")), now=datetime(2026, 3, 3, 8, 0))

    assert tomorrow.accepted is True


def test_face_mismatch_leaves_no_record(service, alice, image_bytes, attendance_repo, settings):
    result = service.check_in(alice.subject_id, _picture(image_bytes("mallory")), now=MORNING)

    assert result.accepted is False
    assert result.reason == RejectionReason.LOW_SIMILARITY
    assert result.similarity == 12.0
    assert attendance_repo.get_for_subject_and_date(alice.subject_id, MORNING.date()) is None
    assert _uploads(settings) == []


def test_verification_rejection_reason_is_forwarded(service, alice, image_bytes):
    result = service.check_in(alice.subject_id, _picture(image_bytes("alice", faces=2)), now=MORNING)

    assert result.reason == RejectionReason.LOGIN_IMAGE_MULTIPLE_FACES


def test_unknown_subject_and_missing_picture(service, alice, image_bytes):
    assert service.check_in("EMP00000000", _picture(image_bytes("alice"))).reason == RejectionReason.SUBJECT_NOT_FOUND
    assert service.check_in(alice.subject_id, None).reason == RejectionReason.IMAGE_REQUIRED


def test_subject_without_reference(service, enroll, subjects_repo, image_bytes):
    bob = subjects_repo.add(replace(enroll("EMP20260002", "bob"), reference_image_location=None))

    result = service.check_in(bob.subject_id, _picture(image_bytes("bob")))

    assert result.reason == RejectionReason.REFERENCE_NOT_REGISTERED


def test_blank_subject_id_and_bad_transition_are_validation_errors(service, image_bytes):
    with pytest.raises(ValidationError):
        service.check_in("   ", _picture(image_bytes("alice")))
    with pytest.raises(ValidationError):
        service.transition("EMP20260001", "lunch", _picture(image_bytes("alice")))


def test_checkin_on_absent_record_marks_present(service, alice, image_bytes):
    service.mark_absent(MORNING.date())

    result = service.check_in(alice.subject_id, _picture(image_bytes("alice")), now=MORNING)

    assert result.accepted is True
    assert result.attendance.status == AttendanceStatus.PRESENT


def test_concurrent_checkins_accept_exactly_one(service, alice, image_bytes):
    attempts = 8
    barrier = threading.Barrier(attempts)
    results = []
    lock = threading.Lock()

    def attempt():
        barrier.wait()
        outcome = service.transition(alice.subject_id, TransitionType.CHECKIN, _picture(image_bytes("alice")), now=MORNING)
        with lock:
            results.append(outcome)

    threads = [threading.Thread(target=attempt) for _ in range(attempts)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    accepted = [r for r in results if r.accepted]
    rejected = [r for r in results if not r.accepted]
    assert len(accepted) == 1
    assert len(rejected) == attempts - 1
    assert {r.reason for r in rejected} == {RejectionReason.ALREADY_CHECKED_IN}


def test_absence_sweep_is_additive_and_idempotent(service, enroll, image_bytes):
    alice = enroll("EMP20260001", "alice")
    bob = enroll("EMP20260002", "bob")
    service.check_in(alice.subject_id, _picture(image_bytes("alice")), now=MORNING)

    first = service.mark_absent(MORNING.date())
    second = service.mark_absent(MORNING.date())

    assert [s.subject_id for s in first.marked] == [bob.subject_id]
    assert second.marked == []
    records = {r.subject_id: r for r in service.list_records(work_date=MORNING.date())}
    assert records[alice.subject_id].status == AttendanceStatus.PRESENT
    assert records[alice.subject_id].check_in_time == MORNING
    assert records[bob.subject_id].status == AttendanceStatus.ABSENT


def test_list_records_filters_by_status(service, enroll, image_bytes):
    alice = enroll("EMP20260001", "alice")
    enroll("EMP20260002", "bob")
    service.check_in(alice.subject_id, _picture(image_bytes("alice")), now=MORNING)
    service.mark_absent(MORNING.date())

    absent = service.list_records(status="absent")

    assert [r.subject_id for r in absent] == ["EMP20260002"]
    with pytest.raises(ValidationError):
        service.list_records(status="sleeping")


def test_records_are_per_calendar_day(service, alice, image_bytes):
    service.check_in(alice.subject_id, _picture(image_bytes("alice")), now=MORNING)

    assert service.list_records(work_date=date(2026, 3, 3)) == []
