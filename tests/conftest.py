"""Shared in-memory fakes: no database, no network, no vision stack."""

from __future__ import annotations

import threading
from dataclasses import replace
from datetime import date, datetime
from types import SimpleNamespace

import pytest

from salon_attendance.attendance.model import AttendanceRecord
from salon_attendance.container import build_services
from salon_attendance.core.enums import AttendanceStatus, RequestStatus
from salon_attendance.core.exceptions import ExternalServiceError
from salon_attendance.faces.model import VisionConfig
from salon_attendance.requests.model import ManualAttendanceRequest
from salon_attendance.subjects.model import Employee


def make_image_bytes(label: str, *, faces: int = 1, size: int = 12 * 1024) -> bytes:
    """Fake image payload: the fake vision client reads ``label|faces|`` back."""

    header = f"{label}|{faces}|".encode()
    return header + b"\0" * max(size - len(header), 0)


def _parse(image_bytes: bytes) -> tuple[str, int]:
    try:
        label, faces, _ = image_bytes.split(b"|", 2)
        return label.decode(), int(faces)
    except ValueError:
        return "", 0


class FakeVisionClient:
    """Same label => high similarity; scores can be pinned per label pair."""

    def __init__(self):
        self.detect_calls = 0
        self.compare_calls = 0
        self.similarities: dict[tuple[str, str], float] = {}
        self.same_face_similarity = 99.0
        self.other_face_similarity = 12.0
        self.fail_detect = False
        self.fail_compare = False

    def detect_faces(self, image_bytes, *, all_attributes=True):
        self.detect_calls += 1
        if self.fail_detect:
            raise ExternalServiceError("detect timed out")
        _, faces = _parse(image_bytes)
        return {"face_count": faces, "details": [{"confidence": 99.9}] * faces}

    def compare_faces(self, source_bytes, target_bytes, *, similarity_threshold):
        self.compare_calls += 1
        if self.fail_compare:
            raise ExternalServiceError("compare timed out")
        source, _ = _parse(source_bytes)
        target, _ = _parse(target_bytes)
        if (source, target) in self.similarities:
            score = self.similarities[(source, target)]
        else:
            score = self.same_face_similarity if source == target else self.other_face_similarity

        entry = {"similarity": score}
        if score >= similarity_threshold:
            return {"matches": [entry], "unmatched": []}
        return {"matches": [], "unmatched": [entry]}


class InMemorySubjects:
    def __init__(self):
        self._items: dict[str, object] = {}

    def add(self, subject):
        self._items[subject.subject_id] = subject
        return subject

    def get_by_id(self, subject_id):
        return self._items.get(subject_id)

    def list_all(self, *, kind=None):
        return [s for s in self._items.values() if kind is None or s.kind == kind]

    def list_with_reference(self, *, kind=None):
        return [s for s in self.list_all(kind=kind) if s.reference_image_location]

    def create(self, subject):
        self._items[subject.subject_id] = subject

    def update_reference_image(self, subject_id, location):
        subject = self._items.get(subject_id)
        if not subject:
            return False
        self._items[subject_id] = replace(subject, reference_image_location=location)
        return True


class InMemoryAttendance:
    """Mirrors the conditional writes of the MySQL repository under a lock."""

    def __init__(self):
        self._lock = threading.Lock()
        self._next_id = 1
        self.records: dict[tuple[str, date], AttendanceRecord] = {}

    def _new(self, subject, work_date, **fields) -> AttendanceRecord:
        record = AttendanceRecord(
            attendance_id=self._next_id,
            subject_id=subject.subject_id,
            subject_kind=subject.kind,
            subject_name=subject.name,
            work_date=work_date,
            check_in_time=fields.get("check_in_time"),
            check_out_time=fields.get("check_out_time"),
            status=fields.get("status", AttendanceStatus.ABSENT),
            check_in_image=fields.get("check_in_image"),
        )
        self._next_id += 1
        return record

    def get_for_subject_and_date(self, subject_id, work_date):
        return self.records.get((subject_id, work_date))

    def record_checkin(self, *, subject, work_date, check_in_time, check_in_image, status=AttendanceStatus.PRESENT):
        with self._lock:
            key = (subject.subject_id, work_date)
            current = self.records.get(key)
            if current is None:
                self.records[key] = self._new(
                    subject, work_date, check_in_time=check_in_time, check_in_image=check_in_image, status=status
                )
            elif current.check_in_time is None:
                self.records[key] = replace(
                    current, check_in_time=check_in_time, check_in_image=check_in_image, status=status
                )
            else:
                return None
            return self.records[key]

    def record_checkout(self, *, subject_id, work_date, check_out_time, check_out_image):
        with self._lock:
            key = (subject_id, work_date)
            current = self.records.get(key)
            if current is None or current.check_in_time is None or current.check_out_time is not None:
                return None
            self.records[key] = replace(current, check_out_time=check_out_time, check_out_image=check_out_image)
            return self.records[key]

    def create_absent_if_missing(self, *, subject, work_date):
        with self._lock:
            key = (subject.subject_id, work_date)
            if key in self.records:
                return False
            self.records[key] = self._new(subject, work_date)
            return True

    def apply_manual_override(self, *, subject, work_date, check_in_time, check_out_time, annotation):
        with self._lock:
            key = (subject.subject_id, work_date)
            current = self.records.get(key) or self._new(subject, work_date, status=AttendanceStatus.PRESENT)
            status = AttendanceStatus.PRESENT if current.status == AttendanceStatus.ABSENT else current.status
            self.records[key] = replace(
                current,
                check_in_time=check_in_time or current.check_in_time,
                check_out_time=check_out_time or current.check_out_time,
                status=status,
                is_manual_request=True,
                manual_request=annotation,
            )
            return self.records[key]

    def list_records(self, *, work_date=None, subject_id=None, status=None):
        return [
            r
            for r in self.records.values()
            if (work_date is None or r.work_date == work_date)
            and (subject_id is None or r.subject_id == subject_id)
            and (status is None or r.status == status)
        ]


class InMemoryManualRequests:
    def __init__(self):
        self._next_id = 1
        self.items: dict[int, ManualAttendanceRequest] = {}

    def create(self, *, subject_id, subject_name, request_type, requested_time, note):
        rid = self._next_id
        self._next_id += 1
        self.items[rid] = ManualAttendanceRequest(
            request_id=rid,
            subject_id=subject_id,
            subject_name=subject_name,
            request_type=request_type,
            requested_time=requested_time,
            note=note,
            status=RequestStatus.PENDING,
            created_at=datetime(2026, 3, 2, 8, 0, rid),
        )
        return rid

    def get(self, request_id):
        return self.items.get(int(request_id))

    def list_pending(self, *, limit):
        pending = [r for r in self.items.values() if r.status == RequestStatus.PENDING]
        return sorted(pending, key=lambda r: r.created_at, reverse=True)[:limit]

    def decide(self, *, request_id, status, decided_by, admin_notes=None):
        req = self.items.get(int(request_id))
        if not req or req.status != RequestStatus.PENDING:
            return False
        self.items[req.request_id] = replace(req, status=status, decided_by=decided_by, admin_notes=admin_notes)
        return True

    def reopen(self, *, request_id, status):
        req = self.items.get(int(request_id))
        if not req or req.status != status:
            return False
        self.items[req.request_id] = replace(req, status=RequestStatus.PENDING, decided_by=None, admin_notes=None)
        return True


@pytest.fixture
def image_bytes():
    return make_image_bytes


@pytest.fixture
def vision():
    return FakeVisionClient()


@pytest.fixture
def subjects_repo():
    return InMemorySubjects()


@pytest.fixture
def attendance_repo():
    return InMemoryAttendance()


@pytest.fixture
def requests_repo():
    return InMemoryManualRequests()


@pytest.fixture
def settings(tmp_path):
    return SimpleNamespace(
        UPLOAD_DIR=str(tmp_path / "uploads"),
        MEDIA_ROOT=str(tmp_path / "media"),
        MEDIA_BASE_URL="/media",
        MIN_IMAGE_BYTES=10 * 1024,
        MAX_IMAGE_BYTES=5 * 1024 * 1024,
        ALLOWED_IMAGE_EXTENSIONS=(".jpg", ".jpeg", ".png"),
        CHECK_DUPLICATE_FACES=True,
    )


@pytest.fixture
def container(settings, vision, subjects_repo, attendance_repo, requests_repo):
    return build_services(
        settings,
        subjects_repo=subjects_repo,
        attendance_repo=attendance_repo,
        requests_repo=requests_repo,
        vision_client=vision,
        vision_config=VisionConfig(
            backend="fake",
            timeout_seconds=1.0,
            thresholds={"attendance": 90.0, "login": 90.0, "registration": 90.0},
        ),
    )


@pytest.fixture
def enroll(container, subjects_repo):
    """Register a subject whose reference image shows face ``label``."""

    def _enroll(subject_id="EMP20260001", label="alice", *, subject=None, faces=1):
        stored = container.assets.upload(make_image_bytes(label, faces=faces), "salon-employees")
        subject = subject or Employee(
            subject_id=subject_id,
            name=label.capitalize(),
            phone_number="0900000000",
            id_card_number="0123456789",
            monthly_salary=9000000.0,
        )
        return subjects_repo.add(replace(subject, reference_image_location=stored.url))

    return _enroll
