from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from .assets.store import AssetStore, LocalAssetStore
from .assets.temporary import TemporaryAssetLifecycle
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .core.constants import DEFAULT_SIMILARITY_THRESHOLD
from .core.enums import VerificationContext
from .database.connection import DBConfig, DatabaseConnection
from .faces.comparison import FaceComparisonGateway
from .faces.detection import FaceDetectionGateway
from .faces.image_validator import ImageQualityValidator
from .faces.model import VisionConfig
from .faces.orchestrator import FaceVerificationOrchestrator
from .faces.reference import ReferenceImageLoader
from .faces.vision_client import HttpVisionClient, VisionClient
from .requests.mysql_request_repository import MySQLManualRequestRepository
from .requests.repository import ManualRequestRepository
from .requests.service import ManualRequestService
from .subjects.matching import SubjectFaceMatcher
from .subjects.mysql_subject_repository import MySQLSubjectRepository
from .subjects.repository import SubjectRepository
from .subjects.service import FaceLoginService, SubjectService


@dataclass(frozen=True)
class Container:
    vision_config: VisionConfig

    subjects_repo: SubjectRepository
    attendance_repo: AttendanceRepository
    requests_repo: ManualRequestRepository

    temporary: TemporaryAssetLifecycle
    assets: AssetStore
    orchestrator: FaceVerificationOrchestrator

    subject_service: SubjectService
    face_login_service: FaceLoginService
    attendance_service: AttendanceService
    manual_request_service: ManualRequestService


def vision_config_from(settings: Any) -> VisionConfig:
    thresholds = dict(getattr(settings, "FACE_MATCH_THRESHOLDS", {}) or {})
    return VisionConfig(
        backend=str(getattr(settings, "VISION_BACKEND", "http")),
        api_url=str(getattr(settings, "VISION_API_URL", "")),
        api_key=str(getattr(settings, "VISION_API_KEY", "")),
        timeout_seconds=float(getattr(settings, "EXTERNAL_TIMEOUT_SECONDS")),
        thresholds=thresholds,
        default_threshold=float(getattr(settings, "FACE_MATCH_THRESHOLD", DEFAULT_SIMILARITY_THRESHOLD)),
    )


def build_vision_client(config: VisionConfig) -> VisionClient:
    if config.backend == "face_recognition":
        # Heavy optional stack (dlib, numpy, OpenCV); only imported when selected.
        from .faces.face_recognition_client import FaceRecognitionClient

        return FaceRecognitionClient()
    if config.backend == "http":
        return HttpVisionClient(config)
    raise ValueError(f"Unknown VISION_BACKEND: {config.backend!r}")


def build_services(
    settings: Any,
    *,
    subjects_repo: SubjectRepository,
    attendance_repo: AttendanceRepository,
    requests_repo: ManualRequestRepository,
    vision_client: Optional[VisionClient] = None,
    vision_config: Optional[VisionConfig] = None,
) -> Container:
    """Wire services around the given repositories.

    Split from :func:`build_container` so tests can pass in-memory
    repositories and a fake vision client.
    """

    vision_config = vision_config or vision_config_from(settings)
    client = vision_client or build_vision_client(vision_config)

    temporary = TemporaryAssetLifecycle(getattr(settings, "UPLOAD_DIR"))
    assets = LocalAssetStore(getattr(settings, "MEDIA_ROOT"), getattr(settings, "MEDIA_BASE_URL", "/media"))
    validator = ImageQualityValidator(
        min_bytes=int(getattr(settings, "MIN_IMAGE_BYTES")),
        max_bytes=int(getattr(settings, "MAX_IMAGE_BYTES")),
        allowed_extensions=tuple(getattr(settings, "ALLOWED_IMAGE_EXTENSIONS")),
    )
    detection = FaceDetectionGateway(client)
    comparison = FaceComparisonGateway(client)
    references = ReferenceImageLoader(timeout_seconds=vision_config.timeout_seconds, local_resolver=assets.local_path)
    orchestrator = FaceVerificationOrchestrator(
        validator=validator,
        detection=detection,
        comparison=comparison,
        references=references,
        temporary=temporary,
        default_threshold=vision_config.default_threshold,
    )
    matcher = SubjectFaceMatcher(subjects_repo, references, comparison)

    subject_service = SubjectService(
        subjects_repo,
        temporary=temporary,
        validator=validator,
        detection=detection,
        matcher=matcher,
        assets=assets,
        duplicate_threshold=vision_config.threshold_for(VerificationContext.REGISTRATION),
        check_duplicates=bool(getattr(settings, "CHECK_DUPLICATE_FACES", True)),
    )
    face_login_service = FaceLoginService(
        subjects_repo,
        temporary=temporary,
        orchestrator=orchestrator,
        validator=validator,
        detection=detection,
        matcher=matcher,
        threshold=vision_config.threshold_for(VerificationContext.LOGIN),
    )
    attendance_service = AttendanceService(
        attendance_repo,
        subjects_repo,
        orchestrator=orchestrator,
        temporary=temporary,
        assets=assets,
        threshold=vision_config.threshold_for(VerificationContext.ATTENDANCE),
    )
    manual_request_service = ManualRequestService(requests_repo, subjects_repo, attendance_service)

    return Container(
        vision_config=vision_config,
        subjects_repo=subjects_repo,
        attendance_repo=attendance_repo,
        requests_repo=requests_repo,
        temporary=temporary,
        assets=assets,
        orchestrator=orchestrator,
        subject_service=subject_service,
        face_login_service=face_login_service,
        attendance_service=attendance_service,
        manual_request_service=manual_request_service,
    )


def build_container(settings: Any) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_mapping(getattr(settings, "DB_CONFIG")))
    return build_services(
        settings,
        subjects_repo=MySQLSubjectRepository(conn),
        attendance_repo=MySQLAttendanceRepository(conn),
        requests_repo=MySQLManualRequestRepository(conn),
    )
