from __future__ import annotations

import pytest
import requests

from salon_attendance.core.enums import RejectionReason, VerificationContext
from salon_attendance.core.exceptions import ExternalServiceError, ReferenceUnavailableError
from salon_attendance.faces.comparison import FaceComparisonGateway
from salon_attendance.faces.detection import FaceDetectionGateway
from salon_attendance.faces.image_validator import ImageQualityValidator
from salon_attendance.faces.model import VisionConfig
from salon_attendance.faces.reference import ReferenceImageLoader
from salon_attendance.faces.vision_client import HttpVisionClient


class StubClient:
    def __init__(self, detect=None, compare=None, error=None):
        self._detect = detect
        self._compare = compare
        self._error = error
        self.thresholds = []

    def detect_faces(self, image_bytes, *, all_attributes=True):
        if self._error:
            raise self._error
        return self._detect

    def compare_faces(self, source_bytes, target_bytes, *, similarity_threshold):
        self.thresholds.append(similarity_threshold)
        if self._error:
            raise self._error
        return self._compare


class StubResponse:
    def __init__(self, payload=None, status=200, content=b""):
        self._payload = payload
        self.status_code = status
        self.content = content

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class StubSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []
        self.headers = {}

    def _call(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        if self.error:
            raise self.error
        return self.response

    def post(self, url, **kwargs):
        return self._call("POST", url, **kwargs)

    def get(self, url, **kwargs):
        return self._call("GET", url, **kwargs)


def test_validator_size_bounds_are_inclusive(tmp_path):
    validator = ImageQualityValidator(min_bytes=100, max_bytes=200)
    low = tmp_path / "low.jpg"
    low.write_bytes(b"a" * 100)
    high = tmp_path / "high.png"
    high.write_bytes(b"a" * 200)
    over = tmp_path / "over.png"
    over.write_bytes(b"a" * 201)

    assert validator.validate(low).valid is True
    assert validator.validate(high).valid is True
    assert validator.validate(over).reason == RejectionReason.INVALID_FILE_SIZE


def test_validator_checks_size_before_extension(tmp_path):
    validator = ImageQualityValidator(min_bytes=100, max_bytes=200)
    small_gif = tmp_path / "a.gif"
    small_gif.write_bytes(b"a" * 10)
    gif = tmp_path / "b.GIF"
    gif.write_bytes(b"a" * 150)

    assert validator.validate(small_gif).reason == RejectionReason.INVALID_FILE_SIZE
    assert validator.validate(gif).reason == RejectionReason.INVALID_FILE_TYPE


def test_validator_rejects_directory_named_like_an_image(tmp_path):
    folder = tmp_path / "shot.jpg"
    folder.mkdir()
    for i in range(3):
        (folder / f"{i}.bin").write_bytes(b"a" * 8 * 1024)

    result = ImageQualityValidator(min_bytes=10, max_bytes=10 * 1024 * 1024).validate(folder)

    assert result.valid is False
    assert result.reason == RejectionReason.INVALID_FILE_SIZE


def test_validator_accepts_uppercase_extension(tmp_path):
    path = tmp_path / "A.JPEG"
    path.write_bytes(b"a" * 150)

    assert ImageQualityValidator(min_bytes=100, max_bytes=200).validate(path).valid is True


def test_detection_counts_details_when_count_missing():
    gateway = FaceDetectionGateway(StubClient(detect={"details": [{}, {}]}))

    detection = gateway.detect(b"img")

    assert detection.face_count == 2
    assert detection.has_multiple_faces


def test_detection_wraps_unexpected_errors():
    gateway = FaceDetectionGateway(StubClient(error=RuntimeError("boom")))

    with pytest.raises(ExternalServiceError):
        gateway.detect(b"img")


def test_comparison_uses_local_threshold_not_remote_verdict():
    client = StubClient(compare={"matches": [], "unmatched": [{"similarity": 95.0}]})

    result = FaceComparisonGateway(client).compare(b"a", b"b", 90.0)

    assert result.is_match is True
    assert result.similarity == 95.0
    assert client.thresholds == [90.0]


def test_comparison_without_any_face_pair_scores_zero():
    result = FaceComparisonGateway(StubClient(compare={"matches": [], "unmatched": []})).compare(b"a", b"b", 90.0)

    assert result.similarity == 0.0
    assert result.is_match is False


def test_comparison_rejects_non_dict_payload():
    with pytest.raises(ExternalServiceError):
        FaceComparisonGateway(StubClient(compare=["nope"])).compare(b"a", b"b", 90.0)


def test_http_client_posts_with_timeout_and_key():
    session = StubSession(StubResponse({"face_count": 1, "details": [{}]}))
    config = VisionConfig(api_url="http://vision.local/", api_key="k", timeout_seconds=3.0)

    payload = HttpVisionClient(config, session=session).detect_faces(b"img")

    method, url, kwargs = session.calls[0]
    assert payload["face_count"] == 1
    assert url == "http://vision.local/faces/detect"
    assert kwargs["timeout"] == 3.0


@pytest.mark.parametrize("error", [requests.Timeout("slow"), requests.ConnectionError("down")])
def test_http_client_maps_transport_errors(error):
    client = HttpVisionClient(VisionConfig(api_url="http://vision.local"), session=StubSession(error=error))

    with pytest.raises(ExternalServiceError):
        client.compare_faces(b"a", b"b", similarity_threshold=90.0)


def test_reference_loader_downloads_with_timeout():
    session = StubSession(StubResponse(content=b"jpeg-bytes"))
    loader = ReferenceImageLoader(timeout_seconds=2.5, session=session)

    assert loader.load("https://cdn.example.com/ref.jpg") == b"jpeg-bytes"
    assert session.calls[0][2]["timeout"] == 2.5


@pytest.mark.parametrize(
    "session",
    [StubSession(error=requests.Timeout("slow")), StubSession(StubResponse(status=404)), StubSession(StubResponse())],
)
def test_reference_loader_failures_are_unavailable(session):
    loader = ReferenceImageLoader(timeout_seconds=1.0, session=session)

    with pytest.raises(ReferenceUnavailableError):
        loader.load("https://cdn.example.com/ref.jpg")


def test_reference_loader_reads_local_paths(tmp_path):
    path = tmp_path / "ref.jpg"
    path.write_bytes(b"local")
    loader = ReferenceImageLoader(timeout_seconds=1.0, session=StubSession())

    assert loader.load(str(path)) == b"local"
    assert loader.load(f"file://{path}") == b"local"


def test_vision_config_thresholds_per_context():
    config = VisionConfig(thresholds={"login": 80.0})

    assert config.threshold_for(VerificationContext.LOGIN) == 80.0
    assert config.threshold_for(VerificationContext.ATTENDANCE) == 90.0
