"""On-host vision backend built on ``face_recognition`` (dlib).

Installed through the ``local-vision`` extra. Distances are mapped to a
0-100 similarity so the same thresholds work for every backend: a distance
equal to ``tolerance`` scores ``anchor_similarity``.
"""

from __future__ import annotations

from typing import Any, Dict

import cv2
import face_recognition
import numpy as np

from ..core.exceptions import ExternalServiceError


def decode_rgb(image_bytes: bytes) -> np.ndarray:
    nparr = np.frombuffer(image_bytes, np.uint8)
    img = cv2.imdecode(nparr, cv2.IMREAD_UNCHANGED)
    if img is None:
        raise ExternalServiceError("Image could not be decoded")

    # RGBA -> BGR, grayscale -> BGR
    if len(img.shape) == 3 and img.shape[2] == 4:
        img = cv2.cvtColor(img, cv2.COLOR_BGRA2BGR)
    elif len(img.shape) == 2:
        img = cv2.cvtColor(img, cv2.COLOR_GRAY2BGR)

    # dlib wants contiguous uint8 RGB
    rgb = cv2.cvtColor(img, cv2.COLOR_BGR2RGB)
    return np.ascontiguousarray(rgb, dtype=np.uint8)


class FaceRecognitionClient:
    def __init__(self, *, model: str = "hog", tolerance: float = 0.5, anchor_similarity: float = 90.0):
        self._model = model
        self._tolerance = float(tolerance)
        self._anchor = float(anchor_similarity)

    def _similarity(self, distance: float) -> float:
        penalty = distance * (100.0 - self._anchor) / self._tolerance
        return round(max(0.0, 100.0 - penalty), 2)

    def detect_faces(self, image_bytes: bytes, *, all_attributes: bool = True) -> Dict[str, Any]:
        rgb = decode_rgb(image_bytes)
        boxes = face_recognition.face_locations(rgb, model=self._model)
        details = [{"box": {"top": t, "right": r, "bottom": b, "left": l}} for (t, r, b, l) in boxes]
        if all_attributes and boxes:
            for detail, landmarks in zip(details, face_recognition.face_landmarks(rgb, boxes)):
                detail["landmarks"] = sorted(landmarks.keys())
        return {"face_count": len(boxes), "details": details}

    def compare_faces(self, source_bytes: bytes, target_bytes: bytes, *, similarity_threshold: float) -> Dict[str, Any]:
        source = face_recognition.face_encodings(decode_rgb(source_bytes))
        target = face_recognition.face_encodings(decode_rgb(target_bytes))
        if not source or not target:
            return {"matches": [], "unmatched": []}

        distances = face_recognition.face_distance(target, source[0])
        matches, unmatched = [], []
        for distance in distances:
            entry = {"similarity": self._similarity(float(distance)), "distance": float(distance)}
            (matches if entry["similarity"] >= similarity_threshold else unmatched).append(entry)
        return {"matches": matches, "unmatched": unmatched}
