"""Settings shared by every environment.

Environment modules import everything from here and override what differs.
"""

import os
import tempfile

from ..core.constants import (
    ALLOWED_IMAGE_EXTENSIONS,
    DEFAULT_EXTERNAL_TIMEOUT_SECONDS,
    DEFAULT_SIMILARITY_THRESHOLD,
    MAX_IMAGE_BYTES,
    MIN_IMAGE_BYTES,
)

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "salon_db"),
}

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Transient candidate images live here for the duration of one attempt.
UPLOAD_DIR = os.getenv("UPLOAD_DIR", os.path.join(tempfile.gettempdir(), "salon-uploads"))

# Durable asset store (accepted attendance pictures, reference images).
MEDIA_ROOT = os.getenv("MEDIA_ROOT", os.path.abspath("media"))
MEDIA_BASE_URL = os.getenv("MEDIA_BASE_URL", "/media")

# "http" talks to a remote vision API, "face_recognition" runs on this host.
VISION_BACKEND = os.getenv("VISION_BACKEND", "http")
VISION_API_URL = os.getenv("VISION_API_URL", "http://localhost:8500")
VISION_API_KEY = os.getenv("VISION_API_KEY", "")
EXTERNAL_TIMEOUT_SECONDS = float(os.getenv("EXTERNAL_TIMEOUT_SECONDS", str(DEFAULT_EXTERNAL_TIMEOUT_SECONDS)))

FACE_MATCH_THRESHOLD = float(os.getenv("FACE_MATCH_THRESHOLD", str(DEFAULT_SIMILARITY_THRESHOLD)))
FACE_MATCH_THRESHOLDS = {
    "attendance": float(os.getenv("ATTENDANCE_MATCH_THRESHOLD", str(FACE_MATCH_THRESHOLD))),
    "login": float(os.getenv("LOGIN_MATCH_THRESHOLD", str(FACE_MATCH_THRESHOLD))),
    "registration": float(os.getenv("REGISTRATION_MATCH_THRESHOLD", str(FACE_MATCH_THRESHOLD))),
}

MIN_IMAGE_BYTES = int(os.getenv("MIN_IMAGE_BYTES", str(MIN_IMAGE_BYTES)))
MAX_IMAGE_BYTES = int(os.getenv("MAX_IMAGE_BYTES", str(MAX_IMAGE_BYTES)))
ALLOWED_IMAGE_EXTENSIONS = ALLOWED_IMAGE_EXTENSIONS

# Reject registration when the face already belongs to another account.
CHECK_DUPLICATE_FACES = bool(int(os.getenv("CHECK_DUPLICATE_FACES", "1")))

DEBUG = False

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
