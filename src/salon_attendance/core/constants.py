"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

MIN_IMAGE_BYTES = 10 * 1024
MAX_IMAGE_BYTES = 5 * 1024 * 1024
ALLOWED_IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png")

DEFAULT_SIMILARITY_THRESHOLD = 90.0
DEFAULT_EXTERNAL_TIMEOUT_SECONDS = 10.0

ATTENDANCE_FOLDER = "attendance"
DEFAULT_PENDING_LIMIT = 200
