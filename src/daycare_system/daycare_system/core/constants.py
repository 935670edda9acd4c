"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

QR_PAYLOAD_PREFIX = "LPRDS:"
QR_SIGNED_PREFIX = "LPRDS2:"
QR_CODE_PREFIX = "LPRDS-"
QR_DEFAULT_XOR_KEY = "LPRDS_SECURE_KEY_2024"

SHORT_CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
SHORT_CODE_LENGTH = 5
SHORT_CODE_ATTEMPTS = 10

MIN_MINUTES_BETWEEN_SCANS = 5

DEFAULT_GROUP_CAPACITY = 15
DEFAULT_HISTORY_LIMIT = 30
DEFAULT_LIST_LIMIT = 200

MEDIA_BUCKET = "daily-reports"
MAX_MEDIA_BYTES = 50 * 1024 * 1024
MEDIA_EXTENSIONS = {"jpg", "jpeg", "png", "gif", "webp", "heic", "mp4", "mov", "webm"}

BADGE_WIDTH = 1004
BADGE_HEIGHT = 650
BIMONTHLY_PERIOD_DAYS = 14
