import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "daycare_test"),
}

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))

QR_XOR_KEY = "LPRDS_SECURE_KEY_2024"
QR_TOKEN_FORMAT = "signed"
QR_TOKEN_MAX_AGE_DAYS = 400

MEDIA_ROOT = os.getenv("MEDIA_ROOT", "/tmp/daycare-test-media")
MEDIA_URL_PREFIX = "/media"
MAX_MEDIA_BYTES = 5 * 1024 * 1024
