import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "daycare_db"),
}

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))

QR_XOR_KEY = os.getenv("QR_XOR_KEY", "LPRDS_SECURE_KEY_2024")
QR_TOKEN_FORMAT = os.getenv("QR_TOKEN_FORMAT", "signed")
QR_TOKEN_MAX_AGE_DAYS = int(os.getenv("QR_TOKEN_MAX_AGE_DAYS", "400"))

MEDIA_ROOT = os.getenv("MEDIA_ROOT", "/var/lib/daycare/media")
MEDIA_URL_PREFIX = os.getenv("MEDIA_URL_PREFIX", "/media")
MAX_MEDIA_BYTES = int(os.getenv("MAX_MEDIA_BYTES", str(50 * 1024 * 1024)))
