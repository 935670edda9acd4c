import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "daycare_db"),
}

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
# Optional: also seed demo groups and demo logins on startup
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))

# Badge QR codes: "signed" for new badges, "legacy" prints the old XOR payload
QR_XOR_KEY = os.getenv("QR_XOR_KEY", "LPRDS_SECURE_KEY_2024")
QR_TOKEN_FORMAT = os.getenv("QR_TOKEN_FORMAT", "signed")
QR_TOKEN_MAX_AGE_DAYS = int(os.getenv("QR_TOKEN_MAX_AGE_DAYS", "400"))

# Report photos/videos
MEDIA_ROOT = os.getenv("MEDIA_ROOT", "media")
MEDIA_URL_PREFIX = os.getenv("MEDIA_URL_PREFIX", "/media")
MAX_MEDIA_BYTES = int(os.getenv("MAX_MEDIA_BYTES", str(50 * 1024 * 1024)))
