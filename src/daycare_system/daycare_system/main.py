from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, abort, send_file

from config import get_settings_module

from .attendance.controller import register as register_attendance
from .children.controller import register as register_children
from .common.app_logger import get_logger, setup_logging
from .common.web import ok, register_error_handlers
from .container import Container, build_container
from .database.bootstrap import apply_schema, apply_seed_sql, ensure_demo_profiles, list_tables
from .messaging.controller import register as register_messaging
from .parents.controller import register as register_parents
from .profiles.controller import register as register_profiles
from .reports.controller import register as register_reports

log = get_logger("app")

_ROOT = Path(__file__).resolve().parents[3]


def _container_settings(settings) -> dict:
    return dict(
        secret_key=getattr(settings, "SECRET_KEY"),
        qr_xor_key=getattr(settings, "QR_XOR_KEY", "LPRDS_SECURE_KEY_2024"),
        qr_token_format=getattr(settings, "QR_TOKEN_FORMAT", "signed"),
        qr_token_max_age_days=int(getattr(settings, "QR_TOKEN_MAX_AGE_DAYS", 400)),
        media_root=getattr(settings, "MEDIA_ROOT", "media"),
        media_url_prefix=getattr(settings, "MEDIA_URL_PREFIX", "/media"),
        max_media_bytes=int(getattr(settings, "MAX_MEDIA_BYTES", 50 * 1024 * 1024)),
    )


def create_app(settings_module: Optional[str] = None, *, container: Optional[Container] = None) -> Flask:
    """Application factory.

    Pass a ready `container` (tests build one from in-memory repositories) to
    skip the database entirely.
    """
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = settings_module or get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    max_media = int(getattr(settings, "MAX_MEDIA_BYTES", 50 * 1024 * 1024))
    # several files per report upload
    app.config["MAX_CONTENT_LENGTH"] = max_media * 5

    logger = setup_logging()
    logger.setLevel(getattr(logging, str(getattr(settings, "LOG_LEVEL", "INFO")).upper(), logging.INFO))
    if app.config["DEBUG"]:
        logging.basicConfig(level=logging.DEBUG, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    if container is None:
        db_config = getattr(settings, "DB_CONFIG")
        log.info(
            "settings=%s db=%s@%s:%s/%s",
            settings_module,
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
        )

        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            apply_schema(db_config, schema_path=_ROOT / "database" / "schema.sql")
            log.info("schema ready (tables=%d)", len(list_tables(db_config)))
        if bool(getattr(settings, "AUTO_SEED_DB", False)):
            apply_seed_sql(db_config, seed_path=_ROOT / "database" / "seed.sql")
            ensure_demo_profiles(db_config)
            log.info("demo seed ready")

        container = build_container(db_config=db_config, **_container_settings(settings))

    app.extensions["daycare_container"] = container

    register_error_handlers(app)
    register_profiles(app, container)
    register_children(app, container)
    register_parents(app, container)
    register_attendance(app, container)
    register_reports(app, container)
    register_messaging(app, container)

    media_prefix = str(getattr(settings, "MEDIA_URL_PREFIX", "/media")).rstrip("/")

    @app.route(f"{media_prefix}/<bucket>/<path:relative>", endpoint="media_file")
    def media_file(bucket: str, relative: str):
        if bucket != container.media.bucket_dir.name:
            abort(404)
        path = container.media.resolve(relative)
        if path is None:
            abort(404)
        return send_file(path)

    @app.route("/api/health", endpoint="health")
    def health():
        return ok(status="up")

    return app
