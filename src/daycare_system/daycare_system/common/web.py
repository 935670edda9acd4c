from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from functools import wraps
from typing import Any, Optional

from flask import Flask, jsonify, request, session
from werkzeug.exceptions import HTTPException

from ..core.enums import Role
from ..core.exceptions import AuthenticationError, AuthorizationError, DomainError, NotFoundError, ValidationError
from .app_logger import get_logger
from .datetime_utils import parse_iso_date

log = get_logger("web")

_SERVER_ERROR = "Une erreur est survenue, veuillez réessayer"


@dataclass(frozen=True)
class Actor:
    """The logged-in profile as stored in the Flask session."""

    profile_id: str
    role: Role
    name: str = ""


def current_actor() -> Actor:
    return Actor(profile_id=session["profile_id"], role=Role(session["role"]), name=session.get("name", ""))


def fail(message: str, status: int):
    return jsonify({"success": False, "message": message}), status


def ok(**payload: Any):
    return jsonify({"success": True, **payload})


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "profile_id" not in session:
            return fail("Veuillez vous connecter pour continuer", 401)
        return view(*args, **kwargs)

    return wrapper


def roles_required(*roles: Role):
    allowed = {r.value for r in roles}

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "profile_id" not in session:
                return fail("Veuillez vous connecter pour continuer", 401)
            if session.get("role") not in allowed:
                return fail("Accès refusé", 403)
            return view(*args, **kwargs)

        return wrapper

    return decorator


def json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def date_arg(value: Optional[str], field_name: str, default: Optional[date] = None) -> date:
    if not value:
        if default is None:
            raise ValidationError(f"{field_name} est obligatoire")
        return default
    try:
        return parse_iso_date(value)
    except ValueError:
        raise ValidationError(f"{field_name} : format attendu AAAA-MM-JJ")


def register_error_handlers(app: Flask) -> None:
    """Map domain exceptions to JSON responses, like a toast on the client."""

    @app.errorhandler(AuthenticationError)
    def _authentication(e):
        return fail(str(e), 401)

    @app.errorhandler(AuthorizationError)
    def _authorization(e):
        return fail(str(e), 403)

    @app.errorhandler(NotFoundError)
    def _not_found(e):
        return fail(str(e), 404)

    @app.errorhandler(ValidationError)
    def _validation(e):
        return fail(str(e), 400)

    @app.errorhandler(DomainError)
    def _domain(e):
        return fail(str(e), 400)

    @app.errorhandler(HTTPException)
    def _http(e):
        return fail(e.description or e.name, e.code or 500)

    @app.errorhandler(Exception)
    def _unexpected(e):
        log.error("unhandled error on %s %s", request.method, request.path, exc_info=e)
        return fail(_SERVER_ERROR, 500)
