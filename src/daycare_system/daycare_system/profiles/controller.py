from __future__ import annotations

from datetime import timedelta

from flask import Flask, request, session

from ..common.web import current_actor, json_body, login_required, ok, roles_required
from ..container import Container
from ..core.enums import Role
from ..core.exceptions import ValidationError
from .model import Profile


def profile_json(p: Profile) -> dict:
    return {
        "id": p.profile_id,
        "email": p.email,
        "first_name": p.first_name,
        "last_name": p.last_name,
        "full_name": p.full_name,
        "role": p.role.value,
        "phone": p.phone,
        "is_active": p.is_active,
    }


def _role(value) -> Role:
    try:
        return Role(value)
    except ValueError:
        raise ValidationError("Rôle invalide")


def register(app: Flask, container: Container) -> None:
    @app.route("/api/login", methods=["POST"], endpoint="login")
    def login():
        data = json_body()
        s_profile = container.auth_service.authenticate(data.get("email", ""), data.get("password", ""))

        session.clear()
        session.permanent = bool(data.get("remember_me"))
        app.permanent_session_lifetime = timedelta(days=7)
        session["profile_id"] = s_profile.profile_id
        session["name"] = s_profile.full_name
        session["role"] = s_profile.role.value

        return ok(profile={"id": s_profile.profile_id, "full_name": s_profile.full_name, "role": s_profile.role.value})

    @app.route("/api/logout", methods=["POST"], endpoint="logout")
    def logout():
        session.clear()
        return ok(message="Déconnecté")

    @app.route("/api/me", endpoint="me")
    @login_required
    def me():
        actor = current_actor()
        profile = container.profile_service.get(actor.profile_id)
        return ok(profile=profile_json(profile))

    @app.route("/api/profiles", endpoint="profiles_list")
    @roles_required(Role.ADMIN, Role.SECRETARY)
    def profiles_list():
        role = _role(request.args.get("role", Role.PARENT.value))
        return ok(profiles=[profile_json(p) for p in container.profile_service.list_by_role(role)])

    @app.route("/api/profiles", methods=["POST"], endpoint="profiles_create")
    @roles_required(Role.ADMIN)
    def profiles_create():
        data = json_body()
        profile_id = container.profile_service.create_profile(
            current_role=current_actor().role,
            email=data.get("email", ""),
            first_name=data.get("first_name", ""),
            last_name=data.get("last_name", ""),
            role=_role(data.get("role")),
            password=data.get("password", ""),
            phone=data.get("phone", ""),
        )
        return ok(id=profile_id), 201

    @app.route("/api/profiles/<profile_id>/deactivate", methods=["POST"], endpoint="profiles_deactivate")
    @roles_required(Role.ADMIN)
    def profiles_deactivate(profile_id: str):
        actor = current_actor()
        container.profile_service.deactivate(
            current_role=actor.role, profile_id=profile_id, current_profile_id=actor.profile_id
        )
        return ok()
