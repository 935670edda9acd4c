from __future__ import annotations

from flask import Flask

from ..common.web import current_actor, json_body, login_required, ok, roles_required
from ..container import Container
from ..core.enums import Role
from ..core.exceptions import AuthorizationError
from .model import ParentChildRelation


def relation_json(r: ParentChildRelation) -> dict:
    return {
        "id": r.relation_id,
        "parent_id": r.parent_id,
        "child_id": r.child_id,
        "relationship": r.relationship,
        "is_primary_contact": r.is_primary_contact,
    }


def register(app: Flask, container: Container) -> None:
    @app.route("/api/children/<child_id>/parents", endpoint="child_parents")
    @roles_required(Role.ADMIN, Role.SECRETARY)
    def child_parents(child_id: str):
        return ok(parents=[relation_json(r) for r in container.parent_service.parents_of(child_id)])

    @app.route("/api/children/<child_id>/parents", methods=["POST"], endpoint="child_parents_link")
    @roles_required(Role.ADMIN, Role.SECRETARY)
    def child_parents_link(child_id: str):
        data = json_body()
        relation_id = container.parent_service.link(
            current_role=current_actor().role,
            parent_id=data.get("parent_id", ""),
            child_id=child_id,
            relationship=data.get("relationship", ""),
            is_primary_contact=bool(data.get("is_primary_contact")),
        )
        return ok(id=relation_id), 201

    @app.route("/api/children/<child_id>/parents/<parent_id>", methods=["DELETE"], endpoint="child_parents_unlink")
    @roles_required(Role.ADMIN, Role.SECRETARY)
    def child_parents_unlink(child_id: str, parent_id: str):
        container.parent_service.unlink(current_role=current_actor().role, parent_id=parent_id, child_id=child_id)
        return ok()

    @app.route("/api/parents/<parent_id>/children", endpoint="parent_children")
    @login_required
    def parent_children(parent_id: str):
        actor = current_actor()
        if actor.role == Role.PARENT and actor.profile_id != parent_id:
            raise AuthorizationError("Accès refusé")
        if actor.role == Role.EDUCATOR:
            raise AuthorizationError("Accès refusé")
        return ok(children=[relation_json(r) for r in container.parent_service.children_of(parent_id)])
