from __future__ import annotations

import io

from flask import Flask, request, send_file

from ..common.web import current_actor, date_arg, json_body, login_required, ok, roles_required
from ..container import Container
from ..core.constants import DEFAULT_GROUP_CAPACITY
from ..core.enums import CARE_ROLES, ChildStatus, Role
from ..core.exceptions import NotFoundError, ValidationError
from ..core.sections import SECTIONS, parse_section, section_label
from ..qr.badge import render_badge
from ..qr.codec import badge_payload
from .model import Child, GroupView, Guardian
from .service import NewChild


def child_json(c: Child) -> dict:
    return {
        "id": c.child_id,
        "first_name": c.first_name,
        "last_name": c.last_name,
        "full_name": c.full_name,
        "birth_date": c.birth_date.isoformat(),
        "admission_date": c.admission_date.isoformat() if c.admission_date else None,
        "gender": c.gender,
        "section": c.section.value if c.section else None,
        "section_label": section_label(c.section),
        "group_id": c.group_id,
        "status": c.status.value,
        "code_qr_id": c.code_qr_id,
        "photo_url": c.photo_url,
        "guardians": [
            {"name": g.name, "phone": g.phone, "relationship": g.relationship, "email": g.email}
            for g in c.guardians
        ],
        "medical_info": c.medical_info,
        "behavior_notes": c.behavior_notes,
    }


def group_json(v: GroupView) -> dict:
    g = v.group
    return {
        "id": g.group_id,
        "name": g.name,
        "section": g.section.value,
        "section_label": section_label(g.section),
        "capacity": g.capacity,
        "children_count": v.children_count,
        "available": v.available,
        "assigned_educator_id": g.assigned_educator_id,
        "age_min_months": g.age_min_months,
        "age_max_months": g.age_max_months,
        "description": g.description,
    }


def _guardians(raw) -> list[Guardian]:
    return [
        Guardian(
            name=str(g.get("name", "")),
            phone=str(g.get("phone", "")),
            relationship=g.get("relationship"),
            email=g.get("email"),
        )
        for g in (raw or [])
        if isinstance(g, dict)
    ]


def _status(value, default: ChildStatus | None = None) -> ChildStatus | None:
    if not value:
        return default
    try:
        return ChildStatus(value)
    except ValueError:
        raise ValidationError("Statut invalide")


def register(app: Flask, container: Container) -> None:
    def _require_visible(child_id: str) -> Child:
        actor = current_actor()
        if not container.child_service.can_access(role=actor.role, profile_id=actor.profile_id, child_id=child_id):
            raise NotFoundError("Enfant introuvable")
        return container.child_service.get(child_id)

    @app.route("/api/sections", endpoint="sections_list")
    @login_required
    def sections_list():
        return ok(
            sections=[
                {
                    "code": info.code.value,
                    "label": info.label,
                    "age_range": info.age_range,
                    "age_min_months": info.age_min_months,
                    "age_max_months": info.age_max_months,
                    "educator_ratio": info.educator_ratio,
                }
                for info in SECTIONS.values()
            ]
        )

    @app.route("/api/children", endpoint="children_list")
    @login_required
    def children_list():
        actor = current_actor()
        visible = container.child_service.visible_child_ids(role=actor.role, profile_id=actor.profile_id)
        children = container.child_service.list_children(
            status=_status(request.args.get("status")),
            section=parse_section(request.args.get("section")),
            group_id=request.args.get("group_id") or None,
            child_ids=visible,
        )
        return ok(children=[child_json(c) for c in children])

    @app.route("/api/children", methods=["POST"], endpoint="children_enroll")
    @roles_required(Role.ADMIN, Role.SECRETARY)
    def children_enroll():
        data = json_body()
        new = NewChild(
            first_name=data.get("first_name", ""),
            last_name=data.get("last_name", ""),
            birth_date=date_arg(data.get("birth_date"), "Date de naissance"),
            admission_date=date_arg(data.get("admission_date"), "Date d'admission"),
            section=data.get("section"),
            guardians=_guardians(data.get("guardians")),
            gender=data.get("gender"),
            status=_status(data.get("status"), ChildStatus.ACTIVE),
            medical_info=data.get("medical_info") or {},
            behavior_notes=data.get("behavior_notes"),
            auto_assign_group=bool(data.get("auto_assign_group", True)),
        )
        child_id = container.child_service.enroll(current_role=current_actor().role, new=new)
        return ok(child=child_json(container.child_service.get(child_id))), 201

    @app.route("/api/children/<child_id>", endpoint="children_detail")
    @login_required
    def children_detail(child_id: str):
        return ok(child=child_json(_require_visible(child_id)))

    @app.route("/api/children/<child_id>", methods=["PATCH"], endpoint="children_update")
    @roles_required(Role.ADMIN, Role.SECRETARY)
    def children_update(child_id: str):
        data = json_body()
        changes = {k: v for k, v in data.items() if k not in {"id", "code_qr_id", "group_id"}}
        for key, label in (("birth_date", "Date de naissance"), ("admission_date", "Date d'admission")):
            if key in changes:
                changes[key] = date_arg(changes[key], label)
        if "guardians" in changes:
            changes["guardians"] = _guardians(changes["guardians"])
        child = container.child_service.update(current_role=current_actor().role, child_id=child_id, changes=changes)
        return ok(child=child_json(child))

    @app.route("/api/children/<child_id>/status", methods=["POST"], endpoint="children_status")
    @roles_required(Role.ADMIN, Role.SECRETARY)
    def children_status(child_id: str):
        status = _status(json_body().get("status"))
        if status is None:
            raise ValidationError("Statut obligatoire")
        container.child_service.set_status(current_role=current_actor().role, child_id=child_id, status=status)
        return ok()

    @app.route("/api/children/<child_id>/authorized-persons", endpoint="authorized_list")
    @roles_required(*CARE_ROLES)
    def authorized_list(child_id: str):
        _require_visible(child_id)
        persons = container.child_service.authorized_persons(child_id)
        return ok(
            persons=[
                {
                    "id": p.person_id,
                    "full_name": p.full_name,
                    "phone": p.phone,
                    "relationship": p.relationship,
                    "id_document": p.id_document,
                }
                for p in persons
            ]
        )

    @app.route("/api/children/<child_id>/authorized-persons", methods=["POST"], endpoint="authorized_add")
    @roles_required(Role.ADMIN, Role.SECRETARY)
    def authorized_add(child_id: str):
        data = json_body()
        person_id = container.child_service.add_authorized_person(
            current_role=current_actor().role,
            child_id=child_id,
            full_name=data.get("full_name", ""),
            phone=data.get("phone", ""),
            relationship=data.get("relationship", ""),
            id_document=data.get("id_document", ""),
        )
        return ok(id=person_id), 201

    @app.route("/api/children/<child_id>/badge.png", endpoint="children_badge")
    @roles_required(Role.ADMIN, Role.SECRETARY)
    def children_badge(child_id: str):
        child = container.child_service.get(child_id)
        group_name = None
        if child.group_id:
            group_name = container.group_service.get_group(child.group_id).name
        payload = badge_payload(
            child.child_id,
            token_format=container.qr_token_format,
            xor_codec=container.xor_codec,
            signed=container.signed_token,
        )
        png = render_badge(child, payload, group_name=group_name)
        return send_file(
            io.BytesIO(png),
            mimetype="image/png",
            download_name=f"badge_{child.code_qr_id}.png",
        )

    @app.route("/api/groups", endpoint="groups_list")
    @roles_required(*CARE_ROLES)
    def groups_list():
        views = container.group_service.list_groups(section=parse_section(request.args.get("section")))
        return ok(groups=[group_json(v) for v in views])

    @app.route("/api/groups", methods=["POST"], endpoint="groups_create")
    @roles_required(Role.ADMIN, Role.SECRETARY)
    def groups_create():
        data = json_body()
        try:
            capacity = int(data.get("capacity") or DEFAULT_GROUP_CAPACITY)
        except (TypeError, ValueError):
            raise ValidationError("Capacité invalide")
        group_id = container.group_service.create_group(
            current_role=current_actor().role,
            name=data.get("name", ""),
            section=data.get("section", ""),
            capacity=capacity,
            assigned_educator_id=data.get("assigned_educator_id"),
            description=data.get("description", ""),
        )
        return ok(id=group_id), 201

    @app.route("/api/groups/<group_id>/children", methods=["PUT"], endpoint="groups_assign")
    @roles_required(Role.ADMIN, Role.SECRETARY)
    def groups_assign(group_id: str):
        child_ids = json_body().get("child_ids") or []
        if not isinstance(child_ids, list):
            raise ValidationError("child_ids doit être une liste")
        result = container.group_service.assign_children(
            current_role=current_actor().role, group_id=group_id, child_ids=[str(c) for c in child_ids]
        )
        return ok(
            added=list(result.added),
            removed=list(result.removed),
            over_capacity=result.over_capacity,
            section_mismatch=list(result.section_mismatch),
        )

    @app.route("/api/groups/<group_id>/educator", methods=["POST"], endpoint="groups_educator")
    @roles_required(Role.ADMIN, Role.SECRETARY)
    def groups_educator(group_id: str):
        container.group_service.assign_educator(
            current_role=current_actor().role,
            group_id=group_id,
            educator_id=json_body().get("educator_id"),
        )
        return ok()
