from __future__ import annotations

from datetime import date
from typing import Optional

from flask import Flask, request

from ..common.web import current_actor, date_arg, json_body, login_required, ok, roles_required
from ..container import Container
from ..core.enums import CARE_ROLES, ScanType
from ..core.exceptions import NotFoundError, ValidationError
from ..qr.image_scan import decode_qr_image
from .model import DailyAttendance, ScanCheck


def _time(value) -> Optional[str]:
    return value.strftime("%H:%M") if value else None


def attendance_json(a: DailyAttendance) -> dict:
    return {
        "id": a.attendance_id,
        "child_id": a.child_id,
        "date": a.attendance_date.isoformat(),
        "arrival_time": _time(a.arrival_time),
        "departure_time": _time(a.departure_time),
        "arrival_scanned_by": a.arrival_scanned_by,
        "departure_scanned_by": a.departure_scanned_by,
        "is_present": a.is_present,
        "absence_reason": a.absence_reason,
    }


def check_json(check: ScanCheck) -> dict:
    return {
        "child": {
            "id": check.child.child_id,
            "full_name": check.child.full_name,
            "code_qr_id": check.child.code_qr_id,
        },
        "suggested_action": check.suggested_action.value,
        "last_scan": check.last_scan.scan_time.isoformat() if check.last_scan else None,
    }


def _scan_type(value) -> Optional[ScanType]:
    if not value:
        return None
    try:
        return ScanType(value)
    except ValueError:
        raise ValidationError("Type de scan invalide (arrival ou departure)")


def register(app: Flask, container: Container) -> None:
    def _record(payload: str, scan_type: Optional[ScanType]):
        actor = current_actor()
        check = container.attendance_service.resolve_scan(payload)
        action = scan_type or check.suggested_action
        record = container.attendance_service.scan(
            actor_role=actor.role,
            actor_id=actor.profile_id,
            child_id=check.child.child_id,
            scan_type=action,
        )
        label = "Arrivée" if action == ScanType.ARRIVAL else "Départ"
        return ok(
            action=action.value,
            message=f"{label} enregistrée pour {check.child.full_name}",
            check=check_json(check),
            attendance=attendance_json(record),
        )

    @app.route("/api/attendance/resolve", methods=["POST"], endpoint="attendance_resolve")
    @roles_required(*CARE_ROLES)
    def attendance_resolve():
        payload = (json_body().get("payload") or "").strip()
        if not payload:
            raise ValidationError("Le QR code est vide")
        return ok(check=check_json(container.attendance_service.resolve_scan(payload)))

    @app.route("/api/attendance/scan", methods=["POST"], endpoint="attendance_scan")
    @roles_required(*CARE_ROLES)
    def attendance_scan():
        data = json_body()
        scan_type = _scan_type(data.get("scan_type"))
        payload = (data.get("payload") or "").strip()
        if payload:
            return _record(payload, scan_type)

        # manual entry from the attendance sheet
        child_id = data.get("child_id")
        if not child_id or scan_type is None:
            raise ValidationError("QR code ou enfant + type de scan requis")
        actor = current_actor()
        record = container.attendance_service.scan(
            actor_role=actor.role, actor_id=actor.profile_id, child_id=child_id, scan_type=scan_type
        )
        return ok(action=scan_type.value, attendance=attendance_json(record))

    @app.route("/api/attendance/scan/image", methods=["POST"], endpoint="attendance_scan_image")
    @roles_required(*CARE_ROLES)
    def attendance_scan_image():
        if "image" not in request.files:
            raise ValidationError("Fichier image manquant")
        payload = decode_qr_image(request.files["image"].stream)
        if not payload:
            raise ValidationError("Aucun QR code détecté dans l'image")
        return _record(payload, _scan_type(request.form.get("scan_type")))

    @app.route("/api/attendance/absent", methods=["POST"], endpoint="attendance_absent")
    @roles_required(*CARE_ROLES)
    def attendance_absent():
        data = json_body()
        record = container.attendance_service.mark_absent(
            actor_role=current_actor().role,
            child_id=data.get("child_id", ""),
            day=date_arg(data.get("date"), "Date", default=date.today()),
            reason=data.get("reason"),
        )
        return ok(attendance=attendance_json(record))

    @app.route("/api/attendance/day", endpoint="attendance_day")
    @roles_required(*CARE_ROLES)
    def attendance_day():
        actor = current_actor()
        day = date_arg(request.args.get("date"), "Date", default=date.today())
        visible = container.child_service.visible_child_ids(role=actor.role, profile_id=actor.profile_id)
        sheet = container.attendance_service.day_sheet(day, visible)
        return ok(
            date=day.isoformat(),
            summary=sheet.summary,
            rows=[
                {
                    "child_id": row.child.child_id,
                    "full_name": row.child.full_name,
                    "state": row.state,
                    "attendance": attendance_json(row.attendance) if row.attendance else None,
                }
                for row in sheet.rows
            ],
        )

    @app.route("/api/children/<child_id>/attendance", endpoint="attendance_history")
    @login_required
    def attendance_history(child_id: str):
        actor = current_actor()
        if not container.child_service.can_access(role=actor.role, profile_id=actor.profile_id, child_id=child_id):
            raise NotFoundError("Enfant introuvable")
        try:
            limit = int(request.args.get("limit", 30))
        except ValueError:
            raise ValidationError("limit invalide")
        rows = container.attendance_service.history(child_id, limit=max(1, min(limit, 365)))
        return ok(history=[attendance_json(a) for a in rows])
