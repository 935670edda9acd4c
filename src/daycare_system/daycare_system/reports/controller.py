from __future__ import annotations

import json
from datetime import datetime, time
from typing import Any, Optional

from flask import Flask, request

from ..common.web import current_actor, date_arg, json_body, login_required, ok, roles_required
from ..container import Container
from ..core.enums import STAFF_ROLES, ReportKind, ReportStatus
from ..core.exceptions import ValidationError
from . import mood
from .model import (
    DailyContent,
    DailyReport,
    Report,
    UploadedFile,
    WeeklyContent,
    parse_health,
    parse_meal,
)


def _kind(value: str) -> ReportKind:
    try:
        return ReportKind(value)
    except ValueError:
        raise ValidationError("Type de rapport invalide")


def _status(value: Optional[str]) -> Optional[ReportStatus]:
    if not value:
        return None
    try:
        return ReportStatus(value)
    except ValueError:
        raise ValidationError("Statut invalide")


def _time(value: Any) -> Optional[time]:
    if not value:
        return None
    try:
        return datetime.strptime(str(value)[:5], "%H:%M").time()
    except ValueError:
        raise ValidationError(f"Heure invalide : {value}")


def _strings(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,) if value.strip() else ()
    return tuple(str(v) for v in value if v not in (None, ""))


def _int(value: Any, field_name: str) -> Optional[int]:
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} invalide")


def daily_content(data: dict) -> DailyContent:
    if data.get("health_status") and parse_health(data["health_status"]) is None:
        raise ValidationError("État de santé invalide")
    return DailyContent(
        child_id=str(data.get("child_id") or ""),
        report_date=date_arg(data.get("report_date"), "Date du rapport"),
        arrival_time=_time(data.get("arrival_time")),
        departure_time=_time(data.get("departure_time")),
        health_status=parse_health(data.get("health_status")),
        health_notes=data.get("health_notes"),
        activities=_strings(data.get("activities")),
        nap_taken=bool(data.get("nap_taken")),
        nap_duration_minutes=_int(data.get("nap_duration_minutes"), "Durée de sieste"),
        breakfast_eaten=parse_meal(data.get("breakfast_eaten")),
        lunch_eaten=parse_meal(data.get("lunch_eaten")),
        snack_eaten=parse_meal(data.get("snack_eaten")),
        hygiene_bath=bool(data.get("hygiene_bath")),
        hygiene_bowel_movement=bool(data.get("hygiene_bowel_movement")),
        hygiene_frequency_notes=data.get("hygiene_frequency_notes"),
        mood=mood.migrate(data.get("mood")),
        special_observations=data.get("special_observations"),
        photos=_strings(data.get("photos")),
    )


def weekly_content(data: dict) -> WeeklyContent:
    start = date_arg(data.get("week_start_date"), "Date de début")
    end = date_arg(data.get("week_end_date"), "Date de fin") if data.get("week_end_date") else None
    return WeeklyContent(
        child_id=str(data.get("child_id") or ""),
        week_start_date=start,
        week_end_date=end,
        activities_learning=_strings(data.get("activities_learning")),
        behavior_attitude=data.get("behavior_attitude"),
        social_relations=data.get("social_relations"),
        emotion_management=_strings(data.get("emotion_management")),
        meals=data.get("meals"),
        teacher_observations=data.get("teacher_observations"),
        media_files=_strings(data.get("media_files")),
    )


def report_json(r: Report) -> dict:
    s = r.state
    out = {
        "id": r.report_id,
        "kind": r.kind.value,
        "child_id": r.child_id,
        "educator_id": r.educator_id,
        "period": r.period_label,
        "status": s.status.value,
        "is_validated": s.is_validated,
        "validated_by": s.validated_by,
        "validated_at": s.validated_at.isoformat() if s.validated_at else None,
        "validation_notes": s.validation_notes,
        "rejection_reason": s.rejection_reason,
        "media": list(r.media),
    }
    if isinstance(r, DailyReport):
        c = r.content
        out.update(
            report_date=c.report_date.isoformat(),
            arrival_time=c.arrival_time.strftime("%H:%M") if c.arrival_time else None,
            departure_time=c.departure_time.strftime("%H:%M") if c.departure_time else None,
            health_status=c.health_status.value if c.health_status else None,
            health_notes=c.health_notes,
            activities=list(c.activities),
            nap_taken=c.nap_taken,
            nap_duration_minutes=c.nap_duration_minutes,
            breakfast_eaten=c.breakfast_eaten.value if c.breakfast_eaten else None,
            lunch_eaten=c.lunch_eaten.value if c.lunch_eaten else None,
            snack_eaten=c.snack_eaten.value if c.snack_eaten else None,
            hygiene_bath=c.hygiene_bath,
            hygiene_bowel_movement=c.hygiene_bowel_movement,
            hygiene_frequency_notes=c.hygiene_frequency_notes,
            mood=list(c.mood),
            mood_labels=[mood.label(m) for m in c.mood],
            special_observations=c.special_observations,
        )
    else:
        c = r.content
        out.update(
            week_start_date=c.week_start_date.isoformat(),
            week_end_date=c.week_end_date.isoformat(),
            activities_learning=list(c.activities_learning),
            behavior_attitude=c.behavior_attitude,
            social_relations=c.social_relations,
            emotion_management=list(c.emotion_management),
            meals=c.meals,
            teacher_observations=c.teacher_observations,
        )
    return out


def _request_data() -> tuple[dict, list[UploadedFile]]:
    """JSON body, or multipart with a `data` JSON field and `media` files."""
    if not request.files:
        return json_body(), []
    try:
        data = json.loads(request.form.get("data") or "{}")
    except ValueError:
        raise ValidationError("Champ data : JSON invalide")
    uploads = [
        UploadedFile(filename=f.filename or "fichier", content_type=f.mimetype or "", data=f.read())
        for f in request.files.getlist("media")
    ]
    return (data if isinstance(data, dict) else {}), uploads


def register(app: Flask, container: Container) -> None:
    @app.route("/api/reports/<kind>", endpoint="reports_list")
    @login_required
    def reports_list(kind: str):
        actor = current_actor()
        reports = container.report_service.list_for_actor(
            actor_id=actor.profile_id,
            actor_role=actor.role,
            kind=_kind(kind),
            status=_status(request.args.get("status")),
            child_id=request.args.get("child_id") or None,
        )
        return ok(reports=[report_json(r) for r in reports])

    @app.route("/api/reports/<kind>/pending", endpoint="reports_pending")
    @roles_required(*STAFF_ROLES)
    def reports_pending(kind: str):
        reports = container.report_service.list_for_validation(_kind(kind), actor_role=current_actor().role)
        return ok(reports=[report_json(r) for r in reports])

    @app.route("/api/reports/<kind>/<report_id>", endpoint="reports_detail")
    @login_required
    def reports_detail(kind: str, report_id: str):
        actor = current_actor()
        report = container.report_service.get_for_actor(
            _kind(kind), report_id, actor_id=actor.profile_id, actor_role=actor.role
        )
        return ok(report=report_json(report))

    @app.route("/api/reports/<kind>", methods=["POST"], endpoint="reports_save")
    @login_required
    def reports_save(kind: str):
        actor = current_actor()
        report_kind = _kind(kind)
        data, uploads = _request_data()
        args = dict(
            actor_id=actor.profile_id,
            actor_role=actor.role,
            submit=bool(data.get("submit")),
            report_id=data.get("report_id") or None,
            uploads=uploads,
        )
        if report_kind == ReportKind.DAILY:
            outcome = container.report_service.save_daily(content=daily_content(data), **args)
        else:
            outcome = container.report_service.save_weekly(content=weekly_content(data), **args)

        payload = dict(
            id=outcome.report_id,
            status=outcome.status.value,
            uploaded=list(outcome.uploaded_urls),
            failed_uploads=list(outcome.failed_uploads),
        )
        if outcome.failed_uploads:
            payload["warning"] = f"{len(outcome.failed_uploads)} fichier(s) n'ont pas pu être envoyés"
        return ok(**payload), (201 if outcome.created else 200)

    @app.route("/api/reports/<kind>/<report_id>/decision", methods=["POST"], endpoint="reports_decide")
    @roles_required(*STAFF_ROLES)
    def reports_decide(kind: str, report_id: str):
        actor = current_actor()
        data = json_body()
        if "approve" not in data:
            raise ValidationError("Décision manquante (approve)")
        outcome = container.report_service.validate(
            actor_id=actor.profile_id,
            actor_role=actor.role,
            kind=_kind(kind),
            report_id=report_id,
            approve=bool(data.get("approve")),
            note=data.get("note"),
            rejection_reason=data.get("rejection_reason"),
        )
        return ok(status=outcome.status.value, notified=outcome.notified, warning=outcome.warning)
