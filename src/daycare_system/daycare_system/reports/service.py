from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Callable, Optional, Sequence

from ..children.repository import ChildRepository
from ..common.app_logger import get_logger
from ..common.validators import optional_text
from ..core.constants import BIMONTHLY_PERIOD_DAYS, DEFAULT_LIST_LIMIT
from ..core.enums import CARE_ROLES, STAFF_ROLES, ReportKind, ReportStatus, Role
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..messaging.dispatcher import NotificationDispatcher
from ..messaging.model import NotificationDraft
from ..parents.repository import ParentRepository
from .factory import ReportLifecycleFactory
from .media import MediaStorage
from .model import (
    DailyContent,
    DailyReport,
    Report,
    ReviewState,
    SaveOutcome,
    UploadedFile,
    ValidationOutcome,
    WeeklyContent,
    WeeklyReport,
)
from .repository import ReportRepository
from .strategies.base import LifecycleDecision

log = get_logger("reports")

_SUBJECTS = {
    ReportKind.DAILY: "Nouveau rapport journalier disponible",
    ReportKind.WEEKLY: "Nouveau rapport bi-mensuel disponible",
}


def default_period_end(start: date) -> date:
    """Bi-monthly reports cover 14 days, start included."""
    return start + timedelta(days=BIMONTHLY_PERIOD_DAYS - 1)


class ReportService:
    """Use case: write, submit and decide daily / bi-monthly reports.

    Business rules:
    - Saving without submitting always gives a draft.
    - An educator submission waits in `pending`; an admin or secretary
      submission is validated at once.
    - A validated report cannot be changed any more.
    - Only pending reports can be approved or rejected, by admin/secretary.
    - Parents are notified when a report is approved. The decision and the
      queued notifications are written together; delivery problems only
      produce a warning.
    """

    def __init__(
        self,
        reports: ReportRepository,
        children: ChildRepository,
        parents: ParentRepository,
        *,
        media: Optional[MediaStorage] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
        lifecycle_factory: Optional[ReportLifecycleFactory] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._reports = reports
        self._children = children
        self._parents = parents
        self._media = media
        self._dispatcher = dispatcher
        self._factory = lifecycle_factory or ReportLifecycleFactory()
        self._clock = clock

    # ---------- access ----------

    def _check_writer(self, *, actor_id: str, actor_role: Role, child_id: str) -> None:
        if actor_role not in CARE_ROLES:
            raise AuthorizationError("Les parents ne peuvent pas rédiger de rapports")
        if not self._children.get_by_id(child_id):
            raise NotFoundError("Enfant introuvable")
        if actor_role == Role.EDUCATOR and child_id not in set(self._children.list_ids_for_educator(actor_id)):
            raise AuthorizationError("Cet enfant n'appartient pas à vos groupes")

    def _visible_child_ids(self, *, actor_id: str, actor_role: Role) -> Optional[list[str]]:
        if actor_role in STAFF_ROLES:
            return None
        if actor_role == Role.EDUCATOR:
            return list(self._children.list_ids_for_educator(actor_id))
        return list(self._parents.list_child_ids_for_parent(actor_id))

    def get(self, kind: ReportKind, report_id: str) -> Report:
        report = self._reports.get_daily(report_id) if kind == ReportKind.DAILY else self._reports.get_weekly(report_id)
        if not report:
            raise NotFoundError("Rapport introuvable")
        return report

    def get_for_actor(self, kind: ReportKind, report_id: str, *, actor_id: str, actor_role: Role) -> Report:
        report = self.get(kind, report_id)
        visible = self._visible_child_ids(actor_id=actor_id, actor_role=actor_role)
        if visible is not None and report.child_id not in visible:
            raise NotFoundError("Rapport introuvable")
        if actor_role == Role.PARENT and not report.state.is_validated:
            raise NotFoundError("Rapport introuvable")
        return report

    # ---------- save ----------

    def _next_state(
        self,
        decision: LifecycleDecision,
        existing: Optional[Report],
        *,
        actor_id: str,
        now: datetime,
    ) -> ReviewState:
        previous = existing.state if existing else ReviewState()
        state = replace(previous, status=decision.status, is_validated=decision.is_validated)
        if decision.stamp_validator:
            state = replace(state, validated_by=actor_id, validated_at=now)
        return state

    def _decide_save(self, *, actor_role: Role, submit: bool, existing: Optional[Report]) -> LifecycleDecision:
        if existing and existing.state.status == ReportStatus.VALIDATED:
            raise ValidationError("Ce rapport est déjà validé et ne peut plus être modifié")
        strategy = self._factory.for_save(actor_role=actor_role, submit=submit)
        return strategy.decide_save(actor_role=actor_role, current=existing.state.status if existing else None)

    def save_daily(
        self,
        *,
        actor_id: str,
        actor_role: Role,
        content: DailyContent,
        submit: bool,
        report_id: Optional[str] = None,
        uploads: Sequence[UploadedFile] = (),
    ) -> SaveOutcome:
        self._check_writer(actor_id=actor_id, actor_role=actor_role, child_id=content.child_id)
        if content.report_date is None:
            raise ValidationError("La date du rapport est obligatoire")
        if content.nap_duration_minutes is not None and content.nap_duration_minutes < 0:
            raise ValidationError("La durée de sieste doit être positive")
        if not content.nap_taken:
            content = replace(content, nap_duration_minutes=None)
        content = replace(
            content,
            health_notes=optional_text(content.health_notes),
            special_observations=optional_text(content.special_observations),
        )

        if report_id:
            existing = self._reports.get_daily(report_id)
            if not existing:
                raise NotFoundError("Rapport introuvable")
            if existing.child_id != content.child_id:
                raise ValidationError("Le rapport ne correspond pas à cet enfant")
        else:
            existing = self._reports.find_daily(content.child_id, content.report_date)

        decision = self._decide_save(actor_role=actor_role, submit=submit, existing=existing)
        state = self._next_state(decision, existing, actor_id=actor_id, now=self._clock())

        if existing:
            self._reports.update_daily(replace(existing, educator_id=actor_id, content=content, state=state))
            saved_id = existing.report_id
        else:
            saved_id = self._reports.insert_daily(educator_id=actor_id, content=content, state=state)

        log.info("daily report %s saved status=%s by=%s", saved_id, state.status.value, actor_id)
        return self._attach_media(
            ReportKind.DAILY, saved_id, content.photos, uploads, status=state.status, created=existing is None
        )

    def save_weekly(
        self,
        *,
        actor_id: str,
        actor_role: Role,
        content: WeeklyContent,
        submit: bool,
        report_id: Optional[str] = None,
        uploads: Sequence[UploadedFile] = (),
    ) -> SaveOutcome:
        self._check_writer(actor_id=actor_id, actor_role=actor_role, child_id=content.child_id)
        if content.week_start_date is None:
            raise ValidationError("La date de début est obligatoire")
        if content.week_end_date is None:
            content = replace(content, week_end_date=default_period_end(content.week_start_date))
        if content.week_end_date < content.week_start_date:
            raise ValidationError("La date de fin doit être postérieure à la date de début")

        if report_id:
            existing = self._reports.get_weekly(report_id)
            if not existing:
                raise NotFoundError("Rapport introuvable")
            if existing.child_id != content.child_id:
                raise ValidationError("Le rapport ne correspond pas à cet enfant")
        else:
            existing = self._reports.find_weekly(content.child_id, content.week_start_date)

        decision = self._decide_save(actor_role=actor_role, submit=submit, existing=existing)
        state = self._next_state(decision, existing, actor_id=actor_id, now=self._clock())

        if existing:
            self._reports.update_weekly(replace(existing, educator_id=actor_id, content=content, state=state))
            saved_id = existing.report_id
        else:
            saved_id = self._reports.insert_weekly(educator_id=actor_id, content=content, state=state)

        log.info("weekly report %s saved status=%s by=%s", saved_id, state.status.value, actor_id)
        return self._attach_media(
            ReportKind.WEEKLY, saved_id, content.media_files, uploads, status=state.status, created=existing is None
        )

    def _attach_media(
        self,
        kind: ReportKind,
        report_id: str,
        current: Sequence[str],
        uploads: Sequence[UploadedFile],
        *,
        status: ReportStatus,
        created: bool,
    ) -> SaveOutcome:
        """Upload each file on its own; the ones that fail are reported, not raised."""
        uploaded: list[str] = []
        failed: list[str] = []
        for upload in uploads:
            if self._media is None:
                failed.append(upload.filename)
                continue
            try:
                uploaded.append(self._media.store(kind, report_id, upload))
            except Exception:
                log.warning("upload of %s for report %s failed", upload.filename, report_id, exc_info=True)
                failed.append(upload.filename)

        if uploaded:
            self._reports.set_media(kind, report_id, [*current, *uploaded])
        return SaveOutcome(
            report_id=report_id,
            status=status,
            created=created,
            uploaded_urls=tuple(uploaded),
            failed_uploads=tuple(failed),
        )

    # ---------- decision ----------

    def _notifications(self, report: Report, *, sender_id: str, note: Optional[str]) -> list[NotificationDraft]:
        child = self._children.get_by_id(report.child_id)
        child_name = child.first_name if child else "votre enfant"
        content = f"Le rapport du {report.period_label} pour {child_name} a été validé et est disponible."
        if note:
            content += f"\n\nNote de l'équipe : {note}"
        return [
            NotificationDraft(
                recipient_id=rel.parent_id,
                sender_id=sender_id,
                subject=_SUBJECTS[report.kind],
                content=content,
                child_id=report.child_id,
            )
            for rel in self._parents.list_for_child(report.child_id)
        ]

    def validate(
        self,
        *,
        actor_id: str,
        actor_role: Role,
        kind: ReportKind,
        report_id: str,
        approve: bool,
        note: Optional[str] = None,
        rejection_reason: Optional[str] = None,
    ) -> ValidationOutcome:
        if actor_role not in STAFF_ROLES:
            raise AuthorizationError("Seule l'administration peut valider les rapports")

        report = self.get(kind, report_id)
        if report.state.status != ReportStatus.PENDING:
            raise ValidationError("Seuls les rapports en attente peuvent être validés ou rejetés")

        note = optional_text(note)
        now = self._clock()
        if approve:
            state = replace(
                report.state,
                status=ReportStatus.VALIDATED,
                is_validated=True,
                validated_by=actor_id,
                validated_at=now,
                validation_notes=note,
            )
            notifications = self._notifications(report, sender_id=actor_id, note=note)
        else:
            reason = optional_text(rejection_reason)
            if not reason:
                raise ValidationError("Le motif du rejet est obligatoire")
            state = replace(
                report.state,
                status=ReportStatus.REJECTED,
                is_validated=False,
                validated_by=actor_id,
                validated_at=now,
                validation_notes=note if note is not None else report.state.validation_notes,
                rejection_reason=reason,
            )
            notifications = []

        outbox_ids = self._reports.decide(kind, report_id, state, notifications)
        if outbox_ids is None:
            # another reviewer decided between the read and the write
            raise ValidationError("Ce rapport a déjà été traité")
        log.info("%s report %s -> %s by %s", kind.value, report_id, state.status.value, actor_id)

        return ValidationOutcome(report_id=report_id, status=state.status, **self._deliver(outbox_ids))

    def _deliver(self, outbox_ids: Sequence[str]) -> dict:
        if not outbox_ids:
            return {"notified": 0, "warning": None}
        if self._dispatcher is None:
            return {"notified": 0, "warning": "Notifications en file d'attente, envoi différé"}
        try:
            result = self._dispatcher.deliver(outbox_ids)
        except Exception:
            log.error("notification delivery crashed for %d queued messages", len(outbox_ids), exc_info=True)
            return {"notified": 0, "warning": "Rapport validé, mais les parents n'ont pas pu être notifiés"}
        if result.failed:
            return {
                "notified": result.delivered,
                "warning": f"Rapport validé, mais {result.failed} notification(s) n'ont pas pu être envoyées",
            }
        return {"notified": result.delivered, "warning": None}

    # ---------- listing ----------

    def list_for_validation(self, kind: ReportKind, *, actor_role: Role, limit: int = DEFAULT_LIST_LIMIT) -> Sequence[Report]:
        if actor_role not in STAFF_ROLES:
            raise AuthorizationError("Seule l'administration peut valider les rapports")
        return self._reports.list_reports(kind, status=ReportStatus.PENDING, limit=limit)

    def list_for_actor(
        self,
        *,
        actor_id: str,
        actor_role: Role,
        kind: ReportKind,
        status: Optional[ReportStatus] = None,
        child_id: Optional[str] = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> Sequence[Report]:
        visible = self._visible_child_ids(actor_id=actor_id, actor_role=actor_role)
        if child_id:
            if visible is not None and child_id not in visible:
                return []
            visible = [child_id]
        return self._reports.list_reports(
            kind,
            status=status,
            child_ids=visible,
            validated_only=actor_role == Role.PARENT,
            limit=limit,
        )
