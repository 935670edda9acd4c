from datetime import date, datetime

import pytest

from src.daycare_system.daycare_system.core.enums import OutboxStatus, ReportKind, ReportStatus, Role, Section
from src.daycare_system.daycare_system.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from src.daycare_system.daycare_system.messaging.dispatcher import NotificationDispatcher
from src.daycare_system.daycare_system.reports.media import MediaStorage
from src.daycare_system.daycare_system.reports.model import DailyContent, UploadedFile, WeeklyContent
from src.daycare_system.daycare_system.reports.service import ReportService, default_period_end
from tests.fakes import (
    FakeChildRepository,
    FakeGroupRepository,
    FakeMessageRepository,
    FakeOutboxRepository,
    FakeParentRepository,
    FakeReportRepository,
)

NOW = datetime(2025, 3, 3, 18, 0)
DAY = date(2025, 3, 3)


class Env:
    def __init__(self, media_root):
        self.children = FakeChildRepository()
        self.groups = FakeGroupRepository(self.children)
        self.parents = FakeParentRepository()
        self.messages = FakeMessageRepository()
        self.outbox = FakeOutboxRepository(self.messages)
        self.reports = FakeReportRepository(self.outbox)

        self.groups.add("lucioles", Section.MATERNELLE_MS, educator_id="edu")
        self.children.add("kid", first_name="Inès", section=Section.MATERNELLE_MS, group_id="lucioles")
        self.children.add("elsewhere", section=Section.MATERNELLE_MS)
        self.parents.add("mum", "kid", primary=True)
        self.parents.add("dad", "kid")

        self.dispatcher = NotificationDispatcher(self.outbox, clock=lambda: NOW)
        self.service = ReportService(
            self.reports,
            self.children,
            self.parents,
            media=MediaStorage(media_root, url_prefix="/media"),
            dispatcher=self.dispatcher,
            clock=lambda: NOW,
        )

    def save_daily(self, role=Role.EDUCATOR, actor="edu", submit=False, **content):
        data = dict(child_id="kid", report_date=DAY, mood=("joyeux",))
        data.update(content)
        return self.service.save_daily(actor_id=actor, actor_role=role, content=DailyContent(**data), submit=submit)


@pytest.fixture
def env(tmp_path):
    return Env(tmp_path)


def test_draft_for_every_writer(env):
    for role, actor in ((Role.EDUCATOR, "edu"), (Role.SECRETARY, "sec"), (Role.ADMIN, "admin")):
        outcome = env.save_daily(role=role, actor=actor, submit=False)
        assert outcome.status == ReportStatus.DRAFT

    assert len(env.reports.daily) == 1
    report = env.reports.get_daily(outcome.report_id)
    assert report.state.is_validated is False
    assert report.educator_id == "admin"


def test_educator_submit_waits_for_validation(env):
    outcome = env.save_daily(submit=True)

    report = env.reports.get_daily(outcome.report_id)
    assert outcome.created is True
    assert report.state.status == ReportStatus.PENDING
    assert report.state.validated_by is None


def test_staff_submit_is_validated_at_once(env):
    outcome = env.save_daily(role=Role.ADMIN, actor="admin", submit=True)

    report = env.reports.get_daily(outcome.report_id)
    assert report.state.status == ReportStatus.VALIDATED
    assert report.state.is_validated is True
    assert report.state.validated_by == "admin"
    assert report.state.validated_at == NOW


def test_parents_and_foreign_educators_cannot_write(env):
    with pytest.raises(AuthorizationError):
        env.save_daily(role=Role.PARENT, actor="mum")
    with pytest.raises(AuthorizationError):
        env.save_daily(child_id="elsewhere")
    with pytest.raises(NotFoundError):
        env.save_daily(role=Role.ADMIN, actor="admin", child_id="ghost")


def test_nap_duration_dropped_without_nap(env):
    outcome = env.save_daily(nap_taken=False, nap_duration_minutes=45)

    assert env.reports.get_daily(outcome.report_id).content.nap_duration_minutes is None
    with pytest.raises(ValidationError):
        env.save_daily(nap_taken=True, nap_duration_minutes=-5)


def test_approval_notifies_every_linked_parent(env):
    report_id = env.save_daily(submit=True).report_id

    outcome = env.service.validate(
        actor_id="admin", actor_role=Role.ADMIN, kind=ReportKind.DAILY, report_id=report_id, approve=True, note="Bravo"
    )

    assert outcome.status == ReportStatus.VALIDATED
    assert outcome.notified == 2
    assert outcome.warning is None
    report = env.reports.get_daily(report_id)
    assert report.state.is_validated is True
    assert report.state.validation_notes == "Bravo"
    recipients = sorted(m.recipient_id for m in env.messages.rows.values())
    assert recipients == ["dad", "mum"]
    message = env.messages.list_for_recipient("mum", 10)[0]
    assert "03/03/2025" in message.content and "Inès" in message.content and "Bravo" in message.content
    assert message.sender_id == "admin"
    assert all(e.status == OutboxStatus.DELIVERED for e in env.outbox.rows.values())


def test_rejection_then_resubmission_updates_the_same_report(env):
    report_id = env.save_daily(submit=True).report_id

    rejected = env.service.validate(
        actor_id="sec",
        actor_role=Role.SECRETARY,
        kind=ReportKind.DAILY,
        report_id=report_id,
        approve=False,
        rejection_reason="Photos manquantes",
    )

    assert rejected.status == ReportStatus.REJECTED
    assert rejected.notified == 0
    assert env.messages.rows == {}

    again = env.save_daily(submit=True, special_observations="Photos ajoutées")

    assert again.report_id == report_id
    assert again.created is False
    report = env.reports.get_daily(report_id)
    assert report.state.status == ReportStatus.PENDING
    assert report.state.rejection_reason == "Photos manquantes"
    assert len(env.reports.daily) == 1


def test_rejection_needs_a_reason(env):
    report_id = env.save_daily(submit=True).report_id

    with pytest.raises(ValidationError):
        env.service.validate(
            actor_id="admin", actor_role=Role.ADMIN, kind=ReportKind.DAILY, report_id=report_id, approve=False,
            rejection_reason="   ",
        )


def test_only_pending_reports_are_decided_by_staff(env):
    draft_id = env.save_daily().report_id

    with pytest.raises(ValidationError):
        env.service.validate(
            actor_id="admin", actor_role=Role.ADMIN, kind=ReportKind.DAILY, report_id=draft_id, approve=True
        )
    with pytest.raises(AuthorizationError):
        env.service.validate(
            actor_id="edu", actor_role=Role.EDUCATOR, kind=ReportKind.DAILY, report_id=draft_id, approve=True
        )
    assert env.reports.decisions == []


def test_second_reviewer_with_a_stale_read_does_not_notify_twice(env, monkeypatch):
    report_id = env.save_daily(submit=True).report_id
    stale = env.reports.get_daily(report_id)
    env.service.validate(actor_id="admin", actor_role=Role.ADMIN, kind=ReportKind.DAILY, report_id=report_id, approve=True)
    monkeypatch.setattr(env.reports, "get_daily", lambda _id: stale)

    with pytest.raises(ValidationError):
        env.service.validate(
            actor_id="sec", actor_role=Role.SECRETARY, kind=ReportKind.DAILY, report_id=report_id, approve=True
        )

    assert len(env.messages.rows) == 2
    assert len(env.outbox.rows) == 2
    assert env.reports.decisions == [(ReportKind.DAILY, report_id)]


def test_validated_report_is_frozen(env):
    report_id = env.save_daily(submit=True).report_id
    env.service.validate(actor_id="admin", actor_role=Role.ADMIN, kind=ReportKind.DAILY, report_id=report_id, approve=True)

    with pytest.raises(ValidationError):
        env.save_daily(submit=False, health_notes="changement")
    with pytest.raises(ValidationError):
        env.service.validate(
            actor_id="admin", actor_role=Role.ADMIN, kind=ReportKind.DAILY, report_id=report_id, approve=True
        )


def test_failed_delivery_keeps_decision_and_warns(env):
    env.messages.fail_for.add("dad")
    report_id = env.save_daily(submit=True).report_id

    outcome = env.service.validate(
        actor_id="admin", actor_role=Role.ADMIN, kind=ReportKind.DAILY, report_id=report_id, approve=True
    )

    assert outcome.status == ReportStatus.VALIDATED
    assert outcome.notified == 1
    assert "1 notification" in outcome.warning
    assert env.reports.get_daily(report_id).state.is_validated is True
    [pending] = env.outbox.list_pending()
    assert pending.recipient_id == "dad"
    assert pending.attempts == 1

    env.messages.fail_for.clear()
    assert env.dispatcher.deliver_pending().delivered == 1
    assert env.outbox.list_pending() == []


def test_approval_without_linked_parents_sends_nothing(env):
    env.parents.links.clear()
    report_id = env.save_daily(submit=True).report_id

    outcome = env.service.validate(
        actor_id="admin", actor_role=Role.ADMIN, kind=ReportKind.DAILY, report_id=report_id, approve=True
    )

    assert outcome.notified == 0
    assert outcome.warning is None


def test_uploads_are_appended_and_failures_reported(env, tmp_path):
    uploads = [
        UploadedFile(filename="sieste.jpg", content_type="image/jpeg", data=b"\xff\xd8jpeg"),
        UploadedFile(filename="notes.pdf", content_type="application/pdf", data=b"%PDF"),
        UploadedFile(filename="danse.mp4", content_type="video/mp4", data=b"mp4"),
    ]

    outcome = env.service.save_daily(
        actor_id="edu",
        actor_role=Role.EDUCATOR,
        content=DailyContent(child_id="kid", report_date=DAY, photos=("/media/daily-reports/old.jpg",)),
        submit=False,
        uploads=uploads,
    )

    assert outcome.failed_uploads == ("notes.pdf",)
    assert len(outcome.uploaded_urls) == 2
    photos = env.reports.get_daily(outcome.report_id).content.photos
    assert photos[0] == "/media/daily-reports/old.jpg"
    assert list(photos[1:]) == list(outcome.uploaded_urls)
    for url in outcome.uploaded_urls:
        assert url.startswith(f"/media/daily-reports/daily-reports/{outcome.report_id}/")
        relative = url.split("/media/daily-reports/", 1)[1]
        assert (tmp_path / "daily-reports" / relative).is_file()


def test_weekly_report_defaults_to_fourteen_days(env):
    outcome = env.service.save_weekly(
        actor_id="edu",
        actor_role=Role.EDUCATOR,
        content=WeeklyContent(child_id="kid", week_start_date=date(2025, 3, 3), week_end_date=None),
        submit=True,
    )

    report = env.reports.get_weekly(outcome.report_id)
    assert report.content.week_end_date == date(2025, 3, 16) == default_period_end(date(2025, 3, 3))
    assert report.state.status == ReportStatus.PENDING
    assert report.period_label == "03/03/2025 au 16/03/2025"


def test_weekly_period_must_be_ordered(env):
    with pytest.raises(ValidationError):
        env.service.save_weekly(
            actor_id="edu",
            actor_role=Role.EDUCATOR,
            content=WeeklyContent(child_id="kid", week_start_date=date(2025, 3, 10), week_end_date=date(2025, 3, 1)),
            submit=False,
        )


def test_weekly_resubmission_with_new_end_date_updates_the_same_report(env):
    first = env.service.save_weekly(
        actor_id="edu",
        actor_role=Role.EDUCATOR,
        content=WeeklyContent(child_id="kid", week_start_date=date(2024, 5, 1), week_end_date=None),
        submit=True,
    )
    env.service.validate(
        actor_id="admin",
        actor_role=Role.ADMIN,
        kind=ReportKind.WEEKLY,
        report_id=first.report_id,
        approve=False,
        rejection_reason="Photos manquantes",
    )

    again = env.service.save_weekly(
        actor_id="edu",
        actor_role=Role.EDUCATOR,
        content=WeeklyContent(child_id="kid", week_start_date=date(2024, 5, 1), week_end_date=date(2024, 5, 15)),
        submit=True,
    )

    assert again.report_id == first.report_id
    assert again.created is False
    assert len(env.reports.weekly) == 1
    report = env.reports.get_weekly(first.report_id)
    assert report.content.week_end_date == date(2024, 5, 15)
    assert report.state.status == ReportStatus.PENDING
    assert report.state.rejection_reason == "Photos manquantes"


def test_parents_only_see_validated_reports_of_their_children(env):
    pending_id = env.save_daily(submit=True).report_id
    validated_id = env.save_daily(role=Role.ADMIN, actor="admin", submit=True, report_date=date(2025, 3, 4)).report_id

    visible = env.service.list_for_actor(actor_id="mum", actor_role=Role.PARENT, kind=ReportKind.DAILY)

    assert [r.report_id for r in visible] == [validated_id]
    with pytest.raises(NotFoundError):
        env.service.get_for_actor(ReportKind.DAILY, pending_id, actor_id="mum", actor_role=Role.PARENT)
    assert env.service.list_for_actor(actor_id="stranger", actor_role=Role.PARENT, kind=ReportKind.DAILY) == []


def test_pending_queue_is_staff_only(env):
    env.save_daily(submit=True)
    env.save_daily(submit=False, report_date=date(2025, 3, 4))

    assert len(env.service.list_for_validation(ReportKind.DAILY, actor_role=Role.SECRETARY)) == 1
    with pytest.raises(AuthorizationError):
        env.service.list_for_validation(ReportKind.DAILY, actor_role=Role.EDUCATOR)
