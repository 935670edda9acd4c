"""In-memory repositories shared by the service and HTTP tests."""
from __future__ import annotations

from dataclasses import fields, replace
from datetime import date, datetime, time
from typing import Optional

from werkzeug.security import generate_password_hash

from src.daycare_system.daycare_system.attendance.model import DailyAttendance, ScanLog
from src.daycare_system.daycare_system.children.model import AuthorizedPerson, Child, Group
from src.daycare_system.daycare_system.container import Repositories
from src.daycare_system.daycare_system.core.enums import ChildStatus, OutboxStatus, ReportKind, ReportStatus, Role, ScanType
from src.daycare_system.daycare_system.messaging.model import Message, OutboxEntry
from src.daycare_system.daycare_system.parents.model import ParentChildRelation
from src.daycare_system.daycare_system.profiles.model import Profile
from src.daycare_system.daycare_system.reports.model import DailyReport, WeeklyReport


class FakeProfileRepository:
    def __init__(self, profiles=()):
        self.rows = {p.profile_id: p for p in profiles}

    def add(self, profile_id, role, *, email=None, password="secret123", first_name="Prénom", last_name=None, is_active=True):
        profile = Profile(
            profile_id=profile_id,
            user_id=profile_id,
            email=email or f"{profile_id}@creche.test",
            first_name=first_name,
            last_name=last_name or profile_id.capitalize(),
            role=role,
            password_hash=generate_password_hash(password),
            is_active=is_active,
        )
        self.rows[profile_id] = profile
        return profile

    def get_by_id(self, profile_id):
        return self.rows.get(profile_id)

    def get_by_email(self, email):
        return next((p for p in self.rows.values() if p.email == email), None)

    def list_by_role(self, role, *, active_only=True):
        found = [p for p in self.rows.values() if p.role == role and (p.is_active or not active_only)]
        return sorted(found, key=lambda p: (p.last_name, p.first_name))

    def create_profile(self, *, email, first_name, last_name, role, password_hash, phone=None):
        profile_id = f"profile-{len(self.rows) + 1}"
        self.rows[profile_id] = Profile(
            profile_id=profile_id,
            user_id=profile_id,
            email=email,
            first_name=first_name,
            last_name=last_name,
            role=role,
            password_hash=password_hash,
            phone=phone,
        )
        return profile_id

    def set_active(self, profile_id, *, is_active):
        if profile_id not in self.rows:
            return False
        self.rows[profile_id] = replace(self.rows[profile_id], is_active=is_active)
        return True


_CHILD_FIELDS = {f.name for f in fields(Child)} - {"child_id", "code_qr_id"}


class FakeChildRepository:
    def __init__(self):
        self.rows: dict[str, Child] = {}
        self.persons: list[AuthorizedPerson] = []
        self.groups = None  # FakeGroupRepository, for educator scoping
        self.set_group_calls: list[tuple[tuple[str, ...], object]] = []

    def add(self, child_id, *, section=None, group_id=None, status=ChildStatus.ACTIVE, code=None,
            first_name=None, last_name="Martin", birth_date=date(2022, 1, 10)):
        child = Child(
            child_id=child_id,
            first_name=first_name or child_id.capitalize(),
            last_name=last_name,
            birth_date=birth_date,
            admission_date=date(2024, 9, 2),
            section=section,
            group_id=group_id,
            status=status,
            code_qr_id=code or child_id.upper()[:5],
        )
        self.rows[child_id] = child
        return child

    def get_by_id(self, child_id):
        return self.rows.get(child_id)

    def get_by_code(self, code_qr_id):
        return next((c for c in self.rows.values() if c.code_qr_id == code_qr_id), None)

    def code_exists(self, code_qr_id):
        return self.get_by_code(code_qr_id) is not None

    def list_children(self, *, status=None, section=None, group_id=None, child_ids=None):
        found = [
            c
            for c in self.rows.values()
            if (status is None or c.status == status)
            and (section is None or c.section == section)
            and (group_id is None or c.group_id == group_id)
            and (child_ids is None or c.child_id in child_ids)
        ]
        return sorted(found, key=lambda c: (c.last_name, c.first_name))

    def create_child(self, *, first_name, last_name, birth_date, admission_date, section, status, code_qr_id,
                     gender, guardians, medical_info, behavior_notes):
        child_id = f"child-{len(self.rows) + 1}"
        self.rows[child_id] = Child(
            child_id=child_id,
            first_name=first_name,
            last_name=last_name,
            birth_date=birth_date,
            admission_date=admission_date,
            section=section,
            group_id=None,
            status=status,
            code_qr_id=code_qr_id,
            gender=gender,
            guardians=tuple(guardians),
            medical_info=medical_info,
            behavior_notes=behavior_notes,
        )
        return child_id

    def update_child(self, child_id, changes):
        if child_id not in self.rows:
            return False
        patch = {k: v for k, v in changes.items() if k in _CHILD_FIELDS}
        if "guardians" in patch:
            patch["guardians"] = tuple(patch["guardians"])
        self.rows[child_id] = replace(self.rows[child_id], **patch)
        return True

    def list_ids_in_group(self, group_id):
        return [c.child_id for c in self.rows.values() if c.group_id == group_id]

    def set_group(self, child_ids, group_id):
        ids = tuple(child_ids)
        self.set_group_calls.append((ids, group_id))
        count = 0
        for cid in ids:
            if cid in self.rows:
                self.rows[cid] = replace(self.rows[cid], group_id=group_id)
                count += 1
        return count

    def list_ids_for_educator(self, educator_id):
        if self.groups is None:
            return []
        mine = {g.group_id for g in self.groups.rows.values() if g.assigned_educator_id == educator_id}
        return [c.child_id for c in self.rows.values() if c.group_id in mine]

    def add_authorized_person(self, *, child_id, full_name, phone, relationship, id_document):
        person = AuthorizedPerson(
            person_id=f"person-{len(self.persons) + 1}",
            child_id=child_id,
            full_name=full_name,
            phone=phone,
            relationship=relationship,
            id_document=id_document,
        )
        self.persons.append(person)
        return person.person_id

    def list_authorized_persons(self, child_id):
        return sorted((p for p in self.persons if p.child_id == child_id), key=lambda p: p.full_name)


class FakeGroupRepository:
    def __init__(self, children: FakeChildRepository):
        self.rows: dict[str, Group] = {}
        self._children = children
        children.groups = self

    def add(self, group_id, section, *, capacity=15, educator_id=None, age_min=None, age_max=None, name=None):
        group = Group(
            group_id=group_id,
            name=name or group_id,
            section=section,
            capacity=capacity,
            assigned_educator_id=educator_id,
            age_min_months=age_min,
            age_max_months=age_max,
        )
        self.rows[group_id] = group
        return group

    def get_by_id(self, group_id):
        return self.rows.get(group_id)

    def list_groups(self, *, section=None):
        found = [g for g in self.rows.values() if section is None or g.section == section]
        return sorted(found, key=lambda g: (g.section.value, g.name))

    def count_children(self, group_id):
        return len(self._children.list_ids_in_group(group_id))

    def create_group(self, *, name, section, capacity, assigned_educator_id, age_min_months, age_max_months, description):
        group_id = f"group-{len(self.rows) + 1}"
        self.rows[group_id] = Group(
            group_id=group_id,
            name=name,
            section=section,
            capacity=capacity,
            assigned_educator_id=assigned_educator_id,
            age_min_months=age_min_months,
            age_max_months=age_max_months,
            description=description,
        )
        return group_id

    def set_educator(self, group_id, educator_id):
        if group_id not in self.rows:
            return False
        self.rows[group_id] = replace(self.rows[group_id], assigned_educator_id=educator_id)
        return True


class FakeParentRepository:
    def __init__(self):
        self.links: list[ParentChildRelation] = []

    def add(self, parent_id, child_id, *, primary=False):
        rel = ParentChildRelation(
            relation_id=f"rel-{len(self.links) + 1}",
            parent_id=parent_id,
            child_id=child_id,
            relationship="parent",
            is_primary_contact=primary,
        )
        self.links.append(rel)
        return rel

    def get_link(self, parent_id, child_id):
        return next((r for r in self.links if r.parent_id == parent_id and r.child_id == child_id), None)

    def create_link(self, *, parent_id, child_id, relationship, is_primary_contact):
        rel = ParentChildRelation(
            relation_id=f"rel-{len(self.links) + 1}",
            parent_id=parent_id,
            child_id=child_id,
            relationship=relationship,
            is_primary_contact=is_primary_contact,
        )
        self.links.append(rel)
        return rel.relation_id

    def delete_link(self, parent_id, child_id):
        rel = self.get_link(parent_id, child_id)
        if rel is None:
            return False
        self.links.remove(rel)
        return True

    def list_for_child(self, child_id):
        return sorted((r for r in self.links if r.child_id == child_id), key=lambda r: not r.is_primary_contact)

    def list_for_parent(self, parent_id):
        return [r for r in self.links if r.parent_id == parent_id]

    def list_child_ids_for_parent(self, parent_id):
        return [r.child_id for r in self.list_for_parent(parent_id)]


class FakeAttendanceRepository:
    def __init__(self):
        self.records: dict[tuple[str, date], DailyAttendance] = {}
        self.logs: list[ScanLog] = []

    def get_for_child_and_date(self, child_id, attendance_date):
        return self.records.get((child_id, attendance_date))

    def latest_scan(self, child_id):
        mine = [log for log in self.logs if log.child_id == child_id]
        return max(mine, key=lambda log: log.scan_time) if mine else None

    def add_scan_log(self, *, child_id, scan_type, scanned_by, scan_time):
        entry = ScanLog(
            log_id=f"log-{len(self.logs) + 1}",
            child_id=child_id,
            scan_type=scan_type,
            scanned_by=scanned_by,
            scan_time=scan_time,
        )
        self.logs.append(entry)
        return entry.log_id

    def _row(self, child_id, attendance_date):
        key = (child_id, attendance_date)
        if key not in self.records:
            self.records[key] = DailyAttendance(
                attendance_id=f"att-{len(self.records) + 1}",
                child_id=child_id,
                attendance_date=attendance_date,
            )
        return self.records[key]

    def upsert_scan(self, *, child_id, attendance_date, scan_type, at: time, scanned_by):
        row = self._row(child_id, attendance_date)
        if scan_type == ScanType.ARRIVAL:
            row = replace(row, arrival_time=at, arrival_scanned_by=scanned_by, is_present=True)
        else:
            row = replace(row, departure_time=at, departure_scanned_by=scanned_by, is_present=True)
        self.records[(child_id, attendance_date)] = row

    def upsert_absent(self, *, child_id, attendance_date, reason):
        row = self._row(child_id, attendance_date)
        self.records[(child_id, attendance_date)] = replace(
            row, is_present=False, absence_reason=reason, absence_notified=False
        )

    def list_for_date(self, attendance_date, child_ids=None):
        return [
            r
            for (cid, day), r in self.records.items()
            if day == attendance_date and (child_ids is None or cid in child_ids)
        ]

    def history(self, child_id, limit):
        mine = [r for (cid, _), r in self.records.items() if cid == child_id]
        return sorted(mine, key=lambda r: r.attendance_date, reverse=True)[:limit]


class FakeMessageRepository:
    def __init__(self):
        self.rows: dict[str, Message] = {}
        self.fail_for: set[str] = set()

    def create_message(self, *, sender_id, recipient_id, content, subject=None, child_id=None):
        if recipient_id in self.fail_for:
            raise RuntimeError(f"inbox of {recipient_id} unavailable")
        message_id = f"msg-{len(self.rows) + 1}"
        self.rows[message_id] = Message(
            message_id=message_id,
            sender_id=sender_id,
            recipient_id=recipient_id,
            content=content,
            subject=subject,
            child_id=child_id,
            created_at=datetime(2025, 3, 3, 9, 0, len(self.rows) % 60),
        )
        return message_id

    def get_by_id(self, message_id):
        return self.rows.get(message_id)

    def list_for_recipient(self, recipient_id, limit):
        found = [m for m in self.rows.values() if m.recipient_id == recipient_id]
        return sorted(found, key=lambda m: m.created_at, reverse=True)[:limit]

    def list_sent(self, sender_id, limit):
        found = [m for m in self.rows.values() if m.sender_id == sender_id]
        return sorted(found, key=lambda m: m.created_at, reverse=True)[:limit]

    def mark_read(self, message_id):
        if message_id not in self.rows:
            return False
        self.rows[message_id] = replace(self.rows[message_id], is_read=True)
        return True

    def count_unread(self, recipient_id):
        return sum(1 for m in self.rows.values() if m.recipient_id == recipient_id and not m.is_read)


class FakeOutboxRepository:
    def __init__(self, messages: Optional[FakeMessageRepository] = None):
        self.rows: dict[str, OutboxEntry] = {}
        self.messages = messages if messages is not None else FakeMessageRepository()
        # entries whose status update fails after the message insert
        self.fail_marking: set[str] = set()

    def enqueue(self, *, kind, report_id, drafts):
        ids = []
        for draft in drafts:
            entry_id = f"out-{len(self.rows) + 1}"
            self.rows[entry_id] = OutboxEntry(
                entry_id=entry_id,
                report_kind=kind,
                report_id=report_id,
                sender_id=draft.sender_id,
                recipient_id=draft.recipient_id,
                content=draft.content,
                subject=draft.subject,
                child_id=draft.child_id,
            )
            ids.append(entry_id)
        return ids

    def list_pending(self, *, ids=None, limit=100):
        found = [
            e
            for e in self.rows.values()
            if e.status == OutboxStatus.PENDING and (ids is None or e.entry_id in ids)
        ]
        return found[:limit]

    def deliver(self, entry, *, delivered_at):
        message_id = self.messages.create_message(
            sender_id=entry.sender_id,
            recipient_id=entry.recipient_id,
            content=entry.content,
            subject=entry.subject,
            child_id=entry.child_id,
        )
        if entry.entry_id in self.fail_marking:
            del self.messages.rows[message_id]
            raise RuntimeError(f"outbox row {entry.entry_id} locked")
        current = self.rows[entry.entry_id]
        self.rows[entry.entry_id] = replace(
            current, status=OutboxStatus.DELIVERED, message_id=message_id, attempts=current.attempts + 1
        )
        return message_id

    def mark_failed(self, entry_id, *, error):
        entry = self.rows[entry_id]
        self.rows[entry_id] = replace(entry, attempts=entry.attempts + 1, last_error=error)


class FakeReportRepository:
    def __init__(self, outbox: FakeOutboxRepository):
        self.daily: dict[str, DailyReport] = {}
        self.weekly: dict[str, WeeklyReport] = {}
        self.outbox = outbox
        self.decisions: list[tuple[ReportKind, str]] = []

    def get_daily(self, report_id):
        return self.daily.get(report_id)

    def find_daily(self, child_id, report_date):
        return next(
            (r for r in self.daily.values() if r.child_id == child_id and r.content.report_date == report_date),
            None,
        )

    def insert_daily(self, *, educator_id, content, state):
        report_id = f"daily-{len(self.daily) + 1}"
        self.daily[report_id] = DailyReport(report_id=report_id, educator_id=educator_id, content=content, state=state)
        return report_id

    def update_daily(self, report):
        self.daily[report.report_id] = report

    def get_weekly(self, report_id):
        return self.weekly.get(report_id)

    def find_weekly(self, child_id, week_start):
        return next(
            (r for r in self.weekly.values() if r.child_id == child_id and r.content.week_start_date == week_start),
            None,
        )

    def insert_weekly(self, *, educator_id, content, state):
        report_id = f"weekly-{len(self.weekly) + 1}"
        self.weekly[report_id] = WeeklyReport(report_id=report_id, educator_id=educator_id, content=content, state=state)
        return report_id

    def update_weekly(self, report):
        self.weekly[report.report_id] = report

    def set_media(self, kind, report_id, urls):
        if kind == ReportKind.DAILY:
            r = self.daily[report_id]
            self.daily[report_id] = replace(r, content=replace(r.content, photos=tuple(urls)))
        else:
            r = self.weekly[report_id]
            self.weekly[report_id] = replace(r, content=replace(r.content, media_files=tuple(urls)))

    def decide(self, kind, report_id, state, notifications):
        rows = self.daily if kind == ReportKind.DAILY else self.weekly
        if rows[report_id].state.status != ReportStatus.PENDING:
            return None
        self.decisions.append((kind, report_id))
        rows[report_id] = replace(rows[report_id], state=state)
        return self.outbox.enqueue(kind=kind, report_id=report_id, drafts=notifications)

    def list_reports(self, kind, *, status=None, child_ids=None, validated_only=False, limit=200):
        rows = self.daily.values() if kind == ReportKind.DAILY else self.weekly.values()
        found = [
            r
            for r in rows
            if (status is None or r.state.status == status)
            and (child_ids is None or r.child_id in child_ids)
            and (not validated_only or r.state.is_validated)
        ]
        return found[:limit]


def fake_repositories() -> Repositories:
    children = FakeChildRepository()
    messages = FakeMessageRepository()
    outbox = FakeOutboxRepository(messages)
    return Repositories(
        profiles=FakeProfileRepository(),
        children=children,
        groups=FakeGroupRepository(children),
        parents=FakeParentRepository(),
        attendance=FakeAttendanceRepository(),
        reports=FakeReportRepository(outbox),
        messages=messages,
        outbox=outbox,
    )


def seed_people(repos: Repositories) -> None:
    """Admin, secretary, one educator and two parents."""
    repos.profiles.add("admin", Role.ADMIN)
    repos.profiles.add("secretary", Role.SECRETARY)
    repos.profiles.add("educator", Role.EDUCATOR)
    repos.profiles.add("mum", Role.PARENT)
    repos.profiles.add("dad", Role.PARENT)
