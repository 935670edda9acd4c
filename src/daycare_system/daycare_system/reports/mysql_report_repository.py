from __future__ import annotations

from datetime import date
from typing import Any, Optional, Sequence

from ..core.enums import ReportKind, ReportStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import (
    db_cursor,
    dump_json,
    fetchall,
    fetchone,
    in_clause,
    load_json,
    new_id,
    normalize_mysql_time,
)
from ..messaging.model import NotificationDraft
from ..messaging.mysql_outbox_repository import enqueue
from . import mood
from .model import (
    DailyContent,
    DailyReport,
    Report,
    ReviewState,
    WeeklyContent,
    WeeklyReport,
    parse_health,
    parse_meal,
)
from .repository import ReportRepository

_STATE_COLUMNS = "status, is_validated, validated_by, validated_at, validation_notes, rejection_reason"

_DAILY_COLUMNS = (
    "id, child_id, educator_id, report_date, arrival_time, departure_time, health_status, health_notes, "
    "activities, nap_taken, nap_duration_minutes, breakfast_eaten, lunch_eaten, snack_eaten, "
    "hygiene_bath, hygiene_bowel_movement, hygiene_frequency_notes, mood, special_observations, photos, "
    + _STATE_COLUMNS
)

_WEEKLY_COLUMNS = (
    "id, child_id, educator_id, week_start_date, week_end_date, activities_learning, behavior_attitude, "
    "social_relations, emotion_management, meals, teacher_observations, media_files, "
    + _STATE_COLUMNS
)

_TABLES = {ReportKind.DAILY: "daily_reports", ReportKind.WEEKLY: "weekly_reports"}
_MEDIA_COLUMNS = {ReportKind.DAILY: "photos", ReportKind.WEEKLY: "media_files"}


def _str_list(value: Any) -> tuple[str, ...]:
    data = load_json(value, default=[])
    if isinstance(data, str):
        return (data,) if data else ()
    if not isinstance(data, list):
        return ()
    return tuple(str(v) for v in data if v not in (None, ""))


def _text(value: Any) -> Optional[str]:
    """Free-text columns that older rows stored as JSON strings."""
    data = load_json(value, default=None)
    if data is None:
        return None
    if isinstance(data, list):
        return ", ".join(str(v) for v in data)
    return str(data)


def _to_state(r: dict) -> ReviewState:
    return ReviewState(
        status=ReportStatus(r["status"]),
        is_validated=bool(r.get("is_validated")),
        validated_by=r.get("validated_by"),
        validated_at=r.get("validated_at"),
        validation_notes=r.get("validation_notes"),
        rejection_reason=r.get("rejection_reason"),
    )


def _state_params(s: ReviewState) -> tuple:
    return (s.status.value, 1 if s.is_validated else 0, s.validated_by, s.validated_at, s.validation_notes, s.rejection_reason)


def _to_daily(r: dict) -> DailyReport:
    content = DailyContent(
        child_id=r["child_id"],
        report_date=r["report_date"],
        arrival_time=normalize_mysql_time(r.get("arrival_time")),
        departure_time=normalize_mysql_time(r.get("departure_time")),
        health_status=parse_health(r.get("health_status")),
        health_notes=r.get("health_notes"),
        activities=_str_list(r.get("activities")),
        nap_taken=bool(r.get("nap_taken")),
        nap_duration_minutes=r.get("nap_duration_minutes"),
        breakfast_eaten=parse_meal(r.get("breakfast_eaten")),
        lunch_eaten=parse_meal(r.get("lunch_eaten")),
        snack_eaten=parse_meal(r.get("snack_eaten")),
        hygiene_bath=bool(r.get("hygiene_bath")),
        hygiene_bowel_movement=bool(r.get("hygiene_bowel_movement")),
        hygiene_frequency_notes=r.get("hygiene_frequency_notes"),
        mood=mood.migrate(load_json(r.get("mood"))),
        special_observations=r.get("special_observations"),
        photos=_str_list(r.get("photos")),
    )
    return DailyReport(report_id=r["id"], educator_id=r["educator_id"], content=content, state=_to_state(r))


def _daily_params(c: DailyContent) -> tuple:
    return (
        c.arrival_time,
        c.departure_time,
        c.health_status.value if c.health_status else None,
        c.health_notes,
        dump_json(list(c.activities)),
        1 if c.nap_taken else 0,
        c.nap_duration_minutes,
        c.breakfast_eaten.value if c.breakfast_eaten else None,
        c.lunch_eaten.value if c.lunch_eaten else None,
        c.snack_eaten.value if c.snack_eaten else None,
        1 if c.hygiene_bath else 0,
        1 if c.hygiene_bowel_movement else 0,
        c.hygiene_frequency_notes,
        dump_json(mood.to_document(c.mood)),
        c.special_observations,
        dump_json(list(c.photos)),
    )


def _to_weekly(r: dict) -> WeeklyReport:
    content = WeeklyContent(
        child_id=r["child_id"],
        week_start_date=r["week_start_date"],
        week_end_date=r["week_end_date"],
        activities_learning=_str_list(r.get("activities_learning")),
        behavior_attitude=_text(r.get("behavior_attitude")),
        social_relations=_text(r.get("social_relations")),
        emotion_management=_str_list(r.get("emotion_management")),
        meals=r.get("meals"),
        teacher_observations=r.get("teacher_observations"),
        media_files=_str_list(r.get("media_files")),
    )
    return WeeklyReport(report_id=r["id"], educator_id=r["educator_id"], content=content, state=_to_state(r))


def _weekly_params(c: WeeklyContent) -> tuple:
    return (
        dump_json(list(c.activities_learning)),
        dump_json(c.behavior_attitude),
        dump_json(c.social_relations),
        dump_json(list(c.emotion_management)),
        c.meals,
        c.teacher_observations,
        dump_json(list(c.media_files)),
    )


_DAILY_BODY = (
    "arrival_time=%s, departure_time=%s, health_status=%s, health_notes=%s, activities=%s, nap_taken=%s, "
    "nap_duration_minutes=%s, breakfast_eaten=%s, lunch_eaten=%s, snack_eaten=%s, hygiene_bath=%s, "
    "hygiene_bowel_movement=%s, hygiene_frequency_notes=%s, mood=%s, special_observations=%s, photos=%s"
)

_WEEKLY_BODY = (
    "activities_learning=%s, behavior_attitude=%s, social_relations=%s, emotion_management=%s, "
    "meals=%s, teacher_observations=%s, media_files=%s"
)

_STATE_BODY = (
    "status=%s, is_validated=%s, validated_by=%s, validated_at=%s, validation_notes=%s, rejection_reason=%s"
)


class MySQLReportRepository(ReportRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _one(self, sql: str, params: tuple) -> Optional[dict]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, params)
            return fetchone(cur)

    # daily

    def get_daily(self, report_id: str) -> Optional[DailyReport]:
        r = self._one(f"SELECT {_DAILY_COLUMNS} FROM daily_reports WHERE id=%s", (report_id,))
        return _to_daily(r) if r else None

    def find_daily(self, child_id: str, report_date: date) -> Optional[DailyReport]:
        r = self._one(
            f"SELECT {_DAILY_COLUMNS} FROM daily_reports WHERE child_id=%s AND report_date=%s",
            (child_id, report_date),
        )
        return _to_daily(r) if r else None

    def insert_daily(self, *, educator_id: str, content: DailyContent, state: ReviewState) -> str:
        report_id = new_id()
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"INSERT INTO daily_reports SET id=%s, child_id=%s, educator_id=%s, report_date=%s, "
                f"{_DAILY_BODY}, {_STATE_BODY}",
                (
                    report_id,
                    content.child_id,
                    educator_id,
                    content.report_date,
                    *_daily_params(content),
                    *_state_params(state),
                ),
            )
        return report_id

    def update_daily(self, report: DailyReport) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE daily_reports SET educator_id=%s, {_DAILY_BODY}, {_STATE_BODY} WHERE id=%s",
                (report.educator_id, *_daily_params(report.content), *_state_params(report.state), report.report_id),
            )

    # weekly

    def get_weekly(self, report_id: str) -> Optional[WeeklyReport]:
        r = self._one(f"SELECT {_WEEKLY_COLUMNS} FROM weekly_reports WHERE id=%s", (report_id,))
        return _to_weekly(r) if r else None

    def find_weekly(self, child_id: str, week_start: date) -> Optional[WeeklyReport]:
        r = self._one(
            f"SELECT {_WEEKLY_COLUMNS} FROM weekly_reports WHERE child_id=%s AND week_start_date=%s",
            (child_id, week_start),
        )
        return _to_weekly(r) if r else None

    def insert_weekly(self, *, educator_id: str, content: WeeklyContent, state: ReviewState) -> str:
        report_id = new_id()
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"INSERT INTO weekly_reports SET id=%s, child_id=%s, educator_id=%s, week_start_date=%s, "
                f"week_end_date=%s, {_WEEKLY_BODY}, {_STATE_BODY}",
                (
                    report_id,
                    content.child_id,
                    educator_id,
                    content.week_start_date,
                    content.week_end_date,
                    *_weekly_params(content),
                    *_state_params(state),
                ),
            )
        return report_id

    def update_weekly(self, report: WeeklyReport) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE weekly_reports SET educator_id=%s, week_end_date=%s, {_WEEKLY_BODY}, {_STATE_BODY} WHERE id=%s",
                (
                    report.educator_id,
                    report.content.week_end_date,
                    *_weekly_params(report.content),
                    *_state_params(report.state),
                    report.report_id,
                ),
            )

    # shared

    def set_media(self, kind: ReportKind, report_id: str, urls: Sequence[str]) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE {_TABLES[kind]} SET {_MEDIA_COLUMNS[kind]}=%s WHERE id=%s",
                (dump_json(list(urls)), report_id),
            )

    def decide(
        self,
        kind: ReportKind,
        report_id: str,
        state: ReviewState,
        notifications: Sequence[NotificationDraft],
    ) -> Optional[list[str]]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE {_TABLES[kind]} SET {_STATE_BODY} WHERE id=%s AND status=%s",
                (*_state_params(state), report_id, ReportStatus.PENDING.value),
            )
            if cur.rowcount == 0:
                return None
            return enqueue(cur, kind=kind, report_id=report_id, drafts=notifications)

    def list_reports(
        self,
        kind: ReportKind,
        *,
        status: Optional[ReportStatus] = None,
        child_ids: Optional[Sequence[str]] = None,
        validated_only: bool = False,
        limit: int = 200,
    ) -> Sequence[Report]:
        columns = _DAILY_COLUMNS if kind == ReportKind.DAILY else _WEEKLY_COLUMNS
        order = "report_date" if kind == ReportKind.DAILY else "week_start_date"
        where: list[str] = []
        params: list[Any] = []
        if status is not None:
            where.append("status=%s")
            params.append(status.value)
        if validated_only:
            where.append("is_validated=1")
        if child_ids is not None:
            if not child_ids:
                return []
            where.append(f"child_id IN ({in_clause(child_ids)})")
            params.extend(child_ids)

        sql = f"SELECT {columns} FROM {_TABLES[kind]}"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += f" ORDER BY {order} DESC LIMIT %s"
        params.append(int(limit))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            rows = fetchall(cur)
        convert = _to_daily if kind == ReportKind.DAILY else _to_weekly
        return [convert(r) for r in rows]
