from __future__ import annotations

from datetime import date, datetime, time
from typing import Optional, Sequence

from ..core.enums import ScanType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause, new_id, normalize_mysql_time
from .model import DailyAttendance, ScanLog
from .repository import AttendanceRepository

_COLUMNS = (
    "id, child_id, attendance_date, arrival_time, departure_time, arrival_scanned_by, "
    "departure_scanned_by, is_present, absence_reason, absence_notified"
)

# Column pairs written by a scan, keyed by type (never built from user input).
_SCAN_COLUMNS = {
    ScanType.ARRIVAL: ("arrival_time", "arrival_scanned_by"),
    ScanType.DEPARTURE: ("departure_time", "departure_scanned_by"),
}


def _to_attendance(r: dict) -> DailyAttendance:
    return DailyAttendance(
        attendance_id=r["id"],
        child_id=r["child_id"],
        attendance_date=r["attendance_date"],
        arrival_time=normalize_mysql_time(r.get("arrival_time")),
        departure_time=normalize_mysql_time(r.get("departure_time")),
        arrival_scanned_by=r.get("arrival_scanned_by"),
        departure_scanned_by=r.get("departure_scanned_by"),
        is_present=bool(r.get("is_present")),
        absence_reason=r.get("absence_reason"),
        absence_notified=bool(r.get("absence_notified")),
    )


def _to_scan(r: dict) -> ScanLog:
    return ScanLog(
        log_id=r["id"],
        child_id=r["child_id"],
        scan_type=ScanType(r["scan_type"]),
        scanned_by=r["scanned_by"],
        scan_time=r["scan_time"],
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_for_child_and_date(self, child_id: str, attendance_date: date) -> Optional[DailyAttendance]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM daily_attendance WHERE child_id=%s AND attendance_date=%s",
                (child_id, attendance_date),
            )
            r = fetchone(cur)
            return _to_attendance(r) if r else None

    def latest_scan(self, child_id: str) -> Optional[ScanLog]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT id, child_id, scan_type, scanned_by, scan_time
                FROM qr_scan_logs
                WHERE child_id=%s
                ORDER BY scan_time DESC
                LIMIT 1
                """,
                (child_id,),
            )
            r = fetchone(cur)
            return _to_scan(r) if r else None

    def add_scan_log(self, *, child_id: str, scan_type: ScanType, scanned_by: str, scan_time: datetime) -> str:
        log_id = new_id()
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO qr_scan_logs(id, child_id, scan_type, scanned_by, scan_time)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (log_id, child_id, scan_type.value, scanned_by, scan_time),
            )
        return log_id

    def upsert_scan(
        self,
        *,
        child_id: str,
        attendance_date: date,
        scan_type: ScanType,
        at: time,
        scanned_by: str,
    ) -> None:
        time_col, by_col = _SCAN_COLUMNS[scan_type]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                INSERT INTO daily_attendance(id, child_id, attendance_date, {time_col}, {by_col}, is_present)
                VALUES(%s,%s,%s,%s,%s,1)
                ON DUPLICATE KEY UPDATE
                    {time_col}=VALUES({time_col}),
                    {by_col}=VALUES({by_col}),
                    is_present=1
                """,
                (new_id(), child_id, attendance_date, at, scanned_by),
            )

    def upsert_absent(self, *, child_id: str, attendance_date: date, reason: Optional[str]) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO daily_attendance(id, child_id, attendance_date, is_present, absence_reason, absence_notified)
                VALUES(%s,%s,%s,0,%s,0)
                ON DUPLICATE KEY UPDATE
                    is_present=0,
                    absence_reason=VALUES(absence_reason),
                    absence_notified=0
                """,
                (new_id(), child_id, attendance_date, reason),
            )

    def list_for_date(self, attendance_date: date, child_ids: Optional[Sequence[str]] = None) -> Sequence[DailyAttendance]:
        sql = f"SELECT {_COLUMNS} FROM daily_attendance WHERE attendance_date=%s"
        params: list = [attendance_date]
        if child_ids is not None:
            if not child_ids:
                return []
            sql += f" AND child_id IN ({in_clause(child_ids)})"
            params.extend(child_ids)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_to_attendance(r) for r in fetchall(cur)]

    def history(self, child_id: str, limit: int) -> Sequence[DailyAttendance]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM daily_attendance
                WHERE child_id=%s
                ORDER BY attendance_date DESC
                LIMIT %s
                """,
                (child_id, int(limit)),
            )
            return [_to_attendance(r) for r in fetchall(cur)]
