from __future__ import annotations

from datetime import date, datetime, time
from typing import Optional, Protocol, Sequence

from ..core.enums import ScanType
from .model import DailyAttendance, ScanLog


class AttendanceRepository(Protocol):
    def get_for_child_and_date(self, child_id: str, attendance_date: date) -> Optional[DailyAttendance]:
        raise NotImplementedError

    def latest_scan(self, child_id: str) -> Optional[ScanLog]:
        raise NotImplementedError

    def add_scan_log(self, *, child_id: str, scan_type: ScanType, scanned_by: str, scan_time: datetime) -> str:
        raise NotImplementedError

    def upsert_scan(
        self,
        *,
        child_id: str,
        attendance_date: date,
        scan_type: ScanType,
        at: time,
        scanned_by: str,
    ) -> None:
        """Set `<scan_type>_time` / `<scan_type>_scanned_by` and is_present on the (child, date) row."""

        raise NotImplementedError

    def upsert_absent(self, *, child_id: str, attendance_date: date, reason: Optional[str]) -> None:
        """Mark absent; arrival/departure times already on the row are kept."""

        raise NotImplementedError

    def list_for_date(self, attendance_date: date, child_ids: Optional[Sequence[str]] = None) -> Sequence[DailyAttendance]:
        raise NotImplementedError

    def history(self, child_id: str, limit: int) -> Sequence[DailyAttendance]:
        raise NotImplementedError
