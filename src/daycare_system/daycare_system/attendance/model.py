from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional

from ..children.model import Child
from ..core.enums import ScanType


@dataclass(frozen=True)
class DailyAttendance:
    """Domain entity: one row per (child, date)."""

    attendance_id: str
    child_id: str
    attendance_date: date
    arrival_time: Optional[time] = None
    departure_time: Optional[time] = None
    arrival_scanned_by: Optional[str] = None
    departure_scanned_by: Optional[str] = None
    is_present: bool = True
    absence_reason: Optional[str] = None
    absence_notified: bool = False


@dataclass(frozen=True)
class ScanLog:
    """Immutable audit entry for one badge scan."""

    log_id: str
    child_id: str
    scan_type: ScanType
    scanned_by: str
    scan_time: datetime


@dataclass(frozen=True)
class ScanCheck:
    """Result of reading a badge, before the scan is recorded."""

    child: Child
    suggested_action: ScanType
    last_scan: Optional[ScanLog] = None


@dataclass(frozen=True)
class DaySheetRow:
    child: Child
    attendance: Optional[DailyAttendance]

    @property
    def state(self) -> str:
        if self.attendance is None:
            return "not_scanned"
        return "present" if self.attendance.is_present else "absent"


@dataclass(frozen=True)
class DaySheet:
    day: date
    rows: tuple[DaySheetRow, ...]

    def count(self, state: str) -> int:
        return sum(1 for r in self.rows if r.state == state)

    @property
    def summary(self) -> dict:
        return {
            "total": len(self.rows),
            "present": self.count("present"),
            "absent": self.count("absent"),
            "not_scanned": self.count("not_scanned"),
        }
