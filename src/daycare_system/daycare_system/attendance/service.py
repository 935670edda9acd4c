from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Optional, Sequence

from ..children.repository import ChildRepository
from ..common.app_logger import get_logger
from ..common.validators import optional_text
from ..core.constants import DEFAULT_HISTORY_LIMIT, MIN_MINUTES_BETWEEN_SCANS
from ..core.enums import CARE_ROLES, ChildStatus, Role, ScanType
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..qr.resolver import QRResolver
from .model import DailyAttendance, DaySheet, DaySheetRow, ScanCheck
from .repository import AttendanceRepository

log = get_logger("attendance")


def _require_care_role(role: Role) -> None:
    if role not in CARE_ROLES:
        raise AuthorizationError("Action réservée au personnel")


class AttendanceService:
    """Use case: badge scans, absences and the daily attendance sheet."""

    def __init__(
        self,
        attendance: AttendanceRepository,
        children: ChildRepository,
        resolver: QRResolver,
        *,
        min_minutes_between_scans: int = MIN_MINUTES_BETWEEN_SCANS,
    ):
        self._attendance = attendance
        self._children = children
        self._resolver = resolver
        self._min_gap = timedelta(minutes=int(min_minutes_between_scans))

    def resolve_scan(self, payload: str, *, now: Optional[datetime] = None) -> ScanCheck:
        """Identify the child behind a badge and suggest arrival or departure.

        Arrival is suggested when the child has never been scanned or the last
        scan was a departure. Two scans closer than the minimum gap are refused.
        """
        now = now or datetime.now()

        child_id = self._resolver.resolve(payload)
        if not child_id:
            raise ValidationError("QR code invalide ou non reconnu")

        child = self._children.get_by_id(child_id)
        if not child:
            raise NotFoundError("Enfant introuvable")
        if child.status != ChildStatus.ACTIVE:
            raise ValidationError(f"{child.full_name} n'est pas actif")

        last = self._attendance.latest_scan(child.child_id)
        if last and now - last.scan_time < self._min_gap:
            waited = int((now - last.scan_time).total_seconds() // 60)
            raise ValidationError(
                f"Scan trop rapproché ({waited} min). Attendez au moins "
                f"{int(self._min_gap.total_seconds() // 60)} minutes entre deux scans."
            )

        suggested = ScanType.ARRIVAL if last is None or last.scan_type == ScanType.DEPARTURE else ScanType.DEPARTURE
        return ScanCheck(child=child, suggested_action=suggested, last_scan=last)

    def scan(
        self,
        *,
        actor_role: Role,
        actor_id: str,
        child_id: str,
        scan_type: ScanType,
        now: Optional[datetime] = None,
    ) -> DailyAttendance:
        _require_care_role(actor_role)
        now = now or datetime.now()

        child = self._children.get_by_id(child_id)
        if not child:
            raise NotFoundError("Enfant introuvable")

        self._attendance.add_scan_log(child_id=child_id, scan_type=scan_type, scanned_by=actor_id, scan_time=now)
        self._attendance.upsert_scan(
            child_id=child_id,
            attendance_date=now.date(),
            scan_type=scan_type,
            at=now.time().replace(microsecond=0),
            scanned_by=actor_id,
        )
        log.info("scan %s child=%s by=%s", scan_type.value, child_id, actor_id)

        record = self._attendance.get_for_child_and_date(child_id, now.date())
        if record is None:
            raise ValidationError("Enregistrement de présence introuvable après le scan")
        return record

    def mark_absent(
        self,
        *,
        actor_role: Role,
        child_id: str,
        day: date,
        reason: Optional[str] = None,
    ) -> DailyAttendance:
        _require_care_role(actor_role)
        if not self._children.get_by_id(child_id):
            raise NotFoundError("Enfant introuvable")

        self._attendance.upsert_absent(child_id=child_id, attendance_date=day, reason=optional_text(reason))
        log.info("child %s marked absent on %s", child_id, day.isoformat())

        record = self._attendance.get_for_child_and_date(child_id, day)
        if record is None:
            raise ValidationError("Enregistrement de présence introuvable")
        return record

    def day_sheet(self, day: date, child_ids: Optional[Sequence[str]] = None) -> DaySheet:
        children = self._children.list_children(status=ChildStatus.ACTIVE, child_ids=child_ids)
        records = {
            r.child_id: r
            for r in self._attendance.list_for_date(day, [c.child_id for c in children])
        } if children else {}
        rows = tuple(DaySheetRow(child=c, attendance=records.get(c.child_id)) for c in children)
        return DaySheet(day=day, rows=rows)

    def history(self, child_id: str, *, limit: int = DEFAULT_HISTORY_LIMIT) -> Sequence[DailyAttendance]:
        return self._attendance.history(child_id, limit)
