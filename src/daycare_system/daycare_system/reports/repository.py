from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from ..core.enums import ReportKind, ReportStatus
from ..messaging.model import NotificationDraft
from .model import DailyContent, DailyReport, Report, ReviewState, WeeklyContent, WeeklyReport


class ReportRepository(Protocol):
    def get_daily(self, report_id: str) -> Optional[DailyReport]:
        raise NotImplementedError

    def find_daily(self, child_id: str, report_date: date) -> Optional[DailyReport]:
        raise NotImplementedError

    def insert_daily(self, *, educator_id: str, content: DailyContent, state: ReviewState) -> str:
        raise NotImplementedError

    def update_daily(self, report: DailyReport) -> None:
        raise NotImplementedError

    def get_weekly(self, report_id: str) -> Optional[WeeklyReport]:
        raise NotImplementedError

    def find_weekly(self, child_id: str, week_start: date) -> Optional[WeeklyReport]:
        raise NotImplementedError

    def insert_weekly(self, *, educator_id: str, content: WeeklyContent, state: ReviewState) -> str:
        raise NotImplementedError

    def update_weekly(self, report: WeeklyReport) -> None:
        raise NotImplementedError

    def set_media(self, kind: ReportKind, report_id: str, urls: Sequence[str]) -> None:
        raise NotImplementedError

    def decide(
        self,
        kind: ReportKind,
        report_id: str,
        state: ReviewState,
        notifications: Sequence[NotificationDraft],
    ) -> Optional[list[str]]:
        """Write the decision and queue its notifications in ONE transaction.

        Returns the ids of the queued outbox rows, or None when the report was
        no longer pending and nothing was written.
        """

        raise NotImplementedError

    def list_reports(
        self,
        kind: ReportKind,
        *,
        status: Optional[ReportStatus] = None,
        child_ids: Optional[Sequence[str]] = None,
        validated_only: bool = False,
        limit: int = 200,
    ) -> Sequence[Report]:
        raise NotImplementedError
