from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Optional, Union

from ..core.enums import HealthStatus, MealPortion, ReportKind, ReportStatus

_LEGACY_HEALTH = {"well": "bien", "monitor": "surveiller", "sick": "malade"}
_LEGACY_MEALS = {"well": "bien_mange", "little": "peu_mange", "nothing": "rien_mange"}


def parse_health(value: Optional[str]) -> Optional[HealthStatus]:
    if not value:
        return None
    try:
        return HealthStatus(_LEGACY_HEALTH.get(value, value))
    except ValueError:
        return None


def parse_meal(value: Optional[str]) -> Optional[MealPortion]:
    if not value:
        return None
    try:
        return MealPortion(_LEGACY_MEALS.get(value, value))
    except ValueError:
        return None


@dataclass(frozen=True)
class ReviewState:
    """Workflow columns shared by daily and weekly reports."""

    status: ReportStatus = ReportStatus.DRAFT
    is_validated: bool = False
    validated_by: Optional[str] = None
    validated_at: Optional[datetime] = None
    validation_notes: Optional[str] = None
    rejection_reason: Optional[str] = None


@dataclass(frozen=True)
class DailyContent:
    child_id: str
    report_date: date
    arrival_time: Optional[time] = None
    departure_time: Optional[time] = None
    health_status: Optional[HealthStatus] = None
    health_notes: Optional[str] = None
    activities: tuple[str, ...] = ()
    nap_taken: bool = False
    nap_duration_minutes: Optional[int] = None
    breakfast_eaten: Optional[MealPortion] = None
    lunch_eaten: Optional[MealPortion] = None
    snack_eaten: Optional[MealPortion] = None
    hygiene_bath: bool = False
    hygiene_bowel_movement: bool = False
    hygiene_frequency_notes: Optional[str] = None
    mood: tuple[str, ...] = ()
    special_observations: Optional[str] = None
    photos: tuple[str, ...] = ()


@dataclass(frozen=True)
class WeeklyContent:
    """Bi-monthly report body (stored in `weekly_reports`)."""

    child_id: str
    week_start_date: date
    week_end_date: date
    activities_learning: tuple[str, ...] = ()
    behavior_attitude: Optional[str] = None
    social_relations: Optional[str] = None
    emotion_management: tuple[str, ...] = ()
    meals: Optional[str] = None
    teacher_observations: Optional[str] = None
    media_files: tuple[str, ...] = ()


@dataclass(frozen=True)
class DailyReport:
    report_id: str
    educator_id: str
    content: DailyContent
    state: ReviewState = field(default_factory=ReviewState)

    kind = ReportKind.DAILY

    @property
    def child_id(self) -> str:
        return self.content.child_id

    @property
    def media(self) -> tuple[str, ...]:
        return self.content.photos

    @property
    def period_label(self) -> str:
        return f"{self.content.report_date:%d/%m/%Y}"


@dataclass(frozen=True)
class WeeklyReport:
    report_id: str
    educator_id: str
    content: WeeklyContent
    state: ReviewState = field(default_factory=ReviewState)

    kind = ReportKind.WEEKLY

    @property
    def child_id(self) -> str:
        return self.content.child_id

    @property
    def media(self) -> tuple[str, ...]:
        return self.content.media_files

    @property
    def period_label(self) -> str:
        return f"{self.content.week_start_date:%d/%m/%Y} au {self.content.week_end_date:%d/%m/%Y}"


Report = Union[DailyReport, WeeklyReport]


@dataclass(frozen=True)
class UploadedFile:
    filename: str
    content_type: str
    data: bytes


@dataclass(frozen=True)
class SaveOutcome:
    report_id: str
    status: ReportStatus
    created: bool
    uploaded_urls: tuple[str, ...] = ()
    failed_uploads: tuple[str, ...] = ()


@dataclass(frozen=True)
class ValidationOutcome:
    report_id: str
    status: ReportStatus
    notified: int = 0
    warning: Optional[str] = None
