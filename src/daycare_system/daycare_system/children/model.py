from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional

from ..core.enums import ChildStatus, Section


@dataclass(frozen=True)
class Guardian:
    name: str
    phone: str
    relationship: Optional[str] = None
    email: Optional[str] = None


@dataclass(frozen=True)
class Child:
    """Domain entity: an enrolled (or waiting-list) child."""

    child_id: str
    first_name: str
    last_name: str
    birth_date: date
    admission_date: date
    section: Optional[Section]
    group_id: Optional[str]
    status: ChildStatus
    code_qr_id: str
    gender: Optional[str] = None
    photo_url: Optional[str] = None
    guardians: tuple[Guardian, ...] = ()
    medical_info: dict[str, Any] = field(default_factory=dict)
    behavior_notes: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True)
class Group:
    group_id: str
    name: str
    section: Section
    capacity: int
    assigned_educator_id: Optional[str] = None
    age_min_months: Optional[int] = None
    age_max_months: Optional[int] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class GroupView:
    """Read-model: a group with its current head count."""

    group: Group
    children_count: int

    @property
    def available(self) -> int:
        return self.group.capacity - self.children_count


@dataclass(frozen=True)
class AuthorizedPerson:
    person_id: str
    child_id: str
    full_name: str
    phone: str
    relationship: Optional[str] = None
    id_document: Optional[str] = None
