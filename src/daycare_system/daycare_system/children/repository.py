from __future__ import annotations

from datetime import date
from typing import Any, Iterable, Optional, Protocol, Sequence

from ..core.enums import ChildStatus, Section
from .model import AuthorizedPerson, Child, Group, Guardian


class ChildRepository(Protocol):
    def get_by_id(self, child_id: str) -> Optional[Child]:
        raise NotImplementedError

    def get_by_code(self, code_qr_id: str) -> Optional[Child]:
        raise NotImplementedError

    def code_exists(self, code_qr_id: str) -> bool:
        raise NotImplementedError

    def list_children(
        self,
        *,
        status: Optional[ChildStatus] = None,
        section: Optional[Section] = None,
        group_id: Optional[str] = None,
        child_ids: Optional[Sequence[str]] = None,
    ) -> Sequence[Child]:
        raise NotImplementedError

    def create_child(
        self,
        *,
        first_name: str,
        last_name: str,
        birth_date: date,
        admission_date: date,
        section: Optional[Section],
        status: ChildStatus,
        code_qr_id: str,
        gender: Optional[str],
        guardians: Sequence[Guardian],
        medical_info: dict[str, Any],
        behavior_notes: Optional[str],
    ) -> str:
        raise NotImplementedError

    def update_child(self, child_id: str, changes: dict[str, Any]) -> bool:
        """Patch the given columns (already validated by the service)."""

        raise NotImplementedError

    def list_ids_in_group(self, group_id: str) -> Sequence[str]:
        raise NotImplementedError

    def set_group(self, child_ids: Iterable[str], group_id: Optional[str]) -> int:
        """Set (or clear, with None) group_id on exactly the given children."""

        raise NotImplementedError

    def list_ids_for_educator(self, educator_id: str) -> Sequence[str]:
        raise NotImplementedError

    def add_authorized_person(
        self,
        *,
        child_id: str,
        full_name: str,
        phone: str,
        relationship: Optional[str],
        id_document: Optional[str],
    ) -> str:
        raise NotImplementedError

    def list_authorized_persons(self, child_id: str) -> Sequence[AuthorizedPerson]:
        raise NotImplementedError


class GroupRepository(Protocol):
    def get_by_id(self, group_id: str) -> Optional[Group]:
        raise NotImplementedError

    def list_groups(self, *, section: Optional[Section] = None) -> Sequence[Group]:
        raise NotImplementedError

    def count_children(self, group_id: str) -> int:
        raise NotImplementedError

    def create_group(
        self,
        *,
        name: str,
        section: Section,
        capacity: int,
        assigned_educator_id: Optional[str],
        age_min_months: Optional[int],
        age_max_months: Optional[int],
        description: Optional[str],
    ) -> str:
        raise NotImplementedError

    def set_educator(self, group_id: str, educator_id: Optional[str]) -> bool:
        raise NotImplementedError
