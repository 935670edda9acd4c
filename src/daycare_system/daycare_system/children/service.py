from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable, Optional, Sequence

from ..common.app_logger import get_logger
from ..common.datetime_utils import age_in_months
from ..common.validators import optional_text, require_non_empty
from ..core.constants import DEFAULT_GROUP_CAPACITY
from ..core.enums import STAFF_ROLES, ChildStatus, Role, Section
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..core.sections import parse_section, section_info
from ..qr.code_generator import generate_unique_code
from .model import AuthorizedPerson, Child, Group, GroupView, Guardian
from .repository import ChildRepository, GroupRepository

log = get_logger("children")


@dataclass(frozen=True)
class NewChild:
    first_name: str
    last_name: str
    birth_date: date
    admission_date: date
    section: Optional[str]
    guardians: Sequence[Guardian]
    gender: Optional[str] = None
    status: ChildStatus = ChildStatus.ACTIVE
    medical_info: dict[str, Any] = field(default_factory=dict)
    behavior_notes: Optional[str] = None
    auto_assign_group: bool = True


@dataclass(frozen=True)
class AssignmentResult:
    added: tuple[str, ...]
    removed: tuple[str, ...]
    over_capacity: bool
    section_mismatch: tuple[str, ...] = ()


def _require_staff(current_role: Role) -> None:
    if current_role not in STAFF_ROLES:
        raise AuthorizationError("Action réservée à l'administration")


def _clean_guardians(guardians: Iterable[Guardian]) -> list[Guardian]:
    cleaned = []
    for g in guardians:
        name = (g.name or "").strip()
        phone = (g.phone or "").strip()
        if not name and not phone:
            continue
        cleaned.append(Guardian(name=name, phone=phone, relationship=optional_text(g.relationship), email=optional_text(g.email)))
    return cleaned


class GroupService:
    def __init__(self, groups: GroupRepository, children: ChildRepository):
        self._groups = groups
        self._children = children

    def create_group(
        self,
        *,
        current_role: Role,
        name: str,
        section: str,
        capacity: int = DEFAULT_GROUP_CAPACITY,
        assigned_educator_id: Optional[str] = None,
        description: str = "",
    ) -> str:
        _require_staff(current_role)
        name = require_non_empty(name, "Nom du groupe")
        sec = parse_section(section)
        if sec is None:
            raise ValidationError("Section invalide")
        if int(capacity) <= 0:
            raise ValidationError("La capacité doit être positive")

        info = section_info(sec)
        return self._groups.create_group(
            name=name,
            section=sec,
            capacity=int(capacity),
            assigned_educator_id=assigned_educator_id or None,
            age_min_months=info.age_min_months if info else None,
            age_max_months=info.age_max_months if info else None,
            description=optional_text(description),
        )

    def list_groups(self, *, section: Optional[Section] = None) -> list[GroupView]:
        return [
            GroupView(group=g, children_count=self._groups.count_children(g.group_id))
            for g in self._groups.list_groups(section=section)
        ]

    def get_group(self, group_id: str) -> Group:
        group = self._groups.get_by_id(group_id)
        if not group:
            raise NotFoundError("Groupe introuvable")
        return group

    def assign_educator(self, *, current_role: Role, group_id: str, educator_id: Optional[str]) -> None:
        _require_staff(current_role)
        if not self._groups.set_educator(group_id, educator_id or None):
            raise NotFoundError("Groupe introuvable")

    def assign_children(self, *, current_role: Role, group_id: str, child_ids: Sequence[str]) -> AssignmentResult:
        """Make the group's members exactly `child_ids`.

        Only the difference is written: one update clears the removed children,
        one sets the added ones.
        """
        _require_staff(current_role)
        group = self.get_group(group_id)

        wanted = list(dict.fromkeys(c for c in child_ids if c))
        current = set(self._children.list_ids_in_group(group_id))
        added = tuple(c for c in wanted if c not in current)
        removed = tuple(sorted(current - set(wanted)))

        if removed:
            self._children.set_group(removed, None)
        if added:
            self._children.set_group(added, group_id)

        mismatch = ()
        if added:
            mismatch = tuple(
                c.child_id
                for c in self._children.list_children(child_ids=list(added))
                if c.section is not None and c.section != group.section
            )

        over = len(wanted) > group.capacity
        if over:
            log.warning("group %s over capacity: %d/%d", group_id, len(wanted), group.capacity)
        log.info("group %s assignment: +%d -%d", group_id, len(added), len(removed))
        return AssignmentResult(added=added, removed=removed, over_capacity=over, section_mismatch=mismatch)

    def auto_assign(self, *, child_id: str, section: Optional[Section], birth_date: date, today: date) -> Optional[str]:
        """Put the child in the compatible group of its section with the most free places."""
        if section is None:
            return None

        age = age_in_months(birth_date, today)
        best: Optional[GroupView] = None
        for view in self.list_groups(section=section):
            g = view.group
            capacity = g.capacity or DEFAULT_GROUP_CAPACITY
            if view.children_count >= capacity:
                continue
            if g.age_min_months is not None and age < g.age_min_months:
                continue
            if g.age_max_months is not None and age > g.age_max_months:
                continue
            if best is None or (capacity - view.children_count) > (
                (best.group.capacity or DEFAULT_GROUP_CAPACITY) - best.children_count
            ):
                best = view

        if best is None:
            log.warning("no group with free places for section %s", section.value)
            return None

        self._children.set_group([child_id], best.group.group_id)
        log.info("child %s auto-assigned to group %s", child_id, best.group.name)
        return best.group.group_id


class ChildService:
    def __init__(self, children: ChildRepository, groups: GroupService, *, parent_child_ids=None):
        self._children = children
        self._groups = groups
        # callable(parent_id) -> ids; set by the container once the parents module exists
        self._parent_child_ids = parent_child_ids

    def enroll(self, *, current_role: Role, new: NewChild, today: Optional[date] = None) -> str:
        _require_staff(current_role)
        today = today or date.today()

        first_name = require_non_empty(new.first_name, "Prénom")
        last_name = require_non_empty(new.last_name, "Nom")
        if new.birth_date is None:
            raise ValidationError("Date de naissance obligatoire")
        if new.birth_date > today:
            raise ValidationError("La date de naissance ne peut pas être dans le futur")
        if new.admission_date is None:
            raise ValidationError("Date d'admission obligatoire")

        section = parse_section(new.section)
        if new.section and section is None:
            raise ValidationError("Section invalide")

        guardians = _clean_guardians(new.guardians)
        if not any(g.name and g.phone for g in guardians):
            raise ValidationError("Au moins un responsable avec nom et téléphone est requis")

        code = generate_unique_code(self._children.code_exists)
        child_id = self._children.create_child(
            first_name=first_name,
            last_name=last_name,
            birth_date=new.birth_date,
            admission_date=new.admission_date,
            section=section,
            status=new.status,
            code_qr_id=code,
            gender=optional_text(new.gender),
            guardians=guardians,
            medical_info=dict(new.medical_info or {}),
            behavior_notes=optional_text(new.behavior_notes),
        )
        log.info("child %s enrolled (section=%s, code=%s)", child_id, section.value if section else None, code)

        if new.auto_assign_group and new.status == ChildStatus.ACTIVE:
            self._groups.auto_assign(child_id=child_id, section=section, birth_date=new.birth_date, today=today)
        return child_id

    def get(self, child_id: str) -> Child:
        child = self._children.get_by_id(child_id)
        if not child:
            raise NotFoundError("Enfant introuvable")
        return child

    def update(self, *, current_role: Role, child_id: str, changes: dict[str, Any], today: Optional[date] = None) -> Child:
        _require_staff(current_role)
        child = self.get(child_id)
        patch = dict(changes)

        if "section" in patch:
            new_section = parse_section(patch["section"])
            if patch["section"] and new_section is None:
                raise ValidationError("Section invalide")
            patch["section"] = new_section
        if "status" in patch:
            try:
                patch["status"] = ChildStatus(patch["status"])
            except ValueError:
                raise ValidationError("Statut invalide")
        if "guardians" in patch:
            guardians = _clean_guardians(patch["guardians"])
            if not any(g.name and g.phone for g in guardians):
                raise ValidationError("Au moins un responsable avec nom et téléphone est requis")
            patch["guardians"] = guardians
        for key in ("first_name", "last_name"):
            if key in patch:
                patch[key] = require_non_empty(patch[key], "Nom" if key == "last_name" else "Prénom")

        section_changed = "section" in patch and patch["section"] != child.section
        if section_changed:
            patch["group_id"] = None

        self._children.update_child(child_id, patch)

        if section_changed:
            self._groups.auto_assign(
                child_id=child_id,
                section=patch["section"],
                birth_date=patch.get("birth_date") or child.birth_date,
                today=today or date.today(),
            )
        return self.get(child_id)

    def set_status(self, *, current_role: Role, child_id: str, status: ChildStatus) -> None:
        _require_staff(current_role)
        if not self._children.update_child(child_id, {"status": status}):
            raise NotFoundError("Enfant introuvable")
        log.info("child %s status -> %s", child_id, status.value)

    def list_children(self, *, status: Optional[ChildStatus] = None, section: Optional[Section] = None,
                      group_id: Optional[str] = None, child_ids: Optional[Sequence[str]] = None) -> Sequence[Child]:
        return self._children.list_children(status=status, section=section, group_id=group_id, child_ids=child_ids)

    def visible_child_ids(self, *, role: Role, profile_id: str) -> Optional[list[str]]:
        """Children a profile may see; None means "all" (staff)."""
        if role in STAFF_ROLES:
            return None
        if role == Role.EDUCATOR:
            return list(self._children.list_ids_for_educator(profile_id))
        if role == Role.PARENT and self._parent_child_ids is not None:
            return list(self._parent_child_ids(profile_id))
        return []

    def can_access(self, *, role: Role, profile_id: str, child_id: str) -> bool:
        visible = self.visible_child_ids(role=role, profile_id=profile_id)
        return visible is None or child_id in visible

    def add_authorized_person(
        self,
        *,
        current_role: Role,
        child_id: str,
        full_name: str,
        phone: str,
        relationship: str = "",
        id_document: str = "",
    ) -> str:
        _require_staff(current_role)
        self.get(child_id)
        return self._children.add_authorized_person(
            child_id=child_id,
            full_name=require_non_empty(full_name, "Nom complet"),
            phone=require_non_empty(phone, "Téléphone"),
            relationship=optional_text(relationship),
            id_document=optional_text(id_document),
        )

    def authorized_persons(self, child_id: str) -> Sequence[AuthorizedPerson]:
        return self._children.list_authorized_persons(child_id)
