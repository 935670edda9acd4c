from __future__ import annotations

from typing import Optional, Sequence

from ..children.repository import ChildRepository
from ..common.app_logger import get_logger
from ..common.validators import optional_text
from ..core.enums import STAFF_ROLES, Role
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..profiles.repository import ProfileRepository
from .model import ParentChildRelation
from .repository import ParentRepository

log = get_logger("parents")


class ParentService:
    """Use case: link parent profiles to children (admin / secretary)."""

    def __init__(self, relations: ParentRepository, profiles: ProfileRepository, children: ChildRepository):
        self._relations = relations
        self._profiles = profiles
        self._children = children

    def link(
        self,
        *,
        current_role: Role,
        parent_id: str,
        child_id: str,
        relationship: str = "",
        is_primary_contact: bool = False,
    ) -> str:
        if current_role not in STAFF_ROLES:
            raise AuthorizationError("Action réservée à l'administration")

        parent = self._profiles.get_by_id(parent_id)
        if not parent:
            raise NotFoundError("Parent introuvable")
        if parent.role != Role.PARENT:
            raise ValidationError("Ce profil n'est pas un compte parent")
        if not self._children.get_by_id(child_id):
            raise NotFoundError("Enfant introuvable")
        if self._relations.get_link(parent_id, child_id):
            raise ValidationError("Ce parent est déjà lié à cet enfant")

        relation_id = self._relations.create_link(
            parent_id=parent_id,
            child_id=child_id,
            relationship=optional_text(relationship) or "parent",
            is_primary_contact=bool(is_primary_contact),
        )
        log.info("parent %s linked to child %s", parent_id, child_id)
        return relation_id

    def unlink(self, *, current_role: Role, parent_id: str, child_id: str) -> None:
        if current_role not in STAFF_ROLES:
            raise AuthorizationError("Action réservée à l'administration")
        if not self._relations.delete_link(parent_id, child_id):
            raise NotFoundError("Lien parent/enfant introuvable")
        log.info("parent %s unlinked from child %s", parent_id, child_id)

    def parents_of(self, child_id: str) -> Sequence[ParentChildRelation]:
        return self._relations.list_for_child(child_id)

    def parent_ids_of(self, child_id: str) -> list[str]:
        return [r.parent_id for r in self._relations.list_for_child(child_id)]

    def children_of(self, parent_id: str) -> Sequence[ParentChildRelation]:
        return self._relations.list_for_parent(parent_id)

    def child_ids_of(self, parent_id: str) -> list[str]:
        return list(self._relations.list_child_ids_for_parent(parent_id))

    def primary_contact(self, child_id: str) -> Optional[ParentChildRelation]:
        for rel in self._relations.list_for_child(child_id):
            if rel.is_primary_contact:
                return rel
        return None
