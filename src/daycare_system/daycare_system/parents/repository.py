from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import ParentChildRelation


class ParentRepository(Protocol):
    def get_link(self, parent_id: str, child_id: str) -> Optional[ParentChildRelation]:
        raise NotImplementedError

    def create_link(
        self,
        *,
        parent_id: str,
        child_id: str,
        relationship: Optional[str],
        is_primary_contact: bool,
    ) -> str:
        raise NotImplementedError

    def delete_link(self, parent_id: str, child_id: str) -> bool:
        raise NotImplementedError

    def list_for_child(self, child_id: str) -> Sequence[ParentChildRelation]:
        raise NotImplementedError

    def list_for_parent(self, parent_id: str) -> Sequence[ParentChildRelation]:
        raise NotImplementedError

    def list_child_ids_for_parent(self, parent_id: str) -> Sequence[str]:
        raise NotImplementedError
