from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ParentChildRelation:
    relation_id: str
    parent_id: str
    child_id: str
    relationship: Optional[str] = None
    is_primary_contact: bool = False
