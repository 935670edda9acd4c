from __future__ import annotations

from dataclasses import dataclass

from ..core.enums import STAFF_ROLES, Role
from .strategies.base import ReportLifecycleStrategy
from .strategies.draft_strategy import DraftStrategy
from .strategies.staff_submit_strategy import StaffSubmitStrategy
from .strategies.submit_strategy import SubmitStrategy


@dataclass
class ReportLifecycleFactory:
    """Factory Pattern: choose the save strategy from the actor and the submit flag."""

    def for_save(self, *, actor_role: Role, submit: bool) -> ReportLifecycleStrategy:
        if not submit:
            return DraftStrategy()
        if actor_role in STAFF_ROLES:
            return StaffSubmitStrategy()
        return SubmitStrategy()
