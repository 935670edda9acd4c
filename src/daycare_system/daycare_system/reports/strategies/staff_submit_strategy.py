from __future__ import annotations

from typing import Optional

from ...core.enums import ReportStatus, Role
from .base import LifecycleDecision, ReportLifecycleStrategy


class StaffSubmitStrategy(ReportLifecycleStrategy):
    """Admin/secretary submission validates directly (no pending step)."""

    def decide_save(self, *, actor_role: Role, current: Optional[ReportStatus]) -> LifecycleDecision:
        return LifecycleDecision(status=ReportStatus.VALIDATED, is_validated=True, stamp_validator=True)
