from __future__ import annotations

from typing import Optional

from ...core.enums import ReportStatus, Role
from .base import LifecycleDecision, ReportLifecycleStrategy


class DraftStrategy(ReportLifecycleStrategy):
    """Saved without submitting: always a draft, whoever writes it."""

    def decide_save(self, *, actor_role: Role, current: Optional[ReportStatus]) -> LifecycleDecision:
        return LifecycleDecision(status=ReportStatus.DRAFT)
