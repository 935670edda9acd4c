from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from ...core.enums import ReportStatus, Role


@dataclass(frozen=True)
class LifecycleDecision:
    status: ReportStatus
    is_validated: bool = False
    stamp_validator: bool = False


class ReportLifecycleStrategy(ABC):
    """Strategy Pattern: decide the status a report takes when it is saved."""

    @abstractmethod
    def decide_save(self, *, actor_role: Role, current: Optional[ReportStatus]) -> LifecycleDecision:
        raise NotImplementedError
