from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import OutboxStatus, ReportKind


@dataclass(frozen=True)
class Message:
    message_id: str
    sender_id: str
    recipient_id: str
    content: str
    subject: Optional[str] = None
    child_id: Optional[str] = None
    is_read: bool = False
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class NotificationDraft:
    """A message to queue alongside a report decision."""

    recipient_id: str
    sender_id: str
    subject: str
    content: str
    child_id: Optional[str] = None


@dataclass(frozen=True)
class OutboxEntry:
    entry_id: str
    report_kind: ReportKind
    report_id: str
    sender_id: str
    recipient_id: str
    content: str
    subject: Optional[str] = None
    child_id: Optional[str] = None
    status: OutboxStatus = OutboxStatus.PENDING
    attempts: int = 0
    last_error: Optional[str] = None
    message_id: Optional[str] = None


@dataclass(frozen=True)
class DeliveryReport:
    delivered: int
    failed: int

    @property
    def ok(self) -> bool:
        return self.failed == 0
