from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .model import Message, OutboxEntry


class MessageRepository(Protocol):
    def create_message(
        self,
        *,
        sender_id: str,
        recipient_id: str,
        content: str,
        subject: Optional[str] = None,
        child_id: Optional[str] = None,
    ) -> str:
        raise NotImplementedError

    def get_by_id(self, message_id: str) -> Optional[Message]:
        raise NotImplementedError

    def list_for_recipient(self, recipient_id: str, limit: int) -> Sequence[Message]:
        raise NotImplementedError

    def list_sent(self, sender_id: str, limit: int) -> Sequence[Message]:
        raise NotImplementedError

    def mark_read(self, message_id: str) -> bool:
        raise NotImplementedError

    def count_unread(self, recipient_id: str) -> int:
        raise NotImplementedError


class OutboxRepository(Protocol):
    def list_pending(self, *, ids: Optional[Sequence[str]] = None, limit: int = 100) -> Sequence[OutboxEntry]:
        raise NotImplementedError

    def deliver(self, entry: OutboxEntry, *, delivered_at: datetime) -> str:
        """Write the inbox message and mark the entry delivered in one transaction.

        Returns the new message id.
        """
        raise NotImplementedError

    def mark_failed(self, entry_id: str, *, error: str) -> None:
        raise NotImplementedError
