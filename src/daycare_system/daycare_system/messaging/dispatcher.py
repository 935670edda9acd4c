from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional, Sequence

from ..common.app_logger import get_logger
from .model import DeliveryReport, OutboxEntry
from .repository import OutboxRepository

log = get_logger("messaging.dispatcher")


class NotificationDispatcher:
    """Deliver queued report notifications as inbox messages.

    An entry turns `delivered` in the same transaction that writes its message,
    so a failed delivery stays `pending` and is picked up by `deliver_pending`.
    """

    def __init__(
        self,
        outbox: OutboxRepository,
        *,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._outbox = outbox
        self._clock = clock

    def deliver(self, entry_ids: Sequence[str]) -> DeliveryReport:
        if not entry_ids:
            return DeliveryReport(delivered=0, failed=0)
        return self._deliver_all(self._outbox.list_pending(ids=list(entry_ids), limit=len(entry_ids)))

    def deliver_pending(self, *, limit: int = 100) -> DeliveryReport:
        return self._deliver_all(self._outbox.list_pending(limit=limit))

    def _deliver_all(self, entries: Sequence[OutboxEntry]) -> DeliveryReport:
        delivered = failed = 0
        for entry in entries:
            error = self._deliver_one(entry)
            if error is None:
                delivered += 1
            else:
                failed += 1
        if failed:
            log.warning("notification delivery: %d delivered, %d failed", delivered, failed)
        return DeliveryReport(delivered=delivered, failed=failed)

    def _deliver_one(self, entry: OutboxEntry) -> Optional[str]:
        try:
            self._outbox.deliver(entry, delivered_at=self._clock())
            return None
        except Exception as exc:
            log.error("outbox entry %s not delivered", entry.entry_id, exc_info=True)
            try:
                self._outbox.mark_failed(entry.entry_id, error=str(exc) or exc.__class__.__name__)
            except Exception:
                log.exception("could not record failure for outbox entry %s", entry.entry_id)
            return str(exc) or exc.__class__.__name__
