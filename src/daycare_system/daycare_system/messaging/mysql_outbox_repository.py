from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import OutboxStatus, ReportKind
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, in_clause, new_id
from .model import NotificationDraft, OutboxEntry
from .mysql_message_repository import insert_message
from .repository import OutboxRepository

_COLUMNS = (
    "id, report_kind, report_id, child_id, sender_id, recipient_id, subject, content, "
    "status, attempts, last_error, message_id"
)


def _to_entry(r: dict) -> OutboxEntry:
    return OutboxEntry(
        entry_id=r["id"],
        report_kind=ReportKind(r["report_kind"]),
        report_id=r["report_id"],
        sender_id=r["sender_id"],
        recipient_id=r["recipient_id"],
        content=r["content"],
        subject=r.get("subject"),
        child_id=r.get("child_id"),
        status=OutboxStatus(r["status"]),
        attempts=int(r.get("attempts") or 0),
        last_error=r.get("last_error"),
        message_id=r.get("message_id"),
    )


def enqueue(cur, *, kind: ReportKind, report_id: str, drafts: Sequence[NotificationDraft]) -> list[str]:
    """Insert outbox rows with the caller's cursor, inside the caller's transaction."""
    ids = []
    for d in drafts:
        entry_id = new_id()
        cur.execute(
            """
            INSERT INTO notification_outbox(id, report_kind, report_id, child_id, sender_id,
                                            recipient_id, subject, content, status)
            VALUES(%s,%s,%s,%s,%s,%s,%s,%s,'pending')
            """,
            (entry_id, kind.value, report_id, d.child_id, d.sender_id, d.recipient_id, d.subject, d.content),
        )
        ids.append(entry_id)
    return ids


class MySQLOutboxRepository(OutboxRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_pending(self, *, ids: Optional[Sequence[str]] = None, limit: int = 100) -> Sequence[OutboxEntry]:
        sql = f"SELECT {_COLUMNS} FROM notification_outbox WHERE status='pending'"
        params: list = []
        if ids is not None:
            if not ids:
                return []
            sql += f" AND id IN ({in_clause(ids)})"
            params.extend(ids)
        sql += " ORDER BY created_at LIMIT %s"
        params.append(int(limit))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_to_entry(r) for r in fetchall(cur)]

    def deliver(self, entry: OutboxEntry, *, delivered_at: datetime) -> str:
        with db_cursor(self._conn_factory) as (_, cur):
            message_id = insert_message(
                cur,
                sender_id=entry.sender_id,
                recipient_id=entry.recipient_id,
                content=entry.content,
                subject=entry.subject,
                child_id=entry.child_id,
            )
            cur.execute(
                """
                UPDATE notification_outbox
                SET status='delivered', message_id=%s, delivered_at=%s, attempts=attempts+1, last_error=NULL
                WHERE id=%s
                """,
                (message_id, delivered_at, entry.entry_id),
            )
        return message_id

    def mark_failed(self, entry_id: str, *, error: str) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE notification_outbox SET attempts=attempts+1, last_error=%s WHERE id=%s",
                (error[:500], entry_id),
            )
