from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, new_id
from .model import Message
from .repository import MessageRepository

_COLUMNS = "id, sender_id, recipient_id, child_id, subject, content, is_read, created_at"


def _to_message(r: dict) -> Message:
    return Message(
        message_id=r["id"],
        sender_id=r["sender_id"],
        recipient_id=r["recipient_id"],
        content=r["content"],
        subject=r.get("subject"),
        child_id=r.get("child_id"),
        is_read=bool(r.get("is_read")),
        created_at=r.get("created_at"),
    )


def insert_message(cur, *, sender_id: str, recipient_id: str, content: str,
                   subject: Optional[str], child_id: Optional[str]) -> str:
    message_id = new_id()
    cur.execute(
        """
        INSERT INTO messages(id, sender_id, recipient_id, child_id, subject, content)
        VALUES(%s,%s,%s,%s,%s,%s)
        """,
        (message_id, sender_id, recipient_id, child_id, subject, content),
    )
    return message_id


class MySQLMessageRepository(MessageRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create_message(
        self,
        *,
        sender_id: str,
        recipient_id: str,
        content: str,
        subject: Optional[str] = None,
        child_id: Optional[str] = None,
    ) -> str:
        with db_cursor(self._conn_factory) as (_, cur):
            return insert_message(
                cur,
                sender_id=sender_id,
                recipient_id=recipient_id,
                content=content,
                subject=subject,
                child_id=child_id,
            )

    def get_by_id(self, message_id: str) -> Optional[Message]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM messages WHERE id=%s", (message_id,))
            r = fetchone(cur)
            return _to_message(r) if r else None

    def list_for_recipient(self, recipient_id: str, limit: int) -> Sequence[Message]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM messages WHERE recipient_id=%s ORDER BY created_at DESC LIMIT %s",
                (recipient_id, int(limit)),
            )
            return [_to_message(r) for r in fetchall(cur)]

    def list_sent(self, sender_id: str, limit: int) -> Sequence[Message]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM messages WHERE sender_id=%s ORDER BY created_at DESC LIMIT %s",
                (sender_id, int(limit)),
            )
            return [_to_message(r) for r in fetchall(cur)]

    def mark_read(self, message_id: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE messages SET is_read=1 WHERE id=%s", (message_id,))
            return cur.rowcount > 0

    def count_unread(self, recipient_id: str) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS n FROM messages WHERE recipient_id=%s AND is_read=0", (recipient_id,))
            r = fetchone(cur)
            return int(r["n"]) if r else 0
