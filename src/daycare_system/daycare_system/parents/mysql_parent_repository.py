from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, new_id
from .model import ParentChildRelation
from .repository import ParentRepository

_COLUMNS = "id, parent_id, child_id, relationship, is_primary_contact"


def _to_relation(row: dict) -> ParentChildRelation:
    return ParentChildRelation(
        relation_id=row["id"],
        parent_id=row["parent_id"],
        child_id=row["child_id"],
        relationship=row.get("relationship"),
        is_primary_contact=bool(row.get("is_primary_contact")),
    )


class MySQLParentRepository(ParentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_link(self, parent_id: str, child_id: str) -> Optional[ParentChildRelation]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM parent_children WHERE parent_id=%s AND child_id=%s",
                (parent_id, child_id),
            )
            row = fetchone(cur)
            return _to_relation(row) if row else None

    def create_link(
        self,
        *,
        parent_id: str,
        child_id: str,
        relationship: Optional[str],
        is_primary_contact: bool,
    ) -> str:
        relation_id = new_id()
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO parent_children(id, parent_id, child_id, relationship, is_primary_contact)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (relation_id, parent_id, child_id, relationship, 1 if is_primary_contact else 0),
            )
        return relation_id

    def delete_link(self, parent_id: str, child_id: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM parent_children WHERE parent_id=%s AND child_id=%s", (parent_id, child_id))
            return cur.rowcount > 0

    def list_for_child(self, child_id: str) -> Sequence[ParentChildRelation]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM parent_children WHERE child_id=%s ORDER BY is_primary_contact DESC",
                (child_id,),
            )
            return [_to_relation(r) for r in fetchall(cur)]

    def list_for_parent(self, parent_id: str) -> Sequence[ParentChildRelation]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM parent_children WHERE parent_id=%s", (parent_id,))
            return [_to_relation(r) for r in fetchall(cur)]

    def list_child_ids_for_parent(self, parent_id: str) -> Sequence[str]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT pc.child_id
                FROM parent_children pc
                JOIN children c ON c.id = pc.child_id
                WHERE pc.parent_id=%s
                """,
                (parent_id,),
            )
            return [r["child_id"] for r in fetchall(cur)]
