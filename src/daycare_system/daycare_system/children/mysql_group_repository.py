from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import Section
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, new_id
from .model import Group
from .repository import GroupRepository

_COLUMNS = "id, name, section, capacity, assigned_educator_id, age_min_months, age_max_months, description"


def _to_group(row: dict) -> Group:
    return Group(
        group_id=row["id"],
        name=row["name"],
        section=Section(row["section"]),
        capacity=int(row["capacity"]),
        assigned_educator_id=row.get("assigned_educator_id"),
        age_min_months=row.get("age_min_months"),
        age_max_months=row.get("age_max_months"),
        description=row.get("description"),
    )


class MySQLGroupRepository(GroupRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, group_id: str) -> Optional[Group]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM `groups` WHERE id=%s", (group_id,))
            row = fetchone(cur)
            return _to_group(row) if row else None

    def list_groups(self, *, section: Optional[Section] = None) -> Sequence[Group]:
        with db_cursor(self._conn_factory) as (_, cur):
            if section is None:
                cur.execute(f"SELECT {_COLUMNS} FROM `groups` ORDER BY section, name")
            else:
                cur.execute(f"SELECT {_COLUMNS} FROM `groups` WHERE section=%s ORDER BY name", (section.value,))
            return [_to_group(r) for r in fetchall(cur)]

    def count_children(self, group_id: str) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS n FROM children WHERE group_id=%s", (group_id,))
            row = fetchone(cur)
            return int(row["n"]) if row else 0

    def create_group(
        self,
        *,
        name: str,
        section: Section,
        capacity: int,
        assigned_educator_id: Optional[str],
        age_min_months: Optional[int],
        age_max_months: Optional[int],
        description: Optional[str],
    ) -> str:
        group_id = new_id()
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO `groups`(id, name, section, capacity, assigned_educator_id,
                                     age_min_months, age_max_months, description)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    group_id,
                    name,
                    section.value,
                    int(capacity),
                    assigned_educator_id,
                    age_min_months,
                    age_max_months,
                    description,
                ),
            )
        return group_id

    def set_educator(self, group_id: str, educator_id: Optional[str]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE `groups` SET assigned_educator_id=%s WHERE id=%s", (educator_id, group_id))
            return cur.rowcount > 0
