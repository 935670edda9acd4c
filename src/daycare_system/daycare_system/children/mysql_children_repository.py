from __future__ import annotations

from datetime import date
from typing import Any, Iterable, Optional, Sequence

from ..core.enums import ChildStatus, Section
from ..core.sections import parse_section
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json, fetchall, fetchone, in_clause, load_json, new_id
from .model import AuthorizedPerson, Child, Guardian
from .repository import ChildRepository

_COLUMNS = (
    "id, first_name, last_name, birth_date, admission_date, gender, section, group_id, status, "
    "photo_url, guardians, medical_info, behavior_notes, code_qr_id"
)

# Columns the service layer may patch through update_child.
UPDATABLE_COLUMNS = frozenset(
    {
        "first_name",
        "last_name",
        "birth_date",
        "admission_date",
        "gender",
        "section",
        "group_id",
        "status",
        "photo_url",
        "guardians",
        "medical_info",
        "behavior_notes",
    }
)


def _to_child(row: dict) -> Child:
    guardians = tuple(
        Guardian(
            name=g.get("name", ""),
            phone=g.get("phone", ""),
            relationship=g.get("relationship"),
            email=g.get("email"),
        )
        for g in (load_json(row.get("guardians"), default=[]) or [])
        if isinstance(g, dict)
    )
    medical = load_json(row.get("medical_info"), default={})
    return Child(
        child_id=row["id"],
        first_name=row["first_name"],
        last_name=row["last_name"],
        birth_date=row["birth_date"],
        admission_date=row["admission_date"],
        section=parse_section(row.get("section")),
        group_id=row.get("group_id"),
        status=ChildStatus(row["status"]),
        code_qr_id=row["code_qr_id"],
        gender=row.get("gender"),
        photo_url=row.get("photo_url"),
        guardians=guardians,
        medical_info=medical if isinstance(medical, dict) else {},
        behavior_notes=row.get("behavior_notes"),
    )


def _guardians_json(guardians: Sequence[Guardian]) -> Optional[str]:
    return dump_json(
        [
            {"name": g.name, "phone": g.phone, "relationship": g.relationship, "email": g.email}
            for g in guardians
        ]
    )


def _column_value(column: str, value: Any) -> Any:
    if column == "guardians":
        return _guardians_json(value or ())
    if column == "medical_info":
        return dump_json(value or {})
    if isinstance(value, (Section, ChildStatus)):
        return value.value
    return value


class MySQLChildRepository(ChildRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, child_id: str) -> Optional[Child]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM children WHERE id=%s", (child_id,))
            row = fetchone(cur)
            return _to_child(row) if row else None

    def get_by_code(self, code_qr_id: str) -> Optional[Child]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM children WHERE code_qr_id=%s ORDER BY created_at LIMIT 1",
                (code_qr_id,),
            )
            row = fetchone(cur)
            return _to_child(row) if row else None

    def code_exists(self, code_qr_id: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT id FROM children WHERE code_qr_id=%s LIMIT 1", (code_qr_id,))
            return fetchone(cur) is not None

    def list_children(
        self,
        *,
        status: Optional[ChildStatus] = None,
        section: Optional[Section] = None,
        group_id: Optional[str] = None,
        child_ids: Optional[Sequence[str]] = None,
    ) -> Sequence[Child]:
        where: list[str] = []
        params: list[Any] = []
        if status is not None:
            where.append("status=%s")
            params.append(status.value)
        if section is not None:
            where.append("section=%s")
            params.append(section.value)
        if group_id is not None:
            where.append("group_id=%s")
            params.append(group_id)
        if child_ids is not None:
            if not child_ids:
                return []
            where.append(f"id IN ({in_clause(child_ids)})")
            params.extend(child_ids)

        sql = f"SELECT {_COLUMNS} FROM children"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY last_name, first_name"

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_to_child(r) for r in fetchall(cur)]

    def create_child(
        self,
        *,
        first_name: str,
        last_name: str,
        birth_date: date,
        admission_date: date,
        section: Optional[Section],
        status: ChildStatus,
        code_qr_id: str,
        gender: Optional[str],
        guardians: Sequence[Guardian],
        medical_info: dict[str, Any],
        behavior_notes: Optional[str],
    ) -> str:
        child_id = new_id()
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO children(id, first_name, last_name, birth_date, admission_date, gender, section,
                                     status, guardians, medical_info, behavior_notes, code_qr_id)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    child_id,
                    first_name,
                    last_name,
                    birth_date,
                    admission_date,
                    gender,
                    section.value if section else None,
                    status.value,
                    _guardians_json(guardians),
                    dump_json(medical_info or {}),
                    behavior_notes,
                    code_qr_id,
                ),
            )
        return child_id

    def update_child(self, child_id: str, changes: dict[str, Any]) -> bool:
        columns = [c for c in changes if c in UPDATABLE_COLUMNS]
        if not columns:
            return False
        assignments = ", ".join(f"{c}=%s" for c in columns)
        params = [_column_value(c, changes[c]) for c in columns]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"UPDATE children SET {assignments} WHERE id=%s", (*params, child_id))
            return cur.rowcount > 0

    def list_ids_in_group(self, group_id: str) -> Sequence[str]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT id FROM children WHERE group_id=%s", (group_id,))
            return [r["id"] for r in fetchall(cur)]

    def set_group(self, child_ids: Iterable[str], group_id: Optional[str]) -> int:
        ids = list(child_ids)
        if not ids:
            return 0
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE children SET group_id=%s WHERE id IN ({in_clause(ids)})",
                (group_id, *ids),
            )
            return int(cur.rowcount)

    def list_ids_for_educator(self, educator_id: str) -> Sequence[str]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT c.id
                FROM children c
                JOIN `groups` g ON g.id = c.group_id
                WHERE g.assigned_educator_id=%s AND c.status='active'
                """,
                (educator_id,),
            )
            return [r["id"] for r in fetchall(cur)]

    def add_authorized_person(
        self,
        *,
        child_id: str,
        full_name: str,
        phone: str,
        relationship: Optional[str],
        id_document: Optional[str],
    ) -> str:
        person_id = new_id()
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO authorized_persons(id, child_id, full_name, relationship, phone, id_document)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (person_id, child_id, full_name, relationship, phone, id_document),
            )
        return person_id

    def list_authorized_persons(self, child_id: str) -> Sequence[AuthorizedPerson]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT id, child_id, full_name, relationship, phone, id_document
                FROM authorized_persons
                WHERE child_id=%s
                ORDER BY full_name
                """,
                (child_id,),
            )
            return [
                AuthorizedPerson(
                    person_id=r["id"],
                    child_id=r["child_id"],
                    full_name=r["full_name"],
                    phone=r["phone"],
                    relationship=r.get("relationship"),
                    id_document=r.get("id_document"),
                )
                for r in fetchall(cur)
            ]
