from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, new_id
from .model import Profile
from .repository import ProfileRepository

_COLUMNS = "id, user_id, email, first_name, last_name, phone, role, password_hash, is_active"


def _to_profile(row: dict) -> Profile:
    return Profile(
        profile_id=row["id"],
        user_id=row["user_id"],
        email=row["email"],
        first_name=row["first_name"],
        last_name=row["last_name"],
        role=Role(row["role"]),
        password_hash=row.get("password_hash") or "",
        phone=row.get("phone"),
        is_active=bool(row.get("is_active", True)),
    )


class MySQLProfileRepository(ProfileRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, profile_id: str) -> Optional[Profile]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM profiles WHERE id=%s", (profile_id,))
            row = fetchone(cur)
            return _to_profile(row) if row else None

    def get_by_email(self, email: str) -> Optional[Profile]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM profiles WHERE email=%s", (email.lower(),))
            row = fetchone(cur)
            return _to_profile(row) if row else None

    def list_by_role(self, role: Role, *, active_only: bool = True) -> Sequence[Profile]:
        sql = f"SELECT {_COLUMNS} FROM profiles WHERE role=%s"
        if active_only:
            sql += " AND is_active=1"
        sql += " ORDER BY last_name, first_name"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, (role.value,))
            return [_to_profile(r) for r in fetchall(cur)]

    def create_profile(
        self,
        *,
        email: str,
        first_name: str,
        last_name: str,
        role: Role,
        password_hash: str,
        phone: Optional[str] = None,
    ) -> str:
        profile_id = new_id()
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO profiles(id, user_id, email, first_name, last_name, phone, role, password_hash, is_active)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,1)
                """,
                (profile_id, new_id(), email.lower(), first_name, last_name, phone, role.value, password_hash),
            )
        return profile_id

    def set_active(self, profile_id: str, *, is_active: bool) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE profiles SET is_active=%s WHERE id=%s", (1 if is_active else 0, profile_id))
            return cur.rowcount > 0
