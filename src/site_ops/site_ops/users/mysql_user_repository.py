from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import User
from .repository import UserRepository

_COLUMNS = "user_id, full_name, username, password_hash, role, phone, email, partner_id, is_active"


def _row_to_user(row: dict) -> User:
    return User(
        user_id=int(row["user_id"]),
        full_name=row["full_name"],
        username=row["username"],
        password_hash=row["password_hash"],
        role=Role(row["role"]),
        phone=row.get("phone"),
        email=row.get("email"),
        partner_id=row.get("partner_id"),
        is_active=bool(row.get("is_active", True)),
    )


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, user_id: int) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM users WHERE user_id=%s", (user_id,))
            row = fetchone(cur)
            return _row_to_user(row) if row else None

    def get_by_username(self, username: str) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM users WHERE username=%s", (username,))
            row = fetchone(cur)
            return _row_to_user(row) if row else None

    def create_user(
        self,
        *,
        full_name: str,
        username: str,
        password_hash: str,
        role: Role,
        phone: Optional[str] = None,
        email: Optional[str] = None,
        partner_id: Optional[int] = None,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO users(full_name, username, password_hash, role, phone, email, partner_id, is_active)
                VALUES(%s,%s,%s,%s,%s,%s,%s,1)
                """,
                (full_name, username, password_hash, role.value, phone, email, partner_id),
            )
            return int(cur.lastrowid)

    def update_profile(
        self,
        user_id: int,
        *,
        full_name: str,
        phone: Optional[str],
        email: Optional[str],
        partner_id: Optional[int],
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE users SET full_name=%s, phone=%s, email=%s, partner_id=%s WHERE user_id=%s",
                (full_name, phone, email, partner_id, user_id),
            )
            return cur.rowcount > 0

    def update_role(self, user_id: int, role: Role) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE users SET role=%s WHERE user_id=%s", (role.value, user_id))
            return cur.rowcount > 0

    def set_active(self, user_id: int, *, is_active: bool) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE users SET is_active=%s WHERE user_id=%s", (1 if is_active else 0, user_id))
            return cur.rowcount > 0

    def update_password_hash(self, user_id: int, password_hash: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE users SET password_hash=%s WHERE user_id=%s", (password_hash, user_id))
            return cur.rowcount > 0

    def delete_by_id(self, user_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM users WHERE user_id=%s", (user_id,))
            return cur.rowcount > 0

    def list_users(
        self,
        *,
        search: Optional[str] = None,
        roles: Optional[Sequence[Role]] = None,
        active_only: bool = False,
    ) -> Sequence[User]:
        where = ["1=1"]
        params: list = []
        if search:
            where.append("(full_name LIKE %s OR username LIKE %s OR phone LIKE %s)")
            like = f"%{search}%"
            params.extend([like, like, like])
        if roles:
            where.append(f"role IN ({in_clause(roles)})")
            params.extend(r.value for r in roles)
        if active_only:
            where.append("is_active=1")

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM users WHERE {' AND '.join(where)} ORDER BY full_name",
                tuple(params),
            )
            return [_row_to_user(r) for r in fetchall(cur)]
