from __future__ import annotations

from datetime import date
from typing import Dict, Optional, Sequence

import mysql.connector
from mysql.connector import errorcode

from ..core.enums import AssignmentRole, AssignmentType
from ..core.exceptions import ValidationError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import Assignment, AssignmentView
from .repository import AssignmentRepository

_ASSIGNMENT_COLUMNS = """
    a.assignment_id, a.site_id, a.user_id, a.assignment_type, a.role, a.assigned_date,
    a.end_date, a.unassigned_date, a.is_active, a.notes
"""

_VIEW_SELECT = f"""
    SELECT {_ASSIGNMENT_COLUMNS}, u.full_name, u.phone, s.name AS site_name
    FROM site_assignments a
    JOIN users u ON u.user_id = a.user_id
    JOIN sites s ON s.site_id = a.site_id
"""


def _row_to_assignment(row: dict) -> Assignment:
    return Assignment(
        assignment_id=int(row["assignment_id"]),
        site_id=int(row["site_id"]),
        user_id=int(row["user_id"]),
        assignment_type=AssignmentType(row["assignment_type"]),
        role=AssignmentRole(row["role"]),
        assigned_date=row["assigned_date"],
        end_date=row.get("end_date"),
        unassigned_date=row.get("unassigned_date"),
        is_active=bool(row.get("is_active", True)),
        notes=row.get("notes"),
    )


def _row_to_view(row: dict) -> AssignmentView:
    return AssignmentView(
        assignment=_row_to_assignment(row),
        full_name=row["full_name"],
        site_name=row["site_name"],
        phone=row.get("phone"),
    )


class MySQLAssignmentRepository(AssignmentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, assignment_id: int) -> Optional[Assignment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_ASSIGNMENT_COLUMNS} FROM site_assignments a WHERE a.assignment_id=%s", (assignment_id,))
            row = fetchone(cur)
            return _row_to_assignment(row) if row else None

    def get_active(self, *, site_id: int, user_id: int) -> Optional[Assignment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_ASSIGNMENT_COLUMNS} FROM site_assignments a
                WHERE a.site_id=%s AND a.user_id=%s AND a.is_active=1
                LIMIT 1
                """,
                (site_id, user_id),
            )
            row = fetchone(cur)
            return _row_to_assignment(row) if row else None

    def create(
        self,
        *,
        site_id: int,
        user_id: int,
        assignment_type: AssignmentType,
        role: AssignmentRole,
        assigned_date: date,
        end_date: Optional[date],
        notes: Optional[str],
    ) -> int:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO site_assignments(site_id, user_id, assignment_type, role, assigned_date, end_date, notes, is_active)
                    VALUES(%s,%s,%s,%s,%s,%s,%s,1)
                    """,
                    (site_id, user_id, assignment_type.value, role.value, assigned_date, end_date, notes),
                )
                return int(cur.lastrowid)
        except mysql.connector.IntegrityError as e:
            # uq_assign_active: one active row per (site, user)
            if e.errno != errorcode.ER_DUP_ENTRY:
                raise
            raise ValidationError("User is already assigned to this site")

    def deactivate(self, assignment_id: int, *, unassigned_date: date) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE site_assignments SET is_active=0, unassigned_date=%s WHERE assignment_id=%s AND is_active=1",
                (unassigned_date, assignment_id),
            )
            return cur.rowcount > 0

    def update_role(self, assignment_id: int, role: AssignmentRole) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE site_assignments SET role=%s WHERE assignment_id=%s", (role.value, assignment_id))
            return cur.rowcount > 0

    def list_active_for_site(self, site_id: int) -> Sequence[AssignmentView]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_VIEW_SELECT + " WHERE a.site_id=%s AND a.is_active=1 ORDER BY u.full_name", (site_id,))
            return [_row_to_view(r) for r in fetchall(cur)]

    def list_active(self, *, site_ids: Optional[Sequence[int]] = None) -> Sequence[AssignmentView]:
        sql = _VIEW_SELECT + " WHERE a.is_active=1 AND s.deleted_at IS NULL"
        params: tuple = ()
        if site_ids:
            sql += f" AND a.site_id IN ({in_clause(site_ids)})"
            params = tuple(site_ids)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql + " ORDER BY u.full_name, s.name", params)
            return [_row_to_view(r) for r in fetchall(cur)]

    def history(
        self,
        *,
        site_id: Optional[int] = None,
        user_id: Optional[int] = None,
        assignment_type: Optional[AssignmentType] = None,
        is_active: Optional[bool] = None,
        limit: int = 200,
    ) -> Sequence[AssignmentView]:
        where = ["1=1"]
        params: list = []
        if site_id is not None:
            where.append("a.site_id=%s")
            params.append(site_id)
        if user_id is not None:
            where.append("a.user_id=%s")
            params.append(user_id)
        if assignment_type is not None:
            where.append("a.assignment_type=%s")
            params.append(assignment_type.value)
        if is_active is not None:
            where.append("a.is_active=%s")
            params.append(1 if is_active else 0)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _VIEW_SELECT
                + f" WHERE {' AND '.join(where)} ORDER BY a.assigned_date DESC, a.assignment_id DESC LIMIT %s",
                tuple(params) + (int(limit),),
            )
            return [_row_to_view(r) for r in fetchall(cur)]

    def count_active_for_sites(self, site_ids: Sequence[int]) -> Dict[int, int]:
        if not site_ids:
            return {}
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT site_id, COUNT(*) AS n FROM site_assignments
                WHERE is_active=1 AND site_id IN ({in_clause(site_ids)})
                GROUP BY site_id
                """,
                tuple(site_ids),
            )
            return {int(r["site_id"]): int(r["n"]) for r in fetchall(cur)}
