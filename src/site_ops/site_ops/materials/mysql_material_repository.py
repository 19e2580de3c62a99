from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Material, MaterialDraft
from .repository import MaterialRepository

_COLUMNS = "material_id, code, name, specification, unit, unit_price, is_active"


def _row_to_material(row: dict) -> Material:
    return Material(
        material_id=int(row["material_id"]),
        code=row["code"],
        name=row["name"],
        unit=row["unit"],
        specification=row.get("specification"),
        unit_price=int(row.get("unit_price") or 0),
        is_active=bool(row.get("is_active", True)),
    )


class MySQLMaterialRepository(MaterialRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, material_id: int) -> Optional[Material]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM materials WHERE material_id=%s", (material_id,))
            row = fetchone(cur)
            return _row_to_material(row) if row else None

    def get_by_code(self, code: str) -> Optional[Material]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM materials WHERE code=%s", (code,))
            row = fetchone(cur)
            return _row_to_material(row) if row else None

    def list_materials(self, *, search: Optional[str] = None, active_only: bool = False) -> Sequence[Material]:
        where, params = [], []
        if search:
            like = f"%{search}%"
            where.append("(code LIKE %s OR name LIKE %s OR specification LIKE %s)")
            params += [like, like, like]
        if active_only:
            where.append("is_active=1")
        sql = f"SELECT {_COLUMNS} FROM materials"
        if where:
            sql += " WHERE " + " AND ".join(where)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql + " ORDER BY code", tuple(params))
            return [_row_to_material(r) for r in fetchall(cur)]

    def create(self, draft: MaterialDraft) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO materials(code, name, specification, unit, unit_price, is_active)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (draft.code, draft.name, draft.specification, draft.unit, draft.unit_price, 1 if draft.is_active else 0),
            )
            return int(cur.lastrowid)

    def update(self, material_id: int, draft: MaterialDraft) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE materials
                SET code=%s, name=%s, specification=%s, unit=%s, unit_price=%s, is_active=%s
                WHERE material_id=%s
                """,
                (
                    draft.code,
                    draft.name,
                    draft.specification,
                    draft.unit,
                    draft.unit_price,
                    1 if draft.is_active else 0,
                    material_id,
                ),
            )
            return cur.rowcount > 0

    def delete(self, material_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM materials WHERE material_id=%s", (material_id,))
            return cur.rowcount > 0

    def is_in_use(self, material_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT
                    (SELECT COUNT(*) FROM site_inventory WHERE material_id=%s) +
                    (SELECT COUNT(*) FROM material_request_items WHERE material_id=%s) AS refs
                """,
                (material_id, material_id),
            )
            row = fetchone(cur)
            return bool(row and int(row["refs"] or 0) > 0)
