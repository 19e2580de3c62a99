from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import PunchStatus, RequestPriority
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import PunchDraft, PunchItem
from .repository import PunchRepository

_SELECT = """
    SELECT p.punch_id, p.site_id, p.document_id, p.location, p.issue, p.priority, p.status, p.assignee,
           p.due_date, p.photo_before_key, p.photo_after_key, p.created_by, p.resolved_at, p.created_at,
           s.name AS site_name
    FROM punch_items p
    LEFT JOIN sites s ON s.site_id = p.site_id
"""


def _row_to_item(row: dict) -> PunchItem:
    return PunchItem(
        punch_id=int(row["punch_id"]),
        location=row["location"],
        issue=row["issue"],
        priority=RequestPriority(row["priority"]),
        status=PunchStatus(row["status"]),
        created_by=int(row["created_by"]),
        site_id=row.get("site_id"),
        document_id=row.get("document_id"),
        assignee=row.get("assignee"),
        due_date=row.get("due_date"),
        photo_before_key=row.get("photo_before_key"),
        photo_after_key=row.get("photo_after_key"),
        resolved_at=row.get("resolved_at"),
        created_at=row.get("created_at"),
        site_name=row.get("site_name"),
    )


class MySQLPunchRepository(PunchRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, punch_id: int) -> Optional[PunchItem]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE p.punch_id=%s", (punch_id,))
            row = fetchone(cur)
            return _row_to_item(row) if row else None

    def list_items(
        self,
        *,
        status: Optional[PunchStatus] = None,
        site_id: Optional[int] = None,
        search: Optional[str] = None,
    ) -> Sequence[PunchItem]:
        where, params = [], []
        if status is not None:
            where.append("p.status=%s")
            params.append(status.value)
        if site_id is not None:
            where.append("p.site_id=%s")
            params.append(site_id)
        if search:
            like = f"%{search}%"
            where.append("(p.location LIKE %s OR p.issue LIKE %s)")
            params += [like, like]
        sql = _SELECT
        if where:
            sql += " WHERE " + " AND ".join(where)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql + " ORDER BY p.created_at DESC, p.punch_id DESC", tuple(params))
            return [_row_to_item(r) for r in fetchall(cur)]

    def create(self, draft: PunchDraft, *, created_by: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO punch_items(
                    site_id, document_id, location, issue, priority, status, assignee, due_date,
                    photo_before_key, created_by)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    draft.site_id,
                    draft.document_id,
                    draft.location,
                    draft.issue,
                    draft.priority.value,
                    PunchStatus.OPEN.value,
                    draft.assignee,
                    draft.due_date,
                    draft.photo_before_key,
                    created_by,
                ),
            )
            return int(cur.lastrowid)

    def update_photos(
        self, punch_id: int, *, photo_before_key: Optional[str], photo_after_key: Optional[str]
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE punch_items SET photo_before_key=%s, photo_after_key=%s WHERE punch_id=%s",
                (photo_before_key, photo_after_key, punch_id),
            )
            return cur.rowcount > 0

    def set_status(self, punch_id: int, *, status: PunchStatus, resolved_at: Optional[datetime]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE punch_items SET status=%s, resolved_at=%s WHERE punch_id=%s",
                (status.value, resolved_at, punch_id),
            )
            return cur.rowcount > 0

    def delete(self, punch_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM punch_items WHERE punch_id=%s", (punch_id,))
            return cur.rowcount > 0
