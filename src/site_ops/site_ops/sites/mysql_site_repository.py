from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import SiteStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause, normalize_mysql_time
from .model import Site, SiteDraft
from .repository import SiteRepository

_COLUMNS = """
    site_id, name, address, description, status, start_date, end_date,
    manager_name, manager_phone, work_start_time, work_end_time, break_minutes,
    checkin_token, deleted_at, created_at
"""


def _row_to_site(row: dict) -> Site:
    return Site(
        site_id=int(row["site_id"]),
        name=row["name"],
        address=row.get("address") or "",
        description=row.get("description"),
        status=SiteStatus(row["status"]),
        start_date=row.get("start_date"),
        end_date=row.get("end_date"),
        manager_name=row.get("manager_name"),
        manager_phone=row.get("manager_phone"),
        work_start_time=normalize_mysql_time(row.get("work_start_time")),
        work_end_time=normalize_mysql_time(row.get("work_end_time")),
        break_minutes=int(row.get("break_minutes") or 0),
        checkin_token=row["checkin_token"],
        deleted_at=row.get("deleted_at"),
        created_at=row.get("created_at"),
    )


def _draft_params(draft: SiteDraft) -> tuple:
    return (
        draft.name,
        draft.address,
        draft.description,
        draft.status.value,
        draft.start_date,
        draft.end_date,
        draft.manager_name,
        draft.manager_phone,
        draft.work_start_time,
        draft.work_end_time,
        int(draft.break_minutes),
    )


class MySQLSiteRepository(SiteRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, site_id: int) -> Optional[Site]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM sites WHERE site_id=%s", (site_id,))
            row = fetchone(cur)
            return _row_to_site(row) if row else None

    def get_by_name(self, name: str) -> Optional[Site]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM sites WHERE name=%s", (name,))
            row = fetchone(cur)
            return _row_to_site(row) if row else None

    def get_by_checkin_token(self, token: str) -> Optional[Site]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM sites WHERE checkin_token=%s AND deleted_at IS NULL", (token,))
            row = fetchone(cur)
            return _row_to_site(row) if row else None

    def list_sites(
        self,
        *,
        search: Optional[str],
        status: Optional[SiteStatus],
        include_deleted: bool,
        offset: int,
        limit: int,
    ) -> tuple[Sequence[Site], int]:
        where = ["1=1"]
        params: list = []
        if not include_deleted:
            where.append("deleted_at IS NULL")
        if status:
            where.append("status=%s")
            params.append(status.value)
        if search:
            where.append("(name LIKE %s OR address LIKE %s)")
            params.extend([f"%{search}%", f"%{search}%"])
        where_sql = " AND ".join(where)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS total FROM sites WHERE {where_sql}", tuple(params))
            total = int((fetchone(cur) or {}).get("total") or 0)
            cur.execute(
                f"SELECT {_COLUMNS} FROM sites WHERE {where_sql} ORDER BY created_at DESC, site_id DESC LIMIT %s OFFSET %s",
                tuple(params) + (int(limit), int(offset)),
            )
            return [_row_to_site(r) for r in fetchall(cur)], total

    def list_by_ids(self, site_ids: Sequence[int]) -> Sequence[Site]:
        if not site_ids:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM sites WHERE site_id IN ({in_clause(site_ids)})", tuple(site_ids))
            return [_row_to_site(r) for r in fetchall(cur)]

    def create(self, draft: SiteDraft, *, checkin_token: str) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO sites(name, address, description, status, start_date, end_date,
                                  manager_name, manager_phone, work_start_time, work_end_time,
                                  break_minutes, checkin_token)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                _draft_params(draft) + (checkin_token,),
            )
            return int(cur.lastrowid)

    def update(self, site_id: int, draft: SiteDraft) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE sites
                SET name=%s, address=%s, description=%s, status=%s, start_date=%s, end_date=%s,
                    manager_name=%s, manager_phone=%s, work_start_time=%s, work_end_time=%s,
                    break_minutes=%s
                WHERE site_id=%s
                """,
                _draft_params(draft) + (site_id,),
            )
            return cur.rowcount > 0

    def update_status(self, site_ids: Sequence[int], status: SiteStatus) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE sites SET status=%s WHERE deleted_at IS NULL AND site_id IN ({in_clause(site_ids)})",
                (status.value, *site_ids),
            )
            return cur.rowcount

    def soft_delete(self, site_ids: Sequence[int], *, deleted_at: datetime) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE sites SET deleted_at=%s WHERE deleted_at IS NULL AND site_id IN ({in_clause(site_ids)})",
                (deleted_at, *site_ids),
            )
            return cur.rowcount

    def restore(self, site_ids: Sequence[int]) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE sites SET deleted_at=NULL WHERE deleted_at IS NOT NULL AND site_id IN ({in_clause(site_ids)})",
                tuple(site_ids),
            )
            return cur.rowcount

    def purge(self, site_ids: Sequence[int]) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"DELETE FROM sites WHERE deleted_at IS NOT NULL AND site_id IN ({in_clause(site_ids)})",
                tuple(site_ids),
            )
            return cur.rowcount
