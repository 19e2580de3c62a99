from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime
from typing import Dict, Optional, Sequence

from ..core.enums import MaterialRequestStatus, RequestPriority
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_float, db_cursor, fetchall, fetchone, in_clause
from .model import MaterialRequest, MaterialRequestItem, RequestItemDraft
from .repository import MaterialRequestRepository

_REQUEST_SELECT = """
    SELECT r.request_id, r.request_number, r.site_id, r.requested_by, r.priority, r.required_date,
           r.status, r.notes, r.approved_by, r.approved_at, r.approval_comment, r.created_at,
           s.name AS site_name, u.full_name AS requester_name
    FROM material_requests r
    JOIN sites s ON s.site_id = r.site_id
    LEFT JOIN users u ON u.user_id = r.requested_by
"""


def _row_to_item(row: dict) -> MaterialRequestItem:
    return MaterialRequestItem(
        item_id=int(row["item_id"]),
        request_id=int(row["request_id"]),
        material_id=int(row["material_id"]),
        requested_quantity=as_float(row.get("requested_quantity")),
        approved_quantity=as_float(row["approved_quantity"]) if row.get("approved_quantity") is not None else None,
        notes=row.get("notes"),
        material_name=row.get("material_name"),
        unit=row.get("unit"),
    )


def _row_to_request(row: dict, items: Sequence[MaterialRequestItem]) -> MaterialRequest:
    return MaterialRequest(
        request_id=int(row["request_id"]),
        request_number=row["request_number"],
        site_id=int(row["site_id"]),
        requested_by=int(row["requested_by"]),
        priority=RequestPriority(row["priority"]),
        status=MaterialRequestStatus(row["status"]),
        required_date=row.get("required_date"),
        notes=row.get("notes"),
        approved_by=row.get("approved_by"),
        approved_at=row.get("approved_at"),
        approval_comment=row.get("approval_comment"),
        created_at=row.get("created_at"),
        site_name=row.get("site_name"),
        requester_name=row.get("requester_name"),
        items=list(items),
    )


class MySQLMaterialRequestRepository(MaterialRequestRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _items_for(self, cur, request_ids: Sequence[int]) -> Dict[int, list]:
        grouped: Dict[int, list] = defaultdict(list)
        if not request_ids:
            return grouped
        cur.execute(
            f"""
            SELECT i.item_id, i.request_id, i.material_id, i.requested_quantity, i.approved_quantity, i.notes,
                   m.name AS material_name, m.unit
            FROM material_request_items i
            JOIN materials m ON m.material_id = i.material_id
            WHERE i.request_id IN ({in_clause(request_ids)})
            ORDER BY i.item_id
            """,
            tuple(request_ids),
        )
        for row in fetchall(cur):
            grouped[int(row["request_id"])].append(_row_to_item(row))
        return grouped

    def get_by_id(self, request_id: int) -> Optional[MaterialRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_REQUEST_SELECT + " WHERE r.request_id=%s", (request_id,))
            row = fetchone(cur)
            if not row:
                return None
            items = self._items_for(cur, [request_id])
            return _row_to_request(row, items.get(request_id, []))

    def list_requests(
        self,
        *,
        site_id: Optional[int] = None,
        status: Optional[MaterialRequestStatus] = None,
        priority: Optional[RequestPriority] = None,
        search: Optional[str] = None,
    ) -> Sequence[MaterialRequest]:
        where, params = [], []
        if site_id is not None:
            where.append("r.site_id=%s")
            params.append(site_id)
        if status is not None:
            where.append("r.status=%s")
            params.append(status.value)
        if priority is not None:
            where.append("r.priority=%s")
            params.append(priority.value)
        if search:
            like = f"%{search}%"
            where.append("(r.request_number LIKE %s OR r.notes LIKE %s)")
            params += [like, like]
        sql = _REQUEST_SELECT
        if where:
            sql += " WHERE " + " AND ".join(where)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql + " ORDER BY r.created_at DESC, r.request_id DESC", tuple(params))
            rows = fetchall(cur)
            items = self._items_for(cur, [int(r["request_id"]) for r in rows])
            return [_row_to_request(r, items.get(int(r["request_id"]), [])) for r in rows]

    def count_numbers_with_prefix(self, prefix: str) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS n FROM material_requests WHERE request_number LIKE %s", (prefix + "%",))
            row = fetchone(cur)
            return int(row["n"]) if row else 0

    def create(
        self,
        *,
        request_number: str,
        site_id: int,
        requested_by: int,
        priority: RequestPriority,
        required_date: Optional[date],
        notes: Optional[str],
        items: Sequence[RequestItemDraft],
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO material_requests(request_number, site_id, requested_by, priority, required_date, status, notes)
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    request_number,
                    site_id,
                    requested_by,
                    priority.value,
                    required_date,
                    MaterialRequestStatus.PENDING.value,
                    notes,
                ),
            )
            request_id = int(cur.lastrowid)
            cur.executemany(
                """
                INSERT INTO material_request_items(request_id, material_id, requested_quantity, notes)
                VALUES(%s,%s,%s,%s)
                """,
                [(request_id, i.material_id, i.requested_quantity, i.notes) for i in items],
            )
            return request_id

    def set_approved_quantities(self, request_id: int, quantities: Dict[int, float]) -> None:
        if not quantities:
            return
        with db_cursor(self._conn_factory) as (_, cur):
            cur.executemany(
                "UPDATE material_request_items SET approved_quantity=%s WHERE item_id=%s AND request_id=%s",
                [(qty, item_id, request_id) for item_id, qty in quantities.items()],
            )

    def update_status(
        self,
        request_ids: Sequence[int],
        *,
        from_status: MaterialRequestStatus,
        to_status: MaterialRequestStatus,
        actor_id: Optional[int] = None,
        comment: Optional[str] = None,
        at: Optional[datetime] = None,
    ) -> int:
        if not request_ids:
            return 0
        sets = ["status=%s"]
        params: list = [to_status.value]
        if to_status in (MaterialRequestStatus.APPROVED, MaterialRequestStatus.CANCELLED):
            sets += ["approved_by=%s", "approved_at=%s", "approval_comment=%s"]
            params += [actor_id, at, comment]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE material_requests SET {', '.join(sets)} "
                f"WHERE status=%s AND request_id IN ({in_clause(request_ids)})",
                (*params, from_status.value, *request_ids),
            )
            return cur.rowcount
