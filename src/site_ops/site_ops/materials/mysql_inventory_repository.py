from __future__ import annotations

from datetime import date, datetime, time
from typing import Callable, List, Optional, Sequence

from ..core.enums import MaterialTransactionType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_float, db_cursor, fetchall, fetchone
from .model import InventoryItem, MaterialTransaction, StockMovement
from .repository import InventoryRepository

_INVENTORY_SELECT = """
    SELECT i.inventory_id, i.site_id, s.name AS site_name, i.material_id, m.code AS material_code,
           m.name AS material_name, m.unit, m.unit_price, i.current_stock, i.minimum_stock,
           i.maximum_stock, i.storage_location, i.updated_at
    FROM site_inventory i
    JOIN sites s ON s.site_id = i.site_id
    JOIN materials m ON m.material_id = i.material_id
"""

_TX_SELECT = """
    SELECT t.transaction_id, t.site_id, t.material_id, t.transaction_type, t.quantity, t.stock_before,
           t.stock_after, t.reference_type, t.reference_id, t.notes, t.performed_by, t.created_at,
           m.name AS material_name, s.name AS site_name
    FROM material_transactions t
    JOIN materials m ON m.material_id = t.material_id
    JOIN sites s ON s.site_id = t.site_id
"""


def _row_to_item(row: dict) -> InventoryItem:
    return InventoryItem(
        inventory_id=int(row["inventory_id"]),
        site_id=int(row["site_id"]),
        site_name=row["site_name"],
        material_id=int(row["material_id"]),
        material_code=row["material_code"],
        material_name=row["material_name"],
        unit=row["unit"],
        current_stock=as_float(row.get("current_stock")),
        minimum_stock=as_float(row.get("minimum_stock")),
        maximum_stock=as_float(row["maximum_stock"]) if row.get("maximum_stock") is not None else None,
        storage_location=row.get("storage_location"),
        unit_price=int(row.get("unit_price") or 0),
        updated_at=row.get("updated_at"),
    )


def _row_to_tx(row: dict) -> MaterialTransaction:
    return MaterialTransaction(
        transaction_id=int(row["transaction_id"]),
        site_id=int(row["site_id"]),
        material_id=int(row["material_id"]),
        transaction_type=MaterialTransactionType(row["transaction_type"]),
        quantity=as_float(row.get("quantity")),
        stock_before=as_float(row.get("stock_before")),
        stock_after=as_float(row.get("stock_after")),
        reference_type=row.get("reference_type"),
        reference_id=row.get("reference_id"),
        notes=row.get("notes"),
        performed_by=row.get("performed_by"),
        created_at=row.get("created_at"),
        material_name=row.get("material_name"),
        site_name=row.get("site_name"),
    )


class MySQLInventoryRepository(InventoryRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_inventory(
        self, *, site_id: Optional[int] = None, search: Optional[str] = None
    ) -> Sequence[InventoryItem]:
        where, params = [], []
        if site_id is not None:
            where.append("i.site_id=%s")
            params.append(site_id)
        if search:
            like = f"%{search}%"
            where.append("(m.code LIKE %s OR m.name LIKE %s OR s.name LIKE %s)")
            params += [like, like, like]
        sql = _INVENTORY_SELECT
        if where:
            sql += " WHERE " + " AND ".join(where)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql + " ORDER BY s.name, m.code", tuple(params))
            return [_row_to_item(r) for r in fetchall(cur)]

    def get(self, site_id: int, material_id: int) -> Optional[InventoryItem]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_INVENTORY_SELECT + " WHERE i.site_id=%s AND i.material_id=%s", (site_id, material_id))
            row = fetchone(cur)
            return _row_to_item(row) if row else None

    def save_limits(
        self,
        *,
        site_id: int,
        material_id: int,
        minimum_stock: float,
        maximum_stock: Optional[float],
        storage_location: Optional[str],
    ) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO site_inventory(site_id, material_id, current_stock, minimum_stock, maximum_stock, storage_location)
                VALUES(%s,%s,0,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    minimum_stock=VALUES(minimum_stock), maximum_stock=VALUES(maximum_stock),
                    storage_location=VALUES(storage_location)
                """,
                (site_id, material_id, minimum_stock, maximum_stock, storage_location),
            )

    def post_transactions(
        self,
        movements: Sequence[StockMovement],
        *,
        next_stock: Callable[[StockMovement, float], float],
        performed_by: Optional[int],
    ) -> List[MaterialTransaction]:
        posted: List[MaterialTransaction] = []
        with db_cursor(self._conn_factory) as (_, cur):
            for m in movements:
                cur.execute(
                    "INSERT IGNORE INTO site_inventory(site_id, material_id, current_stock) VALUES(%s,%s,0)",
                    (m.site_id, m.material_id),
                )
                cur.execute(
                    "SELECT current_stock FROM site_inventory WHERE site_id=%s AND material_id=%s FOR UPDATE",
                    (m.site_id, m.material_id),
                )
                before = as_float(fetchone(cur)["current_stock"])
                after = next_stock(m, before)

                cur.execute(
                    "UPDATE site_inventory SET current_stock=%s WHERE site_id=%s AND material_id=%s",
                    (after, m.site_id, m.material_id),
                )
                cur.execute(
                    """
                    INSERT INTO material_transactions(
                        site_id, material_id, transaction_type, quantity, stock_before, stock_after,
                        reference_type, reference_id, notes, performed_by)
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        m.site_id,
                        m.material_id,
                        m.transaction_type.value,
                        m.quantity,
                        before,
                        after,
                        m.reference_type,
                        m.reference_id,
                        m.notes,
                        performed_by,
                    ),
                )
                posted.append(
                    MaterialTransaction(
                        transaction_id=int(cur.lastrowid),
                        site_id=m.site_id,
                        material_id=m.material_id,
                        transaction_type=m.transaction_type,
                        quantity=float(m.quantity),
                        stock_before=before,
                        stock_after=after,
                        reference_type=m.reference_type,
                        reference_id=m.reference_id,
                        notes=m.notes,
                        performed_by=performed_by,
                        created_at=datetime.now(),
                    )
                )
        return posted

    def list_transactions(
        self,
        *,
        site_id: Optional[int] = None,
        material_id: Optional[int] = None,
        transaction_type: Optional[MaterialTransactionType] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        limit: int = 100,
    ) -> Sequence[MaterialTransaction]:
        where, params = [], []
        if site_id is not None:
            where.append("t.site_id=%s")
            params.append(site_id)
        if material_id is not None:
            where.append("t.material_id=%s")
            params.append(material_id)
        if transaction_type is not None:
            where.append("t.transaction_type=%s")
            params.append(transaction_type.value)
        if date_from is not None:
            where.append("t.created_at >= %s")
            params.append(datetime.combine(date_from, time.min))
        if date_to is not None:
            where.append("t.created_at <= %s")
            params.append(datetime.combine(date_to, time.max))
        sql = _TX_SELECT
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY t.created_at DESC, t.transaction_id DESC LIMIT %s"
        params.append(int(limit))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_row_to_tx(r) for r in fetchall(cur)]
