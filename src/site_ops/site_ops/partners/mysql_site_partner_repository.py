from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from ..core.enums import PartnerStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import SitePartner
from .repository import SitePartnerRepository

_SELECT = """
    SELECT sp.site_partner_id, sp.site_id, sp.partner_id, sp.contract_amount, sp.work_scope,
           sp.start_date, sp.end_date, sp.status, pc.company_name, s.name AS site_name
    FROM site_partners sp
    JOIN partner_companies pc ON pc.partner_id = sp.partner_id
    JOIN sites s ON s.site_id = sp.site_id
"""


def _row_to_link(row: dict) -> SitePartner:
    amount = row.get("contract_amount")
    return SitePartner(
        site_partner_id=int(row["site_partner_id"]),
        site_id=int(row["site_id"]),
        partner_id=int(row["partner_id"]),
        contract_amount=int(amount) if amount is not None else None,
        work_scope=row.get("work_scope"),
        start_date=row.get("start_date"),
        end_date=row.get("end_date"),
        status=PartnerStatus(row["status"]),
        company_name=row.get("company_name"),
        site_name=row.get("site_name"),
    )


class MySQLSitePartnerRepository(SitePartnerRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, site_partner_id: int) -> Optional[SitePartner]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE sp.site_partner_id=%s", (site_partner_id,))
            row = fetchone(cur)
            return _row_to_link(row) if row else None

    def find_active(self, *, site_id: int, partner_id: int) -> Optional[SitePartner]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _SELECT + " WHERE sp.site_id=%s AND sp.partner_id=%s AND sp.status='active' LIMIT 1",
                (site_id, partner_id),
            )
            row = fetchone(cur)
            return _row_to_link(row) if row else None

    def create(
        self,
        *,
        site_id: int,
        partner_id: int,
        contract_amount: Optional[int],
        work_scope: Optional[str],
        start_date: Optional[date],
        end_date: Optional[date],
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO site_partners(site_id, partner_id, contract_amount, work_scope, start_date, end_date, status)
                VALUES(%s,%s,%s,%s,%s,%s,'active')
                """,
                (site_id, partner_id, contract_amount, work_scope, start_date, end_date),
            )
            return int(cur.lastrowid)

    def set_status(self, site_partner_id: int, status: PartnerStatus) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE site_partners SET status=%s WHERE site_partner_id=%s", (status.value, site_partner_id)
            )
            return cur.rowcount > 0

    def list_for_site(self, site_id: int) -> Sequence[SitePartner]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE sp.site_id=%s ORDER BY pc.company_name", (site_id,))
            return [_row_to_link(r) for r in fetchall(cur)]

    def list_for_partner(self, partner_id: int) -> Sequence[SitePartner]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE sp.partner_id=%s ORDER BY sp.start_date DESC", (partner_id,))
            return [_row_to_link(r) for r in fetchall(cur)]

    def count_for_partner(self, partner_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT COUNT(*) AS n FROM site_partners WHERE partner_id=%s AND status='active'", (partner_id,)
            )
            return int((fetchone(cur) or {}).get("n") or 0)
