from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import CompanyType, PartnerStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import PartnerCompany, PartnerDraft
from .repository import PartnerRepository

_COLUMNS = """
    partner_id, company_name, business_number, company_type, representative_name,
    contact_person, phone, email, address, status, contract_start_date, contract_end_date, notes
"""


def _row_to_partner(row: dict) -> PartnerCompany:
    return PartnerCompany(
        partner_id=int(row["partner_id"]),
        company_name=row["company_name"],
        business_number=row.get("business_number"),
        company_type=CompanyType(row["company_type"]),
        representative_name=row.get("representative_name"),
        contact_person=row.get("contact_person"),
        phone=row.get("phone"),
        email=row.get("email"),
        address=row.get("address"),
        status=PartnerStatus(row["status"]),
        contract_start_date=row.get("contract_start_date"),
        contract_end_date=row.get("contract_end_date"),
        notes=row.get("notes"),
    )


def _draft_params(d: PartnerDraft) -> tuple:
    return (
        d.company_name,
        d.business_number,
        d.company_type.value,
        d.representative_name,
        d.contact_person,
        d.phone,
        d.email,
        d.address,
        d.contract_start_date,
        d.contract_end_date,
        d.notes,
    )


class MySQLPartnerRepository(PartnerRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, partner_id: int) -> Optional[PartnerCompany]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM partner_companies WHERE partner_id=%s", (partner_id,))
            row = fetchone(cur)
            return _row_to_partner(row) if row else None

    def get_by_business_number(self, business_number: str) -> Optional[PartnerCompany]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM partner_companies WHERE business_number=%s", (business_number,))
            row = fetchone(cur)
            return _row_to_partner(row) if row else None

    def list_partners(self, *, search: Optional[str], status: Optional[PartnerStatus]) -> Sequence[PartnerCompany]:
        where = ["1=1"]
        params: list = []
        if search:
            like = f"%{search}%"
            where.append("(company_name LIKE %s OR business_number LIKE %s OR contact_person LIKE %s)")
            params.extend([like, like, like])
        if status:
            where.append("status=%s")
            params.append(status.value)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM partner_companies WHERE {' AND '.join(where)} ORDER BY company_name",
                tuple(params),
            )
            return [_row_to_partner(r) for r in fetchall(cur)]

    def create(self, draft: PartnerDraft) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO partner_companies(company_name, business_number, company_type, representative_name,
                                              contact_person, phone, email, address,
                                              contract_start_date, contract_end_date, notes, status)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,'active')
                """,
                _draft_params(draft),
            )
            return int(cur.lastrowid)

    def update(self, partner_id: int, draft: PartnerDraft) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE partner_companies
                SET company_name=%s, business_number=%s, company_type=%s, representative_name=%s,
                    contact_person=%s, phone=%s, email=%s, address=%s,
                    contract_start_date=%s, contract_end_date=%s, notes=%s
                WHERE partner_id=%s
                """,
                _draft_params(draft) + (partner_id,),
            )
            return cur.rowcount > 0

    def set_status(self, partner_id: int, status: PartnerStatus) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE partner_companies SET status=%s WHERE partner_id=%s", (status.value, partner_id))
            return cur.rowcount > 0

    def delete(self, partner_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM partner_companies WHERE partner_id=%s", (partner_id,))
            return cur.rowcount > 0
