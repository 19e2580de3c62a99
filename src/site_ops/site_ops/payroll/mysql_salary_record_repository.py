from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from ..core.enums import SalaryRecordStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_float, db_cursor, fetchall, in_clause
from .model import DailyPay, SalaryRecord
from .repository import SalaryRecordRepository

_SELECT = """
    SELECT r.salary_id, r.user_id, r.site_id, r.work_date, r.labor_hours, r.regular_hours,
           r.overtime_hours, r.base_pay, r.overtime_pay, r.total_pay, r.status,
           r.approved_by, r.approved_at, r.paid_at,
           u.full_name, s.name AS site_name
    FROM salary_records r
    JOIN users u ON u.user_id = r.user_id
    LEFT JOIN sites s ON s.site_id = r.site_id
"""


def _row_to_record(row: dict) -> SalaryRecord:
    return SalaryRecord(
        salary_id=int(row["salary_id"]),
        user_id=int(row["user_id"]),
        site_id=row.get("site_id"),
        work_date=row["work_date"],
        labor_hours=as_float(row.get("labor_hours")),
        regular_hours=as_float(row.get("regular_hours")),
        overtime_hours=as_float(row.get("overtime_hours")),
        base_pay=int(row.get("base_pay") or 0),
        overtime_pay=int(row.get("overtime_pay") or 0),
        total_pay=int(row.get("total_pay") or 0),
        status=SalaryRecordStatus(row["status"]),
        approved_by=row.get("approved_by"),
        approved_at=row.get("approved_at"),
        paid_at=row.get("paid_at"),
        full_name=row.get("full_name"),
        site_name=row.get("site_name"),
    )


class MySQLSalaryRecordRepository(SalaryRecordRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_records(
        self,
        *,
        date_from: date,
        date_to: date,
        user_id: Optional[int] = None,
        site_id: Optional[int] = None,
        status: Optional[SalaryRecordStatus] = None,
    ) -> Sequence[SalaryRecord]:
        where = ["r.work_date BETWEEN %s AND %s"]
        params: list = [date_from, date_to]
        if user_id is not None:
            where.append("r.user_id=%s")
            params.append(user_id)
        if site_id is not None:
            where.append("r.site_id=%s")
            params.append(site_id)
        if status is not None:
            where.append("r.status=%s")
            params.append(status.value)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _SELECT + " WHERE " + " AND ".join(where) + " ORDER BY r.work_date, u.full_name",
                tuple(params),
            )
            return [_row_to_record(r) for r in fetchall(cur)]

    def delete_calculated(self, *, date_from: date, date_to: date, user_ids: Sequence[int]) -> int:
        if not user_ids:
            return 0
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                DELETE FROM salary_records
                WHERE status=%s AND work_date BETWEEN %s AND %s AND user_id IN ({in_clause(user_ids)})
                """,
                (SalaryRecordStatus.CALCULATED.value, date_from, date_to, *user_ids),
            )
            return cur.rowcount

    def insert_many(self, pays: Sequence[DailyPay]) -> int:
        if not pays:
            return 0
        with db_cursor(self._conn_factory) as (_, cur):
            cur.executemany(
                """
                INSERT INTO salary_records(
                    user_id, site_id, work_date, labor_hours, regular_hours, overtime_hours,
                    base_pay, overtime_pay, total_pay, status)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                [
                    (
                        p.user_id,
                        p.site_id,
                        p.work_date,
                        p.labor_hours,
                        p.regular_hours,
                        p.overtime_hours,
                        p.base_pay,
                        p.overtime_pay,
                        p.total_pay,
                        SalaryRecordStatus.CALCULATED.value,
                    )
                    for p in pays
                ],
            )
            return len(pays)

    def set_status(
        self,
        salary_ids: Sequence[int],
        *,
        from_status: SalaryRecordStatus,
        to_status: SalaryRecordStatus,
        actor_id: Optional[int],
        at: datetime,
    ) -> int:
        if not salary_ids:
            return 0
        if to_status == SalaryRecordStatus.APPROVED:
            assignments = "status=%s, approved_by=%s, approved_at=%s"
            params: list = [to_status.value, actor_id, at]
        else:
            assignments = "status=%s, paid_at=%s"
            params = [to_status.value, at]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE salary_records SET {assignments} WHERE status=%s AND salary_id IN ({in_clause(salary_ids)})",
                (*params, from_status.value, *salary_ids),
            )
            return cur.rowcount
