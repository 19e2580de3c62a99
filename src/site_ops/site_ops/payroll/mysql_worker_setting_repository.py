from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import EmploymentType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_float, db_cursor, fetchall, fetchone
from .model import WorkerSalarySetting
from .repository import WorkerSettingRepository

_COLUMNS = """
    user_id, employment_type, daily_rate, tax_rate, national_pension_rate, health_insurance_rate,
    employment_insurance_rate, long_term_care_rate, effective_date
"""


def _row_to_setting(row: dict) -> WorkerSalarySetting:
    return WorkerSalarySetting(
        user_id=int(row["user_id"]),
        employment_type=EmploymentType(row["employment_type"]),
        daily_rate=int(row["daily_rate"]),
        tax_rate=as_float(row.get("tax_rate")),
        national_pension_rate=as_float(row.get("national_pension_rate")),
        health_insurance_rate=as_float(row.get("health_insurance_rate")),
        employment_insurance_rate=as_float(row.get("employment_insurance_rate")),
        long_term_care_rate=as_float(row.get("long_term_care_rate")),
        effective_date=row.get("effective_date"),
    )


class MySQLWorkerSettingRepository(WorkerSettingRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_for_user(self, user_id: int) -> Optional[WorkerSalarySetting]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM worker_salary_settings WHERE user_id=%s", (user_id,))
            row = fetchone(cur)
            return _row_to_setting(row) if row else None

    def upsert(self, setting: WorkerSalarySetting) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO worker_salary_settings(
                    user_id, employment_type, daily_rate, tax_rate, national_pension_rate,
                    health_insurance_rate, employment_insurance_rate, long_term_care_rate, effective_date)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    employment_type=VALUES(employment_type), daily_rate=VALUES(daily_rate),
                    tax_rate=VALUES(tax_rate), national_pension_rate=VALUES(national_pension_rate),
                    health_insurance_rate=VALUES(health_insurance_rate),
                    employment_insurance_rate=VALUES(employment_insurance_rate),
                    long_term_care_rate=VALUES(long_term_care_rate), effective_date=VALUES(effective_date)
                """,
                (
                    setting.user_id,
                    setting.employment_type.value,
                    setting.daily_rate,
                    setting.tax_rate,
                    setting.national_pension_rate,
                    setting.health_insurance_rate,
                    setting.employment_insurance_rate,
                    setting.long_term_care_rate,
                    setting.effective_date,
                ),
            )

    def list_all(self) -> Sequence[WorkerSalarySetting]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM worker_salary_settings ORDER BY user_id")
            return [_row_to_setting(r) for r in fetchall(cur)]
