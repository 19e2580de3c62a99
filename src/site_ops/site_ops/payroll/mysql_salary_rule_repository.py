from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import SalaryRuleType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_float, db_cursor, fetchall, fetchone
from .model import SalaryRule, SalaryRuleDraft
from .repository import SalaryRuleRepository

_COLUMNS = "rule_id, rule_name, rule_type, base_amount, multiplier, site_id, role, is_active"


def _row_to_rule(row: dict) -> SalaryRule:
    return SalaryRule(
        rule_id=int(row["rule_id"]),
        rule_name=row["rule_name"],
        rule_type=SalaryRuleType(row["rule_type"]),
        base_amount=int(row.get("base_amount") or 0),
        multiplier=as_float(row.get("multiplier"), 1.0),
        site_id=row.get("site_id"),
        role=row.get("role") or None,
        is_active=bool(row.get("is_active", True)),
    )


class MySQLSalaryRuleRepository(SalaryRuleRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, rule_id: int) -> Optional[SalaryRule]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM salary_rules WHERE rule_id=%s", (rule_id,))
            row = fetchone(cur)
            return _row_to_rule(row) if row else None

    def list_rules(self, *, active_only: bool = False) -> Sequence[SalaryRule]:
        sql = f"SELECT {_COLUMNS} FROM salary_rules"
        if active_only:
            sql += " WHERE is_active=1"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql + " ORDER BY rule_type, rule_name")
            return [_row_to_rule(r) for r in fetchall(cur)]

    def create(self, draft: SalaryRuleDraft) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO salary_rules(rule_name, rule_type, base_amount, multiplier, site_id, role, is_active)
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    draft.rule_name,
                    draft.rule_type.value,
                    draft.base_amount,
                    draft.multiplier,
                    draft.site_id,
                    draft.role,
                    1 if draft.is_active else 0,
                ),
            )
            return int(cur.lastrowid)

    def update(self, rule_id: int, draft: SalaryRuleDraft) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE salary_rules
                SET rule_name=%s, rule_type=%s, base_amount=%s, multiplier=%s, site_id=%s, role=%s, is_active=%s
                WHERE rule_id=%s
                """,
                (
                    draft.rule_name,
                    draft.rule_type.value,
                    draft.base_amount,
                    draft.multiplier,
                    draft.site_id,
                    draft.role,
                    1 if draft.is_active else 0,
                    rule_id,
                ),
            )
            return cur.rowcount > 0

    def delete(self, rule_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM salary_rules WHERE rule_id=%s", (rule_id,))
            return cur.rowcount > 0
