from __future__ import annotations

from typing import Sequence

from ...core.constants import DEFAULT_DAILY_RATE, DEFAULT_OVERTIME_MULTIPLIER, HOURS_PER_LABOR_UNIT
from ...core.enums import SalaryRuleType
from ..model import DailyPay, DailyWork, SalaryRule
from ..money import won
from ..rules import select_rule
from .base import PayCalculator


class StandardPayCalculator(PayCalculator):
    """Standard rule set.

    - daily rule:  labor x base amount
    - hourly rule: regular x rate + overtime x rate x overtime multiplier
    - otherwise:   labor x default daily rate
    """

    def __init__(self, *, default_daily_rate: int = DEFAULT_DAILY_RATE):
        self._default_daily_rate = int(default_daily_rate)

    def daily_pay(self, work: DailyWork, rules: Sequence[SalaryRule]) -> DailyPay:
        labor = max(float(work.labor_hours), 0.0)
        actual = labor * HOURS_PER_LABOR_UNIT
        regular = min(actual, float(HOURS_PER_LABOR_UNIT))
        overtime = max(actual - HOURS_PER_LABOR_UNIT, 0.0)

        daily = select_rule(rules, SalaryRuleType.DAILY_RATE, site_id=work.site_id, role=work.role)
        hourly = select_rule(rules, SalaryRuleType.HOURLY_RATE, site_id=work.site_id, role=work.role)

        if daily:
            base_pay = won(labor * daily.base_amount)
            overtime_pay = 0
        elif hourly:
            ot_rule = select_rule(rules, SalaryRuleType.OVERTIME_MULTIPLIER, site_id=work.site_id, role=work.role)
            multiplier = float(ot_rule.multiplier) if ot_rule else DEFAULT_OVERTIME_MULTIPLIER
            base_pay = won(regular * hourly.base_amount)
            overtime_pay = won(overtime * hourly.base_amount * multiplier)
        else:
            base_pay = won(labor * self._default_daily_rate)
            overtime_pay = 0

        return DailyPay(
            user_id=work.user_id,
            work_date=work.work_date,
            site_id=work.site_id,
            labor_hours=round(labor, 2),
            regular_hours=round(regular, 2),
            overtime_hours=round(overtime, 2),
            base_pay=base_pay,
            overtime_pay=overtime_pay,
            total_pay=base_pay + overtime_pay,
        )
