from datetime import date

import pytest

from src.site_ops.site_ops.core.enums import EmploymentType, SalaryRuleType
from src.site_ops.site_ops.payroll.calculator.standard_calculator import StandardPayCalculator
from src.site_ops.site_ops.payroll.deductions import calculate_deductions, default_rates
from src.site_ops.site_ops.payroll.model import DailyWork, SalaryRule, WorkerSalarySetting
from src.site_ops.site_ops.payroll.money import won
from src.site_ops.site_ops.payroll.rules import select_rule


def _work(labor: float, *, site_id=1, role="worker") -> DailyWork:
    return DailyWork(user_id=7, work_date=date(2025, 3, 3), site_id=site_id, labor_hours=labor, role=role)


def _rule(rule_id, rule_type=SalaryRuleType.DAILY_RATE, base_amount=100_000, **kw) -> SalaryRule:
    return SalaryRule(rule_id=rule_id, rule_name=f"r{rule_id}", rule_type=rule_type, base_amount=base_amount, **kw)


def test_won_rounds_half_up():
    assert won(0.5) == 1
    assert won(2.5) == 3
    assert won(1234.49) == 1234


def test_default_daily_rate_without_rules():
    pay = StandardPayCalculator().daily_pay(_work(1.0), [])

    assert pay.total_pay == 150_000
    assert pay.overtime_pay == 0


def test_daily_rule_pays_labor_times_amount():
    pay = StandardPayCalculator().daily_pay(_work(1.25), [_rule(1, base_amount=200_000)])

    assert pay.base_pay == 250_000
    assert pay.regular_hours == 8.0
    assert pay.overtime_hours == 2.0
    assert pay.overtime_pay == 0


def test_hourly_rule_with_overtime_multiplier():
    rules = [
        _rule(1, SalaryRuleType.HOURLY_RATE, base_amount=20_000),
        _rule(2, SalaryRuleType.OVERTIME_MULTIPLIER, base_amount=0, multiplier=2.0),
    ]

    pay = StandardPayCalculator().daily_pay(_work(1.25), rules)

    assert pay.base_pay == 160_000
    assert pay.overtime_pay == 80_000
    assert pay.total_pay == 240_000


def test_hourly_rule_defaults_to_one_and_a_half_overtime():
    pay = StandardPayCalculator().daily_pay(_work(1.25), [_rule(1, SalaryRuleType.HOURLY_RATE, base_amount=20_000)])

    assert pay.overtime_pay == 60_000


RULES = [
    _rule(1, base_amount=100_000),
    _rule(2, base_amount=120_000, site_id=5),
    _rule(3, base_amount=130_000, role="worker"),
    _rule(4, base_amount=140_000, site_id=5, role="worker"),
    _rule(5, base_amount=999_999, site_id=5, role="worker", is_active=False),
]


@pytest.mark.parametrize(
    "site_id,role,expected",
    [(5, "worker", 4), (6, "worker", 3), (5, "site_manager", 2), (6, "site_manager", 1), (None, None, 1)],
)
def test_most_specific_rule_wins(site_id, role, expected):
    assert select_rule(RULES, SalaryRuleType.DAILY_RATE, site_id=site_id, role=role).rule_id == expected


def test_newest_rule_wins_ties():
    rules = [_rule(1), _rule(9), _rule(4)]

    assert select_rule(rules, SalaryRuleType.DAILY_RATE, site_id=None, role=None).rule_id == 9
    assert select_rule(rules, SalaryRuleType.HOURLY_RATE, site_id=None, role=None) is None


def _setting(employment_type: EmploymentType, daily_rate: int = 200_000) -> WorkerSalarySetting:
    rates = default_rates(employment_type)
    return WorkerSalarySetting(
        user_id=7,
        employment_type=employment_type,
        daily_rate=daily_rate,
        tax_rate=rates.tax_rate,
        national_pension_rate=rates.national_pension_rate,
        health_insurance_rate=rates.health_insurance_rate,
        employment_insurance_rate=rates.employment_insurance_rate,
        long_term_care_rate=rates.long_term_care_rate,
    )


def test_regular_employee_deductions():
    d = calculate_deductions(gross=3_000_000, labor_hours=20, setting=_setting(EmploymentType.REGULAR_EMPLOYEE))

    assert d.income_tax == 99_000
    assert d.national_pension == 135_000
    assert d.health_insurance == 106_350
    assert d.employment_insurance == 27_000
    assert d.long_term_care == 488
    assert d.total == 367_838


def test_freelancer_pays_business_income_tax_only():
    d = calculate_deductions(gross=1_000_000, labor_hours=5, setting=_setting(EmploymentType.FREELANCER))

    assert d.income_tax == 33_000
    assert d.total == 33_000


def test_daily_worker_taxed_above_daily_allowance():
    d = calculate_deductions(gross=2_000_000, labor_hours=10, setting=_setting(EmploymentType.DAILY_WORKER))

    assert d.income_tax == 30_000


def test_daily_worker_at_allowance_pays_nothing():
    setting = _setting(EmploymentType.DAILY_WORKER, daily_rate=150_000)

    assert calculate_deductions(gross=1_500_000, labor_hours=10, setting=setting).total == 0
