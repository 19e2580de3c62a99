"""Payroll deductions by employment type.

Rates are percentages. Regular employees carry the four social insurances
plus income tax; freelancers pay business income tax only; daily workers pay
tax only on wages above the tax-free daily allowance.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..core.constants import DAILY_WORKER_TAX_FREE_DAILY
from ..core.enums import EmploymentType
from .model import DeductionBreakdown, WorkerSalarySetting
from .money import won


@dataclass(frozen=True)
class RateSet:
    tax_rate: float
    national_pension_rate: float = 0.0
    health_insurance_rate: float = 0.0
    employment_insurance_rate: float = 0.0
    long_term_care_rate: float = 0.0


DEFAULT_RATES = {
    EmploymentType.REGULAR_EMPLOYEE: RateSet(
        tax_rate=3.3,
        national_pension_rate=4.5,
        health_insurance_rate=3.545,
        employment_insurance_rate=0.9,
        long_term_care_rate=0.4591,
    ),
    EmploymentType.FREELANCER: RateSet(tax_rate=3.3),
    EmploymentType.DAILY_WORKER: RateSet(tax_rate=6.0),
}


def default_rates(employment_type: EmploymentType) -> RateSet:
    return DEFAULT_RATES[employment_type]


def calculate_deductions(*, gross: int, labor_hours: float, setting: WorkerSalarySetting) -> DeductionBreakdown:
    gross = max(int(gross), 0)

    if setting.employment_type == EmploymentType.REGULAR_EMPLOYEE:
        return DeductionBreakdown(
            income_tax=won(gross * setting.tax_rate / 100),
            national_pension=won(gross * setting.national_pension_rate / 100),
            health_insurance=won(gross * setting.health_insurance_rate / 100),
            employment_insurance=won(gross * setting.employment_insurance_rate / 100),
            long_term_care=won(gross * (setting.health_insurance_rate / 100) * (setting.long_term_care_rate / 100)),
        )

    if setting.employment_type == EmploymentType.FREELANCER:
        return DeductionBreakdown(income_tax=won(gross * setting.tax_rate / 100))

    if setting.daily_rate > DAILY_WORKER_TAX_FREE_DAILY:
        taxable = max(gross - DAILY_WORKER_TAX_FREE_DAILY * float(labor_hours), 0)
        return DeductionBreakdown(income_tax=won(taxable * setting.tax_rate / 100))
    return DeductionBreakdown()
