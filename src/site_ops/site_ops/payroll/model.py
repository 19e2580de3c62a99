from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional

from ..core.enums import EmploymentType, SalaryRecordStatus, SalaryRuleType


@dataclass(frozen=True)
class SalaryRule:
    rule_id: int
    rule_name: str
    rule_type: SalaryRuleType
    base_amount: int
    multiplier: float = 1.0
    site_id: Optional[int] = None
    role: Optional[str] = None
    is_active: bool = True


@dataclass(frozen=True)
class SalaryRuleDraft:
    rule_name: str
    rule_type: SalaryRuleType
    base_amount: int = 0
    multiplier: float = 1.0
    site_id: Optional[int] = None
    role: Optional[str] = None
    is_active: bool = True


@dataclass(frozen=True)
class WorkerSalarySetting:
    """Per-worker pay terms; rates are percentages (3.3 == 3.3%)."""

    user_id: int
    employment_type: EmploymentType
    daily_rate: int
    tax_rate: float
    national_pension_rate: float = 0.0
    health_insurance_rate: float = 0.0
    employment_insurance_rate: float = 0.0
    long_term_care_rate: float = 0.0
    effective_date: Optional[date] = None


@dataclass(frozen=True)
class LaborLine:
    """Labor of one worker at one site on one date, from attendance or an approved daily report."""

    user_id: int
    site_id: int
    site_name: str
    work_date: date
    labor_hours: float


@dataclass(frozen=True)
class DailyWork:
    """Labor of one worker on one date, summed across sites (first site kept)."""

    user_id: int
    work_date: date
    site_id: Optional[int]
    labor_hours: float
    role: Optional[str] = None


@dataclass(frozen=True)
class DailyPay:
    user_id: int
    work_date: date
    site_id: Optional[int]
    labor_hours: float
    regular_hours: float
    overtime_hours: float
    base_pay: int
    overtime_pay: int
    total_pay: int


@dataclass(frozen=True)
class SalaryRecord:
    salary_id: int
    user_id: int
    site_id: Optional[int]
    work_date: date
    labor_hours: float
    regular_hours: float
    overtime_hours: float
    base_pay: int
    overtime_pay: int
    total_pay: int
    status: SalaryRecordStatus
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    full_name: Optional[str] = None
    site_name: Optional[str] = None


@dataclass(frozen=True)
class DeductionBreakdown:
    income_tax: int = 0
    national_pension: int = 0
    health_insurance: int = 0
    employment_insurance: int = 0
    long_term_care: int = 0

    @property
    def total(self) -> int:
        return (
            self.income_tax
            + self.national_pension
            + self.health_insurance
            + self.employment_insurance
            + self.long_term_care
        )


@dataclass(frozen=True)
class SiteBreakdown:
    site_id: int
    site_name: str
    days: int
    labor_hours: float
    pay: int


@dataclass(frozen=True)
class MonthlyStatement:
    user_id: int
    full_name: str
    year: int
    month: int
    employment_type: Optional[EmploymentType]
    daily_rate: Optional[int]
    work_days: int
    labor_hours: float
    gross_pay: int
    deductions: DeductionBreakdown
    sites: List[SiteBreakdown] = field(default_factory=list)
    daily: List[DailyPay] = field(default_factory=list)

    @property
    def net_pay(self) -> int:
        return self.gross_pay - self.deductions.total


@dataclass(frozen=True)
class CalculationResult:
    created: int
    skipped_locked: int
    total_pay: int


@dataclass(frozen=True)
class SalaryStats:
    workers: int
    records: int
    total_pay: int
    average_daily_pay: int
    overtime_percentage: float
    total_labor_hours: float
