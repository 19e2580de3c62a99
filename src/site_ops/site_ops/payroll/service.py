from __future__ import annotations

import logging
from collections import OrderedDict, defaultdict
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Sequence

from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import month_range
from ..common.validators import parse_enum, require_non_empty, require_percentage, require_positive
from ..core.enums import EmploymentType, Role, SalaryRecordStatus, SalaryRuleType
from ..core.exceptions import NotFoundError, ValidationError
from ..daily_reports.repository import DailyReportRepository
from ..users.repository import UserRepository
from .calculator.base import PayCalculator
from .calculator.standard_calculator import StandardPayCalculator
from .deductions import calculate_deductions, default_rates
from .model import (
    CalculationResult,
    DailyPay,
    DailyWork,
    DeductionBreakdown,
    LaborLine,
    MonthlyStatement,
    SalaryRecord,
    SalaryRule,
    SalaryRuleDraft,
    SalaryStats,
    SiteBreakdown,
    WorkerSalarySetting,
)
from .money import won
from .repository import SalaryRecordRepository, SalaryRuleRepository, WorkerSettingRepository

logger = logging.getLogger(__name__)


class SalaryService:
    def __init__(
        self,
        rules: SalaryRuleRepository,
        settings: WorkerSettingRepository,
        records: SalaryRecordRepository,
        attendance: AttendanceRepository,
        users: UserRepository,
        *,
        calculator: PayCalculator | None = None,
        daily_reports: DailyReportRepository | None = None,
    ):
        self._rules = rules
        self._settings = settings
        self._records = records
        self._attendance = attendance
        self._users = users
        self._calculator = calculator or StandardPayCalculator()
        self._reports = daily_reports

    # -- rules ---------------------------------------------------------------

    def list_rules(self, *, active_only: bool = False) -> Sequence[SalaryRule]:
        return self._rules.list_rules(active_only=active_only)

    def _draft(
        self,
        *,
        rule_name: str,
        rule_type,
        base_amount=0,
        multiplier=1.0,
        site_id: Optional[int] = None,
        role: Optional[str] = None,
        is_active: bool = True,
        exclude_rule_id: Optional[int] = None,
    ) -> SalaryRuleDraft:
        name = require_non_empty(rule_name, "Rule name")
        rtype = parse_enum(SalaryRuleType, rule_type, "Rule type")

        if rtype == SalaryRuleType.OVERTIME_MULTIPLIER:
            mult = require_positive(multiplier, "Multiplier")
            if mult < 1:
                raise ValidationError("Overtime multiplier must be at least 1")
            amount = 0
        else:
            amount = won(require_positive(base_amount, "Base amount"))
            mult = 1.0

        scope_role = parse_enum(Role, role, "Role").value if role else None

        for existing in self._rules.list_rules():
            if existing.rule_name == name and existing.rule_id != exclude_rule_id:
                raise ValidationError("A rule with this name already exists")

        return SalaryRuleDraft(
            rule_name=name,
            rule_type=rtype,
            base_amount=amount,
            multiplier=round(float(mult), 2),
            site_id=int(site_id) if site_id not in (None, "") else None,
            role=scope_role,
            is_active=bool(is_active),
        )

    def create_rule(self, **fields) -> int:
        draft = self._draft(**fields)
        rule_id = self._rules.create(draft)
        logger.info("Salary rule %s created (%s)", rule_id, draft.rule_type.value)
        return rule_id

    def update_rule(self, rule_id: int, **fields) -> None:
        if not self._rules.get_by_id(rule_id):
            raise NotFoundError("Salary rule not found")
        draft = self._draft(exclude_rule_id=rule_id, **fields)
        self._rules.update(rule_id, draft)
        logger.info("Salary rule %s updated", rule_id)

    def set_rule_active(self, rule_id: int, *, is_active: bool) -> None:
        rule = self._rules.get_by_id(rule_id)
        if not rule:
            raise NotFoundError("Salary rule not found")
        self._rules.update(
            rule_id,
            SalaryRuleDraft(
                rule_name=rule.rule_name,
                rule_type=rule.rule_type,
                base_amount=rule.base_amount,
                multiplier=rule.multiplier,
                site_id=rule.site_id,
                role=rule.role,
                is_active=bool(is_active),
            ),
        )
        logger.info("Salary rule %s active=%s", rule_id, bool(is_active))

    def delete_rule(self, rule_id: int) -> None:
        if not self._rules.delete(rule_id):
            raise NotFoundError("Salary rule not found")
        logger.info("Salary rule %s deleted", rule_id)

    # -- worker settings -----------------------------------------------------

    def get_worker_setting(self, user_id: int) -> Optional[WorkerSalarySetting]:
        return self._settings.get_for_user(user_id)

    def set_worker_setting(
        self,
        user_id: int,
        *,
        employment_type,
        daily_rate,
        tax_rate=None,
        national_pension_rate=None,
        health_insurance_rate=None,
        employment_insurance_rate=None,
        long_term_care_rate=None,
        effective_date: Optional[date] = None,
    ) -> WorkerSalarySetting:
        """Missing rates fall back to the defaults of the employment type."""
        if not self._users.get_by_id(user_id):
            raise NotFoundError("User not found")

        etype = parse_enum(EmploymentType, employment_type, "Employment type")
        defaults = default_rates(etype)

        def rate(value, default: float, label: str) -> float:
            if value in (None, ""):
                return default
            return require_percentage(value, label)

        setting = WorkerSalarySetting(
            user_id=user_id,
            employment_type=etype,
            daily_rate=won(require_positive(daily_rate, "Daily rate")),
            tax_rate=rate(tax_rate, defaults.tax_rate, "Tax rate"),
            national_pension_rate=rate(national_pension_rate, defaults.national_pension_rate, "National pension rate"),
            health_insurance_rate=rate(health_insurance_rate, defaults.health_insurance_rate, "Health insurance rate"),
            employment_insurance_rate=rate(
                employment_insurance_rate, defaults.employment_insurance_rate, "Employment insurance rate"
            ),
            long_term_care_rate=rate(long_term_care_rate, defaults.long_term_care_rate, "Long-term care rate"),
            effective_date=effective_date,
        )
        self._settings.upsert(setting)
        logger.info("Salary setting saved user=%s type=%s daily=%s", user_id, etype.value, setting.daily_rate)
        return setting

    def list_worker_settings(self) -> Sequence[WorkerSalarySetting]:
        return self._settings.list_all()

    # -- records ---------------------------------------------------------------

    def _roles_for(self, user_ids: Iterable[int]) -> Dict[int, str]:
        roles: Dict[int, str] = {}
        for uid in set(user_ids):
            user = self._users.get_by_id(uid)
            if user:
                roles[uid] = user.role.value
        return roles

    def _labor_rows(
        self, *, start: date, end: date, site_id: Optional[int] = None, user_id: Optional[int] = None
    ) -> List[LaborLine]:
        """Attendance labor with approved daily-report labor on top.

        A report line replaces the attendance of the same worker, site and day.
        """
        attendance = sorted(
            self._attendance.get_report_rows(start_date=start, end_date=end, site_id=site_id, user_id=user_id),
            key=lambda r: r.record_id,
        )
        reported = (
            self._reports.labor_rows(start_date=start, end_date=end, site_id=site_id, user_id=user_id)
            if self._reports is not None
            else []
        )
        covered = {(r.user_id, r.work_date, r.site_id) for r in reported}
        lines = [
            LaborLine(r.user_id, r.site_id, r.site_name, r.work_date, r.labor_hours)
            for r in attendance
            if (r.user_id, r.work_date, r.site_id) not in covered
        ]
        lines += [LaborLine(r.user_id, r.site_id, r.site_name, r.work_date, r.labor_hours) for r in reported]
        return lines

    def calculate_records(
        self,
        *,
        date_from: date,
        date_to: date,
        site_id: Optional[int] = None,
        user_id: Optional[int] = None,
    ) -> CalculationResult:
        """Recalculate daily pay from labor; approved and paid days are left alone.

        Calculated records in scope are always replaced, so days whose labor was removed lose their pay.
        """
        if date_to < date_from:
            raise ValidationError("End date cannot be before start date")

        scoped = self._labor_rows(start=date_from, end=date_to, site_id=site_id, user_id=user_id)
        stale = self._records.list_records(
            date_from=date_from,
            date_to=date_to,
            user_id=user_id,
            site_id=site_id,
            status=SalaryRecordStatus.CALCULATED,
        )
        user_ids = sorted({r.user_id for r in scoped} | {r.user_id for r in stale})
        if not user_ids:
            return CalculationResult(created=0, skipped_locked=0, total_pay=0)

        # A day's labor spans every site, so re-read the whole day for the workers in scope.
        if site_id is not None:
            in_scope = set(user_ids)
            rows = [
                r for r in self._labor_rows(start=date_from, end=date_to, user_id=user_id) if r.user_id in in_scope
            ]
        else:
            rows = scoped

        locked = {
            (r.user_id, r.work_date)
            for r in self._records.list_records(date_from=date_from, date_to=date_to, user_id=user_id)
            if r.status != SalaryRecordStatus.CALCULATED
        }

        rules = self._rules.list_rules(active_only=True)
        works = aggregate_labor(rows, roles=self._roles_for(user_ids))
        pays: List[DailyPay] = []
        skipped = 0
        for work in works:
            if (work.user_id, work.work_date) in locked:
                skipped += 1
                continue
            pays.append(self._calculator.daily_pay(work, rules))

        self._records.delete_calculated(date_from=date_from, date_to=date_to, user_ids=user_ids)
        self._records.insert_many(pays)

        total = sum(p.total_pay for p in pays)
        logger.info(
            "Salary calculated %s..%s site=%s user=%s records=%d skipped=%d total=%d",
            date_from,
            date_to,
            site_id,
            user_id,
            len(pays),
            skipped,
            total,
        )
        return CalculationResult(created=len(pays), skipped_locked=skipped, total_pay=total)

    def list_records(
        self,
        *,
        date_from: date,
        date_to: date,
        user_id: Optional[int] = None,
        site_id: Optional[int] = None,
        status=None,
    ) -> Sequence[SalaryRecord]:
        if date_to < date_from:
            raise ValidationError("End date cannot be before start date")
        return self._records.list_records(
            date_from=date_from,
            date_to=date_to,
            user_id=user_id,
            site_id=site_id,
            status=parse_enum(SalaryRecordStatus, status, "Status") if status else None,
        )

    def approve_records(self, salary_ids: Sequence[int], *, approver_id: int, now: datetime | None = None) -> int:
        ids = _ids(salary_ids)
        count = self._records.set_status(
            ids,
            from_status=SalaryRecordStatus.CALCULATED,
            to_status=SalaryRecordStatus.APPROVED,
            actor_id=approver_id,
            at=now or datetime.now(),
        )
        logger.info("Salary records approved by %s: %d of %d", approver_id, count, len(ids))
        return count

    def mark_paid(self, salary_ids: Sequence[int], *, now: datetime | None = None) -> int:
        ids = _ids(salary_ids)
        count = self._records.set_status(
            ids,
            from_status=SalaryRecordStatus.APPROVED,
            to_status=SalaryRecordStatus.PAID,
            actor_id=None,
            at=now or datetime.now(),
        )
        logger.info("Salary records paid: %d of %d", count, len(ids))
        return count

    # -- reports ---------------------------------------------------------------

    def monthly_statement(self, user_id: int, year: int, month: int) -> MonthlyStatement:
        user = self._users.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        first, last = month_range(year, month)

        rows = self._labor_rows(start=first, end=last, user_id=user_id)
        works = [w for w in aggregate_labor(rows, roles={user_id: user.role.value}) if w.labor_hours > 0]
        rules = self._rules.list_rules(active_only=True)
        daily = [self._calculator.daily_pay(w, rules) for w in works]
        labor = round(sum(w.labor_hours for w in works), 2)

        setting = self._settings.get_for_user(user_id)
        if setting:
            gross = won(setting.daily_rate * labor)
            deductions = calculate_deductions(gross=gross, labor_hours=labor, setting=setting)
        else:
            gross = sum(d.total_pay for d in daily)
            deductions = DeductionBreakdown()

        return MonthlyStatement(
            user_id=user_id,
            full_name=user.full_name,
            year=int(year),
            month=int(month),
            employment_type=setting.employment_type if setting else None,
            daily_rate=setting.daily_rate if setting else None,
            work_days=len(works),
            labor_hours=labor,
            gross_pay=gross,
            deductions=deductions,
            sites=site_breakdown(rows, gross),
            daily=daily,
        )

    def monthly_statements(self, year: int, month: int, *, site_id: Optional[int] = None) -> List[MonthlyStatement]:
        first, last = month_range(year, month)
        rows = self._labor_rows(start=first, end=last, site_id=site_id)
        user_ids = sorted({r.user_id for r in rows if r.labor_hours > 0})
        statements = [self.monthly_statement(uid, year, month) for uid in user_ids]
        statements.sort(key=lambda s: s.full_name)
        return statements

    def stats(self, *, date_from: date, date_to: date, site_id: Optional[int] = None) -> SalaryStats:
        records = self.list_records(date_from=date_from, date_to=date_to, site_id=site_id)
        total = sum(r.total_pay for r in records)
        regular = sum(r.regular_hours for r in records)
        overtime = sum(r.overtime_hours for r in records)
        worked = regular + overtime
        return SalaryStats(
            workers=len({r.user_id for r in records}),
            records=len(records),
            total_pay=total,
            average_daily_pay=won(total / len(records)) if records else 0,
            overtime_percentage=round(overtime / worked * 100, 1) if worked else 0.0,
            total_labor_hours=round(sum(r.labor_hours for r in records), 2),
        )


def _ids(values: Sequence) -> List[int]:
    try:
        ids = sorted({int(v) for v in values or []})
    except (TypeError, ValueError):
        raise ValidationError("Invalid salary record id")
    if not ids:
        raise ValidationError("Select at least one salary record")
    return ids


def aggregate_labor(rows: Sequence[LaborLine], *, roles: Dict[int, str]) -> List[DailyWork]:
    """Sum labor per (worker, date) across sites; the first site seen is kept."""
    grouped: "OrderedDict[tuple[int, date], list[LaborLine]]" = OrderedDict()
    for r in sorted(rows, key=lambda r: (r.user_id, r.work_date)):
        grouped.setdefault((r.user_id, r.work_date), []).append(r)

    return [
        DailyWork(
            user_id=user_id,
            work_date=work_date,
            site_id=items[0].site_id,
            labor_hours=round(sum(i.labor_hours for i in items), 2),
            role=roles.get(user_id),
        )
        for (user_id, work_date), items in grouped.items()
        if sum(i.labor_hours for i in items) > 0
    ]


def site_breakdown(rows: Sequence[LaborLine], gross: int) -> List[SiteBreakdown]:
    """Split gross pay across sites by labor share; rounding remainder goes to the last site."""
    labor: Dict[int, float] = defaultdict(float)
    days: Dict[int, set] = defaultdict(set)
    names: Dict[int, str] = {}
    for r in rows:
        if r.labor_hours <= 0:
            continue
        labor[r.site_id] += r.labor_hours
        days[r.site_id].add(r.work_date)
        names[r.site_id] = r.site_name

    total_labor = sum(labor.values())
    if not total_labor:
        return []

    site_ids = sorted(labor, key=lambda sid: (-labor[sid], names[sid]))
    out: List[SiteBreakdown] = []
    allocated = 0
    for idx, sid in enumerate(site_ids):
        if idx == len(site_ids) - 1:
            pay = gross - allocated
        else:
            pay = won(gross * labor[sid] / total_labor)
            allocated += pay
        out.append(
            SiteBreakdown(
                site_id=sid,
                site_name=names[sid],
                days=len(days[sid]),
                labor_hours=round(labor[sid], 2),
                pay=pay,
            )
        )
    return out
