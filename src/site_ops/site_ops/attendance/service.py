from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import List, Optional, Sequence

from ..assignments.repository import AssignmentRepository
from ..common.datetime_utils import month_range
from ..common.validators import require_non_negative
from ..core.constants import DEFAULT_HISTORY_LIMIT, DEFAULT_LATE_GRACE_MINUTES
from ..core.enums import AttendanceStatus
from ..core.exceptions import NotFoundError, ValidationError
from ..sites.model import Site
from ..sites.repository import SiteRepository
from .factory import AttendanceStrategyFactory
from .labor import hours_to_labor_hours, labor_hours_to_hours, split_regular_overtime, worked_hours
from .model import (
    AttendanceReportRow,
    BulkEntryResult,
    CalendarDay,
    LaborEntry,
    ManualLabor,
    WorkerSummary,
    WorkRecord,
)
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)

ACTION_CHECK_IN = "check_in"
ACTION_CHECK_OUT = "check_out"


class AttendanceService:
    def __init__(
        self,
        attendance: AttendanceRepository,
        sites: SiteRepository,
        assignments: AssignmentRepository,
        *,
        strategy_factory: AttendanceStrategyFactory | None = None,
        grace_minutes: int = DEFAULT_LATE_GRACE_MINUTES,
    ):
        self._attendance = attendance
        self._sites = sites
        self._assignments = assignments
        self._factory = strategy_factory or AttendanceStrategyFactory()
        self._grace_minutes = int(grace_minutes)

    def _site(self, site_id: int) -> Site:
        site = self._sites.get_by_id(site_id)
        if not site or site.is_deleted:
            raise NotFoundError("Site not found")
        return site

    def check_in(self, user_id: int, site_id: int, *, now: datetime | None = None) -> int:
        now = now or datetime.now()
        today = now.date()
        site = self._site(site_id)

        if not self._assignments.get_active(site_id=site_id, user_id=user_id):
            raise ValidationError("You are not assigned to this site")

        if self._attendance.get_for_user_site_date(user_id, site_id, today):
            raise ValidationError("You have already checked in at this site today")

        strategy = self._factory.for_checkin(now=now, today=today, site=site, grace_minutes=self._grace_minutes)
        decision = strategy.decide_checkin(now=now, today=today, site=site, grace_minutes=self._grace_minutes)

        record_id = self._attendance.create_checkin(
            user_id=user_id,
            site_id=site_id,
            work_date=today,
            check_in_time=now,
            status=decision.status,
            note=decision.note,
        )
        logger.info("Check-in user=%s site=%s status=%s", user_id, site_id, decision.status.value)
        return record_id

    def check_out(self, user_id: int, site_id: int, *, now: datetime | None = None) -> WorkRecord:
        now = now or datetime.now()
        today = now.date()

        record = self._attendance.get_for_user_site_date(user_id, site_id, today)
        if not record or record.check_in_time is None:
            raise ValidationError("You have not checked in at this site today")
        if record.check_out_time is not None:
            raise ValidationError("You have already checked out")

        site = self._site(site_id)
        strategy = self._factory.for_checkout(now=now, today=today, site=site, current_status=record.status)
        decision = strategy.decide_checkout(now=now, today=today, site=site, current=record.status)

        hours = worked_hours(record.check_in_time, now, break_minutes=site.break_minutes)
        _, overtime = split_regular_overtime(hours)
        labor = hours_to_labor_hours(hours)
        self._attendance.update_checkout(
            record_id=record.record_id,
            check_out_time=now,
            status=decision.status,
            work_hours=hours,
            labor_hours=labor,
            overtime_hours=overtime,
            note=decision.note or record.note,
        )
        logger.info("Check-out user=%s site=%s hours=%.2f labor=%.2f", user_id, site_id, hours, labor)
        return WorkRecord(
            record_id=record.record_id,
            user_id=user_id,
            site_id=site_id,
            work_date=today,
            check_in_time=record.check_in_time,
            check_out_time=now,
            status=decision.status,
            work_hours=hours,
            labor_hours=labor,
            overtime_hours=overtime,
            note=decision.note or record.note,
        )

    def qr_checkin(self, user_id: int, token: str, *, now: datetime | None = None) -> tuple[str, Site]:
        """Scanning the site code checks in, or checks out when a record is open."""
        now = now or datetime.now()
        if not (token or "").strip():
            raise ValidationError("QR code is empty")
        site = self._sites.get_by_checkin_token(token.strip())
        if not site:
            raise ValidationError("Invalid or expired QR code")

        record = self._attendance.get_for_user_site_date(user_id, site.site_id, now.date())
        if record and record.is_open:
            self.check_out(user_id, site.site_id, now=now)
            return ACTION_CHECK_OUT, site
        self.check_in(user_id, site.site_id, now=now)
        return ACTION_CHECK_IN, site

    def today_record(self, user_id: int, today: date, *, site_id: Optional[int] = None) -> Sequence[WorkRecord]:
        records = self._attendance.list_for_user_date(user_id, today)
        if site_id is not None:
            records = [r for r in records if r.site_id == site_id]
        return records

    def update_record(
        self,
        record_id: int,
        *,
        check_in_time: Optional[datetime] = None,
        check_out_time: Optional[datetime] = None,
        labor_hours=None,
        status: Optional[AttendanceStatus] = None,
        note: Optional[str] = None,
    ) -> WorkRecord:
        """Admin correction. Explicit labor hours win over the check-in/out span."""
        record = self._attendance.get_by_id(record_id)
        if not record:
            raise NotFoundError("Work record not found")

        check_in = check_in_time or record.check_in_time
        check_out = check_out_time or record.check_out_time
        if check_in and check_out and check_out <= check_in:
            raise ValidationError("Check-out must be after check-in")

        if labor_hours not in (None, ""):
            labor = round(require_non_negative(labor_hours, "Labor hours"), 2)
            hours = labor_hours_to_hours(labor)
        elif check_in and check_out:
            site = self._site(record.site_id)
            hours = worked_hours(check_in, check_out, break_minutes=site.break_minutes)
            labor = hours_to_labor_hours(hours)
        else:
            hours, labor = record.work_hours, record.labor_hours
        _, overtime = split_regular_overtime(hours)

        updated = WorkRecord(
            record_id=record.record_id,
            user_id=record.user_id,
            site_id=record.site_id,
            work_date=record.work_date,
            check_in_time=check_in,
            check_out_time=check_out,
            status=status or record.status,
            work_hours=hours,
            labor_hours=labor,
            overtime_hours=overtime,
            note=note if note is not None else record.note,
        )
        self._attendance.admin_update_record(
            record_id=record_id,
            check_in_time=updated.check_in_time,
            check_out_time=updated.check_out_time,
            status=updated.status,
            work_hours=updated.work_hours,
            labor_hours=updated.labor_hours,
            overtime_hours=updated.overtime_hours,
            note=updated.note,
        )
        logger.info("Work record %s corrected (labor=%.2f, status=%s)", record_id, labor, updated.status.value)
        return updated

    def add_bulk(
        self,
        *,
        site_id: int,
        work_date: date,
        entries: Sequence[LaborEntry],
        note: Optional[str] = None,
    ) -> BulkEntryResult:
        """Admin labor entry for many workers at one site; existing records are skipped.

        The whole batch is validated before anything is written, then stored in one transaction.
        """
        self._site(site_id)
        if not entries:
            raise ValidationError("Add at least one worker")

        labor_by_user: dict[int, float] = {}
        for entry in entries:
            if entry.user_id in labor_by_user:
                raise ValidationError(f"Worker {entry.user_id} is listed twice")
            labor_by_user[entry.user_id] = round(require_non_negative(entry.labor_hours, "Labor hours"), 2)

        result = BulkEntryResult()
        rows: List[ManualLabor] = []
        for user_id, labor in labor_by_user.items():
            if self._attendance.get_for_user_site_date(user_id, site_id, work_date):
                result.skipped.append(user_id)
                continue
            hours = labor_hours_to_hours(labor)
            _, overtime = split_regular_overtime(hours)
            rows.append(
                ManualLabor(
                    user_id=user_id,
                    status=AttendanceStatus.ON_TIME if labor > 0 else AttendanceStatus.ABSENT,
                    work_hours=hours,
                    labor_hours=labor,
                    overtime_hours=overtime,
                )
            )
        if rows:
            result.created.extend(
                self._attendance.create_manual_many(site_id=site_id, work_date=work_date, rows=rows, note=note)
            )
        logger.info(
            "Bulk labor entry site=%s date=%s created=%d skipped=%d",
            site_id,
            work_date,
            len(result.created),
            len(result.skipped),
        )
        return result

    def monthly_calendar(self, user_id: int, year: int, month: int) -> List[CalendarDay]:
        first, last = month_range(year, month)
        by_date: dict[date, list[AttendanceReportRow]] = defaultdict(list)
        for row in self._attendance.get_report_rows(start_date=first, end_date=last, user_id=user_id):
            by_date[row.work_date].append(row)

        days: List[CalendarDay] = []
        d = first
        while d <= last:
            rows = by_date.get(d, [])
            days.append(
                CalendarDay(
                    work_date=d,
                    labor_hours=round(sum(r.labor_hours for r in rows), 2),
                    work_hours=round(sum(r.work_hours for r in rows), 2),
                    site_names=[r.site_name for r in rows],
                    status=_day_status(rows),
                )
            )
            d += timedelta(days=1)
        return days

    def summary(self, *, start: date, end: date, site_id: Optional[int] = None) -> List[WorkerSummary]:
        if end < start:
            raise ValidationError("End date cannot be before start date")
        rows = self._attendance.get_report_rows(start_date=start, end_date=end, site_id=site_id)

        grouped: dict[int, list[AttendanceReportRow]] = defaultdict(list)
        for r in rows:
            grouped[r.user_id].append(r)

        out: List[WorkerSummary] = []
        for user_id, items in grouped.items():
            by_day: dict[date, list[AttendanceReportRow]] = defaultdict(list)
            for r in items:
                by_day[r.work_date].append(r)
            absent_days = sum(1 for day_rows in by_day.values() if _day_status(day_rows) == AttendanceStatus.ABSENT)
            out.append(
                WorkerSummary(
                    user_id=user_id,
                    full_name=items[0].full_name,
                    days=len(by_day),
                    days_present=len(by_day) - absent_days,
                    days_absent=absent_days,
                    late_count=sum(1 for r in items if r.status == AttendanceStatus.LATE),
                    labor_hours=round(sum(r.labor_hours for r in items), 2),
                    work_hours=round(sum(r.work_hours for r in items), 2),
                    overtime_hours=round(sum(r.overtime_hours for r in items), 2),
                )
            )
        out.sort(key=lambda s: (-s.labor_hours, s.full_name))
        return out

    def site_roster(self, site_id: int, work_date: date) -> Sequence[AttendanceReportRow]:
        self._site(site_id)
        return self._attendance.get_report_rows(start_date=work_date, end_date=work_date, site_id=site_id)

    def history(self, user_id: int, *, limit: int = DEFAULT_HISTORY_LIMIT) -> Sequence[AttendanceReportRow]:
        return self._attendance.get_recent_for_user(user_id, max(int(limit), 1))

    def report_rows(
        self, *, start: date, end: date, site_id: Optional[int] = None, user_id: Optional[int] = None
    ) -> Sequence[AttendanceReportRow]:
        if end < start:
            raise ValidationError("End date cannot be before start date")
        return self._attendance.get_report_rows(start_date=start, end_date=end, site_id=site_id, user_id=user_id)


def _day_status(rows: Sequence[AttendanceReportRow]) -> Optional[AttendanceStatus]:
    """A day is ABSENT only if every record says so; LATE beats EARLY_LEAVE beats ON_TIME."""
    if not rows:
        return None
    statuses = {r.status for r in rows}
    if statuses == {AttendanceStatus.ABSENT}:
        return AttendanceStatus.ABSENT
    for s in (AttendanceStatus.LATE, AttendanceStatus.EARLY_LEAVE, AttendanceStatus.ON_TIME):
        if s in statuses:
            return s
    return AttendanceStatus.UNKNOWN
