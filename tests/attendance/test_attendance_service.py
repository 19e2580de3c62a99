from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, time
from typing import Optional

import pytest

from src.site_ops.site_ops.attendance.model import AttendanceReportRow, LaborEntry, WorkRecord
from src.site_ops.site_ops.attendance.service import ACTION_CHECK_IN, ACTION_CHECK_OUT, AttendanceService
from src.site_ops.site_ops.core.enums import AttendanceStatus, SiteStatus
from src.site_ops.site_ops.core.exceptions import NotFoundError, ValidationError
from src.site_ops.site_ops.sites.model import Site


class InMemoryAttendance:
    def __init__(self, sites):
        self.records: dict[int, WorkRecord] = {}
        self.batches = 0
        self._sites = sites

    def _add(self, **fields) -> int:
        record_id = len(self.records) + 1
        self.records[record_id] = WorkRecord(record_id=record_id, **fields)
        return record_id

    def get_by_id(self, record_id: int) -> Optional[WorkRecord]:
        return self.records.get(record_id)

    def get_for_user_site_date(self, user_id, site_id, work_date) -> Optional[WorkRecord]:
        return next(
            (
                r
                for r in self.records.values()
                if (r.user_id, r.site_id, r.work_date) == (user_id, site_id, work_date)
            ),
            None,
        )

    def list_for_user_date(self, user_id, work_date):
        return [r for r in self.records.values() if r.user_id == user_id and r.work_date == work_date]

    def get_recent_for_user(self, user_id, limit):
        return self.get_report_rows(start_date=date.min, end_date=date.max, user_id=user_id)[:limit]

    def create_checkin(self, *, user_id, site_id, work_date, check_in_time, status, note=None) -> int:
        return self._add(
            user_id=user_id,
            site_id=site_id,
            work_date=work_date,
            check_in_time=check_in_time,
            check_out_time=None,
            status=status,
            note=note,
        )

    def update_checkout(self, *, record_id, check_out_time, status, work_hours, labor_hours, overtime_hours, note=None):
        self.records[record_id] = replace(
            self.records[record_id],
            check_out_time=check_out_time,
            status=status,
            work_hours=work_hours,
            labor_hours=labor_hours,
            overtime_hours=overtime_hours,
            note=note,
        )
        return True

    def create_manual_many(self, *, site_id, work_date, rows, note=None):
        self.batches += 1
        return [
            self._add(
                user_id=row.user_id,
                site_id=site_id,
                work_date=work_date,
                check_in_time=None,
                check_out_time=None,
                status=row.status,
                work_hours=row.work_hours,
                labor_hours=row.labor_hours,
                overtime_hours=row.overtime_hours,
                note=note,
            )
            for row in rows
        ]

    def admin_update_record(self, *, record_id, **fields):
        self.records[record_id] = replace(self.records[record_id], **fields)
        return True

    def get_report_rows(self, *, start_date, end_date, site_id=None, user_id=None):
        return [
            AttendanceReportRow(
                record_id=r.record_id,
                user_id=r.user_id,
                full_name=f"Worker {r.user_id}",
                username=f"w{r.user_id}",
                site_id=r.site_id,
                site_name=self._sites.get_by_id(r.site_id).name,
                work_date=r.work_date,
                check_in_time=r.check_in_time,
                check_out_time=r.check_out_time,
                status=r.status,
                work_hours=r.work_hours,
                labor_hours=r.labor_hours,
                overtime_hours=r.overtime_hours,
                note=r.note,
            )
            for r in self.records.values()
            if start_date <= r.work_date <= end_date
            and (site_id is None or r.site_id == site_id)
            and (user_id is None or r.user_id == user_id)
        ]


class InMemorySites:
    def __init__(self, *sites: Site):
        self.sites = {s.site_id: s for s in sites}

    def get_by_id(self, site_id: int) -> Optional[Site]:
        return self.sites.get(site_id)

    def get_by_checkin_token(self, token: str) -> Optional[Site]:
        return next((s for s in self.sites.values() if s.checkin_token == token), None)


class AssignedPairs:
    def __init__(self, *pairs: tuple[int, int]):
        self.pairs = set(pairs)

    def get_active(self, *, site_id: int, user_id: int):
        return (site_id, user_id) if (site_id, user_id) in self.pairs else None


def _site(site_id, name, token, **kw):
    return Site(site_id=site_id, name=name, address="addr", status=SiteStatus.ACTIVE, checkin_token=token, **kw)


DAY = date(2025, 3, 12)


@pytest.fixture
def repo():
    sites = InMemorySites(
        _site(1, "Yeouido", "tok-1", work_start_time=time(7, 0), work_end_time=time(17, 0)),
        _site(2, "Busan", "tok-2"),
    )
    return sites, InMemoryAttendance(sites)


@pytest.fixture
def service(repo):
    sites, attendance = repo
    return AttendanceService(attendance, sites, AssignedPairs((1, 7), (2, 7), (1, 8)), grace_minutes=5)


def test_check_in_requires_assignment(service):
    with pytest.raises(ValidationError, match="not assigned"):
        service.check_in(9, 1, now=datetime(2025, 3, 12, 7, 0))


def test_check_in_unknown_site(service):
    with pytest.raises(NotFoundError):
        service.check_in(7, 99, now=datetime(2025, 3, 12, 7, 0))


def test_one_record_per_user_site_and_day(service):
    service.check_in(7, 1, now=datetime(2025, 3, 12, 6, 55))

    with pytest.raises(ValidationError):
        service.check_in(7, 1, now=datetime(2025, 3, 12, 8, 0))
    # another site on the same day is fine
    service.check_in(7, 2, now=datetime(2025, 3, 12, 13, 0))
    assert len(service.today_record(7, DAY)) == 2


def test_full_day_computes_hours_labor_and_overtime(service, repo):
    _, attendance = repo
    record_id = service.check_in(7, 1, now=datetime(2025, 3, 12, 7, 10))

    record = service.check_out(7, 1, now=datetime(2025, 3, 12, 18, 10))

    assert record.status == AttendanceStatus.LATE
    assert record.work_hours == 10.0
    assert record.labor_hours == 1.25
    assert record.overtime_hours == 2.0
    assert attendance.get_by_id(record_id).note == "Late by 10 min"


def test_early_leave_from_on_time(service):
    service.check_in(7, 1, now=datetime(2025, 3, 12, 7, 0))

    record = service.check_out(7, 1, now=datetime(2025, 3, 12, 12, 0))

    assert record.status == AttendanceStatus.EARLY_LEAVE
    assert record.labor_hours == 0.5


def test_check_out_rules(service):
    with pytest.raises(ValidationError):
        service.check_out(7, 1, now=datetime(2025, 3, 12, 17, 0))

    service.check_in(7, 1, now=datetime(2025, 3, 12, 7, 0))
    service.check_out(7, 1, now=datetime(2025, 3, 12, 17, 0))
    with pytest.raises(ValidationError):
        service.check_out(7, 1, now=datetime(2025, 3, 12, 17, 5))


def test_qr_scan_toggles_between_check_in_and_out(service):
    action, site = service.qr_checkin(7, " tok-1 ", now=datetime(2025, 3, 12, 7, 0))
    assert (action, site.site_id) == (ACTION_CHECK_IN, 1)

    action, _ = service.qr_checkin(7, "tok-1", now=datetime(2025, 3, 12, 17, 0))
    assert action == ACTION_CHECK_OUT

    # closed record: scanning again hits the once-per-day check-in rule
    with pytest.raises(ValidationError):
        service.qr_checkin(7, "tok-1", now=datetime(2025, 3, 12, 17, 30))


@pytest.mark.parametrize("token", ["", "   ", "bogus"])
def test_qr_scan_rejects_bad_tokens(service, token):
    with pytest.raises(ValidationError):
        service.qr_checkin(7, token, now=datetime(2025, 3, 12, 7, 0))


def test_admin_correction_prefers_explicit_labor(service):
    record_id = service.check_in(7, 1, now=datetime(2025, 3, 12, 7, 0))

    updated = service.update_record(record_id, labor_hours="1.5", note="rain day")

    assert updated.labor_hours == 1.5
    assert updated.work_hours == 12.0
    assert updated.overtime_hours == 4.0
    assert updated.note == "rain day"


def test_admin_correction_recomputes_from_times(service):
    record_id = service.check_in(7, 1, now=datetime(2025, 3, 12, 7, 0))

    updated = service.update_record(record_id, check_out_time=datetime(2025, 3, 12, 16, 0))
    assert updated.work_hours == 8.0
    assert updated.labor_hours == 1.0

    with pytest.raises(ValidationError):
        service.update_record(record_id, check_out_time=datetime(2025, 3, 12, 6, 0))


def test_bulk_entry_skips_existing_records(service):
    service.check_in(7, 1, now=datetime(2025, 3, 12, 7, 0))

    result = service.add_bulk(
        site_id=1,
        work_date=DAY,
        entries=[LaborEntry(user_id=7, labor_hours=1.0), LaborEntry(user_id=8, labor_hours=0)],
    )

    assert result.skipped == [7]
    assert len(result.created) == 1
    (absent,) = [r for r in service.site_roster(1, DAY) if r.user_id == 8]
    assert absent.status == AttendanceStatus.ABSENT


def test_bulk_entry_is_rejected_as_a_whole(service, repo):
    _, attendance = repo
    for entries in (
        [LaborEntry(user_id=7, labor_hours=1.0), LaborEntry(user_id=8, labor_hours=-1)],
        [LaborEntry(user_id=7, labor_hours=1.0), LaborEntry(user_id=7, labor_hours=0.5)],
        [LaborEntry(user_id=7, labor_hours=1.0), LaborEntry(user_id=8, labor_hours="lots")],
    ):
        with pytest.raises(ValidationError):
            service.add_bulk(site_id=1, work_date=DAY, entries=entries)

    assert attendance.records == {}
    assert service.site_roster(1, DAY) == []


def test_bulk_entry_writes_one_batch(service, repo):
    _, attendance = repo
    result = service.add_bulk(
        site_id=1,
        work_date=DAY,
        entries=[LaborEntry(user_id=7, labor_hours=1.5), LaborEntry(user_id=8, labor_hours=1.0)],
        note="rain delay",
    )

    assert attendance.batches == 1
    assert len(result.created) == 2
    overtime = attendance.records[result.created[0]]
    assert (overtime.work_hours, overtime.overtime_hours, overtime.note) == (12.0, 4.0, "rain delay")


def test_summary_and_calendar(service):
    service.add_bulk(site_id=1, work_date=date(2025, 3, 3), entries=[LaborEntry(user_id=7, labor_hours=1.0)])
    service.add_bulk(site_id=2, work_date=date(2025, 3, 3), entries=[LaborEntry(user_id=7, labor_hours=0.5)])
    service.add_bulk(site_id=1, work_date=date(2025, 3, 4), entries=[LaborEntry(user_id=7, labor_hours=0)])
    service.add_bulk(site_id=1, work_date=date(2025, 3, 4), entries=[LaborEntry(user_id=8, labor_hours=1.0)])

    (w7, w8) = service.summary(start=date(2025, 3, 1), end=date(2025, 3, 31))
    assert (w7.user_id, w7.labor_hours, w7.days, w7.days_absent) == (7, 1.5, 2, 1)
    assert (w8.user_id, w8.labor_hours) == (8, 1.0)

    calendar = service.monthly_calendar(7, 2025, 3)
    assert len(calendar) == 31
    day3 = calendar[2]
    assert day3.labor_hours == 1.5
    assert sorted(day3.site_names) == ["Busan", "Yeouido"]
    assert day3.status == AttendanceStatus.ON_TIME
    assert calendar[3].status == AttendanceStatus.ABSENT
    assert calendar[4].status is None


def test_reports_reject_inverted_ranges(service):
    with pytest.raises(ValidationError):
        service.summary(start=date(2025, 3, 31), end=date(2025, 3, 1))
    with pytest.raises(ValidationError):
        service.report_rows(start=date(2025, 3, 31), end=date(2025, 3, 1))
