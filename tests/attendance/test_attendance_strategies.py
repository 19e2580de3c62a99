from datetime import date, datetime, time

import pytest

from src.site_ops.site_ops.attendance.factory import AttendanceStrategyFactory
from src.site_ops.site_ops.attendance.labor import hours_to_labor_hours, split_regular_overtime, worked_hours
from src.site_ops.site_ops.attendance.strategies.early_strategy import EarlyLeaveStrategy
from src.site_ops.site_ops.attendance.strategies.late_strategy import LateStrategy
from src.site_ops.site_ops.attendance.strategies.normal_strategy import NormalStrategy
from src.site_ops.site_ops.core.enums import AttendanceStatus, SiteStatus
from src.site_ops.site_ops.sites.model import Site

SITE = Site(
    site_id=1,
    name="Yeouido",
    address="Seoul",
    status=SiteStatus.ACTIVE,
    checkin_token="t",
    work_start_time=time(7, 0),
    work_end_time=time(17, 0),
)
TODAY = date(2025, 3, 12)


def test_checkin_on_time_within_grace():
    strategy = AttendanceStrategyFactory().for_checkin(
        now=datetime(2025, 3, 12, 7, 5), today=TODAY, site=SITE, grace_minutes=5
    )

    assert isinstance(strategy, NormalStrategy)


def test_checkin_late_after_grace_notes_minutes():
    now = datetime(2025, 3, 12, 7, 6)
    strategy = AttendanceStrategyFactory().for_checkin(now=now, today=TODAY, site=SITE, grace_minutes=5)

    assert isinstance(strategy, LateStrategy)
    decision = strategy.decide_checkin(now=now, today=TODAY, site=SITE, grace_minutes=5)
    assert decision.status == AttendanceStatus.LATE
    assert decision.note == "Late by 6 min"


def test_site_without_hours_is_always_on_time():
    site = Site(site_id=2, name="B", address="b", status=SiteStatus.ACTIVE, checkin_token="u")

    strategy = AttendanceStrategyFactory().for_checkin(
        now=datetime(2025, 3, 12, 13, 0), today=TODAY, site=site, grace_minutes=0
    )

    assert isinstance(strategy, NormalStrategy)


def test_early_checkout_only_from_on_time():
    factory = AttendanceStrategyFactory()
    now = datetime(2025, 3, 12, 15, 0)

    early = factory.for_checkout(now=now, today=TODAY, site=SITE, current_status=AttendanceStatus.ON_TIME)
    late = factory.for_checkout(now=now, today=TODAY, site=SITE, current_status=AttendanceStatus.LATE)

    assert isinstance(early, EarlyLeaveStrategy)
    assert isinstance(late, NormalStrategy)
    assert late.decide_checkout(now=now, today=TODAY, site=SITE, current=AttendanceStatus.LATE).status == (
        AttendanceStatus.LATE
    )


def test_worked_hours_subtracts_break_and_never_goes_negative():
    assert worked_hours(datetime(2025, 3, 12, 7, 0), datetime(2025, 3, 12, 17, 0), break_minutes=60) == 9.0
    assert worked_hours(datetime(2025, 3, 12, 7, 0), datetime(2025, 3, 12, 7, 30), break_minutes=60) == 0.0


@pytest.mark.parametrize("hours,labor", [(8, 1.0), (4, 0.5), (10, 1.25), (12, 1.5), (0, 0.0)])
def test_labor_hours_are_hours_over_eight(hours, labor):
    assert hours_to_labor_hours(hours) == labor


def test_overtime_is_hours_beyond_eight():
    assert split_regular_overtime(10.5) == (8.0, 2.5)
    assert split_regular_overtime(6) == (6.0, 0.0)
