from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional

from ..core.enums import AttendanceStatus
from ..sites.model import Site
from .strategies.base import AttendanceStrategy
from .strategies.early_strategy import EarlyLeaveStrategy
from .strategies.late_strategy import LateStrategy
from .strategies.normal_strategy import NormalStrategy


@dataclass
class AttendanceStrategyFactory:
    """Choose the status strategy from the site's working hours."""

    def for_checkin(self, *, now: datetime, today: date, site: Optional[Site], grace_minutes: int) -> AttendanceStrategy:
        if not site or not site.work_start_time:
            return NormalStrategy()

        site_start = datetime.combine(today, site.work_start_time)
        if now <= site_start + timedelta(minutes=grace_minutes):
            return NormalStrategy()
        return LateStrategy()

    def for_checkout(
        self, *, now: datetime, today: date, site: Optional[Site], current_status: AttendanceStatus
    ) -> AttendanceStrategy:
        if not site or not site.work_end_time:
            return NormalStrategy()

        site_end = datetime.combine(today, site.work_end_time)
        if now < site_end and current_status == AttendanceStatus.ON_TIME:
            return EarlyLeaveStrategy()
        return NormalStrategy()
