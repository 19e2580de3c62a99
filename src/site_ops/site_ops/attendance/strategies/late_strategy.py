from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from ...core.enums import AttendanceStatus
from ...sites.model import Site
from .base import AttendanceStrategy, StatusDecision


class LateStrategy(AttendanceStrategy):
    """Check-in after the site's start time plus grace."""

    def decide_checkin(self, *, now: datetime, today: date, site: Optional[Site], grace_minutes: int) -> StatusDecision:
        note = None
        if site and site.work_start_time:
            start = datetime.combine(today, site.work_start_time)
            late_by = int((now - start).total_seconds() // 60)
            note = f"Late by {late_by} min"
        return StatusDecision(status=AttendanceStatus.LATE, note=note)

    def decide_checkout(
        self, *, now: datetime, today: date, site: Optional[Site], current: AttendanceStatus
    ) -> StatusDecision:
        return StatusDecision(status=current)
