from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from ...core.enums import AttendanceStatus
from ...sites.model import Site
from .base import AttendanceStrategy, StatusDecision


class EarlyLeaveStrategy(AttendanceStrategy):
    """Check-out before the site's end time (only from ON_TIME)."""

    def decide_checkin(self, *, now: datetime, today: date, site: Optional[Site], grace_minutes: int) -> StatusDecision:
        return StatusDecision(status=AttendanceStatus.UNKNOWN)

    def decide_checkout(
        self, *, now: datetime, today: date, site: Optional[Site], current: AttendanceStatus
    ) -> StatusDecision:
        return StatusDecision(status=AttendanceStatus.EARLY_LEAVE)
