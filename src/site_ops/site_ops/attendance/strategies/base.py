from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ...core.enums import AttendanceStatus
from ...sites.model import Site


@dataclass(frozen=True)
class StatusDecision:
    status: AttendanceStatus
    note: Optional[str] = None


class AttendanceStrategy(ABC):
    """Decides the attendance status for a check-in or check-out at a site."""

    @abstractmethod
    def decide_checkin(self, *, now: datetime, today: date, site: Optional[Site], grace_minutes: int) -> StatusDecision:
        raise NotImplementedError

    @abstractmethod
    def decide_checkout(
        self, *, now: datetime, today: date, site: Optional[Site], current: AttendanceStatus
    ) -> StatusDecision:
        raise NotImplementedError
