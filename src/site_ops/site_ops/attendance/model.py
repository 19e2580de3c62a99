from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional

from ..core.enums import AttendanceStatus


@dataclass(frozen=True)
class WorkRecord:
    """One worker's day at one site."""

    record_id: int
    user_id: int
    site_id: int
    work_date: date
    check_in_time: Optional[datetime]
    check_out_time: Optional[datetime]
    status: AttendanceStatus
    work_hours: float = 0.0
    labor_hours: float = 0.0
    overtime_hours: float = 0.0
    note: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.check_in_time is not None and self.check_out_time is None


@dataclass(frozen=True)
class AttendanceReportRow:
    """Read-model for reports and exports."""

    record_id: int
    user_id: int
    full_name: str
    username: str
    site_id: int
    site_name: str
    work_date: date
    check_in_time: Optional[datetime]
    check_out_time: Optional[datetime]
    status: AttendanceStatus
    work_hours: float
    labor_hours: float
    overtime_hours: float
    note: Optional[str] = None


@dataclass(frozen=True)
class LaborEntry:
    user_id: int
    labor_hours: float


@dataclass(frozen=True)
class ManualLabor:
    """One admin-entered labor row, already converted to hours."""

    user_id: int
    status: AttendanceStatus
    work_hours: float
    labor_hours: float
    overtime_hours: float


@dataclass(frozen=True)
class BulkEntryResult:
    created: List[int] = field(default_factory=list)
    skipped: List[int] = field(default_factory=list)


@dataclass(frozen=True)
class CalendarDay:
    work_date: date
    labor_hours: float
    work_hours: float
    site_names: List[str]
    status: Optional[AttendanceStatus]


@dataclass(frozen=True)
class WorkerSummary:
    user_id: int
    full_name: str
    days: int
    days_present: int
    days_absent: int
    late_count: int
    labor_hours: float
    work_hours: float
    overtime_hours: float
