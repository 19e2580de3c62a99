from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional

from ..core.enums import DailyReportStatus


@dataclass(frozen=True)
class ReportWorker:
    """One worker line of a daily report; labor is in man-days (1.0 = a full day)."""

    user_id: int
    labor_hours: float
    full_name: Optional[str] = None


@dataclass(frozen=True)
class ReportDraft:
    site_id: int
    work_date: date
    process_type: str
    member_name: Optional[str] = None
    issues: Optional[str] = None
    workers: List[ReportWorker] = field(default_factory=list)


@dataclass(frozen=True)
class DailyReport:
    report_id: int
    site_id: int
    work_date: date
    created_by: int
    process_type: str
    status: DailyReportStatus
    member_name: Optional[str] = None
    issues: Optional[str] = None
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    approval_comment: Optional[str] = None
    created_at: Optional[datetime] = None
    site_name: Optional[str] = None
    author_name: Optional[str] = None
    workers: List[ReportWorker] = field(default_factory=list)

    @property
    def total_workers(self) -> int:
        return len(self.workers)

    @property
    def total_labor_hours(self) -> float:
        return round(sum(w.labor_hours for w in self.workers), 2)

    @property
    def is_editable(self) -> bool:
        return self.status in (DailyReportStatus.DRAFT, DailyReportStatus.REJECTED)


@dataclass(frozen=True)
class ReportLabor:
    """Read-model fed to payroll: one worker line of an approved report."""

    report_id: int
    user_id: int
    site_id: int
    site_name: str
    work_date: date
    labor_hours: float


@dataclass(frozen=True)
class SiteReportSummary:
    site_id: int
    site_name: str
    reports: int
    submitted: int
    approved: int
    workers: int
    labor_hours: float
