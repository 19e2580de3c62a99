from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import DailyReportStatus
from .model import DailyReport, ReportDraft, ReportLabor


class DailyReportRepository(Protocol):
    def get_by_id(self, report_id: int) -> Optional[DailyReport]:
        raise NotImplementedError

    def find(self, *, site_id: int, work_date: date, created_by: int) -> Optional[DailyReport]:
        raise NotImplementedError

    def list_reports(
        self,
        *,
        site_id: Optional[int] = None,
        status: Optional[DailyReportStatus] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        created_by: Optional[int] = None,
    ) -> Sequence[DailyReport]:
        raise NotImplementedError

    def create(self, draft: ReportDraft, *, created_by: int) -> int:
        """Report and worker lines are written in one transaction."""
        raise NotImplementedError

    def replace(self, report_id: int, draft: ReportDraft) -> bool:
        """Overwrite an editable report and its worker lines; the report goes back to draft.

        Returns False when the report is no longer editable.
        """
        raise NotImplementedError

    def set_status(
        self,
        report_id: int,
        *,
        from_status: DailyReportStatus,
        to_status: DailyReportStatus,
        actor_id: Optional[int] = None,
        comment: Optional[str] = None,
        at: Optional[datetime] = None,
    ) -> bool:
        raise NotImplementedError

    def delete_draft(self, report_id: int) -> bool:
        raise NotImplementedError

    def labor_rows(
        self,
        *,
        start_date: date,
        end_date: date,
        site_id: Optional[int] = None,
        user_id: Optional[int] = None,
        status: DailyReportStatus = DailyReportStatus.APPROVED,
    ) -> Sequence[ReportLabor]:
        raise NotImplementedError
