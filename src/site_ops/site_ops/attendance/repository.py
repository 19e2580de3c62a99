from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional, Protocol, Sequence

from ..core.enums import AttendanceStatus
from .model import AttendanceReportRow, ManualLabor, WorkRecord


class AttendanceRepository(Protocol):
    def get_by_id(self, record_id: int) -> Optional[WorkRecord]:
        raise NotImplementedError

    def get_for_user_site_date(self, user_id: int, site_id: int, work_date: date) -> Optional[WorkRecord]:
        raise NotImplementedError

    def list_for_user_date(self, user_id: int, work_date: date) -> Sequence[WorkRecord]:
        raise NotImplementedError

    def get_recent_for_user(self, user_id: int, limit: int) -> Sequence[AttendanceReportRow]:
        raise NotImplementedError

    def create_checkin(
        self,
        *,
        user_id: int,
        site_id: int,
        work_date: date,
        check_in_time: datetime,
        status: AttendanceStatus,
        note: Optional[str] = None,
    ) -> int:
        raise NotImplementedError

    def update_checkout(
        self,
        *,
        record_id: int,
        check_out_time: datetime,
        status: AttendanceStatus,
        work_hours: float,
        labor_hours: float,
        overtime_hours: float,
        note: Optional[str] = None,
    ) -> bool:
        raise NotImplementedError

    def create_manual_many(
        self,
        *,
        site_id: int,
        work_date: date,
        rows: Sequence[ManualLabor],
        note: Optional[str] = None,
    ) -> List[int]:
        """Labor entered by an admin without check-in/out times, written in one transaction."""
        raise NotImplementedError

    def admin_update_record(
        self,
        *,
        record_id: int,
        check_in_time: Optional[datetime],
        check_out_time: Optional[datetime],
        status: AttendanceStatus,
        work_hours: float,
        labor_hours: float,
        overtime_hours: float,
        note: Optional[str] = None,
    ) -> bool:
        raise NotImplementedError

    def get_report_rows(
        self,
        *,
        start_date: date,
        end_date: date,
        site_id: Optional[int] = None,
        user_id: Optional[int] = None,
    ) -> Sequence[AttendanceReportRow]:
        raise NotImplementedError
