from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional, Sequence

from ..core.enums import AttendanceStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_float, db_cursor, fetchall, fetchone
from .model import AttendanceReportRow, ManualLabor, WorkRecord
from .repository import AttendanceRepository

_RECORD_COLUMNS = """
    w.record_id, w.user_id, w.site_id, w.work_date, w.check_in_time, w.check_out_time,
    w.status, w.work_hours, w.labor_hours, w.overtime_hours, w.note
"""

_REPORT_SELECT = f"""
    SELECT {_RECORD_COLUMNS}, u.full_name, u.username, s.name AS site_name
    FROM work_records w
    JOIN users u ON u.user_id = w.user_id
    JOIN sites s ON s.site_id = w.site_id
"""


def _row_to_record(row: dict) -> WorkRecord:
    return WorkRecord(
        record_id=int(row["record_id"]),
        user_id=int(row["user_id"]),
        site_id=int(row["site_id"]),
        work_date=row["work_date"],
        check_in_time=row.get("check_in_time"),
        check_out_time=row.get("check_out_time"),
        status=AttendanceStatus(row["status"]),
        work_hours=as_float(row.get("work_hours")),
        labor_hours=as_float(row.get("labor_hours")),
        overtime_hours=as_float(row.get("overtime_hours")),
        note=row.get("note"),
    )


def _row_to_report(row: dict) -> AttendanceReportRow:
    return AttendanceReportRow(
        record_id=int(row["record_id"]),
        user_id=int(row["user_id"]),
        full_name=row["full_name"],
        username=row["username"],
        site_id=int(row["site_id"]),
        site_name=row["site_name"],
        work_date=row["work_date"],
        check_in_time=row.get("check_in_time"),
        check_out_time=row.get("check_out_time"),
        status=AttendanceStatus(row["status"]),
        work_hours=as_float(row.get("work_hours")),
        labor_hours=as_float(row.get("labor_hours")),
        overtime_hours=as_float(row.get("overtime_hours")),
        note=row.get("note"),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, record_id: int) -> Optional[WorkRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_RECORD_COLUMNS} FROM work_records w WHERE w.record_id=%s", (record_id,))
            row = fetchone(cur)
            return _row_to_record(row) if row else None

    def get_for_user_site_date(self, user_id: int, site_id: int, work_date: date) -> Optional[WorkRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_RECORD_COLUMNS} FROM work_records w
                WHERE w.user_id=%s AND w.site_id=%s AND w.work_date=%s
                """,
                (user_id, site_id, work_date),
            )
            row = fetchone(cur)
            return _row_to_record(row) if row else None

    def list_for_user_date(self, user_id: int, work_date: date) -> Sequence[WorkRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_RECORD_COLUMNS} FROM work_records w
                WHERE w.user_id=%s AND w.work_date=%s
                ORDER BY w.check_in_time
                """,
                (user_id, work_date),
            )
            return [_row_to_record(r) for r in fetchall(cur)]

    def get_recent_for_user(self, user_id: int, limit: int) -> Sequence[AttendanceReportRow]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _REPORT_SELECT + " WHERE w.user_id=%s ORDER BY w.work_date DESC, w.record_id DESC LIMIT %s",
                (user_id, int(limit)),
            )
            return [_row_to_report(r) for r in fetchall(cur)]

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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO work_records(user_id, site_id, work_date, check_in_time, status, note)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (user_id, site_id, work_date, check_in_time, status.value, note),
            )
            return int(cur.lastrowid)

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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE work_records
                SET check_out_time=%s, status=%s, work_hours=%s, labor_hours=%s, overtime_hours=%s, note=%s
                WHERE record_id=%s AND check_out_time IS NULL
                """,
                (check_out_time, status.value, work_hours, labor_hours, overtime_hours, note, record_id),
            )
            return cur.rowcount > 0

    def create_manual_many(
        self,
        *,
        site_id: int,
        work_date: date,
        rows: Sequence[ManualLabor],
        note: Optional[str] = None,
    ) -> List[int]:
        ids: List[int] = []
        with db_cursor(self._conn_factory) as (_, cur):
            for row in rows:
                cur.execute(
                    """
                    INSERT INTO work_records(user_id, site_id, work_date, status, work_hours, labor_hours, overtime_hours, note)
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        row.user_id,
                        site_id,
                        work_date,
                        row.status.value,
                        row.work_hours,
                        row.labor_hours,
                        row.overtime_hours,
                        note,
                    ),
                )
                ids.append(int(cur.lastrowid))
        return ids

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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE work_records
                SET check_in_time=%s, check_out_time=%s, status=%s,
                    work_hours=%s, labor_hours=%s, overtime_hours=%s, note=%s
                WHERE record_id=%s
                """,
                (check_in_time, check_out_time, status.value, work_hours, labor_hours, overtime_hours, note, record_id),
            )
            return cur.rowcount > 0

    def get_report_rows(
        self,
        *,
        start_date: date,
        end_date: date,
        site_id: Optional[int] = None,
        user_id: Optional[int] = None,
    ) -> Sequence[AttendanceReportRow]:
        where = ["w.work_date BETWEEN %s AND %s"]
        params: list = [start_date, end_date]
        if site_id is not None:
            where.append("w.site_id=%s")
            params.append(site_id)
        if user_id is not None:
            where.append("w.user_id=%s")
            params.append(user_id)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _REPORT_SELECT + f" WHERE {' AND '.join(where)} ORDER BY w.work_date, u.full_name, s.name",
                tuple(params),
            )
            return [_row_to_report(r) for r in fetchall(cur)]
