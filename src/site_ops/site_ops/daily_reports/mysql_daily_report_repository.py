from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime
from typing import Dict, Optional, Sequence

from ..core.enums import DailyReportStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_float, db_cursor, fetchall, fetchone, in_clause
from .model import DailyReport, ReportDraft, ReportLabor, ReportWorker
from .repository import DailyReportRepository

_REPORT_SELECT = """
    SELECT r.report_id, r.site_id, r.work_date, r.created_by, r.process_type, r.member_name, r.issues,
           r.status, r.approved_by, r.approved_at, r.approval_comment, r.created_at,
           s.name AS site_name, u.full_name AS author_name
    FROM daily_reports r
    JOIN sites s ON s.site_id = r.site_id
    LEFT JOIN users u ON u.user_id = r.created_by
"""

_EDITABLE = (DailyReportStatus.DRAFT.value, DailyReportStatus.REJECTED.value)


def _row_to_report(row: dict, workers: Sequence[ReportWorker]) -> DailyReport:
    return DailyReport(
        report_id=int(row["report_id"]),
        site_id=int(row["site_id"]),
        work_date=row["work_date"],
        created_by=int(row["created_by"]),
        process_type=row["process_type"],
        status=DailyReportStatus(row["status"]),
        member_name=row.get("member_name"),
        issues=row.get("issues"),
        approved_by=row.get("approved_by"),
        approved_at=row.get("approved_at"),
        approval_comment=row.get("approval_comment"),
        created_at=row.get("created_at"),
        site_name=row.get("site_name"),
        author_name=row.get("author_name"),
        workers=list(workers),
    )


class MySQLDailyReportRepository(DailyReportRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _workers_for(self, cur, report_ids: Sequence[int]) -> Dict[int, list]:
        grouped: Dict[int, list] = defaultdict(list)
        if not report_ids:
            return grouped
        cur.execute(
            f"""
            SELECT w.report_id, w.user_id, w.labor_hours, u.full_name
            FROM daily_report_workers w
            JOIN users u ON u.user_id = w.user_id
            WHERE w.report_id IN ({in_clause(report_ids)})
            ORDER BY w.entry_id
            """,
            tuple(report_ids),
        )
        for row in fetchall(cur):
            grouped[int(row["report_id"])].append(
                ReportWorker(
                    user_id=int(row["user_id"]),
                    labor_hours=as_float(row.get("labor_hours")),
                    full_name=row.get("full_name"),
                )
            )
        return grouped

    def _insert_workers(self, cur, report_id: int, draft: ReportDraft) -> None:
        if not draft.workers:
            return
        cur.executemany(
            "INSERT INTO daily_report_workers(report_id, user_id, labor_hours) VALUES(%s,%s,%s)",
            [(report_id, w.user_id, w.labor_hours) for w in draft.workers],
        )

    def _select(self, where: str, params: tuple) -> Sequence[DailyReport]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_REPORT_SELECT + where, params)
            rows = fetchall(cur)
            workers = self._workers_for(cur, [int(r["report_id"]) for r in rows])
            return [_row_to_report(r, workers.get(int(r["report_id"]), [])) for r in rows]

    def get_by_id(self, report_id: int) -> Optional[DailyReport]:
        found = self._select(" WHERE r.report_id=%s", (report_id,))
        return found[0] if found else None

    def find(self, *, site_id: int, work_date: date, created_by: int) -> Optional[DailyReport]:
        found = self._select(
            " WHERE r.site_id=%s AND r.work_date=%s AND r.created_by=%s", (site_id, work_date, created_by)
        )
        return found[0] if found else None

    def list_reports(
        self,
        *,
        site_id: Optional[int] = None,
        status: Optional[DailyReportStatus] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        created_by: Optional[int] = None,
    ) -> Sequence[DailyReport]:
        where, params = [], []
        if site_id is not None:
            where.append("r.site_id=%s")
            params.append(site_id)
        if status is not None:
            where.append("r.status=%s")
            params.append(status.value)
        if date_from is not None:
            where.append("r.work_date >= %s")
            params.append(date_from)
        if date_to is not None:
            where.append("r.work_date <= %s")
            params.append(date_to)
        if created_by is not None:
            where.append("r.created_by=%s")
            params.append(created_by)
        sql = " WHERE " + " AND ".join(where) if where else ""
        return self._select(sql + " ORDER BY r.work_date DESC, s.name, r.report_id DESC", tuple(params))

    def create(self, draft: ReportDraft, *, created_by: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO daily_reports(site_id, work_date, created_by, process_type, member_name, issues, status)
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    draft.site_id,
                    draft.work_date,
                    created_by,
                    draft.process_type,
                    draft.member_name,
                    draft.issues,
                    DailyReportStatus.DRAFT.value,
                ),
            )
            report_id = int(cur.lastrowid)
            self._insert_workers(cur, report_id, draft)
            return report_id

    def replace(self, report_id: int, draft: ReportDraft) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                UPDATE daily_reports
                SET process_type=%s, member_name=%s, issues=%s, status=%s,
                    approved_by=NULL, approved_at=NULL, approval_comment=NULL
                WHERE report_id=%s AND status IN ({in_clause(_EDITABLE)})
                """,
                (
                    draft.process_type,
                    draft.member_name,
                    draft.issues,
                    DailyReportStatus.DRAFT.value,
                    report_id,
                    *_EDITABLE,
                ),
            )
            if cur.rowcount != 1:
                return False
            cur.execute("DELETE FROM daily_report_workers WHERE report_id=%s", (report_id,))
            self._insert_workers(cur, report_id, draft)
            return True

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
        sets = ["status=%s"]
        params: list = [to_status.value]
        if to_status in (DailyReportStatus.APPROVED, DailyReportStatus.REJECTED):
            sets += ["approved_by=%s", "approved_at=%s", "approval_comment=%s"]
            params += [actor_id, at, comment]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE daily_reports SET {', '.join(sets)} WHERE report_id=%s AND status=%s",
                (*params, report_id, from_status.value),
            )
            return cur.rowcount == 1

    def delete_draft(self, report_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM daily_reports WHERE report_id=%s AND status=%s",
                (report_id, DailyReportStatus.DRAFT.value),
            )
            return cur.rowcount == 1

    def labor_rows(
        self,
        *,
        start_date: date,
        end_date: date,
        site_id: Optional[int] = None,
        user_id: Optional[int] = None,
        status: DailyReportStatus = DailyReportStatus.APPROVED,
    ) -> Sequence[ReportLabor]:
        sql = """
            SELECT r.report_id, w.user_id, r.site_id, s.name AS site_name, r.work_date, w.labor_hours
            FROM daily_report_workers w
            JOIN daily_reports r ON r.report_id = w.report_id
            JOIN sites s ON s.site_id = r.site_id
            WHERE r.status=%s AND r.work_date BETWEEN %s AND %s
        """
        params: list = [status.value, start_date, end_date]
        if site_id is not None:
            sql += " AND r.site_id=%s"
            params.append(site_id)
        if user_id is not None:
            sql += " AND w.user_id=%s"
            params.append(user_id)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql + " ORDER BY r.work_date, w.user_id, r.report_id", tuple(params))
            return [
                ReportLabor(
                    report_id=int(row["report_id"]),
                    user_id=int(row["user_id"]),
                    site_id=int(row["site_id"]),
                    site_name=row["site_name"],
                    work_date=row["work_date"],
                    labor_hours=as_float(row.get("labor_hours")),
                )
                for row in fetchall(cur)
            ]
