from __future__ import annotations

import csv
import io
from typing import Iterable

from .model import AttendanceReportRow

REPORT_FIELDS = [
    "work_date",
    "user_id",
    "full_name",
    "username",
    "site_name",
    "check_in",
    "check_out",
    "status",
    "work_hours",
    "labor_hours",
    "overtime_hours",
    "note",
]


def report_csv_bytes(rows: Iterable[AttendanceReportRow]) -> bytes:
    """CSV with a BOM so Excel opens Korean names correctly."""
    out = io.StringIO()
    writer = csv.DictWriter(out, fieldnames=REPORT_FIELDS)
    writer.writeheader()
    for r in rows:
        writer.writerow(
            {
                "work_date": r.work_date.strftime("%Y-%m-%d"),
                "user_id": r.user_id,
                "full_name": r.full_name,
                "username": r.username,
                "site_name": r.site_name,
                "check_in": r.check_in_time.strftime("%H:%M") if r.check_in_time else "-",
                "check_out": r.check_out_time.strftime("%H:%M") if r.check_out_time else "-",
                "status": r.status.value,
                "work_hours": f"{r.work_hours:.2f}",
                "labor_hours": f"{r.labor_hours:.2f}",
                "overtime_hours": f"{r.overtime_hours:.2f}",
                "note": r.note or "",
            }
        )
    return out.getvalue().encode("utf-8-sig")
