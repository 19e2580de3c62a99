from __future__ import annotations

import io
from datetime import datetime
from typing import Optional, Sequence

import pandas as pd
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table

from ..common.pdf import grid_style, register_font, styles_for
from .model import MonthlyStatement, SalaryRecord

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

_DEDUCTION_LABELS = (
    ("national_pension", "National pension"),
    ("health_insurance", "Health insurance"),
    ("long_term_care", "Long-term care"),
    ("employment_insurance", "Employment insurance"),
    ("income_tax", "Income tax"),
)


def records_excel_bytes(records: Sequence[SalaryRecord]) -> io.BytesIO:
    df = pd.DataFrame(
        [
            {
                "Date": r.work_date.strftime("%Y-%m-%d"),
                "Worker": r.full_name,
                "Site": r.site_name or "-",
                "Labor": r.labor_hours,
                "Regular hours": r.regular_hours,
                "Overtime hours": r.overtime_hours,
                "Base pay": r.base_pay,
                "Overtime pay": r.overtime_pay,
                "Total pay": r.total_pay,
                "Status": r.status.value,
            }
            for r in records
        ],
        columns=[
            "Date",
            "Worker",
            "Site",
            "Labor",
            "Regular hours",
            "Overtime hours",
            "Base pay",
            "Overtime pay",
            "Total pay",
            "Status",
        ],
    )
    out = io.BytesIO()
    with pd.ExcelWriter(out, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name="Records")
    out.seek(0)
    return out


def statements_excel_bytes(statements: Sequence[MonthlyStatement]) -> io.BytesIO:
    """One row per worker plus a per-site sheet."""
    summary = pd.DataFrame(
        [
            {
                "Worker": s.full_name,
                "Month": f"{s.year}-{s.month:02d}",
                "Employment type": s.employment_type.value if s.employment_type else "-",
                "Work days": s.work_days,
                "Labor": s.labor_hours,
                "Gross pay": s.gross_pay,
                **{label: getattr(s.deductions, key) for key, label in _DEDUCTION_LABELS},
                "Total deductions": s.deductions.total,
                "Net pay": s.net_pay,
            }
            for s in statements
        ]
    )
    sites = pd.DataFrame(
        [
            {
                "Worker": s.full_name,
                "Site": b.site_name,
                "Days": b.days,
                "Labor": b.labor_hours,
                "Pay": b.pay,
            }
            for s in statements
            for b in s.sites
        ],
        columns=["Worker", "Site", "Days", "Labor", "Pay"],
    )
    out = io.BytesIO()
    with pd.ExcelWriter(out, engine="openpyxl") as writer:
        summary.to_excel(writer, index=False, sheet_name="Statements")
        sites.to_excel(writer, index=False, sheet_name="Sites")
    out.seek(0)
    return out


def _won(amount: int) -> str:
    return f"{amount:,} KRW"


def statement_pdf_bytes(statement: MonthlyStatement, *, font_path: Optional[str] = None) -> io.BytesIO:
    font = register_font(font_path)
    styles = styles_for(font)

    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4, topMargin=50, bottomMargin=50)
    story = [
        Paragraph(f"<b>Salary statement {statement.year}-{statement.month:02d}</b>", styles["Title"]),
        Spacer(1, 20),
    ]

    info = Table(
        [
            ["Worker", statement.full_name, "Issued", datetime.now().strftime("%Y-%m-%d")],
            [
                "Employment",
                statement.employment_type.value if statement.employment_type else "-",
                "Daily rate",
                _won(statement.daily_rate) if statement.daily_rate else "-",
            ],
            ["Work days", str(statement.work_days), "Labor", f"{statement.labor_hours:.2f}"],
        ],
        colWidths=[1.5 * inch] * 4,
    )
    info.setStyle(grid_style(font, header=False))
    story += [info, Spacer(1, 20)]

    rows = [["Item", "Amount"], ["Gross pay", _won(statement.gross_pay)]]
    rows += [[label, _won(getattr(statement.deductions, key))] for key, label in _DEDUCTION_LABELS]
    rows += [["Total deductions", _won(statement.deductions.total)], ["Net pay", _won(statement.net_pay)]]
    pay_table = Table(rows, colWidths=[3 * inch, 3 * inch])
    pay_table.setStyle(grid_style(font))
    story += [pay_table, Spacer(1, 20)]

    if statement.sites:
        site_rows = [["Site", "Days", "Labor", "Pay"]]
        site_rows += [[b.site_name, str(b.days), f"{b.labor_hours:.2f}", _won(b.pay)] for b in statement.sites]
        site_table = Table(site_rows, colWidths=[2.4 * inch, 1 * inch, 1 * inch, 1.6 * inch])
        site_table.setStyle(grid_style(font))
        story.append(site_table)

    doc.build(story)
    buffer.seek(0)
    return buffer
