from __future__ import annotations

from datetime import date, timedelta

from flask import Flask, request

from ..common.datetime_utils import parse_iso_date, parse_optional_date
from ..common.web import (
    api_errors,
    current_role,
    current_user_id,
    int_field,
    json_body,
    login_required,
    manager_required,
    ok,
)
from ..core.constants import DEFAULT_REPORT_DAYS
from ..core.enums import Role
from ..core.exceptions import ValidationError
from ..container import Container
from .model import ReportWorker


def _workers(data: dict) -> list[ReportWorker]:
    try:
        return [
            ReportWorker(user_id=int(w["user_id"]), labor_hours=float(w.get("labor_hours", 1.0)))
            for w in data.get("workers") or []
        ]
    except (KeyError, TypeError, ValueError):
        raise ValidationError("Each worker needs user_id and numeric labor_hours")


def register(app: Flask, container: Container) -> None:
    @app.route("/api/daily-reports", methods=["GET"], endpoint="api_daily_reports")
    @login_required
    @api_errors
    def list_reports():
        role = current_role()
        items = container.daily_report_service.list_reports(
            site_id=request.args.get("site_id", type=int),
            status=request.args.get("status") or None,
            date_from=parse_optional_date(request.args.get("start")),
            date_to=parse_optional_date(request.args.get("end")),
            created_by=None if role in (Role.ADMIN, Role.SITE_MANAGER) else current_user_id(),
        )
        return ok(reports=items, total=len(items))

    @app.route("/api/daily-reports/<int:report_id>", methods=["GET"], endpoint="api_daily_report")
    @login_required
    @api_errors
    def get_report(report_id: int):
        report = container.daily_report_service.view(report_id, user_id=current_user_id(), role=current_role())
        return ok(report=report, total_workers=report.total_workers, total_labor_hours=report.total_labor_hours)

    @app.route("/api/daily-reports", methods=["POST"], endpoint="api_daily_report_save")
    @login_required
    @api_errors
    def save_report():
        data = json_body()
        report_id, created = container.daily_report_service.save_report(
            author_id=current_user_id(),
            author_role=current_role(),
            site_id=int_field(data, "site_id"),
            work_date=parse_iso_date(data.get("work_date", "")),
            process_type=data.get("process_type", ""),
            workers=_workers(data),
            member_name=data.get("member_name"),
            issues=data.get("issues"),
        )
        return ok(201 if created else 200, report_id=report_id)

    @app.route("/api/daily-reports/<int:report_id>/submit", methods=["POST"], endpoint="api_daily_report_submit")
    @login_required
    @api_errors
    def submit(report_id: int):
        report = container.daily_report_service.submit(report_id, actor_id=current_user_id(), actor_role=current_role())
        return ok(report=report)

    @app.route("/api/daily-reports/<int:report_id>", methods=["DELETE"], endpoint="api_daily_report_delete")
    @login_required
    @api_errors
    def delete(report_id: int):
        container.daily_report_service.delete(report_id, actor_id=current_user_id(), actor_role=current_role())
        return ok()

    @app.route(
        "/api/admin/daily-reports/<int:report_id>/review", methods=["POST"], endpoint="api_admin_daily_report_review"
    )
    @manager_required
    @api_errors
    def review(report_id: int):
        data = json_body()
        report = container.daily_report_service.decide(
            report_id,
            approver_id=current_user_id(),
            approver_role=current_role(),
            approve=bool(data.get("approve")),
            comment=data.get("comment"),
        )
        return ok(report=report)

    @app.route("/api/admin/daily-reports/sites", endpoint="api_admin_daily_report_sites")
    @manager_required
    @api_errors
    def site_summaries():
        today = date.today()
        summaries = container.daily_report_service.site_summaries(
            date_from=parse_optional_date(request.args.get("start")) or today - timedelta(days=DEFAULT_REPORT_DAYS - 1),
            date_to=parse_optional_date(request.args.get("end")) or today,
        )
        return ok(sites=summaries)
