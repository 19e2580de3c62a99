from __future__ import annotations

from datetime import date, timedelta

from flask import Flask, request

from ..common.datetime_utils import parse_iso_date, parse_iso_datetime, parse_optional_date
from ..common.validators import parse_enum
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
from ..core.constants import DEFAULT_HISTORY_LIMIT, DEFAULT_REPORT_DAYS
from ..core.enums import AttendanceStatus, Role
from ..core.exceptions import AuthorizationError, ValidationError
from ..container import Container
from .export import report_csv_bytes
from .model import LaborEntry


def _report_range() -> tuple[date, date]:
    today = date.today()
    start = parse_optional_date(request.args.get("start")) or today - timedelta(days=DEFAULT_REPORT_DAYS - 1)
    end = parse_optional_date(request.args.get("end")) or today
    return start, end


def register(app: Flask, container: Container) -> None:
    @app.route("/api/attendance/check-in", methods=["POST"], endpoint="api_check_in")
    @login_required
    @api_errors
    def check_in():
        site_id = int_field(json_body(), "site_id")
        record_id = container.attendance_service.check_in(current_user_id(), site_id)
        return ok(201, record_id=record_id, message="Checked in")

    @app.route("/api/attendance/check-out", methods=["POST"], endpoint="api_check_out")
    @login_required
    @api_errors
    def check_out():
        site_id = int_field(json_body(), "site_id")
        record = container.attendance_service.check_out(current_user_id(), site_id)
        return ok(record=record, message="Checked out")

    @app.route("/api/attendance/qr-checkin", methods=["POST"], endpoint="api_qr_checkin")
    @login_required
    @api_errors
    def qr_checkin():
        action, site = container.attendance_service.qr_checkin(current_user_id(), json_body().get("code", ""))
        return ok(action=action, site_id=site.site_id, site_name=site.name)

    @app.route("/api/attendance/today", endpoint="api_attendance_today")
    @login_required
    @api_errors
    def today():
        site_id = request.args.get("site_id", type=int)
        return ok(records=container.attendance_service.today_record(current_user_id(), date.today(), site_id=site_id))

    @app.route("/api/attendance/history", endpoint="api_attendance_history")
    @login_required
    @api_errors
    def history():
        limit = request.args.get("limit", default=DEFAULT_HISTORY_LIMIT, type=int)
        return ok(records=container.attendance_service.history(current_user_id(), limit=limit))

    @app.route("/api/attendance/calendar", endpoint="api_attendance_calendar")
    @login_required
    @api_errors
    def calendar():
        today_ = date.today()
        user_id = request.args.get("user_id", type=int) or current_user_id()
        if user_id != current_user_id() and current_role() not in (Role.ADMIN, Role.SITE_MANAGER):
            raise AuthorizationError("You can only view your own calendar")
        days = container.attendance_service.monthly_calendar(
            user_id,
            request.args.get("year", default=today_.year, type=int),
            request.args.get("month", default=today_.month, type=int),
        )
        return ok(days=days, total_labor_hours=round(sum(d.labor_hours for d in days), 2))

    @app.route("/api/admin/attendance/<int:record_id>", methods=["PATCH"], endpoint="api_admin_attendance_update")
    @manager_required
    @api_errors
    def update_record(record_id: int):
        data = json_body()
        status_s = data.get("status")
        record = container.attendance_service.update_record(
            record_id,
            check_in_time=parse_iso_datetime(data.get("check_in_time")),
            check_out_time=parse_iso_datetime(data.get("check_out_time")),
            labor_hours=data.get("labor_hours"),
            status=parse_enum(AttendanceStatus, status_s, "status") if status_s else None,
            note=data.get("note"),
        )
        return ok(record=record)

    @app.route("/api/admin/attendance/bulk", methods=["POST"], endpoint="api_admin_attendance_bulk")
    @manager_required
    @api_errors
    def add_bulk():
        data = json_body()
        try:
            entries = [
                LaborEntry(user_id=int(e["user_id"]), labor_hours=float(e.get("labor_hours", 1.0)))
                for e in data.get("entries") or []
            ]
        except (KeyError, TypeError, ValueError):
            raise ValidationError("Each entry needs user_id and numeric labor_hours")
        result = container.attendance_service.add_bulk(
            site_id=int_field(data, "site_id"),
            work_date=parse_iso_date(data.get("work_date", "")),
            entries=entries,
            note=data.get("note"),
        )
        return ok(201, created=result.created, skipped=result.skipped)

    @app.route("/api/admin/attendance/summary", endpoint="api_admin_attendance_summary")
    @manager_required
    @api_errors
    def summary():
        start, end = _report_range()
        rows = container.attendance_service.summary(start=start, end=end, site_id=request.args.get("site_id", type=int))
        return ok(start=start, end=end, workers=rows)

    @app.route("/api/admin/sites/<int:site_id>/roster", endpoint="api_admin_site_roster")
    @manager_required
    @api_errors
    def site_roster(site_id: int):
        work_date = parse_optional_date(request.args.get("date")) or date.today()
        return ok(work_date=work_date, records=container.attendance_service.site_roster(site_id, work_date))

    @app.route("/api/admin/attendance/report.csv", endpoint="api_admin_attendance_csv")
    @manager_required
    @api_errors
    def report_csv():
        start, end = _report_range()
        rows = container.attendance_service.report_rows(
            start=start,
            end=end,
            site_id=request.args.get("site_id", type=int),
            user_id=request.args.get("user_id", type=int),
        )
        filename = f"attendance_{start.strftime('%Y%m%d')}_{end.strftime('%Y%m%d')}.csv"
        return app.response_class(
            report_csv_bytes(rows),
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename={filename}"},
        )
