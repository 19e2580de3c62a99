from __future__ import annotations

from datetime import date

from flask import Flask, current_app, request, send_file

from ..common.datetime_utils import month_range, parse_iso_date, parse_optional_date
from ..common.web import admin_required, api_errors, current_role, current_user_id, int_field, json_body, login_required, ok
from ..core.enums import Role
from ..core.exceptions import AuthorizationError
from ..container import Container
from .export import XLSX_MIMETYPE, records_excel_bytes, statement_pdf_bytes, statements_excel_bytes

_RULE_FIELDS = ("rule_name", "rule_type", "base_amount", "multiplier", "site_id", "role", "is_active")
_SETTING_FIELDS = (
    "tax_rate",
    "national_pension_rate",
    "health_insurance_rate",
    "employment_insurance_rate",
    "long_term_care_rate",
)


def _range() -> tuple[date, date]:
    today = date.today()
    default_from, default_to = month_range(today.year, today.month)
    return (
        parse_optional_date(request.args.get("date_from")) or default_from,
        parse_optional_date(request.args.get("date_to")) or default_to,
    )


def _year_month() -> tuple[int, int]:
    today = date.today()
    return (
        request.args.get("year", default=today.year, type=int),
        request.args.get("month", default=today.month, type=int),
    )


def register(app: Flask, container: Container) -> None:
    @app.route("/api/admin/salary/rules", methods=["GET"], endpoint="api_admin_salary_rules")
    @admin_required
    @api_errors
    def list_rules():
        active_only = request.args.get("active_only") in ("1", "true")
        return ok(rules=container.salary_service.list_rules(active_only=active_only))

    @app.route("/api/admin/salary/rules", methods=["POST"], endpoint="api_admin_salary_rule_create")
    @admin_required
    @api_errors
    def create_rule():
        data = json_body()
        rule_id = container.salary_service.create_rule(**{k: data[k] for k in _RULE_FIELDS if k in data})
        return ok(201, rule_id=rule_id)

    @app.route("/api/admin/salary/rules/<int:rule_id>", methods=["PUT"], endpoint="api_admin_salary_rule_update")
    @admin_required
    @api_errors
    def update_rule(rule_id: int):
        data = json_body()
        container.salary_service.update_rule(rule_id, **{k: data[k] for k in _RULE_FIELDS if k in data})
        return ok(message="Rule updated")

    @app.route(
        "/api/admin/salary/rules/<int:rule_id>/active", methods=["POST"], endpoint="api_admin_salary_rule_active"
    )
    @admin_required
    @api_errors
    def set_rule_active(rule_id: int):
        container.salary_service.set_rule_active(rule_id, is_active=bool(json_body().get("is_active", True)))
        return ok(message="Rule updated")

    @app.route("/api/admin/salary/rules/<int:rule_id>", methods=["DELETE"], endpoint="api_admin_salary_rule_delete")
    @admin_required
    @api_errors
    def delete_rule(rule_id: int):
        container.salary_service.delete_rule(rule_id)
        return ok(message="Rule deleted")

    @app.route("/api/admin/salary/settings", methods=["GET"], endpoint="api_admin_salary_settings")
    @admin_required
    @api_errors
    def list_settings():
        return ok(settings=container.salary_service.list_worker_settings())

    @app.route("/api/admin/salary/settings/<int:user_id>", methods=["GET"], endpoint="api_admin_salary_setting")
    @admin_required
    @api_errors
    def get_setting(user_id: int):
        return ok(setting=container.salary_service.get_worker_setting(user_id))

    @app.route("/api/admin/salary/settings/<int:user_id>", methods=["PUT"], endpoint="api_admin_salary_setting_save")
    @admin_required
    @api_errors
    def save_setting(user_id: int):
        data = json_body()
        setting = container.salary_service.set_worker_setting(
            user_id,
            employment_type=data.get("employment_type"),
            daily_rate=data.get("daily_rate"),
            effective_date=parse_optional_date(data.get("effective_date")),
            **{k: data.get(k) for k in _SETTING_FIELDS},
        )
        return ok(setting=setting)

    @app.route("/api/admin/salary/calculate", methods=["POST"], endpoint="api_admin_salary_calculate")
    @admin_required
    @api_errors
    def calculate():
        data = json_body()
        result = container.salary_service.calculate_records(
            date_from=parse_iso_date(data.get("date_from", "")),
            date_to=parse_iso_date(data.get("date_to", "")),
            site_id=int_field(data, "site_id", None),
            user_id=int_field(data, "user_id", None),
        )
        return ok(result=result)

    @app.route("/api/admin/salary/records", methods=["GET"], endpoint="api_admin_salary_records")
    @admin_required
    @api_errors
    def list_records():
        date_from, date_to = _range()
        records = container.salary_service.list_records(
            date_from=date_from,
            date_to=date_to,
            user_id=request.args.get("user_id", type=int),
            site_id=request.args.get("site_id", type=int),
            status=request.args.get("status") or None,
        )
        return ok(records=records, total_pay=sum(r.total_pay for r in records))

    @app.route("/api/admin/salary/records/approve", methods=["POST"], endpoint="api_admin_salary_approve")
    @admin_required
    @api_errors
    def approve():
        count = container.salary_service.approve_records(
            json_body().get("salary_ids") or [], approver_id=current_user_id()
        )
        return ok(updated=count)

    @app.route("/api/admin/salary/records/paid", methods=["POST"], endpoint="api_admin_salary_paid")
    @admin_required
    @api_errors
    def mark_paid():
        return ok(updated=container.salary_service.mark_paid(json_body().get("salary_ids") or []))

    @app.route("/api/admin/salary/records.xlsx", endpoint="api_admin_salary_records_xlsx")
    @admin_required
    @api_errors
    def records_xlsx():
        date_from, date_to = _range()
        records = container.salary_service.list_records(
            date_from=date_from, date_to=date_to, site_id=request.args.get("site_id", type=int)
        )
        return send_file(
            records_excel_bytes(records),
            mimetype=XLSX_MIMETYPE,
            as_attachment=True,
            download_name=f"salary_{date_from.strftime('%Y%m%d')}_{date_to.strftime('%Y%m%d')}.xlsx",
        )

    @app.route("/api/admin/salary/stats", endpoint="api_admin_salary_stats")
    @admin_required
    @api_errors
    def stats():
        date_from, date_to = _range()
        result = container.salary_service.stats(
            date_from=date_from, date_to=date_to, site_id=request.args.get("site_id", type=int)
        )
        return ok(date_from=date_from, date_to=date_to, stats=result)

    @app.route("/api/admin/salary/statements", endpoint="api_admin_salary_statements")
    @admin_required
    @api_errors
    def statements():
        year, month = _year_month()
        items = container.salary_service.monthly_statements(year, month, site_id=request.args.get("site_id", type=int))
        return ok(
            statements=[dict(statement=s, net_pay=s.net_pay, total_deductions=s.deductions.total) for s in items]
        )

    @app.route("/api/admin/salary/statements.xlsx", endpoint="api_admin_salary_statements_xlsx")
    @admin_required
    @api_errors
    def statements_xlsx():
        year, month = _year_month()
        items = container.salary_service.monthly_statements(year, month, site_id=request.args.get("site_id", type=int))
        return send_file(
            statements_excel_bytes(items),
            mimetype=XLSX_MIMETYPE,
            as_attachment=True,
            download_name=f"statements_{year}{month:02d}.xlsx",
        )

    def _statement_for_request():
        year, month = _year_month()
        user_id = request.args.get("user_id", type=int) or current_user_id()
        if user_id != current_user_id() and current_role() != Role.ADMIN:
            raise AuthorizationError("You can only view your own statement")
        return container.salary_service.monthly_statement(user_id, year, month)

    @app.route("/api/salary/statement", endpoint="api_salary_statement")
    @login_required
    @api_errors
    def my_statement():
        statement = _statement_for_request()
        return ok(statement=statement, net_pay=statement.net_pay, total_deductions=statement.deductions.total)

    @app.route("/api/salary/statement.pdf", endpoint="api_salary_statement_pdf")
    @login_required
    @api_errors
    def my_statement_pdf():
        statement = _statement_for_request()
        pdf = statement_pdf_bytes(statement, font_path=current_app.config.get("PDF_FONT_PATH"))
        return send_file(
            pdf,
            mimetype="application/pdf",
            as_attachment=True,
            download_name=f"statement_{statement.user_id}_{statement.year}{statement.month:02d}.pdf",
        )
