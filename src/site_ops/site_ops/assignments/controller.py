from __future__ import annotations

from flask import Flask, request

from ..common.datetime_utils import parse_optional_date
from ..common.validators import parse_enum
from ..common.web import api_errors, int_field, json_body, manager_required, ok
from ..core.enums import AssignmentRole, AssignmentType
from ..container import Container


def _type_and_role(data: dict) -> tuple[AssignmentType, AssignmentRole]:
    return (
        parse_enum(AssignmentType, data.get("assignment_type") or AssignmentType.PERMANENT.value, "assignment_type"),
        parse_enum(AssignmentRole, data.get("role") or AssignmentRole.WORKER.value, "role"),
    )


def register(app: Flask, container: Container) -> None:
    @app.route("/api/admin/assignments", methods=["GET"], endpoint="api_admin_assignments")
    @manager_required
    @api_errors
    def assignment_history():
        args = request.args
        type_s = args.get("assignment_type")
        active_s = args.get("is_active")
        rows = container.assignment_service.history(
            site_id=args.get("site_id", type=int),
            user_id=args.get("user_id", type=int),
            assignment_type=parse_enum(AssignmentType, type_s, "assignment_type") if type_s else None,
            is_active=None if active_s in (None, "") else active_s in ("1", "true"),
            limit=args.get("limit", default=200, type=int),
        )
        return ok(assignments=rows)

    @app.route("/api/admin/assignments", methods=["POST"], endpoint="api_admin_assign")
    @manager_required
    @api_errors
    def assign():
        data = json_body()
        assignment_type, role = _type_and_role(data)
        kwargs = dict(
            site_id=int_field(data, "site_id"),
            assignment_type=assignment_type,
            role=role,
            assigned_date=parse_optional_date(data.get("assigned_date")),
            end_date=parse_optional_date(data.get("end_date")),
            notes=data.get("notes"),
        )
        if "user_ids" in data:
            outcomes = container.assignment_service.bulk_assign(user_ids=data.get("user_ids") or [], **kwargs)
            return ok(results=outcomes)
        assignment_id = container.assignment_service.assign(user_id=int_field(data, "user_id"), **kwargs)
        return ok(201, assignment_id=assignment_id)

    @app.route("/api/admin/assignments/unassign", methods=["POST"], endpoint="api_admin_unassign")
    @manager_required
    @api_errors
    def unassign():
        data = json_body()
        container.assignment_service.unassign(
            site_id=int_field(data, "site_id"),
            user_id=int_field(data, "user_id"),
            unassigned_date=parse_optional_date(data.get("unassigned_date")),
        )
        return ok()

    @app.route("/api/admin/assignments/role", methods=["POST"], endpoint="api_admin_assignment_role")
    @manager_required
    @api_errors
    def change_role():
        data = json_body()
        container.assignment_service.change_role(
            site_id=int_field(data, "site_id"),
            user_id=int_field(data, "user_id"),
            role=parse_enum(AssignmentRole, data.get("role"), "role"),
        )
        return ok()

    @app.route("/api/admin/assignments/matrix", methods=["GET"], endpoint="api_admin_assignment_matrix")
    @manager_required
    @api_errors
    def matrix():
        site_ids = request.args.getlist("site_id", type=int)
        return ok(matrix=container.assignment_service.matrix(site_ids=site_ids or None))

    @app.route("/api/admin/sites/<int:site_id>/workers", methods=["GET"], endpoint="api_admin_site_workers")
    @manager_required
    @api_errors
    def site_workers(site_id: int):
        return ok(workers=container.assignment_service.list_site_workers(site_id))

    @app.route(
        "/api/admin/sites/<int:site_id>/available-users", methods=["GET"], endpoint="api_admin_site_available_users"
    )
    @manager_required
    @api_errors
    def available_users(site_id: int):
        users = container.assignment_service.available_users(site_id, search=request.args.get("search"))
        return ok(users=users)
