from __future__ import annotations

from datetime import timedelta

from flask import Flask, request, session

from ..common.validators import parse_enum
from ..common.web import admin_required, api_errors, current_role, current_user_id, json_body, login_required, ok
from ..core.enums import Role
from ..container import Container
from .model import UserSummary


def register(app: Flask, container: Container) -> None:
    @app.route("/api/auth/login", methods=["POST"], endpoint="api_login")
    @api_errors
    def login():
        data = json_body()
        s_user = container.auth_service.authenticate(data.get("username", ""), data.get("password", ""))

        session.clear()
        session.permanent = bool(data.get("remember_me"))
        app.permanent_session_lifetime = timedelta(days=7)
        session["user_id"] = s_user.user_id
        session["name"] = s_user.full_name
        session["role"] = s_user.role.value
        session["partner_id"] = s_user.partner_id
        return ok(user=s_user)

    @app.route("/api/auth/logout", methods=["POST"], endpoint="api_logout")
    def logout():
        session.clear()
        return ok()

    @app.route("/api/auth/me", endpoint="api_me")
    @login_required
    @api_errors
    def me():
        return ok(user=UserSummary.of(container.user_service.get(current_user_id())))

    @app.route("/api/auth/password", methods=["POST"], endpoint="api_change_password")
    @login_required
    @api_errors
    def change_password():
        data = json_body()
        container.user_service.change_password(
            current_user_id(),
            current_password=data.get("current_password", ""),
            new_password=data.get("new_password", ""),
        )
        return ok()

    @app.route("/api/admin/users", methods=["GET"], endpoint="api_admin_users")
    @admin_required
    @api_errors
    def list_users():
        role_s = request.args.get("role")
        role = parse_enum(Role, role_s, "role") if role_s else None
        users = container.user_service.list_users(search=request.args.get("search"), role=role)
        return ok(users=users)

    @app.route("/api/admin/users", methods=["POST"], endpoint="api_admin_create_user")
    @admin_required
    @api_errors
    def create_user():
        data = json_body()
        user_id = container.user_service.create_account(
            full_name=data.get("full_name", ""),
            username=data.get("username", ""),
            password=data.get("password", ""),
            role=parse_enum(Role, data.get("role", Role.WORKER.value), "role"),
            phone=data.get("phone"),
            email=data.get("email"),
            partner_id=data.get("partner_id"),
        )
        return ok(201, user_id=user_id)

    @app.route("/api/admin/users/<int:user_id>", methods=["PATCH"], endpoint="api_admin_update_user")
    @admin_required
    @api_errors
    def update_user(user_id: int):
        data = json_body()
        container.user_service.update_profile(
            user_id,
            full_name=data.get("full_name", ""),
            phone=data.get("phone"),
            email=data.get("email"),
            partner_id=data.get("partner_id"),
        )
        return ok()

    @app.route("/api/admin/users/<int:user_id>/role", methods=["POST"], endpoint="api_admin_user_role")
    @admin_required
    @api_errors
    def update_role(user_id: int):
        role = parse_enum(Role, json_body().get("role"), "role")
        container.user_service.update_role(current_role=current_role(), user_id=user_id, role=role)
        return ok()

    @app.route("/api/admin/users/<int:user_id>/status", methods=["POST"], endpoint="api_admin_user_status")
    @admin_required
    @api_errors
    def update_status(user_id: int):
        container.user_service.set_active(
            current_user_id=current_user_id(),
            user_id=user_id,
            is_active=bool(json_body().get("is_active", True)),
        )
        return ok()

    @app.route(
        "/api/admin/users/<int:user_id>/reset-password", methods=["POST"], endpoint="api_admin_reset_password"
    )
    @admin_required
    @api_errors
    def reset_password(user_id: int):
        temp = container.user_service.reset_password(current_role=current_role(), user_id=user_id)
        return ok(temporary_password=temp)

    @app.route("/api/admin/users/<int:user_id>", methods=["DELETE"], endpoint="api_admin_delete_user")
    @admin_required
    @api_errors
    def delete_user(user_id: int):
        container.user_service.delete_user(current_role=current_role(), user_id=user_id)
        return ok()
