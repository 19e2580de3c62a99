from __future__ import annotations

from flask import Flask, request, send_file

from ..common.datetime_utils import parse_hhmm, parse_optional_date
from ..common.validators import parse_enum
from ..common.web import admin_required, api_errors, int_list, json_body, manager_required, ok
from ..core.constants import DEFAULT_BREAK_MINUTES
from ..core.enums import SiteStatus
from ..container import Container
from .model import SiteDraft
from .qr import render_qr_png


def _draft_from_json(data: dict) -> SiteDraft:
    return SiteDraft(
        name=data.get("name", ""),
        address=data.get("address", ""),
        description=data.get("description"),
        status=parse_enum(SiteStatus, data.get("status") or SiteStatus.ACTIVE.value, "status"),
        start_date=parse_optional_date(data.get("start_date")),
        end_date=parse_optional_date(data.get("end_date")),
        manager_name=data.get("manager_name"),
        manager_phone=data.get("manager_phone"),
        work_start_time=parse_hhmm(data.get("work_start_time")),
        work_end_time=parse_hhmm(data.get("work_end_time")),
        break_minutes=data.get("break_minutes", DEFAULT_BREAK_MINUTES),
    )


def _site_ids(data: dict) -> list[int]:
    return int_list(data.get("site_ids"), "site_ids")


def register(app: Flask, container: Container) -> None:
    @app.route("/api/admin/sites", methods=["GET"], endpoint="api_admin_sites")
    @manager_required
    @api_errors
    def list_sites():
        status_s = request.args.get("status")
        page = container.site_service.list_sites(
            search=request.args.get("search"),
            status=parse_enum(SiteStatus, status_s, "status") if status_s else None,
            include_deleted=request.args.get("include_deleted") in ("1", "true"),
            page=request.args.get("page"),
            per_page=request.args.get("per_page"),
        )
        return ok(sites=page.items, total=page.total, page=page.page, per_page=page.per_page, pages=page.pages)

    @app.route("/api/admin/sites", methods=["POST"], endpoint="api_admin_create_site")
    @admin_required
    @api_errors
    def create_site():
        site_id = container.site_service.create(_draft_from_json(json_body()))
        return ok(201, site_id=site_id)

    @app.route("/api/admin/sites/<int:site_id>", methods=["GET"], endpoint="api_admin_site_detail")
    @manager_required
    @api_errors
    def site_detail(site_id: int):
        return ok(site=container.site_service.get(site_id, include_deleted=True))

    @app.route("/api/admin/sites/<int:site_id>", methods=["PATCH"], endpoint="api_admin_update_site")
    @admin_required
    @api_errors
    def update_site(site_id: int):
        container.site_service.update(site_id, _draft_from_json(json_body()))
        return ok()

    @app.route("/api/admin/sites/status", methods=["POST"], endpoint="api_admin_sites_status")
    @admin_required
    @api_errors
    def update_status():
        data = json_body()
        count = container.site_service.update_status(_site_ids(data), parse_enum(SiteStatus, data.get("status"), "status"))
        return ok(updated=count)

    @app.route("/api/admin/sites/delete", methods=["POST"], endpoint="api_admin_sites_delete")
    @admin_required
    @api_errors
    def delete_sites():
        return ok(deleted=container.site_service.delete_sites(_site_ids(json_body())))

    @app.route("/api/admin/sites/restore", methods=["POST"], endpoint="api_admin_sites_restore")
    @admin_required
    @api_errors
    def restore_sites():
        return ok(restored=container.site_service.restore_sites(_site_ids(json_body())))

    @app.route("/api/admin/sites/purge", methods=["POST"], endpoint="api_admin_sites_purge")
    @admin_required
    @api_errors
    def purge_sites():
        return ok(purged=container.site_service.purge_sites(_site_ids(json_body())))

    @app.route("/api/admin/sites/<int:site_id>/qr.png", endpoint="api_admin_site_qr")
    @manager_required
    @api_errors
    def site_qr(site_id: int):
        token = container.site_service.checkin_token(site_id)
        return send_file(render_qr_png(token), mimetype="image/png", download_name=f"site_{site_id}_qr.png")
