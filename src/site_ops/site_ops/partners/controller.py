from __future__ import annotations

from flask import Flask, request

from ..common.datetime_utils import parse_optional_date
from ..common.validators import parse_enum
from ..common.web import admin_required, api_errors, int_field, json_body, manager_required, ok
from ..core.enums import CompanyType, PartnerStatus
from ..container import Container
from .model import PartnerDraft


def _draft_from_json(data: dict) -> PartnerDraft:
    return PartnerDraft(
        company_name=data.get("company_name", ""),
        company_type=parse_enum(CompanyType, data.get("company_type") or CompanyType.SUBCONTRACTOR.value, "company_type"),
        business_number=data.get("business_number"),
        representative_name=data.get("representative_name"),
        contact_person=data.get("contact_person"),
        phone=data.get("phone"),
        email=data.get("email"),
        address=data.get("address"),
        contract_start_date=parse_optional_date(data.get("contract_start_date")),
        contract_end_date=parse_optional_date(data.get("contract_end_date")),
        notes=data.get("notes"),
    )


def register(app: Flask, container: Container) -> None:
    @app.route("/api/admin/partners", methods=["GET"], endpoint="api_admin_partners")
    @manager_required
    @api_errors
    def list_partners():
        status_s = request.args.get("status")
        partners = container.partner_service.list(
            search=request.args.get("search"),
            status=parse_enum(PartnerStatus, status_s, "status") if status_s else None,
        )
        return ok(partners=partners)

    @app.route("/api/admin/partners", methods=["POST"], endpoint="api_admin_create_partner")
    @admin_required
    @api_errors
    def create_partner():
        return ok(201, partner_id=container.partner_service.create(_draft_from_json(json_body())))

    @app.route("/api/admin/partners/<int:partner_id>", methods=["GET"], endpoint="api_admin_partner_detail")
    @manager_required
    @api_errors
    def partner_detail(partner_id: int):
        return ok(
            partner=container.partner_service.get(partner_id),
            sites=container.partner_service.list_sites_for_partner(partner_id),
        )

    @app.route("/api/admin/partners/<int:partner_id>", methods=["PATCH"], endpoint="api_admin_update_partner")
    @admin_required
    @api_errors
    def update_partner(partner_id: int):
        container.partner_service.update(partner_id, _draft_from_json(json_body()))
        return ok()

    @app.route("/api/admin/partners/<int:partner_id>/status", methods=["POST"], endpoint="api_admin_partner_status")
    @admin_required
    @api_errors
    def partner_status(partner_id: int):
        status = parse_enum(PartnerStatus, json_body().get("status"), "status")
        container.partner_service.set_status(partner_id, status)
        return ok()

    @app.route("/api/admin/partners/<int:partner_id>", methods=["DELETE"], endpoint="api_admin_delete_partner")
    @admin_required
    @api_errors
    def delete_partner(partner_id: int):
        container.partner_service.delete(partner_id)
        return ok()

    @app.route("/api/admin/sites/<int:site_id>/partners", methods=["GET"], endpoint="api_admin_site_partners")
    @manager_required
    @api_errors
    def site_partners(site_id: int):
        return ok(partners=container.partner_service.list_for_site(site_id))

    @app.route("/api/admin/sites/<int:site_id>/partners", methods=["POST"], endpoint="api_admin_link_partner")
    @admin_required
    @api_errors
    def link_partner(site_id: int):
        data = json_body()
        link_id = container.partner_service.link_site(
            site_id=site_id,
            partner_id=int_field(data, "partner_id"),
            contract_amount=data.get("contract_amount"),
            work_scope=data.get("work_scope"),
            start_date=parse_optional_date(data.get("start_date")),
            end_date=parse_optional_date(data.get("end_date")),
        )
        return ok(201, site_partner_id=link_id)

    @app.route(
        "/api/admin/sites/<int:site_id>/partners/<int:site_partner_id>",
        methods=["DELETE"],
        endpoint="api_admin_unlink_partner",
    )
    @admin_required
    @api_errors
    def unlink_partner(site_id: int, site_partner_id: int):
        container.partner_service.unlink_site(site_partner_id)
        return ok()
