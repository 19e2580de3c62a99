from __future__ import annotations

from flask import Flask, request

from ..common.datetime_utils import parse_optional_date
from ..common.validators import parse_enum
from ..common.web import admin_required, api_errors, current_user_id, int_field, json_body, manager_required, ok
from ..core.enums import StockStatus
from ..core.exceptions import ValidationError
from ..container import Container
from .model import RequestItemDraft, StockAdjustment

_MATERIAL_FIELDS = ("code", "name", "unit", "specification", "unit_price", "is_active")


def _adjustments(data: dict) -> list[StockAdjustment]:
    try:
        return [
            StockAdjustment(
                site_id=int(a["site_id"]),
                material_id=int(a["material_id"]),
                quantity=float(a["quantity"]),
                notes=a.get("notes"),
            )
            for a in data.get("adjustments") or []
        ]
    except (KeyError, TypeError, ValueError):
        raise ValidationError("Each adjustment needs site_id, material_id and a numeric quantity")


def _request_items(data: dict) -> list[RequestItemDraft]:
    try:
        return [
            RequestItemDraft(
                material_id=int(i["material_id"]),
                requested_quantity=float(i["requested_quantity"]),
                notes=i.get("notes"),
            )
            for i in data.get("items") or []
        ]
    except (KeyError, TypeError, ValueError):
        raise ValidationError("Each item needs material_id and a numeric requested_quantity")


def _approved_quantities(data: dict) -> dict[int, float]:
    try:
        return {int(k): float(v) for k, v in (data.get("approved_quantities") or {}).items()}
    except (TypeError, ValueError):
        raise ValidationError("Approved quantities must be numbers keyed by item id")


def register(app: Flask, container: Container) -> None:
    @app.route("/api/admin/materials", methods=["GET"], endpoint="api_admin_materials")
    @manager_required
    @api_errors
    def list_materials():
        items = container.material_service.list_materials(
            search=request.args.get("search"),
            active_only=request.args.get("active_only") in ("1", "true"),
        )
        return ok(materials=items)

    @app.route("/api/admin/materials", methods=["POST"], endpoint="api_admin_material_create")
    @admin_required
    @api_errors
    def create_material():
        data = json_body()
        material_id = container.material_service.create_material(
            **{k: data[k] for k in _MATERIAL_FIELDS if k in data}
        )
        return ok(201, material_id=material_id)

    @app.route("/api/admin/materials/<int:material_id>", methods=["PUT"], endpoint="api_admin_material_update")
    @admin_required
    @api_errors
    def update_material(material_id: int):
        data = json_body()
        container.material_service.update_material(material_id, **{k: data[k] for k in _MATERIAL_FIELDS if k in data})
        return ok(message="Material updated")

    @app.route("/api/admin/materials/<int:material_id>", methods=["DELETE"], endpoint="api_admin_material_delete")
    @admin_required
    @api_errors
    def delete_material(material_id: int):
        container.material_service.delete_material(material_id)
        return ok(message="Material deleted")

    @app.route("/api/admin/inventory", methods=["GET"], endpoint="api_admin_inventory")
    @manager_required
    @api_errors
    def inventory_list():
        status_s = request.args.get("status")
        items = container.material_service.inventory_list(
            site_id=request.args.get("site_id", type=int),
            status=parse_enum(StockStatus, status_s, "status") if status_s else None,
            search=request.args.get("search"),
        )
        return ok(items=[dict(item=i, status=i.status) for i in items], total=len(items))

    @app.route("/api/admin/inventory/summary", endpoint="api_admin_inventory_summary")
    @manager_required
    @api_errors
    def inventory_summary():
        return ok(summary=container.material_service.inventory_summary(site_id=request.args.get("site_id", type=int)))

    @app.route("/api/admin/inventory/limits", methods=["PUT"], endpoint="api_admin_inventory_limits")
    @manager_required
    @api_errors
    def inventory_limits():
        data = json_body()
        container.material_service.set_inventory_limits(
            site_id=int_field(data, "site_id"),
            material_id=int_field(data, "material_id"),
            minimum_stock=data.get("minimum_stock"),
            maximum_stock=data.get("maximum_stock"),
            storage_location=data.get("storage_location"),
        )
        return ok(message="Stock limits saved")

    @app.route("/api/admin/inventory/transactions", methods=["GET"], endpoint="api_admin_inventory_transactions")
    @manager_required
    @api_errors
    def transactions():
        items = container.material_service.transactions(
            site_id=request.args.get("site_id", type=int),
            material_id=request.args.get("material_id", type=int),
            transaction_type=request.args.get("type") or None,
            date_from=parse_optional_date(request.args.get("date_from")),
            date_to=parse_optional_date(request.args.get("date_to")),
            limit=request.args.get("limit", default=100, type=int),
        )
        return ok(transactions=items)

    @app.route("/api/admin/inventory/transactions", methods=["POST"], endpoint="api_admin_inventory_transaction")
    @manager_required
    @api_errors
    def record_transaction():
        data = json_body()
        tx = container.material_service.record_transaction(
            site_id=int_field(data, "site_id"),
            material_id=int_field(data, "material_id"),
            transaction_type=data.get("transaction_type"),
            quantity=data.get("quantity"),
            performed_by=current_user_id(),
            notes=data.get("notes"),
        )
        return ok(201, transaction=tx)

    @app.route("/api/admin/inventory/adjust", methods=["POST"], endpoint="api_admin_inventory_adjust")
    @admin_required
    @api_errors
    def adjust():
        txs = container.material_service.adjust_inventory(_adjustments(json_body()), performed_by=current_user_id())
        return ok(transactions=txs, message=f"{len(txs)} stock levels adjusted")

    @app.route("/api/admin/material-requests", methods=["GET"], endpoint="api_admin_material_requests")
    @manager_required
    @api_errors
    def list_requests():
        items = container.material_request_service.list_requests(
            site_id=request.args.get("site_id", type=int),
            status=request.args.get("status") or None,
            priority=request.args.get("priority") or None,
            search=request.args.get("search"),
        )
        return ok(requests=items, total=len(items))

    @app.route("/api/admin/material-requests/<int:request_id>", endpoint="api_admin_material_request")
    @manager_required
    @api_errors
    def get_request(request_id: int):
        return ok(request=container.material_request_service.get(request_id))

    @app.route("/api/admin/material-requests", methods=["POST"], endpoint="api_admin_material_request_create")
    @manager_required
    @api_errors
    def create_request():
        data = json_body()
        request_id, number = container.material_request_service.create_request(
            site_id=int_field(data, "site_id"),
            requested_by=current_user_id(),
            items=_request_items(data),
            priority=data.get("priority") or "normal",
            required_date=parse_optional_date(data.get("required_date")),
            notes=data.get("notes"),
        )
        return ok(201, request_id=request_id, request_number=number)

    @app.route("/api/admin/material-requests/approve", methods=["POST"], endpoint="api_admin_material_requests_approve")
    @admin_required
    @api_errors
    def approve_requests():
        data = json_body()
        count = container.material_request_service.approve_requests(
            data.get("request_ids") or [],
            approver_id=current_user_id(),
            comment=data.get("comment"),
            quantities=_approved_quantities(data),
        )
        return ok(updated=count)

    @app.route("/api/admin/material-requests/reject", methods=["POST"], endpoint="api_admin_material_requests_reject")
    @admin_required
    @api_errors
    def reject_requests():
        data = json_body()
        count = container.material_request_service.reject_requests(
            data.get("request_ids") or [], approver_id=current_user_id(), comment=data.get("comment")
        )
        return ok(updated=count)

    @app.route("/api/admin/material-requests/order", methods=["POST"], endpoint="api_admin_material_requests_order")
    @admin_required
    @api_errors
    def order_requests():
        return ok(updated=container.material_request_service.mark_ordered(json_body().get("request_ids") or []))

    @app.route(
        "/api/admin/material-requests/<int:request_id>/deliver",
        methods=["POST"],
        endpoint="api_admin_material_request_deliver",
    )
    @manager_required
    @api_errors
    def deliver(request_id: int):
        txs = container.material_request_service.mark_delivered(request_id, performed_by=current_user_id())
        return ok(transactions=txs)
