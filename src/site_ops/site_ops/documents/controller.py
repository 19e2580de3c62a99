from __future__ import annotations

import json

from flask import Flask, request, send_file

from ..common.datetime_utils import parse_iso_datetime, parse_optional_date
from ..common.web import (
    admin_required,
    api_errors,
    current_role,
    current_user_id,
    int_field,
    json_body,
    login_required,
    ok,
)
from ..core.exceptions import ValidationError
from ..container import Container
from .categories import CATEGORIES


def _form_metadata() -> dict:
    raw = request.form.get("metadata")
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except ValueError:
        raise ValidationError("Metadata must be a JSON object")
    if not isinstance(data, dict):
        raise ValidationError("Metadata must be a JSON object")
    return data


def _uploaded(field: str = "file"):
    f = request.files.get(field)
    if not f or not f.filename:
        return None
    return f.filename, f.read()


def register(app: Flask, container: Container) -> None:
    @app.route("/api/documents/categories", endpoint="api_document_categories")
    @login_required
    @api_errors
    def categories():
        return ok(
            categories=[
                dict(
                    category=c.category,
                    label=c.label,
                    extensions=sorted(c.extensions),
                    max_size=c.max_size,
                    requires_approval=c.requires_approval,
                )
                for c in CATEGORIES.values()
            ]
        )

    @app.route("/api/documents", methods=["GET"], endpoint="api_documents")
    @login_required
    @api_errors
    def visible_documents():
        docs = container.document_service.visible_to(
            current_user_id(),
            current_role(),
            category=request.args.get("category") or None,
            search=request.args.get("search"),
        )
        return ok(documents=docs, total=len(docs))

    @app.route("/api/documents", methods=["POST"], endpoint="api_document_upload")
    @login_required
    @api_errors
    def upload():
        uploaded = _uploaded()
        if not uploaded:
            raise ValidationError("File is required")
        filename, data = uploaded
        doc = container.document_service.upload(
            owner_id=current_user_id(),
            title=request.form.get("title", ""),
            category=request.form.get("category", ""),
            filename=filename,
            data=data,
            description=request.form.get("description"),
            site_id=request.form.get("site_id", type=int),
            is_public=request.form.get("is_public") in ("1", "true"),
            metadata=_form_metadata(),
        )
        return ok(201, document=doc)

    @app.route("/api/documents/<int:document_id>/download", endpoint="api_document_download")
    @login_required
    @api_errors
    def download(document_id: int):
        access = request.args.get("access") or "download"
        doc, path = container.document_service.open_for_download(
            document_id, user_id=current_user_id(), role=current_role(), access_type=access
        )
        return send_file(
            path,
            mimetype=doc.mime_type,
            as_attachment=access == "download",
            download_name=doc.file_name,
        )

    @app.route("/api/documents/<int:document_id>", methods=["DELETE"], endpoint="api_document_delete")
    @login_required
    @api_errors
    def delete(document_id: int):
        container.document_service.delete(document_id, actor_id=current_user_id(), actor_role=current_role())
        return ok(message="Document deleted")

    @app.route("/api/documents/<int:document_id>/share", methods=["GET"], endpoint="api_document_permissions")
    @login_required
    @api_errors
    def permissions(document_id: int):
        items = container.document_service.permissions(
            document_id, actor_id=current_user_id(), actor_role=current_role()
        )
        return ok(permissions=items)

    @app.route("/api/documents/<int:document_id>/share", methods=["POST"], endpoint="api_document_share")
    @login_required
    @api_errors
    def share(document_id: int):
        data = json_body()
        permission = container.document_service.share(
            document_id,
            actor_id=current_user_id(),
            actor_role=current_role(),
            target_user_id=int_field(data, "user_id"),
            permission_type=data.get("permission_type") or "view",
            expires_at=parse_iso_datetime(data.get("expires_at")),
        )
        return ok(permission=permission)

    @app.route(
        "/api/documents/<int:document_id>/share/<int:user_id>", methods=["DELETE"], endpoint="api_document_unshare"
    )
    @login_required
    @api_errors
    def unshare(document_id: int, user_id: int):
        container.document_service.unshare(
            document_id, actor_id=current_user_id(), actor_role=current_role(), target_user_id=user_id
        )
        return ok(message="Sharing removed")

    @app.route("/api/documents/<int:document_id>/access-log", endpoint="api_document_access_log")
    @login_required
    @api_errors
    def access_log(document_id: int):
        entries = container.document_service.access_log(
            document_id, actor_id=current_user_id(), actor_role=current_role()
        )
        return ok(entries=entries)

    @app.route("/api/admin/documents", endpoint="api_admin_documents")
    @admin_required
    @api_errors
    def admin_documents():
        docs = container.document_service.list(
            category=request.args.get("category") or None,
            site_id=request.args.get("site_id", type=int),
            owner_id=request.args.get("owner_id", type=int),
            approval_status=request.args.get("approval_status") or None,
            search=request.args.get("search"),
        )
        return ok(documents=docs, total=len(docs))

    @app.route(
        "/api/admin/documents/<int:document_id>/approval", methods=["POST"], endpoint="api_admin_document_approval"
    )
    @admin_required
    @api_errors
    def approval(document_id: int):
        data = json_body()
        if data.get("decision") not in ("approve", "reject"):
            raise ValidationError("Decision must be 'approve' or 'reject'")
        doc = container.document_service.decide_approval(
            document_id,
            approver_id=current_user_id(),
            approver_role=current_role(),
            approve=data["decision"] == "approve",
        )
        return ok(document=doc)

    @app.route("/api/punch-items", methods=["GET"], endpoint="api_punch_items")
    @login_required
    @api_errors
    def punch_items():
        site_id = request.args.get("site_id", type=int)
        items = container.punch_service.list(
            status=request.args.get("status") or None,
            site_id=site_id,
            search=request.args.get("search"),
        )
        return ok(items=items, stats=container.punch_service.stats(site_id=site_id))

    @app.route("/api/punch-items", methods=["POST"], endpoint="api_punch_create")
    @login_required
    @api_errors
    def create_punch():
        punch_id = container.punch_service.create(
            created_by=current_user_id(),
            location=request.form.get("location", ""),
            issue=request.form.get("issue", ""),
            priority=request.form.get("priority") or "normal",
            site_id=request.form.get("site_id", type=int),
            document_id=request.form.get("document_id", type=int),
            assignee=request.form.get("assignee"),
            due_date=parse_optional_date(request.form.get("due_date")),
            before_photo=_uploaded("photo_before"),
        )
        return ok(201, punch_id=punch_id)

    @app.route("/api/punch-items/<int:punch_id>/photo", methods=["POST"], endpoint="api_punch_photo")
    @login_required
    @api_errors
    def punch_photo(punch_id: int):
        uploaded = _uploaded("photo")
        if not uploaded:
            raise ValidationError("Photo is required")
        filename, data = uploaded
        item = container.punch_service.attach_photo(
            punch_id,
            owner_id=current_user_id(),
            kind=request.form.get("kind", "after"),
            filename=filename,
            data=data,
        )
        return ok(item=item)

    @app.route("/api/punch-items/<int:punch_id>/resolve", methods=["POST"], endpoint="api_punch_resolve")
    @login_required
    @api_errors
    def resolve(punch_id: int):
        return ok(item=container.punch_service.resolve(punch_id))

    @app.route("/api/punch-items/<int:punch_id>/reopen", methods=["POST"], endpoint="api_punch_reopen")
    @login_required
    @api_errors
    def reopen(punch_id: int):
        return ok(item=container.punch_service.reopen(punch_id))

    @app.route("/api/punch-items/<int:punch_id>", methods=["DELETE"], endpoint="api_punch_delete")
    @admin_required
    @api_errors
    def delete_punch(punch_id: int):
        container.punch_service.delete(punch_id)
        return ok(message="Punch item deleted")

    @app.route("/api/punch-items/photo-grid", methods=["POST"], endpoint="api_punch_photo_grid")
    @login_required
    @api_errors
    def photo_grid():
        data = json_body()
        doc = container.punch_service.photo_grid_report(
            owner_id=current_user_id(),
            site_id=int_field(data, "site_id", None),
            status=data.get("status") or None,
            title=data.get("title"),
        )
        return ok(201, document=doc)
