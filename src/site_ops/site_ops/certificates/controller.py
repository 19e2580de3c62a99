from __future__ import annotations

from flask import Flask

from ..common.datetime_utils import parse_optional_date
from ..common.web import api_errors, current_user_id, int_field, json_body, manager_required, ok
from ..container import Container
from .model import CertificateForm


def register(app: Flask, container: Container) -> None:
    @app.route("/api/certificates", methods=["POST"], endpoint="api_certificate_issue")
    @manager_required
    @api_errors
    def issue():
        data = json_body()
        form = CertificateForm(
            site_name=data.get("site_name", ""),
            project_name=data.get("project_name", ""),
            worker_name=data.get("worker_name", ""),
            work_content=data.get("work_content", ""),
            confirmer_name=data.get("confirmer_name", ""),
            signature_data_url=data.get("signature", ""),
            worker_phone=data.get("worker_phone"),
            notes=data.get("notes"),
            completed_on=parse_optional_date(data.get("completed_on")),
            affiliation=data.get("affiliation"),
            addressee=data.get("addressee"),
            site_id=int_field(data, "site_id", None),
        )
        doc = container.certificate_service.issue(form, issuer_id=current_user_id())
        return ok(201, document=doc)
