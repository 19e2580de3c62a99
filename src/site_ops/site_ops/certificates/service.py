from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime
from typing import Optional

from ..common.validators import optional_phone, require_non_empty
from ..core.enums import DocumentCategory
from ..documents.model import Document
from ..documents.service import DocumentService
from .model import CertificateForm
from .pdf import render_certificate_pdf
from .signature import decode_signature

logger = logging.getLogger(__name__)


class CertificateService:
    def __init__(self, documents: DocumentService, *, font_path: Optional[str] = None):
        self._documents = documents
        self._font_path = font_path

    def _validate(self, form: CertificateForm) -> CertificateForm:
        return replace(
            form,
            site_name=require_non_empty(form.site_name, "Site name"),
            project_name=require_non_empty(form.project_name, "Project name"),
            worker_name=require_non_empty(form.worker_name, "Worker name"),
            work_content=require_non_empty(form.work_content, "Work content"),
            confirmer_name=require_non_empty(form.confirmer_name, "Confirmer name"),
            worker_phone=optional_phone(form.worker_phone),
            notes=(form.notes or "").strip() or None,
            affiliation=(form.affiliation or "").strip() or None,
            addressee=(form.addressee or "").strip() or None,
        )

    def issue(self, form: CertificateForm, *, issuer_id: int, now: Optional[datetime] = None) -> Document:
        """Render the signed certificate to PDF and file it under the issuer's documents."""
        now = now or datetime.now()
        form = self._validate(form)
        signature = decode_signature(form.signature_data_url)

        pdf = render_certificate_pdf(form, signature, issued_on=now.date(), font_path=self._font_path)
        completed: date = form.completed_on or now.date()
        doc = self._documents.store_generated(
            owner_id=issuer_id,
            category=DocumentCategory.CERTIFICATE,
            title=f"Work completion - {form.site_name} - {form.worker_name}",
            filename=f"certificate_{now.strftime('%Y%m%d%H%M%S')}.pdf",
            data=pdf,
            site_id=form.site_id,
            metadata={
                "project_name": form.project_name,
                "worker_name": form.worker_name,
                "confirmer_name": form.confirmer_name,
                "completed_on": completed.isoformat(),
            },
            now=now,
        )
        logger.info("Certificate document %s issued by %s", doc.document_id, issuer_id)
        return doc
