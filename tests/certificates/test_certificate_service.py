from __future__ import annotations

import base64
import io
from datetime import date, datetime

import pytest
from PIL import Image, ImageDraw

from src.site_ops.site_ops.certificates.model import CertificateForm
from src.site_ops.site_ops.certificates.service import CertificateService
from src.site_ops.site_ops.core.enums import DocumentCategory
from src.site_ops.site_ops.core.exceptions import ValidationError
from src.site_ops.site_ops.documents.model import Document

NOW = datetime(2025, 3, 12, 18, 5, 0)


def _signature() -> str:
    img = Image.new("RGBA", (240, 100), (0, 0, 0, 0))
    ImageDraw.Draw(img).line([(20, 70), (100, 20), (220, 80)], fill="black", width=3)
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode("ascii")


class RecordingDocuments:
    def __init__(self):
        self.stored = []

    def store_generated(self, **kwargs):
        self.stored.append(kwargs)
        return Document(
            document_id=len(self.stored),
            title=kwargs["title"],
            category=kwargs["category"],
            file_key="1/cert.pdf",
            file_name=kwargs["filename"],
            file_size=len(kwargs["data"]),
            owner_id=kwargs["owner_id"],
            site_id=kwargs.get("site_id"),
            metadata=kwargs["metadata"],
        )


@pytest.fixture
def documents() -> RecordingDocuments:
    return RecordingDocuments()


@pytest.fixture
def service(documents) -> CertificateService:
    return CertificateService(documents)


def _form(**overrides) -> CertificateForm:
    fields = dict(
        site_name="Yeouido Tower",
        project_name="Curtain wall",
        worker_name="Park Minsu",
        work_content="Installed panels 3F-5F\nSealed joints & checked <alignment>",
        confirmer_name="Lee Jiwon",
        signature_data_url=_signature(),
        worker_phone="010-1234-5678",
        site_id=3,
    )
    fields.update(overrides)
    return CertificateForm(**fields)


def test_issue_files_signed_pdf(service, documents):
    doc = service.issue(_form(notes=" none "), issuer_id=9, now=NOW)

    [stored] = documents.stored
    assert stored["data"].startswith(b"%PDF-")
    assert stored["category"] == DocumentCategory.CERTIFICATE
    assert stored["filename"] == "certificate_20250312180500.pdf"
    assert stored["owner_id"] == 9
    assert stored["site_id"] == 3
    assert stored["metadata"] == {
        "project_name": "Curtain wall",
        "worker_name": "Park Minsu",
        "confirmer_name": "Lee Jiwon",
        "completed_on": "2025-03-12",
    }
    assert doc.title == "Work completion - Yeouido Tower - Park Minsu"


def test_completed_on_is_kept(service, documents):
    service.issue(_form(completed_on=date(2025, 3, 1), addressee="Hanil Construction"), issuer_id=9, now=NOW)
    assert documents.stored[0]["metadata"]["completed_on"] == "2025-03-01"


@pytest.mark.parametrize(
    "overrides",
    [
        dict(site_name=" "),
        dict(worker_name=""),
        dict(work_content=""),
        dict(confirmer_name=""),
        dict(worker_phone="12345"),
        dict(signature_data_url=""),
    ],
)
def test_issue_validation(service, documents, overrides):
    with pytest.raises(ValidationError):
        service.issue(_form(**overrides), issuer_id=9, now=NOW)
    assert documents.stored == []
