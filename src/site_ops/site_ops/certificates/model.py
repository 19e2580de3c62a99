from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional


@dataclass(frozen=True)
class CertificateForm:
    """Work completion certificate as filled in on site."""

    site_name: str
    project_name: str
    worker_name: str
    work_content: str
    confirmer_name: str
    signature_data_url: str
    worker_phone: Optional[str] = None
    notes: Optional[str] = None
    completed_on: Optional[date] = None
    affiliation: Optional[str] = None
    addressee: Optional[str] = None
    site_id: Optional[int] = None
