from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from ..core.enums import CompanyType, PartnerStatus


@dataclass(frozen=True)
class PartnerCompany:
    """External contracting organization whose staff work on our sites."""

    partner_id: int
    company_name: str
    company_type: CompanyType
    status: PartnerStatus
    business_number: Optional[str] = None
    representative_name: Optional[str] = None
    contact_person: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    contract_start_date: Optional[date] = None
    contract_end_date: Optional[date] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class PartnerDraft:
    company_name: str
    company_type: CompanyType = CompanyType.SUBCONTRACTOR
    business_number: Optional[str] = None
    representative_name: Optional[str] = None
    contact_person: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    contract_start_date: Optional[date] = None
    contract_end_date: Optional[date] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class SitePartner:
    """Contract link between a site and a partner company."""

    site_partner_id: int
    site_id: int
    partner_id: int
    status: PartnerStatus
    contract_amount: Optional[int] = None
    work_scope: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    company_name: Optional[str] = None
    site_name: Optional[str] = None
