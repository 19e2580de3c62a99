from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from ..core.enums import PartnerStatus
from .model import PartnerCompany, PartnerDraft, SitePartner


class PartnerRepository(Protocol):
    def get_by_id(self, partner_id: int) -> Optional[PartnerCompany]:
        raise NotImplementedError

    def get_by_business_number(self, business_number: str) -> Optional[PartnerCompany]:
        raise NotImplementedError

    def list_partners(self, *, search: Optional[str], status: Optional[PartnerStatus]) -> Sequence[PartnerCompany]:
        raise NotImplementedError

    def create(self, draft: PartnerDraft) -> int:
        raise NotImplementedError

    def update(self, partner_id: int, draft: PartnerDraft) -> bool:
        raise NotImplementedError

    def set_status(self, partner_id: int, status: PartnerStatus) -> bool:
        raise NotImplementedError

    def delete(self, partner_id: int) -> bool:
        raise NotImplementedError


class SitePartnerRepository(Protocol):
    def get_by_id(self, site_partner_id: int) -> Optional[SitePartner]:
        raise NotImplementedError

    def find_active(self, *, site_id: int, partner_id: int) -> Optional[SitePartner]:
        raise NotImplementedError

    def create(
        self,
        *,
        site_id: int,
        partner_id: int,
        contract_amount: Optional[int],
        work_scope: Optional[str],
        start_date: Optional[date],
        end_date: Optional[date],
    ) -> int:
        raise NotImplementedError

    def set_status(self, site_partner_id: int, status: PartnerStatus) -> bool:
        raise NotImplementedError

    def list_for_site(self, site_id: int) -> Sequence[SitePartner]:
        raise NotImplementedError

    def list_for_partner(self, partner_id: int) -> Sequence[SitePartner]:
        raise NotImplementedError

    def count_for_partner(self, partner_id: int) -> int:
        raise NotImplementedError
