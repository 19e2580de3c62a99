from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from typing import Optional, Sequence

from ..common.validators import (
    optional_business_number,
    optional_email,
    optional_phone,
    require_non_empty,
    require_non_negative,
)
from ..core.enums import PartnerStatus
from ..core.exceptions import NotFoundError, ValidationError
from ..sites.repository import SiteRepository
from .model import PartnerCompany, PartnerDraft, SitePartner
from .repository import PartnerRepository, SitePartnerRepository

logger = logging.getLogger(__name__)


class PartnerService:
    """Use case: partner company registry and site contracts."""

    def __init__(self, partners: PartnerRepository, links: SitePartnerRepository, sites: SiteRepository):
        self._partners = partners
        self._links = links
        self._sites = sites

    def get(self, partner_id: int) -> PartnerCompany:
        partner = self._partners.get_by_id(partner_id)
        if not partner:
            raise NotFoundError("Partner company not found")
        return partner

    def _validate(self, draft: PartnerDraft, *, partner_id: Optional[int] = None) -> PartnerDraft:
        name = require_non_empty(draft.company_name, "Company name")
        business_number = optional_business_number(draft.business_number)
        if business_number:
            existing = self._partners.get_by_business_number(business_number)
            if existing and existing.partner_id != partner_id:
                raise ValidationError("Business number is already registered")
        if (
            draft.contract_start_date
            and draft.contract_end_date
            and draft.contract_end_date < draft.contract_start_date
        ):
            raise ValidationError("Contract end date cannot be before start date")
        return replace(
            draft,
            company_name=name,
            business_number=business_number,
            phone=optional_phone(draft.phone),
            email=optional_email(draft.email),
        )

    def create(self, draft: PartnerDraft) -> int:
        draft = self._validate(draft)
        partner_id = self._partners.create(draft)
        logger.info("Registered partner %s (id=%s)", draft.company_name, partner_id)
        return partner_id

    def update(self, partner_id: int, draft: PartnerDraft) -> None:
        self.get(partner_id)
        self._partners.update(partner_id, self._validate(draft, partner_id=partner_id))

    def set_status(self, partner_id: int, status: PartnerStatus) -> None:
        self.get(partner_id)
        self._partners.set_status(partner_id, status)
        logger.info("Partner %s status -> %s", partner_id, status.value)

    def list(self, *, search: Optional[str] = None, status: Optional[PartnerStatus] = None) -> Sequence[PartnerCompany]:
        return self._partners.list_partners(search=(search or "").strip() or None, status=status)

    def delete(self, partner_id: int) -> None:
        self.get(partner_id)
        if self._links.count_for_partner(partner_id) > 0:
            raise ValidationError("Partner is linked to a site; unlink it first")
        self._partners.delete(partner_id)
        logger.info("Deleted partner %s", partner_id)

    def link_site(
        self,
        *,
        site_id: int,
        partner_id: int,
        contract_amount=None,
        work_scope: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> int:
        site = self._sites.get_by_id(site_id)
        if not site or site.is_deleted:
            raise NotFoundError("Site not found")
        partner = self.get(partner_id)
        if partner.status != PartnerStatus.ACTIVE:
            raise ValidationError("Only active partners can be linked to a site")
        if start_date and end_date and end_date < start_date:
            raise ValidationError("End date cannot be before start date")
        if self._links.find_active(site_id=site_id, partner_id=partner_id):
            raise ValidationError("Partner is already linked to this site")

        amount = None
        if contract_amount not in (None, ""):
            amount = int(require_non_negative(contract_amount, "Contract amount"))

        link_id = self._links.create(
            site_id=site_id,
            partner_id=partner_id,
            contract_amount=amount,
            work_scope=(work_scope or "").strip() or None,
            start_date=start_date,
            end_date=end_date,
        )
        logger.info("Linked partner %s to site %s", partner_id, site_id)
        return link_id

    def unlink_site(self, site_partner_id: int) -> None:
        link = self._links.get_by_id(site_partner_id)
        if not link:
            raise NotFoundError("Site partner link not found")
        if link.status == PartnerStatus.TERMINATED:
            raise ValidationError("Link is already terminated")
        self._links.set_status(site_partner_id, PartnerStatus.TERMINATED)

    def list_for_site(self, site_id: int) -> Sequence[SitePartner]:
        return self._links.list_for_site(site_id)

    def list_sites_for_partner(self, partner_id: int) -> Sequence[SitePartner]:
        self.get(partner_id)
        return self._links.list_for_partner(partner_id)
