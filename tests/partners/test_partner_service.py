from __future__ import annotations

from dataclasses import asdict, replace
from datetime import date, datetime
from typing import Optional

import pytest

from src.site_ops.site_ops.core.enums import PartnerStatus, SiteStatus
from src.site_ops.site_ops.core.exceptions import NotFoundError, ValidationError
from src.site_ops.site_ops.partners.model import PartnerCompany, PartnerDraft, SitePartner
from src.site_ops.site_ops.partners.service import PartnerService
from src.site_ops.site_ops.sites.model import Site


class InMemoryPartners:
    def __init__(self):
        self.partners: dict[int, PartnerCompany] = {}

    def get_by_id(self, partner_id: int) -> Optional[PartnerCompany]:
        return self.partners.get(partner_id)

    def get_by_business_number(self, business_number: str) -> Optional[PartnerCompany]:
        return next((p for p in self.partners.values() if p.business_number == business_number), None)

    def list_partners(self, *, search, status):
        return [p for p in self.partners.values() if status is None or p.status == status]

    def create(self, draft: PartnerDraft) -> int:
        partner_id = len(self.partners) + 1
        self.partners[partner_id] = PartnerCompany(partner_id=partner_id, status=PartnerStatus.ACTIVE, **asdict(draft))
        return partner_id

    def update(self, partner_id: int, draft: PartnerDraft) -> bool:
        self.partners[partner_id] = replace(self.partners[partner_id], **asdict(draft))
        return True

    def set_status(self, partner_id: int, status: PartnerStatus) -> bool:
        self.partners[partner_id] = replace(self.partners[partner_id], status=status)
        return True

    def delete(self, partner_id: int) -> bool:
        return self.partners.pop(partner_id, None) is not None


class InMemoryLinks:
    def __init__(self):
        self.links: dict[int, SitePartner] = {}

    def get_by_id(self, site_partner_id: int) -> Optional[SitePartner]:
        return self.links.get(site_partner_id)

    def find_active(self, *, site_id: int, partner_id: int) -> Optional[SitePartner]:
        return next(
            (
                link
                for link in self.links.values()
                if link.site_id == site_id and link.partner_id == partner_id and link.status == PartnerStatus.ACTIVE
            ),
            None,
        )

    def create(self, *, site_id, partner_id, contract_amount, work_scope, start_date, end_date) -> int:
        link_id = len(self.links) + 1
        self.links[link_id] = SitePartner(
            site_partner_id=link_id,
            site_id=site_id,
            partner_id=partner_id,
            status=PartnerStatus.ACTIVE,
            contract_amount=contract_amount,
            work_scope=work_scope,
            start_date=start_date,
            end_date=end_date,
        )
        return link_id

    def set_status(self, site_partner_id: int, status: PartnerStatus) -> bool:
        self.links[site_partner_id] = replace(self.links[site_partner_id], status=status)
        return True

    def list_for_site(self, site_id: int):
        return [link for link in self.links.values() if link.site_id == site_id]

    def list_for_partner(self, partner_id: int):
        return [link for link in self.links.values() if link.partner_id == partner_id]

    def count_for_partner(self, partner_id: int) -> int:
        return len(self.list_for_partner(partner_id))


class InMemorySites:
    def __init__(self, *sites: Site):
        self.sites = {s.site_id: s for s in sites}

    def get_by_id(self, site_id: int) -> Optional[Site]:
        return self.sites.get(site_id)


@pytest.fixture
def service():
    sites = InMemorySites(
        Site(site_id=1, name="A", address="a", status=SiteStatus.ACTIVE, checkin_token="t1"),
        Site(
            site_id=2,
            name="B",
            address="b",
            status=SiteStatus.ACTIVE,
            checkin_token="t2",
            deleted_at=datetime(2025, 1, 1),
        ),
    )
    return PartnerService(InMemoryPartners(), InMemoryLinks(), sites)


def test_create_normalizes_contact_fields(service):
    partner_id = service.create(
        PartnerDraft(company_name=" Hanil Steel ", business_number="123-45-67890", email="Ops@Hanil.KR")
    )

    partner = service.get(partner_id)
    assert partner.company_name == "Hanil Steel"
    assert partner.email == "ops@hanil.kr"


def test_business_number_format_and_uniqueness(service):
    with pytest.raises(ValidationError):
        service.create(PartnerDraft(company_name="X", business_number="12345"))

    first = service.create(PartnerDraft(company_name="X", business_number="123-45-67890"))
    with pytest.raises(ValidationError):
        service.create(PartnerDraft(company_name="Y", business_number="123-45-67890"))

    # updating the owner of the number keeps it
    service.update(first, PartnerDraft(company_name="X2", business_number="123-45-67890"))
    assert service.get(first).company_name == "X2"


def test_contract_dates_must_be_ordered(service):
    with pytest.raises(ValidationError):
        service.create(
            PartnerDraft(company_name="X", contract_start_date=date(2025, 5, 1), contract_end_date=date(2025, 4, 1))
        )


def test_link_site_rules(service):
    partner_id = service.create(PartnerDraft(company_name="X"))

    with pytest.raises(NotFoundError):
        service.link_site(site_id=2, partner_id=partner_id)
    with pytest.raises(ValidationError):
        service.link_site(site_id=1, partner_id=partner_id, contract_amount=-1)

    link_id = service.link_site(site_id=1, partner_id=partner_id, contract_amount="5000000", work_scope=" rebar ")
    link = service.list_for_site(1)[0]
    assert link.site_partner_id == link_id
    assert link.contract_amount == 5_000_000
    assert link.work_scope == "rebar"

    with pytest.raises(ValidationError):
        service.link_site(site_id=1, partner_id=partner_id)


def test_suspended_partner_cannot_be_linked(service):
    partner_id = service.create(PartnerDraft(company_name="X"))
    service.set_status(partner_id, PartnerStatus.SUSPENDED)

    with pytest.raises(ValidationError):
        service.link_site(site_id=1, partner_id=partner_id)


def test_unlink_and_delete(service):
    partner_id = service.create(PartnerDraft(company_name="X"))
    link_id = service.link_site(site_id=1, partner_id=partner_id)

    with pytest.raises(ValidationError):
        service.delete(partner_id)

    service.unlink_site(link_id)
    assert service.list_sites_for_partner(partner_id)[0].status == PartnerStatus.TERMINATED
    with pytest.raises(ValidationError):
        service.unlink_site(link_id)
