from __future__ import annotations

from dataclasses import asdict, replace
from datetime import date, datetime, time
from typing import Optional

import pytest

from src.site_ops.site_ops.core.enums import SiteStatus
from src.site_ops.site_ops.core.exceptions import NotFoundError, ValidationError
from src.site_ops.site_ops.sites.model import Site, SiteDraft
from src.site_ops.site_ops.sites.qr import render_qr_png
from src.site_ops.site_ops.sites.service import SiteService


class InMemorySites:
    def __init__(self):
        self.sites: dict[int, Site] = {}

    def get_by_id(self, site_id: int) -> Optional[Site]:
        return self.sites.get(site_id)

    def get_by_name(self, name: str) -> Optional[Site]:
        return next((s for s in self.sites.values() if s.name == name), None)

    def get_by_checkin_token(self, token: str) -> Optional[Site]:
        return next((s for s in self.sites.values() if s.checkin_token == token and not s.is_deleted), None)

    def list_sites(self, *, search, status, include_deleted, offset, limit):
        items = [
            s
            for s in self.sites.values()
            if (include_deleted or not s.is_deleted)
            and (status is None or s.status == status)
            and (not search or search in s.name)
        ]
        return items[offset : offset + limit], len(items)

    def list_by_ids(self, site_ids):
        return [self.sites[i] for i in site_ids if i in self.sites]

    def create(self, draft: SiteDraft, *, checkin_token: str) -> int:
        site_id = len(self.sites) + 1
        self.sites[site_id] = Site(site_id=site_id, checkin_token=checkin_token, **asdict(draft))
        return site_id

    def update(self, site_id: int, draft: SiteDraft) -> bool:
        self.sites[site_id] = replace(self.sites[site_id], **asdict(draft))
        return True

    def update_status(self, site_ids, status):
        for i in site_ids:
            self.sites[i] = replace(self.sites[i], status=status)
        return len(site_ids)

    def soft_delete(self, site_ids, *, deleted_at):
        for i in site_ids:
            self.sites[i] = replace(self.sites[i], deleted_at=deleted_at)
        return len(site_ids)

    def restore(self, site_ids):
        for i in site_ids:
            self.sites[i] = replace(self.sites[i], deleted_at=None)
        return len(site_ids)

    def purge(self, site_ids):
        return sum(1 for i in site_ids if self.sites.pop(i, None))


def _draft(name="Gangnam Tower", **kw) -> SiteDraft:
    fields = dict(name=name, address="Seoul Gangnam-gu 1", start_date=date(2025, 1, 6))
    fields.update(kw)
    return SiteDraft(**fields)


@pytest.fixture
def repo() -> InMemorySites:
    return InMemorySites()


def _service(repo, counts=None) -> SiteService:
    tokens = iter(f"token-{i}" for i in range(1, 100))
    return SiteService(
        repo,
        active_assignments=(lambda ids: {i: (counts or {}).get(i, 0) for i in ids}),
        token_factory=lambda: next(tokens),
    )


def test_create_site_issues_checkin_token(repo):
    service = _service(repo)

    site_id = service.create(_draft(manager_phone="010-1234-5678"))

    assert service.checkin_token(site_id) == "token-1"
    assert service.get_by_checkin_token("token-1").site_id == site_id


@pytest.mark.parametrize(
    "draft",
    [
        _draft(name=" "),
        _draft(address=""),
        _draft(start_date=None),
        _draft(end_date=date(2024, 12, 31)),
        _draft(work_start_time=time(8, 0)),
        _draft(work_start_time=time(17, 0), work_end_time=time(8, 0)),
        _draft(break_minutes=-10),
        _draft(manager_phone="12345"),
    ],
)
def test_create_rejects_invalid_drafts(repo, draft):
    with pytest.raises(ValidationError):
        _service(repo).create(draft)


def test_site_names_are_unique(repo):
    service = _service(repo)
    first = service.create(_draft())
    other = service.create(_draft(name="Pangyo Lab"))

    with pytest.raises(ValidationError):
        service.create(_draft())
    with pytest.raises(ValidationError):
        service.update(other, _draft())

    service.update(first, _draft(description="renamed nothing"))
    assert repo.get_by_id(first).description == "renamed nothing"


def test_unknown_token_is_rejected(repo):
    with pytest.raises(ValidationError):
        _service(repo).get_by_checkin_token("nope")


def test_delete_refuses_sites_with_active_assignments(repo):
    service = _service(repo, counts={1: 2})
    service.create(_draft())

    with pytest.raises(ValidationError):
        service.delete_sites([1])
    assert not repo.get_by_id(1).is_deleted


def test_soft_delete_restore_and_purge(repo):
    service = _service(repo)
    service.create(_draft())
    service.create(_draft(name="Pangyo Lab"))

    with pytest.raises(ValidationError):
        service.purge_sites([1])

    assert service.delete_sites([1, 1], now=datetime(2025, 3, 1, 10, 0)) == 1
    with pytest.raises(NotFoundError):
        service.get(1)
    assert service.get(1, include_deleted=True).deleted_at == datetime(2025, 3, 1, 10, 0)
    assert service.list_sites().total == 1

    service.restore_sites([1])
    assert service.get(1).site_id == 1

    service.delete_sites([1])
    assert service.purge_sites([1]) == 1
    assert repo.get_by_id(1) is None


def test_bulk_operations_need_ids(repo):
    with pytest.raises(ValidationError):
        _service(repo).update_status([], SiteStatus.COMPLETED)


def test_list_sites_clamps_paging(repo):
    service = _service(repo)
    service.create(_draft())

    page = service.list_sites(page="x", per_page=10_000)

    assert page.page == 1
    assert page.per_page == 200
    assert page.pages == 1


def test_qr_png_is_a_png():
    buf = render_qr_png("token-1")

    assert buf.read(8) == b"\x89PNG\r\n\x1a\n"
