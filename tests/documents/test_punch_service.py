from __future__ import annotations

import io
from dataclasses import replace
from datetime import datetime

import pytest
from PIL import Image

from src.site_ops.site_ops.core.enums import DocumentCategory, PunchStatus, RequestPriority, SiteStatus
from src.site_ops.site_ops.core.exceptions import NotFoundError, ValidationError
from src.site_ops.site_ops.documents.model import Document, PunchItem
from src.site_ops.site_ops.documents.punch_service import PunchItemService
from src.site_ops.site_ops.documents.storage import LocalStorage
from src.site_ops.site_ops.sites.model import Site


def _png(color="red", size=(64, 48)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


class InMemoryPunches:
    def __init__(self, sites):
        self.items: dict[int, PunchItem] = {}
        self._sites = sites

    def get_by_id(self, punch_id):
        return self.items.get(punch_id)

    def list_items(self, *, status=None, site_id=None, search=None):
        return [
            i
            for i in self.items.values()
            if (status is None or i.status == status) and (site_id is None or i.site_id == site_id)
        ]

    def create(self, draft, *, created_by):
        punch_id = len(self.items) + 1
        site = self._sites.get_by_id(draft.site_id) if draft.site_id else None
        self.items[punch_id] = PunchItem(
            punch_id=punch_id,
            status=PunchStatus.OPEN,
            created_by=created_by,
            site_name=site.name if site else None,
            **draft.__dict__,
        )
        return punch_id

    def update_photos(self, punch_id, *, photo_before_key, photo_after_key):
        self.items[punch_id] = replace(
            self.items[punch_id], photo_before_key=photo_before_key, photo_after_key=photo_after_key
        )
        return True

    def set_status(self, punch_id, *, status, resolved_at):
        self.items[punch_id] = replace(self.items[punch_id], status=status, resolved_at=resolved_at)
        return True

    def delete(self, punch_id):
        return self.items.pop(punch_id, None) is not None


class InMemorySites:
    def __init__(self, *sites: Site):
        self.sites = {s.site_id: s for s in sites}

    def get_by_id(self, site_id):
        return self.sites.get(site_id)


class RecordingDocuments:
    def __init__(self):
        self.stored = []

    def store_generated(self, **kwargs):
        self.stored.append(kwargs)
        return Document(
            document_id=len(self.stored),
            title=kwargs["title"],
            category=kwargs["category"],
            file_key="1/report.pdf",
            file_name=kwargs["filename"],
            file_size=len(kwargs["data"]),
            owner_id=kwargs["owner_id"],
            site_id=kwargs.get("site_id"),
            metadata=kwargs.get("metadata") or {},
        )


@pytest.fixture
def storage(tmp_path) -> LocalStorage:
    return LocalStorage(tmp_path)


@pytest.fixture
def documents() -> RecordingDocuments:
    return RecordingDocuments()


@pytest.fixture
def service(storage, documents) -> PunchItemService:
    sites = InMemorySites(Site(site_id=1, name="Yeouido", address="a", status=SiteStatus.ACTIVE, checkin_token="t"))
    return PunchItemService(InMemoryPunches(sites), sites, storage, documents)


def _open(service, **overrides):
    fields = dict(created_by=5, location="B1 parking", issue="Crack in wall", site_id=1)
    fields.update(overrides)
    return service.create(**fields)


def test_create_with_before_photo(service, storage):
    punch_id = _open(service, priority="high", assignee="  Kim ", before_photo=("wall.png", _png()))
    item = service.list(site_id=1)[0]

    assert item.punch_id == punch_id
    assert (item.priority, item.status, item.assignee) == (RequestPriority.HIGH, PunchStatus.OPEN, "Kim")
    assert storage.read(item.photo_before_key).startswith(b"\x89PNG")


@pytest.mark.parametrize(
    "overrides,error",
    [
        (dict(location=""), ValidationError),
        (dict(issue=" "), ValidationError),
        (dict(priority="asap"), ValidationError),
        (dict(site_id=9), NotFoundError),
        (dict(before_photo=("wall.pdf", b"%PDF")), ValidationError),
        (dict(before_photo=("wall.jpg", b"")), ValidationError),
    ],
)
def test_create_validation(service, overrides, error):
    with pytest.raises(error):
        _open(service, **overrides)


def test_new_photo_replaces_old_file(service, storage):
    punch_id = _open(service, before_photo=("a.png", _png("red")))
    old_key = service.list()[0].photo_before_key

    item = service.attach_photo(punch_id, owner_id=5, kind="before", filename="b.png", data=_png("blue"))

    assert item.photo_before_key != old_key
    assert storage.delete(old_key) is False
    with pytest.raises(ValidationError):
        service.attach_photo(punch_id, owner_id=5, kind="during", filename="c.png", data=_png())


def test_photo_with_korean_name_is_accepted(service, storage):
    punch_id = _open(service)

    item = service.attach_photo(punch_id, owner_id=5, kind="before", filename="균열사진.JPG", data=_png())

    assert item.photo_before_key.endswith(".jpg")
    assert storage.read(item.photo_before_key).startswith(b"\x89PNG")


def test_resolve_needs_after_photo_and_reopen(service):
    punch_id = _open(service)
    at = datetime(2025, 3, 12, 17, 0)

    with pytest.raises(ValidationError, match="after photo"):
        service.resolve(punch_id)

    service.attach_photo(punch_id, owner_id=5, kind="after", filename="fixed.jpg", data=_png())
    item = service.resolve(punch_id, now=at)
    assert (item.status, item.resolved_at) == (PunchStatus.DONE, at)
    with pytest.raises(ValidationError):
        service.resolve(punch_id)

    item = service.reopen(punch_id)
    assert (item.status, item.resolved_at) == (PunchStatus.OPEN, None)
    with pytest.raises(ValidationError):
        service.reopen(punch_id)


def test_stats_and_delete(service, storage):
    first = _open(service, before_photo=("a.png", _png()))
    _open(service)
    service.attach_photo(first, owner_id=5, kind="after", filename="b.png", data=_png())
    service.resolve(first)

    stats = service.stats(site_id=1)
    assert (stats.total, stats.open, stats.done) == (2, 1, 1)

    keys = [service.list()[0].photo_before_key, service.list()[0].photo_after_key]
    service.delete(first)
    assert all(storage.delete(k) is False for k in keys)
    with pytest.raises(NotFoundError):
        service.resolve(first)


def test_photo_grid_report_files_a_pdf(service, documents):
    first = _open(service, location="Roof & stairs", before_photo=("a.png", _png("red", (400, 300))))
    _open(service)
    service.attach_photo(first, owner_id=5, kind="after", filename="b.png", data=_png("green", (300, 400)))

    doc = service.photo_grid_report(owner_id=1, site_id=1, title="March defects")

    [stored] = documents.stored
    assert stored["data"].startswith(b"%PDF-")
    assert stored["category"] == DocumentCategory.PHOTO_GRID
    assert stored["metadata"] == {"punch_ids": [first]}
    assert stored["filename"].endswith(".pdf")
    assert doc.title == "March defects"


def test_photo_grid_report_needs_photos(service):
    _open(service)
    with pytest.raises(ValidationError):
        service.photo_grid_report(owner_id=1)
