from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional, Sequence

from ..common.validators import parse_enum, require_non_empty
from ..core.enums import DocumentCategory, PunchStatus, RequestPriority
from ..core.exceptions import NotFoundError, ValidationError
from ..sites.repository import SiteRepository
from .model import Document, PunchDraft, PunchItem, PunchStats
from .photo_grid import PhotoPair, render_photo_grid_pdf
from .repository import PunchRepository
from .service import DocumentService
from .storage import LocalStorage, file_extension

logger = logging.getLogger(__name__)

PHOTO_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "webp"})


class PunchItemService:
    """Defects tracked with before/after photos (partner document viewer)."""

    def __init__(
        self,
        punches: PunchRepository,
        sites: SiteRepository,
        storage: LocalStorage,
        documents: DocumentService,
        *,
        font_path: Optional[str] = None,
    ):
        self._punches = punches
        self._sites = sites
        self._storage = storage
        self._documents = documents
        self._font_path = font_path

    def _item(self, punch_id: int) -> PunchItem:
        item = self._punches.get_by_id(punch_id)
        if not item:
            raise NotFoundError("Punch item not found")
        return item

    def _store_photo(self, owner_id: int, filename: str, data: bytes) -> str:
        if file_extension(filename) not in PHOTO_EXTENSIONS:
            raise ValidationError("Photos must be jpg, png or webp")
        if not data:
            raise ValidationError("Photo is empty")
        return self._storage.save(data, owner_id=owner_id, filename=filename)

    def create(
        self,
        *,
        created_by: int,
        location: str,
        issue: str,
        priority=RequestPriority.NORMAL,
        site_id: Optional[int] = None,
        document_id: Optional[int] = None,
        assignee: Optional[str] = None,
        due_date: Optional[date] = None,
        before_photo: Optional[tuple[str, bytes]] = None,
    ) -> int:
        if site_id is not None:
            site = self._sites.get_by_id(site_id)
            if not site or site.is_deleted:
                raise NotFoundError("Site not found")

        draft = PunchDraft(
            location=require_non_empty(location, "Location"),
            issue=require_non_empty(issue, "Issue"),
            priority=parse_enum(RequestPriority, priority, "Priority"),
            site_id=site_id,
            document_id=document_id,
            assignee=(assignee or "").strip() or None,
            due_date=due_date,
            photo_before_key=self._store_photo(created_by, *before_photo) if before_photo else None,
        )
        punch_id = self._punches.create(draft, created_by=created_by)
        logger.info("Punch item %s opened at %s", punch_id, draft.location)
        return punch_id

    def attach_photo(self, punch_id: int, *, owner_id: int, kind: str, filename: str, data: bytes) -> PunchItem:
        if kind not in ("before", "after"):
            raise ValidationError("Photo kind must be 'before' or 'after'")
        item = self._item(punch_id)
        key = self._store_photo(owner_id, filename, data)
        old = item.photo_before_key if kind == "before" else item.photo_after_key

        self._punches.update_photos(
            punch_id,
            photo_before_key=key if kind == "before" else item.photo_before_key,
            photo_after_key=key if kind == "after" else item.photo_after_key,
        )
        if old:
            self._storage.delete(old)
        return self._item(punch_id)

    def resolve(self, punch_id: int, *, now: Optional[datetime] = None) -> PunchItem:
        item = self._item(punch_id)
        if item.status == PunchStatus.DONE:
            raise ValidationError("Punch item is already resolved")
        if not item.photo_after_key:
            raise ValidationError("Attach an after photo before resolving")
        self._punches.set_status(punch_id, status=PunchStatus.DONE, resolved_at=now or datetime.now())
        logger.info("Punch item %s resolved", punch_id)
        return self._item(punch_id)

    def reopen(self, punch_id: int) -> PunchItem:
        item = self._item(punch_id)
        if item.status == PunchStatus.OPEN:
            raise ValidationError("Punch item is already open")
        self._punches.set_status(punch_id, status=PunchStatus.OPEN, resolved_at=None)
        logger.info("Punch item %s reopened", punch_id)
        return self._item(punch_id)

    def delete(self, punch_id: int) -> None:
        item = self._item(punch_id)
        self._punches.delete(punch_id)
        for key in (item.photo_before_key, item.photo_after_key):
            if key:
                self._storage.delete(key)

    def list(self, *, status=None, site_id: Optional[int] = None, search: Optional[str] = None) -> Sequence[PunchItem]:
        return self._punches.list_items(
            status=parse_enum(PunchStatus, status, "Status") if status else None,
            site_id=site_id,
            search=(search or "").strip() or None,
        )

    def stats(self, *, site_id: Optional[int] = None) -> PunchStats:
        items = self._punches.list_items(site_id=site_id)
        done = sum(1 for i in items if i.status == PunchStatus.DONE)
        return PunchStats(total=len(items), open=len(items) - done, done=done)

    def photo_grid_report(
        self,
        *,
        owner_id: int,
        site_id: Optional[int] = None,
        status=None,
        title: Optional[str] = None,
    ) -> Document:
        """Render before/after pairs into a PDF and file it as a photo_grid document."""
        items = [i for i in self.list(status=status, site_id=site_id) if i.photo_before_key or i.photo_after_key]
        if not items:
            raise ValidationError("No punch items with photos to report")

        pairs = [
            PhotoPair(
                caption=f"{i.location} - {i.issue} ({i.status.value})",
                before=self._storage.read(i.photo_before_key) if i.photo_before_key else None,
                after=self._storage.read(i.photo_after_key) if i.photo_after_key else None,
            )
            for i in items
        ]
        site_name = items[0].site_name if site_id is not None else None
        report_title = title or f"Punch photo report {date.today().isoformat()}"
        pdf = render_photo_grid_pdf(pairs, title=report_title, subtitle=site_name, font_path=self._font_path)

        doc = self._documents.store_generated(
            owner_id=owner_id,
            category=DocumentCategory.PHOTO_GRID,
            title=report_title,
            filename=f"photo_grid_{datetime.now().strftime('%Y%m%d%H%M%S')}.pdf",
            data=pdf,
            site_id=site_id,
            metadata={"punch_ids": [i.punch_id for i in items]},
        )
        logger.info("Photo grid document %s created from %d punch items", doc.document_id, len(items))
        return doc
