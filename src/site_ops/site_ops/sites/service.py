from __future__ import annotations

import logging
import secrets
from dataclasses import replace
from datetime import datetime
from typing import Callable, Mapping, Optional, Sequence

from ..common.datetime_utils import now_local
from ..common.pagination import Page, normalize_paging
from ..common.validators import optional_phone, require_non_empty, require_non_negative
from ..core.enums import SiteStatus
from ..core.exceptions import NotFoundError, ValidationError
from .model import Site, SiteDraft
from .repository import SiteRepository

logger = logging.getLogger(__name__)

# site_ids -> {site_id: active assignment count}
ActiveAssignmentCounter = Callable[[Sequence[int]], Mapping[int, int]]


class SiteService:
    """Use case: site registry (admin site list, detail, soft delete)."""

    def __init__(
        self,
        sites: SiteRepository,
        *,
        active_assignments: Optional[ActiveAssignmentCounter] = None,
        token_factory: Callable[[], str] = lambda: secrets.token_urlsafe(16),
    ):
        self._sites = sites
        self._active_assignments = active_assignments
        self._token_factory = token_factory

    def list_sites(
        self,
        *,
        search: Optional[str] = None,
        status: Optional[SiteStatus] = None,
        include_deleted: bool = False,
        page=1,
        per_page=None,
    ) -> Page[Site]:
        page_i, per_page_i = normalize_paging(page, per_page)
        items, total = self._sites.list_sites(
            search=(search or "").strip() or None,
            status=status,
            include_deleted=include_deleted,
            offset=(page_i - 1) * per_page_i,
            limit=per_page_i,
        )
        return Page(items=list(items), total=total, page=page_i, per_page=per_page_i)

    def get(self, site_id: int, *, include_deleted: bool = False) -> Site:
        site = self._sites.get_by_id(site_id)
        if not site or (site.is_deleted and not include_deleted):
            raise NotFoundError("Site not found")
        return site

    def get_by_checkin_token(self, token: str) -> Site:
        site = self._sites.get_by_checkin_token((token or "").strip())
        if not site:
            raise ValidationError("Invalid or expired check-in code")
        return site

    def checkin_token(self, site_id: int) -> str:
        """Stable per-site token encoded into the check-in QR code."""
        return self.get(site_id).checkin_token

    def _validate(self, draft: SiteDraft) -> SiteDraft:
        name = require_non_empty(draft.name, "Site name")
        address = require_non_empty(draft.address, "Address")
        if draft.start_date is None:
            raise ValidationError("Start date is required")
        if draft.end_date and draft.end_date < draft.start_date:
            raise ValidationError("End date cannot be before start date")
        if bool(draft.work_start_time) != bool(draft.work_end_time):
            raise ValidationError("Work start and end time must be set together")
        if draft.work_start_time and draft.work_end_time and draft.work_end_time <= draft.work_start_time:
            raise ValidationError("Work end time must be after work start time")
        break_minutes = int(require_non_negative(draft.break_minutes, "Break minutes"))
        return replace(
            draft,
            name=name,
            address=address,
            manager_name=(draft.manager_name or "").strip() or None,
            manager_phone=optional_phone(draft.manager_phone),
            break_minutes=break_minutes,
        )

    def create(self, draft: SiteDraft) -> int:
        draft = self._validate(draft)
        if self._sites.get_by_name(draft.name):
            raise ValidationError("A site with this name already exists")
        site_id = self._sites.create(draft, checkin_token=self._token_factory())
        logger.info("Created site %s (id=%s)", draft.name, site_id)
        return site_id

    def update(self, site_id: int, draft: SiteDraft) -> None:
        self.get(site_id)
        draft = self._validate(draft)
        same_name = self._sites.get_by_name(draft.name)
        if same_name and same_name.site_id != site_id:
            raise ValidationError("A site with this name already exists")
        self._sites.update(site_id, draft)

    def update_status(self, site_ids: Sequence[int], status: SiteStatus) -> int:
        ids = self._require_ids(site_ids)
        count = self._sites.update_status(ids, status)
        logger.info("Set status=%s on %d site(s)", status.value, count)
        return count

    def delete_sites(self, site_ids: Sequence[int], *, now: Optional[datetime] = None) -> int:
        ids = self._require_ids(site_ids)
        if self._active_assignments:
            busy = [sid for sid, n in self._active_assignments(ids).items() if n > 0]
            if busy:
                raise ValidationError("Sites with active assignments cannot be deleted")
        count = self._sites.soft_delete(ids, deleted_at=now or now_local())
        logger.info("Soft-deleted %d site(s): %s", count, ids)
        return count

    def restore_sites(self, site_ids: Sequence[int]) -> int:
        return self._sites.restore(self._require_ids(site_ids))

    def purge_sites(self, site_ids: Sequence[int]) -> int:
        ids = self._require_ids(site_ids)
        sites = {s.site_id: s for s in self._sites.list_by_ids(ids)}
        live = [sid for sid in ids if sid in sites and not sites[sid].is_deleted]
        if live:
            raise ValidationError("Only deleted sites can be purged")
        count = self._sites.purge(ids)
        logger.info("Purged %d site(s): %s", count, ids)
        return count

    @staticmethod
    def _require_ids(site_ids: Sequence[int]) -> list[int]:
        ids = sorted({int(s) for s in site_ids or []})
        if not ids:
            raise ValidationError("Select at least one site")
        return ids
