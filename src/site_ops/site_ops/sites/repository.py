from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import SiteStatus
from .model import Site, SiteDraft


class SiteRepository(Protocol):
    def get_by_id(self, site_id: int) -> Optional[Site]:
        """Return the site even when soft-deleted."""
        raise NotImplementedError

    def get_by_name(self, name: str) -> Optional[Site]:
        raise NotImplementedError

    def get_by_checkin_token(self, token: str) -> Optional[Site]:
        raise NotImplementedError

    def list_sites(
        self,
        *,
        search: Optional[str],
        status: Optional[SiteStatus],
        include_deleted: bool,
        offset: int,
        limit: int,
    ) -> tuple[Sequence[Site], int]:
        raise NotImplementedError

    def list_by_ids(self, site_ids: Sequence[int]) -> Sequence[Site]:
        raise NotImplementedError

    def create(self, draft: SiteDraft, *, checkin_token: str) -> int:
        raise NotImplementedError

    def update(self, site_id: int, draft: SiteDraft) -> bool:
        raise NotImplementedError

    def update_status(self, site_ids: Sequence[int], status: SiteStatus) -> int:
        raise NotImplementedError

    def soft_delete(self, site_ids: Sequence[int], *, deleted_at: datetime) -> int:
        raise NotImplementedError

    def restore(self, site_ids: Sequence[int]) -> int:
        raise NotImplementedError

    def purge(self, site_ids: Sequence[int]) -> int:
        """Hard-delete sites that are already soft-deleted."""
        raise NotImplementedError
