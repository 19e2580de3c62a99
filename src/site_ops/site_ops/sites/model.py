from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional

from ..core.constants import DEFAULT_BREAK_MINUTES
from ..core.enums import SiteStatus


@dataclass(frozen=True)
class Site:
    """A construction project location."""

    site_id: int
    name: str
    address: str
    status: SiteStatus
    checkin_token: str
    description: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    manager_name: Optional[str] = None
    manager_phone: Optional[str] = None
    work_start_time: Optional[time] = None
    work_end_time: Optional[time] = None
    break_minutes: int = DEFAULT_BREAK_MINUTES
    deleted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


@dataclass(frozen=True)
class SiteDraft:
    """Editable site fields, validated by SiteService before they reach the repository."""

    name: str
    address: str = ""
    description: Optional[str] = None
    status: SiteStatus = SiteStatus.ACTIVE
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    manager_name: Optional[str] = None
    manager_phone: Optional[str] = None
    work_start_time: Optional[time] = None
    work_end_time: Optional[time] = None
    break_minutes: int = DEFAULT_BREAK_MINUTES
