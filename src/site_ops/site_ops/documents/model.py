from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Optional

from ..core.enums import AccessType, ApprovalStatus, DocumentCategory, PermissionType, PunchStatus, RequestPriority


@dataclass(frozen=True)
class Document:
    document_id: int
    title: str
    category: DocumentCategory
    file_key: str
    file_name: str
    file_size: int
    owner_id: int
    mime_type: Optional[str] = None
    description: Optional[str] = None
    site_id: Optional[int] = None
    is_public: bool = False
    approval_status: ApprovalStatus = ApprovalStatus.NOT_REQUIRED
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None
    owner_name: Optional[str] = None
    site_name: Optional[str] = None


@dataclass(frozen=True)
class NewDocument:
    """Validated upload, ready to insert."""

    title: str
    category: DocumentCategory
    file_key: str
    file_name: str
    file_size: int
    owner_id: int
    mime_type: Optional[str]
    description: Optional[str]
    site_id: Optional[int]
    is_public: bool
    approval_status: ApprovalStatus
    metadata: Dict[str, Any]


@dataclass(frozen=True)
class DocumentPermission:
    document_id: int
    user_id: int
    permission_type: PermissionType
    granted_by: int
    expires_at: Optional[datetime] = None

    def is_valid(self, now: datetime) -> bool:
        return self.expires_at is None or self.expires_at > now


@dataclass(frozen=True)
class AccessLogEntry:
    document_id: int
    user_id: int
    access_type: AccessType
    accessed_at: datetime


@dataclass(frozen=True)
class PunchItem:
    punch_id: int
    location: str
    issue: str
    priority: RequestPriority
    status: PunchStatus
    created_by: int
    site_id: Optional[int] = None
    document_id: Optional[int] = None
    assignee: Optional[str] = None
    due_date: Optional[date] = None
    photo_before_key: Optional[str] = None
    photo_after_key: Optional[str] = None
    resolved_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    site_name: Optional[str] = None


@dataclass(frozen=True)
class PunchDraft:
    location: str
    issue: str
    priority: RequestPriority = RequestPriority.NORMAL
    site_id: Optional[int] = None
    document_id: Optional[int] = None
    assignee: Optional[str] = None
    due_date: Optional[date] = None
    photo_before_key: Optional[str] = None


@dataclass(frozen=True)
class PunchStats:
    total: int
    open: int
    done: int
