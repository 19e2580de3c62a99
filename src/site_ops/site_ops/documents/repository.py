from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import AccessType, ApprovalStatus, DocumentCategory, PunchStatus
from .model import AccessLogEntry, Document, DocumentPermission, NewDocument, PunchDraft, PunchItem


class DocumentRepository(Protocol):
    def get_by_id(self, document_id: int) -> Optional[Document]:
        raise NotImplementedError

    def list_documents(
        self,
        *,
        category: Optional[DocumentCategory] = None,
        site_id: Optional[int] = None,
        owner_id: Optional[int] = None,
        approval_status: Optional[ApprovalStatus] = None,
        search: Optional[str] = None,
    ) -> Sequence[Document]:
        raise NotImplementedError

    def list_visible(
        self,
        user_id: int,
        *,
        now: datetime,
        category: Optional[DocumentCategory] = None,
        search: Optional[str] = None,
    ) -> Sequence[Document]:
        """Owned, public, or shared with the user through an unexpired permission."""
        raise NotImplementedError

    def create(self, doc: NewDocument) -> int:
        raise NotImplementedError

    def delete(self, document_id: int) -> bool:
        raise NotImplementedError

    def set_approval(
        self, document_id: int, *, status: ApprovalStatus, approver_id: int, at: datetime
    ) -> bool:
        raise NotImplementedError

    def get_permission(self, document_id: int, user_id: int) -> Optional[DocumentPermission]:
        raise NotImplementedError

    def list_permissions(self, document_id: int) -> Sequence[DocumentPermission]:
        raise NotImplementedError

    def upsert_permission(self, permission: DocumentPermission) -> None:
        raise NotImplementedError

    def revoke_permission(self, document_id: int, user_id: int) -> bool:
        raise NotImplementedError

    def log_access(self, entry: AccessLogEntry) -> None:
        raise NotImplementedError

    def access_log(self, document_id: int, *, limit: int = 100) -> Sequence[AccessLogEntry]:
        raise NotImplementedError


class PunchRepository(Protocol):
    def get_by_id(self, punch_id: int) -> Optional[PunchItem]:
        raise NotImplementedError

    def list_items(
        self,
        *,
        status: Optional[PunchStatus] = None,
        site_id: Optional[int] = None,
        search: Optional[str] = None,
    ) -> Sequence[PunchItem]:
        raise NotImplementedError

    def create(self, draft: PunchDraft, *, created_by: int) -> int:
        raise NotImplementedError

    def update_photos(
        self, punch_id: int, *, photo_before_key: Optional[str], photo_after_key: Optional[str]
    ) -> bool:
        raise NotImplementedError

    def set_status(self, punch_id: int, *, status: PunchStatus, resolved_at: Optional[datetime]) -> bool:
        raise NotImplementedError

    def delete(self, punch_id: int) -> bool:
        raise NotImplementedError
