from __future__ import annotations

import logging
import mimetypes
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from ..common.validators import parse_enum, require_non_empty, require_positive
from ..core.enums import AccessType, ApprovalStatus, DocumentCategory, PermissionType, Role
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..users.repository import UserRepository
from .categories import category_config
from .model import AccessLogEntry, Document, DocumentPermission, NewDocument
from .repository import DocumentRepository
from .storage import LocalStorage, file_extension

logger = logging.getLogger(__name__)

INVOICE_REQUIRED_FIELDS = ("invoice_number", "amount")


class DocumentService:
    def __init__(self, documents: DocumentRepository, users: UserRepository, storage: LocalStorage):
        self._documents = documents
        self._users = users
        self._storage = storage

    def _document(self, document_id: int) -> Document:
        doc = self._documents.get_by_id(document_id)
        if not doc:
            raise NotFoundError("Document not found")
        return doc

    def _metadata(self, category: DocumentCategory, metadata: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        merged: Dict[str, Any] = dict(category_config(category).default_metadata)
        merged.update(metadata or {})

        if category == DocumentCategory.INVOICE:
            missing = [f for f in INVOICE_REQUIRED_FIELDS if merged.get(f) in (None, "")]
            if missing:
                raise ValidationError(f"Invoice requires: {', '.join(missing)}")
            merged["amount"] = int(require_positive(merged["amount"], "Invoice amount"))
        return merged

    def upload(
        self,
        *,
        owner_id: int,
        title: str,
        category,
        filename: str,
        data: bytes,
        description: Optional[str] = None,
        site_id: Optional[int] = None,
        is_public: bool = False,
        metadata: Optional[Dict[str, Any]] = None,
        now: Optional[datetime] = None,
    ) -> Document:
        title_s = require_non_empty(title, "Title")
        if not filename or not data:
            raise ValidationError("File is required")

        cat = parse_enum(DocumentCategory, category, "Category")
        config = category_config(cat)
        ext = file_extension(filename)
        if ext not in config.extensions:
            allowed = ", ".join(sorted(config.extensions))
            raise ValidationError(f"{config.label} accept only: {allowed}")
        if len(data) > config.max_size:
            raise ValidationError(f"File is larger than {config.max_size // (1024 * 1024)} MB")

        meta = self._metadata(cat, metadata)
        key = self._storage.save(data, owner_id=owner_id, filename=filename, now=now)
        new_doc = NewDocument(
            title=title_s,
            category=cat,
            file_key=key,
            file_name=Path(filename).name,
            file_size=len(data),
            owner_id=owner_id,
            mime_type=mimetypes.guess_type(filename)[0] or "application/octet-stream",
            description=(description or "").strip() or None,
            site_id=site_id,
            is_public=bool(is_public),
            approval_status=ApprovalStatus.PENDING if config.requires_approval else ApprovalStatus.NOT_REQUIRED,
            metadata=meta,
        )
        try:
            document_id = self._documents.create(new_doc)
        except Exception:
            self._storage.delete(key)
            raise

        logger.info("Document %s uploaded by %s (%s, %d bytes)", document_id, owner_id, cat.value, len(data))
        return self._document(document_id)

    def get(self, document_id: int) -> Document:
        return self._document(document_id)

    def list(
        self,
        *,
        category=None,
        site_id: Optional[int] = None,
        owner_id: Optional[int] = None,
        approval_status=None,
        search: Optional[str] = None,
    ) -> Sequence[Document]:
        return self._documents.list_documents(
            category=parse_enum(DocumentCategory, category, "Category") if category else None,
            site_id=site_id,
            owner_id=owner_id,
            approval_status=(
                parse_enum(ApprovalStatus, approval_status, "Approval status") if approval_status else None
            ),
            search=(search or "").strip() or None,
        )

    def visible_to(
        self,
        user_id: int,
        role: Role,
        *,
        category=None,
        search: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Sequence[Document]:
        if role == Role.ADMIN:
            return self.list(category=category, search=search)
        return self._documents.list_visible(
            user_id,
            now=now or datetime.now(),
            category=parse_enum(DocumentCategory, category, "Category") if category else None,
            search=(search or "").strip() or None,
        )

    def can_view(self, doc: Document, user_id: int, role: Role, *, now: Optional[datetime] = None) -> bool:
        if role == Role.ADMIN or doc.owner_id == user_id or doc.is_public:
            return True
        permission = self._documents.get_permission(doc.document_id, user_id)
        return bool(permission and permission.is_valid(now or datetime.now()))

    def _require_owner_or_admin(self, doc: Document, user_id: int, role: Role) -> None:
        if role != Role.ADMIN and doc.owner_id != user_id:
            raise AuthorizationError("Only the owner or an admin can do this")

    def share(
        self,
        document_id: int,
        *,
        actor_id: int,
        actor_role: Role,
        target_user_id: int,
        permission_type=PermissionType.VIEW,
        expires_at: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> DocumentPermission:
        doc = self._document(document_id)
        self._require_owner_or_admin(doc, actor_id, actor_role)
        if target_user_id == doc.owner_id:
            raise ValidationError("The owner already has access")
        target = self._users.get_by_id(target_user_id)
        if not target or not target.is_active:
            raise ValidationError("User not found or inactive")
        if expires_at and expires_at <= (now or datetime.now()):
            raise ValidationError("Expiry must be in the future")

        permission = DocumentPermission(
            document_id=document_id,
            user_id=target_user_id,
            permission_type=parse_enum(PermissionType, permission_type, "Permission"),
            granted_by=actor_id,
            expires_at=expires_at,
        )
        self._documents.upsert_permission(permission)
        logger.info(
            "Document %s shared with %s (%s) by %s",
            document_id,
            target_user_id,
            permission.permission_type.value,
            actor_id,
        )
        return permission

    def unshare(self, document_id: int, *, actor_id: int, actor_role: Role, target_user_id: int) -> None:
        doc = self._document(document_id)
        self._require_owner_or_admin(doc, actor_id, actor_role)
        if not self._documents.revoke_permission(document_id, target_user_id):
            raise NotFoundError("Document is not shared with this user")
        logger.info("Document %s unshared from %s", document_id, target_user_id)

    def permissions(self, document_id: int, *, actor_id: int, actor_role: Role) -> Sequence[DocumentPermission]:
        doc = self._document(document_id)
        self._require_owner_or_admin(doc, actor_id, actor_role)
        return self._documents.list_permissions(document_id)

    def decide_approval(
        self,
        document_id: int,
        *,
        approver_id: int,
        approver_role: Role,
        approve: bool,
        now: Optional[datetime] = None,
    ) -> Document:
        if approver_role != Role.ADMIN:
            raise AuthorizationError("Only admins can approve documents")
        doc = self._document(document_id)
        if doc.approval_status != ApprovalStatus.PENDING:
            raise ValidationError("Document is not waiting for approval")

        status = ApprovalStatus.APPROVED if approve else ApprovalStatus.REJECTED
        self._documents.set_approval(document_id, status=status, approver_id=approver_id, at=now or datetime.now())
        logger.info("Document %s %s by %s", document_id, status.value, approver_id)
        return self._document(document_id)

    def delete(self, document_id: int, *, actor_id: int, actor_role: Role) -> None:
        doc = self._document(document_id)
        self._require_owner_or_admin(doc, actor_id, actor_role)
        self._documents.delete(document_id)
        if not self._storage.delete(doc.file_key):
            logger.warning("Stored file for document %s was already gone (%s)", document_id, doc.file_key)
        logger.info("Document %s deleted by %s", document_id, actor_id)

    def open_for_download(
        self,
        document_id: int,
        *,
        user_id: int,
        role: Role,
        access_type=AccessType.DOWNLOAD,
        now: Optional[datetime] = None,
    ) -> tuple[Document, Path]:
        now = now or datetime.now()
        doc = self._document(document_id)
        if not self.can_view(doc, user_id, role, now=now):
            raise AuthorizationError("You do not have access to this document")
        path = self._storage.path_for(doc.file_key)
        self._documents.log_access(
            AccessLogEntry(
                document_id=document_id,
                user_id=user_id,
                access_type=parse_enum(AccessType, access_type, "Access type"),
                accessed_at=now,
            )
        )
        return doc, path

    def access_log(self, document_id: int, *, actor_id: int, actor_role: Role) -> Sequence[AccessLogEntry]:
        doc = self._document(document_id)
        self._require_owner_or_admin(doc, actor_id, actor_role)
        return self._documents.access_log(document_id)

    def store_generated(
        self,
        *,
        owner_id: int,
        category: DocumentCategory,
        title: str,
        filename: str,
        data: bytes,
        site_id: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
        now: Optional[datetime] = None,
    ) -> Document:
        """Store a PDF the system rendered (photo grid, certificate) as a regular document."""
        return self.upload(
            owner_id=owner_id,
            title=title,
            category=category,
            filename=filename,
            data=data,
            site_id=site_id,
            metadata=metadata,
            now=now,
        )
