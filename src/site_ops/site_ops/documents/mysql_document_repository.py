from __future__ import annotations

import json
from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import AccessType, ApprovalStatus, DocumentCategory, PermissionType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_json, db_cursor, fetchall, fetchone
from .model import AccessLogEntry, Document, DocumentPermission, NewDocument
from .repository import DocumentRepository

_SELECT = """
    SELECT d.document_id, d.title, d.description, d.category, d.file_key, d.file_name, d.file_size,
           d.mime_type, d.owner_id, d.site_id, d.is_public, d.approval_status, d.approved_by,
           d.approved_at, d.metadata, d.created_at,
           u.full_name AS owner_name, s.name AS site_name
    FROM documents d
    LEFT JOIN users u ON u.user_id = d.owner_id
    LEFT JOIN sites s ON s.site_id = d.site_id
"""


def _row_to_document(row: dict) -> Document:
    return Document(
        document_id=int(row["document_id"]),
        title=row["title"],
        category=DocumentCategory(row["category"]),
        file_key=row["file_key"],
        file_name=row["file_name"],
        file_size=int(row.get("file_size") or 0),
        owner_id=int(row["owner_id"]),
        mime_type=row.get("mime_type"),
        description=row.get("description"),
        site_id=row.get("site_id"),
        is_public=bool(row.get("is_public")),
        approval_status=ApprovalStatus(row.get("approval_status") or ApprovalStatus.NOT_REQUIRED.value),
        approved_by=row.get("approved_by"),
        approved_at=row.get("approved_at"),
        metadata=as_json(row.get("metadata")),
        created_at=row.get("created_at"),
        owner_name=row.get("owner_name"),
        site_name=row.get("site_name"),
    )


def _row_to_permission(row: dict) -> DocumentPermission:
    return DocumentPermission(
        document_id=int(row["document_id"]),
        user_id=int(row["user_id"]),
        permission_type=PermissionType(row["permission_type"]),
        granted_by=int(row["granted_by"]),
        expires_at=row.get("expires_at"),
    )


def _filters(
    *,
    category: Optional[DocumentCategory] = None,
    site_id: Optional[int] = None,
    owner_id: Optional[int] = None,
    approval_status: Optional[ApprovalStatus] = None,
    search: Optional[str] = None,
) -> tuple[list, list]:
    where, params = [], []
    if category is not None:
        where.append("d.category=%s")
        params.append(category.value)
    if site_id is not None:
        where.append("d.site_id=%s")
        params.append(site_id)
    if owner_id is not None:
        where.append("d.owner_id=%s")
        params.append(owner_id)
    if approval_status is not None:
        where.append("d.approval_status=%s")
        params.append(approval_status.value)
    if search:
        like = f"%{search}%"
        where.append("(d.title LIKE %s OR d.description LIKE %s OR d.file_name LIKE %s)")
        params += [like, like, like]
    return where, params


class MySQLDocumentRepository(DocumentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, document_id: int) -> Optional[Document]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE d.document_id=%s", (document_id,))
            row = fetchone(cur)
            return _row_to_document(row) if row else None

    def list_documents(
        self,
        *,
        category: Optional[DocumentCategory] = None,
        site_id: Optional[int] = None,
        owner_id: Optional[int] = None,
        approval_status: Optional[ApprovalStatus] = None,
        search: Optional[str] = None,
    ) -> Sequence[Document]:
        where, params = _filters(
            category=category, site_id=site_id, owner_id=owner_id, approval_status=approval_status, search=search
        )
        sql = _SELECT
        if where:
            sql += " WHERE " + " AND ".join(where)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql + " ORDER BY d.created_at DESC, d.document_id DESC", tuple(params))
            return [_row_to_document(r) for r in fetchall(cur)]

    def list_visible(
        self,
        user_id: int,
        *,
        now: datetime,
        category: Optional[DocumentCategory] = None,
        search: Optional[str] = None,
    ) -> Sequence[Document]:
        where, params = _filters(category=category, search=search)
        where.insert(
            0,
            """
            (d.owner_id=%s OR d.is_public=1 OR EXISTS (
                SELECT 1 FROM document_permissions p
                WHERE p.document_id=d.document_id AND p.user_id=%s
                  AND (p.expires_at IS NULL OR p.expires_at > %s)))
            """,
        )
        params = [user_id, user_id, now] + params
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _SELECT + " WHERE " + " AND ".join(where) + " ORDER BY d.created_at DESC, d.document_id DESC",
                tuple(params),
            )
            return [_row_to_document(r) for r in fetchall(cur)]

    def create(self, doc: NewDocument) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO documents(
                    title, description, category, file_key, file_name, file_size, mime_type,
                    owner_id, site_id, is_public, approval_status, metadata)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    doc.title,
                    doc.description,
                    doc.category.value,
                    doc.file_key,
                    doc.file_name,
                    doc.file_size,
                    doc.mime_type,
                    doc.owner_id,
                    doc.site_id,
                    1 if doc.is_public else 0,
                    doc.approval_status.value,
                    json.dumps(doc.metadata, ensure_ascii=False),
                ),
            )
            return int(cur.lastrowid)

    def delete(self, document_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM documents WHERE document_id=%s", (document_id,))
            return cur.rowcount > 0

    def set_approval(self, document_id: int, *, status: ApprovalStatus, approver_id: int, at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE documents SET approval_status=%s, approved_by=%s, approved_at=%s WHERE document_id=%s",
                (status.value, approver_id, at, document_id),
            )
            return cur.rowcount > 0

    def get_permission(self, document_id: int, user_id: int) -> Optional[DocumentPermission]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT document_id, user_id, permission_type, granted_by, expires_at
                FROM document_permissions WHERE document_id=%s AND user_id=%s
                """,
                (document_id, user_id),
            )
            row = fetchone(cur)
            return _row_to_permission(row) if row else None

    def list_permissions(self, document_id: int) -> Sequence[DocumentPermission]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT document_id, user_id, permission_type, granted_by, expires_at
                FROM document_permissions WHERE document_id=%s ORDER BY user_id
                """,
                (document_id,),
            )
            return [_row_to_permission(r) for r in fetchall(cur)]

    def upsert_permission(self, permission: DocumentPermission) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO document_permissions(document_id, user_id, permission_type, granted_by, expires_at)
                VALUES(%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    permission_type=VALUES(permission_type), granted_by=VALUES(granted_by),
                    expires_at=VALUES(expires_at)
                """,
                (
                    permission.document_id,
                    permission.user_id,
                    permission.permission_type.value,
                    permission.granted_by,
                    permission.expires_at,
                ),
            )

    def revoke_permission(self, document_id: int, user_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM document_permissions WHERE document_id=%s AND user_id=%s", (document_id, user_id)
            )
            return cur.rowcount > 0

    def log_access(self, entry: AccessLogEntry) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO document_access_logs(document_id, user_id, access_type, accessed_at) VALUES(%s,%s,%s,%s)",
                (entry.document_id, entry.user_id, entry.access_type.value, entry.accessed_at),
            )

    def access_log(self, document_id: int, *, limit: int = 100) -> Sequence[AccessLogEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT document_id, user_id, access_type, accessed_at FROM document_access_logs
                WHERE document_id=%s ORDER BY accessed_at DESC LIMIT %s
                """,
                (document_id, int(limit)),
            )
            return [
                AccessLogEntry(
                    document_id=int(r["document_id"]),
                    user_id=int(r["user_id"]),
                    access_type=AccessType(r["access_type"]),
                    accessed_at=r["accessed_at"],
                )
                for r in fetchall(cur)
            ]
