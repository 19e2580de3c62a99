from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta

import pytest

from src.site_ops.site_ops.core.enums import AccessType, ApprovalStatus, DocumentCategory, PermissionType, Role
from src.site_ops.site_ops.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from src.site_ops.site_ops.documents.model import Document
from src.site_ops.site_ops.documents.service import DocumentService
from src.site_ops.site_ops.documents.storage import LocalStorage, file_extension
from src.site_ops.site_ops.users.model import User

NOW = datetime(2025, 3, 12, 9, 30)
PDF = b"%PDF-1.4 test"


class InMemoryDocuments:
    def __init__(self):
        self.docs: dict[int, Document] = {}
        self.permissions = {}
        self.log = []
        self.fail_create = False

    def get_by_id(self, document_id):
        return self.docs.get(document_id)

    def list_documents(self, *, category=None, site_id=None, owner_id=None, approval_status=None, search=None):
        return [
            d
            for d in self.docs.values()
            if (category is None or d.category == category)
            and (approval_status is None or d.approval_status == approval_status)
        ]

    def list_visible(self, user_id, *, now, category=None, search=None):
        return [
            d
            for d in self.docs.values()
            if d.owner_id == user_id
            or d.is_public
            or (
                (d.document_id, user_id) in self.permissions
                and self.permissions[(d.document_id, user_id)].is_valid(now)
            )
        ]

    def create(self, doc):
        if self.fail_create:
            raise RuntimeError("db down")
        document_id = len(self.docs) + 1
        self.docs[document_id] = Document(document_id=document_id, **doc.__dict__)
        return document_id

    def delete(self, document_id):
        return self.docs.pop(document_id, None) is not None

    def set_approval(self, document_id, *, status, approver_id, at):
        self.docs[document_id] = replace(
            self.docs[document_id], approval_status=status, approved_by=approver_id, approved_at=at
        )
        return True

    def get_permission(self, document_id, user_id):
        return self.permissions.get((document_id, user_id))

    def list_permissions(self, document_id):
        return [p for (d, _), p in self.permissions.items() if d == document_id]

    def upsert_permission(self, permission):
        self.permissions[(permission.document_id, permission.user_id)] = permission

    def revoke_permission(self, document_id, user_id):
        return self.permissions.pop((document_id, user_id), None) is not None

    def log_access(self, entry):
        self.log.append(entry)

    def access_log(self, document_id, *, limit=100):
        return [e for e in self.log if e.document_id == document_id][:limit]


class InMemoryUsers:
    def __init__(self, *users: User):
        self.users = {u.user_id: u for u in users}

    def get_by_id(self, user_id):
        return self.users.get(user_id)


def _user(user_id, role=Role.PARTNER, is_active=True):
    return User(
        user_id=user_id,
        full_name=f"User {user_id}",
        username=f"user{user_id}",
        password_hash="x",
        role=role,
        is_active=is_active,
    )


@pytest.fixture
def storage(tmp_path) -> LocalStorage:
    return LocalStorage(tmp_path / "uploads")


@pytest.fixture
def repo() -> InMemoryDocuments:
    return InMemoryDocuments()


@pytest.fixture
def service(repo, storage) -> DocumentService:
    users = InMemoryUsers(_user(1, Role.ADMIN), _user(2), _user(3), _user(4, is_active=False))
    return DocumentService(repo, users, storage)


def _upload(service, **overrides):
    fields = dict(owner_id=2, title="Site plan", category="shared", filename="plan.pdf", data=PDF, now=NOW)
    fields.update(overrides)
    return service.upload(**fields)


def test_upload_stores_file_and_metadata(service, storage):
    doc = _upload(service, description="  level 3 ")

    assert doc.file_key.startswith("2/20250312093000-")
    assert doc.file_key.endswith(".pdf")
    assert storage.read(doc.file_key) == PDF
    assert (doc.file_name, doc.file_size, doc.mime_type) == ("plan.pdf", len(PDF), "application/pdf")
    assert doc.description == "level 3"
    assert doc.approval_status == ApprovalStatus.NOT_REQUIRED


@pytest.mark.parametrize(
    "overrides",
    [
        dict(title=" "),
        dict(data=b""),
        dict(category="memo"),
        dict(category="certificate", filename="cert.docx"),
        dict(filename="script.exe"),
    ],
)
def test_upload_validation(service, overrides):
    with pytest.raises(ValidationError):
        _upload(service, **overrides)


def test_upload_size_limit_per_category(service):
    big = b"0" * (10 * 1024 * 1024 + 1)
    with pytest.raises(ValidationError, match="10 MB"):
        _upload(service, data=big)
    assert _upload(service, category="blueprint", data=big).file_size == len(big)


def test_invoice_requires_number_and_amount(service):
    with pytest.raises(ValidationError, match="invoice_number"):
        _upload(service, category="invoice", metadata={"amount": 1000})
    with pytest.raises(ValidationError):
        _upload(service, category="invoice", metadata={"invoice_number": "INV-1", "amount": -5})

    doc = _upload(service, category="invoice", metadata={"invoice_number": "INV-1", "amount": "150000"})
    assert doc.metadata == {"invoice_type": "invoice", "currency": "KRW", "invoice_number": "INV-1", "amount": 150000}
    assert doc.approval_status == ApprovalStatus.PENDING


def test_failed_insert_removes_stored_file(service, repo, storage):
    repo.fail_create = True
    with pytest.raises(RuntimeError):
        _upload(service)
    assert list(storage.root.rglob("*.pdf")) == []


def test_approval_flow(service):
    doc = _upload(service, category="required", filename="license.png", data=b"png")

    with pytest.raises(AuthorizationError):
        service.decide_approval(doc.document_id, approver_id=2, approver_role=Role.PARTNER, approve=True)

    decided = service.decide_approval(doc.document_id, approver_id=1, approver_role=Role.ADMIN, approve=False, now=NOW)
    assert (decided.approval_status, decided.approved_by, decided.approved_at) == (ApprovalStatus.REJECTED, 1, NOW)

    with pytest.raises(ValidationError):
        service.decide_approval(doc.document_id, approver_id=1, approver_role=Role.ADMIN, approve=True)


def test_sharing_grants_view_until_expiry(service):
    doc = _upload(service)
    expires = NOW + timedelta(days=1)

    assert not service.can_view(doc, 3, Role.PARTNER, now=NOW)
    permission = service.share(
        doc.document_id, actor_id=2, actor_role=Role.PARTNER, target_user_id=3, expires_at=expires, now=NOW
    )
    assert permission.permission_type == PermissionType.VIEW

    assert service.can_view(doc, 3, Role.PARTNER, now=NOW)
    assert not service.can_view(doc, 3, Role.PARTNER, now=expires)
    assert [d.document_id for d in service.visible_to(3, Role.PARTNER, now=NOW)] == [doc.document_id]
    assert service.visible_to(3, Role.PARTNER, now=expires + timedelta(seconds=1)) == []

    service.unshare(doc.document_id, actor_id=1, actor_role=Role.ADMIN, target_user_id=3)
    assert service.permissions(doc.document_id, actor_id=2, actor_role=Role.PARTNER) == []
    with pytest.raises(NotFoundError):
        service.unshare(doc.document_id, actor_id=2, actor_role=Role.PARTNER, target_user_id=3)


def test_share_rules(service):
    doc = _upload(service)
    share = dict(actor_id=2, actor_role=Role.PARTNER, now=NOW)

    with pytest.raises(AuthorizationError):
        service.share(doc.document_id, actor_id=3, actor_role=Role.PARTNER, target_user_id=1)
    with pytest.raises(ValidationError):
        service.share(doc.document_id, target_user_id=2, **share)
    with pytest.raises(ValidationError):
        service.share(doc.document_id, target_user_id=4, **share)
    with pytest.raises(ValidationError):
        service.share(doc.document_id, target_user_id=3, expires_at=NOW, **share)
    with pytest.raises(ValidationError):
        service.share(doc.document_id, target_user_id=3, permission_type="own", **share)


def test_public_and_admin_visibility(service):
    doc = _upload(service, is_public=True)
    private = _upload(service, title="Private")

    assert service.can_view(doc, 3, Role.WORKER)
    assert not service.can_view(private, 3, Role.WORKER)
    assert service.can_view(private, 1, Role.ADMIN)
    assert len(service.visible_to(1, Role.ADMIN)) == 2


def test_download_checks_access_and_logs(service, repo):
    doc = _upload(service)

    with pytest.raises(AuthorizationError):
        service.open_for_download(doc.document_id, user_id=3, role=Role.PARTNER)
    assert repo.log == []

    got, path = service.open_for_download(doc.document_id, user_id=2, role=Role.PARTNER, access_type="print", now=NOW)
    assert got == doc
    assert path.read_bytes() == PDF
    [entry] = service.access_log(doc.document_id, actor_id=2, actor_role=Role.PARTNER)
    assert (entry.user_id, entry.access_type, entry.accessed_at) == (2, AccessType.PRINT, NOW)


def test_delete_removes_record_and_file(service, storage):
    doc = _upload(service)

    with pytest.raises(AuthorizationError):
        service.delete(doc.document_id, actor_id=3, actor_role=Role.PARTNER)

    service.delete(doc.document_id, actor_id=2, actor_role=Role.PARTNER)
    with pytest.raises(NotFoundError):
        service.get(doc.document_id)
    with pytest.raises(NotFoundError):
        storage.path_for(doc.file_key)


def test_generated_documents_use_category_rules(service):
    doc = service.store_generated(
        owner_id=1,
        category=DocumentCategory.CERTIFICATE,
        title="Employment certificate",
        filename="cert.pdf",
        data=PDF,
        metadata={"certificate_type": "employment"},
        now=NOW,
    )
    assert doc.category == DocumentCategory.CERTIFICATE
    assert doc.metadata == {"certificate_type": "employment"}


def test_storage_keys_cannot_escape_root(storage):
    with pytest.raises(ValidationError):
        storage.read("../secrets.txt")
    with pytest.raises(ValidationError):
        storage.delete("/etc/passwd")
    assert storage.delete("2/missing.pdf") is False


def test_file_extension():
    assert file_extension("Report.Final.XLSX") == "xlsx"
    assert file_extension("../../etc/passwd") == ""
    assert file_extension("") == ""
    assert file_extension("안전교육.PDF") == "pdf"
    assert file_extension("도면 v2.p df") == ""


def test_korean_file_names_keep_their_type(service, storage):
    doc = _upload(service, category="safety", filename="안전교육.pdf")

    assert doc.file_key.endswith(".pdf")
    assert doc.file_name == "안전교육.pdf"
    assert storage.read(doc.file_key) == PDF
