from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime

import pytest

from src.site_ops.site_ops.core.enums import MaterialRequestStatus, MaterialTransactionType, RequestPriority, SiteStatus
from src.site_ops.site_ops.core.exceptions import NotFoundError, ValidationError
from src.site_ops.site_ops.materials.model import (
    Material,
    MaterialRequest,
    MaterialRequestItem,
    MaterialTransaction,
    RequestItemDraft,
    StockMovement,
)
from src.site_ops.site_ops.materials.request_service import MaterialRequestService, request_number_prefix
from src.site_ops.site_ops.sites.model import Site


class InMemoryRequests:
    def __init__(self):
        self.requests: dict[int, MaterialRequest] = {}
        self.status_calls = []

    def get_by_id(self, request_id):
        return self.requests.get(request_id)

    def list_requests(self, *, site_id=None, status=None, priority=None, search=None):
        return [
            r
            for r in self.requests.values()
            if (site_id is None or r.site_id == site_id) and (status is None or r.status == status)
        ]

    def count_numbers_with_prefix(self, prefix):
        return sum(1 for r in self.requests.values() if r.request_number.startswith(prefix))

    def create(self, *, request_number, site_id, requested_by, priority, required_date, notes, items):
        request_id = len(self.requests) + 1
        self.requests[request_id] = MaterialRequest(
            request_id=request_id,
            request_number=request_number,
            site_id=site_id,
            requested_by=requested_by,
            priority=priority,
            status=MaterialRequestStatus.PENDING,
            required_date=required_date,
            notes=notes,
            items=[
                MaterialRequestItem(
                    item_id=request_id * 10 + n,
                    request_id=request_id,
                    material_id=i.material_id,
                    requested_quantity=i.requested_quantity,
                    notes=i.notes,
                )
                for n, i in enumerate(items, start=1)
            ],
        )
        return request_id

    def set_approved_quantities(self, request_id, quantities):
        r = self.requests[request_id]
        items = [replace(i, approved_quantity=quantities.get(i.item_id)) for i in r.items]
        self.requests[request_id] = replace(r, items=items)

    def update_status(self, request_ids, *, from_status, to_status, actor_id=None, comment=None, at=None):
        self.status_calls.append((tuple(request_ids), from_status, to_status))
        count = 0
        for rid in request_ids:
            r = self.requests.get(rid)
            if r and r.status == from_status:
                changes = dict(status=to_status)
                if actor_id is not None:
                    changes.update(approved_by=actor_id, approved_at=at, approval_comment=comment)
                self.requests[rid] = replace(r, **changes)
                count += 1
        return count


class InMemoryMaterials:
    def __init__(self, *materials: Material):
        self.materials = {m.material_id: m for m in materials}

    def get_by_id(self, material_id):
        return self.materials.get(material_id)


class InMemorySites:
    def __init__(self, *sites: Site):
        self.sites = {s.site_id: s for s in sites}

    def get_by_id(self, site_id):
        return self.sites.get(site_id)


class RecordingMaterialService:
    def __init__(self):
        self.posted = []
        self.fail_next_post = False

    def prepare_movement(self, **kwargs):
        return StockMovement(**kwargs)

    def post_movements(self, movements, *, performed_by):
        if self.fail_next_post:
            self.fail_next_post = False
            raise ValidationError("Insufficient stock")
        txs = []
        for m in movements:
            self.posted.append((m, performed_by))
            txs.append(
                MaterialTransaction(
                    transaction_id=len(self.posted),
                    site_id=m.site_id,
                    material_id=m.material_id,
                    transaction_type=m.transaction_type,
                    quantity=m.quantity,
                    stock_before=0,
                    stock_after=m.quantity,
                    reference_type=m.reference_type,
                    reference_id=m.reference_id,
                )
            )
        return txs


TODAY = date(2025, 3, 12)


@pytest.fixture
def repos():
    requests = InMemoryRequests()
    materials = InMemoryMaterials(
        Material(material_id=1, code="CEM-01", name="Cement", unit="bag"),
        Material(material_id=2, code="RB-13", name="Rebar", unit="ton"),
        Material(material_id=3, code="OLD-1", name="Retired", unit="ea", is_active=False),
    )
    sites = InMemorySites(Site(site_id=1, name="Yeouido", address="a", status=SiteStatus.ACTIVE, checkin_token="t"))
    return requests, materials, sites, RecordingMaterialService()


@pytest.fixture
def service(repos) -> MaterialRequestService:
    return MaterialRequestService(*repos)


def _create(service, **overrides):
    fields = dict(
        site_id=1,
        requested_by=7,
        items=[RequestItemDraft(material_id=1, requested_quantity=50), RequestItemDraft(material_id=2, requested_quantity=2)],
        today=TODAY,
    )
    fields.update(overrides)
    return service.create_request(**fields)


def test_request_numbers_are_sequential_per_day(service):
    assert request_number_prefix(TODAY) == "MR-20250312-"
    assert _create(service) == (1, "MR-20250312-0001")
    assert _create(service, priority="urgent") == (2, "MR-20250312-0002")
    assert _create(service, today=date(2025, 3, 13))[1] == "MR-20250313-0001"
    assert service.get(2).priority == RequestPriority.URGENT


@pytest.mark.parametrize(
    "items,message",
    [
        ([], "at least one"),
        ([RequestItemDraft(material_id=3, requested_quantity=1)], "not available"),
        ([RequestItemDraft(material_id=9, requested_quantity=1)], "not available"),
        ([RequestItemDraft(material_id=1, requested_quantity=0)], "greater than 0"),
        (
            [RequestItemDraft(material_id=1, requested_quantity=1), RequestItemDraft(material_id=1, requested_quantity=2)],
            "listed twice",
        ),
    ],
)
def test_create_rejects_bad_items(service, items, message):
    with pytest.raises(ValidationError, match=message):
        _create(service, items=items)


def test_create_checks_site_and_required_date(service):
    with pytest.raises(NotFoundError):
        _create(service, site_id=99)
    with pytest.raises(ValidationError):
        _create(service, required_date=date(2025, 3, 11))


def test_approve_defaults_to_requested_quantities(service):
    first, _ = _create(service)
    second, _ = _create(service)
    at = datetime(2025, 3, 12, 15, 0)

    count = service.approve_requests([first, second], approver_id=1, comment=" ok ", quantities={11: 40}, now=at)

    assert count == 2
    req = service.get(first)
    assert req.status == MaterialRequestStatus.APPROVED
    assert (req.approved_by, req.approved_at, req.approval_comment) == (1, at, "ok")
    assert [i.approved_quantity for i in req.items] == [40, 2]
    assert [i.approved_quantity for i in service.get(second).items] == [50, 2]


def test_negative_override_rejected_before_any_change(service, repos):
    first, _ = _create(service)
    requests = repos[0]

    with pytest.raises(ValidationError):
        service.approve_requests([first], approver_id=1, quantities={11: -1})

    assert requests.status_calls == []
    assert service.get(first).items[0].approved_quantity is None


def test_only_pending_requests_change(service):
    first, _ = _create(service)
    second, _ = _create(service)
    service.reject_requests([second], approver_id=1, comment="no budget")

    assert service.approve_requests([first, second], approver_id=1) == 1
    assert service.get(second).status == MaterialRequestStatus.CANCELLED
    assert service.reject_requests([first], approver_id=1) == 0


def test_selection_must_not_be_empty(service):
    with pytest.raises(ValidationError):
        service.approve_requests([], approver_id=1)
    with pytest.raises(ValidationError):
        service.mark_ordered(["x"])


def test_delivery_posts_inbound_stock(service, repos):
    _, _, _, material_service = repos
    request_id, number = _create(service)
    service.approve_requests([request_id], approver_id=1, quantities={12: 0})

    with pytest.raises(ValidationError):
        service.mark_delivered(request_id, performed_by=1)

    assert service.mark_ordered([request_id]) == 1
    txs = service.mark_delivered(request_id, performed_by=5)

    assert len(txs) == 1
    movement, performed_by = material_service.posted[0]
    assert movement.transaction_type == MaterialTransactionType.IN
    assert (movement.material_id, movement.quantity, performed_by) == (1, 50, 5)
    assert (movement.reference_type, movement.reference_id) == ("material_request", request_id)
    assert movement.notes == f"Delivery {number}"
    assert service.get(request_id).status == MaterialRequestStatus.DELIVERED


def test_delivered_request_is_not_posted_twice(service, repos):
    _, _, _, material_service = repos
    request_id, _ = _create(service)
    service.approve_requests([request_id], approver_id=1)
    service.mark_ordered([request_id])
    service.mark_delivered(request_id, performed_by=5)

    with pytest.raises(ValidationError):
        service.mark_delivered(request_id, performed_by=5)
    assert len(material_service.posted) == 2


def test_failed_delivery_returns_request_to_ordered(service, repos):
    _, _, _, material_service = repos
    request_id, _ = _create(service)
    service.approve_requests([request_id], approver_id=1)
    service.mark_ordered([request_id])
    material_service.fail_next_post = True

    with pytest.raises(ValidationError):
        service.mark_delivered(request_id, performed_by=5)

    assert service.get(request_id).status == MaterialRequestStatus.ORDERED
    assert material_service.posted == []

    service.mark_delivered(request_id, performed_by=5)
    assert [m.material_id for m, _ in material_service.posted] == [1, 2]
    assert service.get(request_id).status == MaterialRequestStatus.DELIVERED


def test_claim_lost_to_another_delivery_posts_nothing(service, repos):
    requests, _, _, material_service = repos
    request_id, _ = _create(service)
    service.approve_requests([request_id], approver_id=1)
    service.mark_ordered([request_id])
    real_update = requests.update_status

    def racing_update(ids, **kw):
        # another worker claims the request between the read and our claim
        if kw["to_status"] == MaterialRequestStatus.DELIVERED:
            real_update(ids, **kw)
        return real_update(ids, **kw)

    requests.update_status = racing_update
    with pytest.raises(ValidationError, match="already being delivered"):
        service.mark_delivered(request_id, performed_by=5)
    assert material_service.posted == []


def test_list_filters_by_status(service):
    first, _ = _create(service)
    _create(service)
    service.approve_requests([first], approver_id=1)

    assert [r.request_id for r in service.list_requests(status="approved")] == [first]
    with pytest.raises(ValidationError):
        service.list_requests(status="lost")
