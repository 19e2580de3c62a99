from __future__ import annotations

from dataclasses import asdict, replace
from datetime import date, datetime
from typing import Optional

import pytest

from src.site_ops.site_ops.core.enums import MaterialTransactionType, SiteStatus, StockStatus
from src.site_ops.site_ops.core.exceptions import NotFoundError, ValidationError
from src.site_ops.site_ops.materials.model import (
    InventoryItem,
    Material,
    MaterialTransaction,
    StockAdjustment,
    stock_status,
)
from src.site_ops.site_ops.materials.service import MaterialService
from src.site_ops.site_ops.materials.stock import apply_transaction
from src.site_ops.site_ops.sites.model import Site


class InMemoryMaterials:
    def __init__(self):
        self.materials: dict[int, Material] = {}
        self.in_use: set[int] = set()

    def get_by_id(self, material_id):
        return self.materials.get(material_id)

    def get_by_code(self, code):
        return next((m for m in self.materials.values() if m.code == code), None)

    def list_materials(self, *, search=None, active_only=False):
        return [m for m in self.materials.values() if m.is_active or not active_only]

    def create(self, draft) -> int:
        material_id = len(self.materials) + 1
        self.materials[material_id] = Material(material_id=material_id, **asdict(draft))
        return material_id

    def update(self, material_id, draft) -> bool:
        self.materials[material_id] = Material(material_id=material_id, **asdict(draft))
        return True

    def delete(self, material_id) -> bool:
        return self.materials.pop(material_id, None) is not None

    def is_in_use(self, material_id) -> bool:
        return material_id in self.in_use


class InMemoryInventory:
    def __init__(self, materials: InMemoryMaterials, sites):
        self.items: dict[tuple[int, int], InventoryItem] = {}
        self.ledger: list[MaterialTransaction] = []
        self._materials = materials
        self._sites = sites

    def _new_row(self, site_id, material_id) -> InventoryItem:
        m = self._materials.get_by_id(material_id)
        return InventoryItem(
            inventory_id=len(self.items) + 1,
            site_id=site_id,
            site_name=self._sites.get_by_id(site_id).name,
            material_id=material_id,
            material_code=m.code,
            material_name=m.name,
            unit=m.unit,
            current_stock=0.0,
            unit_price=m.unit_price,
        )

    def _row(self, site_id, material_id) -> InventoryItem:
        return self.items.get((site_id, material_id)) or self._new_row(site_id, material_id)

    def list_inventory(self, *, site_id=None, search=None):
        return [i for i in self.items.values() if site_id is None or i.site_id == site_id]

    def get(self, site_id, material_id):
        return self.items.get((site_id, material_id))

    def save_limits(self, *, site_id, material_id, minimum_stock, maximum_stock, storage_location):
        self.items[(site_id, material_id)] = replace(
            self._row(site_id, material_id),
            minimum_stock=minimum_stock,
            maximum_stock=maximum_stock,
            storage_location=storage_location,
        )

    def post_transactions(self, movements, *, next_stock, performed_by):
        # all-or-nothing, like the single database transaction
        items = dict(self.items)
        ledger = list(self.ledger)
        posted = []
        for m in movements:
            if (m.site_id, m.material_id) not in items:
                items[(m.site_id, m.material_id)] = self._new_row(m.site_id, m.material_id)
            row = items[(m.site_id, m.material_id)]
            after = next_stock(m, row.current_stock)
            items[(m.site_id, m.material_id)] = replace(row, current_stock=after)
            tx = MaterialTransaction(
                transaction_id=len(ledger) + 1,
                site_id=m.site_id,
                material_id=m.material_id,
                transaction_type=m.transaction_type,
                quantity=m.quantity,
                stock_before=row.current_stock,
                stock_after=after,
                reference_type=m.reference_type,
                reference_id=m.reference_id,
                notes=m.notes,
                performed_by=performed_by,
            )
            ledger.append(tx)
            posted.append(tx)
        self.items, self.ledger = items, ledger
        return posted

    def list_transactions(self, *, site_id=None, material_id=None, transaction_type=None, **kw):
        return [
            t
            for t in self.ledger
            if (site_id is None or t.site_id == site_id)
            and (transaction_type is None or t.transaction_type == transaction_type)
        ]


class InMemorySites:
    def __init__(self, *sites: Site):
        self.sites = {s.site_id: s for s in sites}

    def get_by_id(self, site_id) -> Optional[Site]:
        return self.sites.get(site_id)


@pytest.fixture
def repos():
    sites = InMemorySites(
        Site(site_id=1, name="Yeouido", address="a", status=SiteStatus.ACTIVE, checkin_token="t1"),
        Site(site_id=2, name="Busan", address="b", status=SiteStatus.ACTIVE, checkin_token="t2"),
        Site(
            site_id=3,
            name="Gone",
            address="c",
            status=SiteStatus.ACTIVE,
            checkin_token="t3",
            deleted_at=datetime(2025, 1, 1),
        ),
    )
    materials = InMemoryMaterials()
    return materials, InMemoryInventory(materials, sites), sites


@pytest.fixture
def service(repos) -> MaterialService:
    materials, inventory, sites = repos
    return MaterialService(materials, inventory, sites)


@pytest.fixture
def cement(service) -> int:
    return service.create_material(code="cem-01", name="Cement 40kg", unit="bag", unit_price=6500)


@pytest.mark.parametrize(
    "current,minimum,expected",
    [(0, 10, StockStatus.OUT_OF_STOCK), (-1, 0, StockStatus.OUT_OF_STOCK), (5, 10, StockStatus.LOW), (10, 10, StockStatus.NORMAL)],
)
def test_stock_status(current, minimum, expected):
    assert stock_status(current, minimum) == expected


def test_apply_transaction_rules():
    assert apply_transaction(10, MaterialTransactionType.IN, 5) == 15
    assert apply_transaction(10, MaterialTransactionType.RETURN, 2.5) == 12.5
    assert apply_transaction(10, MaterialTransactionType.WASTE, 10) == 0
    assert apply_transaction(10, MaterialTransactionType.ADJUSTMENT, 3) == 3

    with pytest.raises(ValidationError, match="Insufficient stock"):
        apply_transaction(10, MaterialTransactionType.OUT, 11)
    with pytest.raises(ValidationError):
        apply_transaction(10, MaterialTransactionType.IN, 0)
    with pytest.raises(ValidationError):
        apply_transaction(10, MaterialTransactionType.ADJUSTMENT, -1)


def test_material_codes_are_uppercased_and_unique(service, cement):
    assert service.get_material(cement).code == "CEM-01"

    with pytest.raises(ValidationError):
        service.create_material(code="CEM-01", name="Dup", unit="bag")

    service.update_material(cement, code="cem-01", name="Cement 25kg", unit="bag")
    assert service.get_material(cement).name == "Cement 25kg"


def test_material_in_use_cannot_be_deleted(service, repos, cement):
    materials, _, _ = repos
    materials.in_use.add(cement)

    with pytest.raises(ValidationError):
        service.delete_material(cement)

    materials.in_use.clear()
    service.delete_material(cement)
    with pytest.raises(NotFoundError):
        service.get_material(cement)


def test_ledger_tracks_stock_before_and_after(service, cement):
    service.record_transaction(site_id=1, material_id=cement, transaction_type="in", quantity=100, performed_by=1)
    tx = service.record_transaction(
        site_id=1, material_id=cement, transaction_type="out", quantity="30", performed_by=1, notes=" slab "
    )

    assert (tx.stock_before, tx.stock_after, tx.notes) == (100, 70, "slab")
    with pytest.raises(ValidationError):
        service.record_transaction(site_id=1, material_id=cement, transaction_type="out", quantity=71, performed_by=1)
    assert len(service.transactions(site_id=1)) == 2


def test_transaction_input_checks(service, cement):
    with pytest.raises(NotFoundError):
        service.record_transaction(site_id=3, material_id=cement, transaction_type="in", quantity=1, performed_by=1)
    with pytest.raises(ValidationError):
        service.record_transaction(site_id=1, material_id=cement, transaction_type="gift", quantity=1, performed_by=1)
    with pytest.raises(ValidationError):
        service.record_transaction(site_id=1, material_id=cement, transaction_type="in", quantity="lots", performed_by=1)


def test_inactive_material_cannot_be_received(service, cement):
    service.record_transaction(site_id=1, material_id=cement, transaction_type="in", quantity=5, performed_by=1)
    service.update_material(cement, code="CEM-01", name="Cement", unit="bag", is_active=False)

    with pytest.raises(ValidationError):
        service.record_transaction(site_id=1, material_id=cement, transaction_type="in", quantity=5, performed_by=1)
    # using up what is left is still allowed
    service.record_transaction(site_id=1, material_id=cement, transaction_type="out", quantity=5, performed_by=1)


def test_adjustment_sets_counted_levels(service, cement):
    service.record_transaction(site_id=1, material_id=cement, transaction_type="in", quantity=40, performed_by=1)

    txs = service.adjust_inventory(
        [StockAdjustment(site_id=1, material_id=cement, quantity=37), StockAdjustment(site_id=2, material_id=cement, quantity=12)],
        performed_by=1,
    )

    assert [(t.stock_before, t.stock_after) for t in txs] == [(40, 37), (0, 12)]
    assert all(t.transaction_type == MaterialTransactionType.ADJUSTMENT for t in txs)
    assert txs[0].notes == "Stock adjustment"
    with pytest.raises(ValidationError):
        service.adjust_inventory([], performed_by=1)


def test_adjustment_batch_with_a_bad_row_changes_nothing(service, repos, cement):
    _, inventory, _ = repos
    service.record_transaction(site_id=1, material_id=cement, transaction_type="in", quantity=40, performed_by=1)

    with pytest.raises(ValidationError, match="negative"):
        service.adjust_inventory(
            [StockAdjustment(site_id=1, material_id=cement, quantity=30), StockAdjustment(site_id=2, material_id=cement, quantity=-1)],
            performed_by=1,
        )

    assert inventory.get(1, cement).current_stock == 40
    assert inventory.get(2, cement) is None
    assert len(inventory.ledger) == 1


def test_failed_movement_rolls_back_the_batch(service, repos, cement):
    _, inventory, _ = repos
    service.record_transaction(site_id=1, material_id=cement, transaction_type="in", quantity=10, performed_by=1)
    batch = [
        service.prepare_movement(site_id=1, material_id=cement, transaction_type="in", quantity=5),
        service.prepare_movement(site_id=1, material_id=cement, transaction_type="out", quantity=50),
    ]

    with pytest.raises(ValidationError, match="Insufficient stock"):
        service.post_movements(batch, performed_by=1)

    assert inventory.get(1, cement).current_stock == 10
    assert len(inventory.ledger) == 1


def test_limits_and_summary(service, cement):
    rebar = service.create_material(code="RB-13", name="Rebar D13", unit="ton", unit_price=900_000)
    service.set_inventory_limits(site_id=1, material_id=cement, minimum_stock=50, maximum_stock=500)
    service.set_inventory_limits(site_id=2, material_id=rebar, minimum_stock=1)
    service.record_transaction(site_id=1, material_id=cement, transaction_type="in", quantity=20, performed_by=1)
    service.record_transaction(site_id=1, material_id=rebar, transaction_type="in", quantity=2, performed_by=1)

    with pytest.raises(ValidationError):
        service.set_inventory_limits(site_id=1, material_id=cement, minimum_stock=50, maximum_stock=10)

    low = service.inventory_list(status=StockStatus.LOW)
    assert [(i.site_id, i.material_id) for i in low] == [(1, cement)]
    assert [i.material_id for i in service.inventory_list(status=StockStatus.OUT_OF_STOCK)] == [rebar]

    summary = service.inventory_summary()
    assert summary.total_materials == 2
    assert summary.tracked_sites == 2
    assert (summary.low_stock_items, summary.out_of_stock_items) == (1, 1)
    assert summary.total_stock_quantity == 22
    assert summary.total_stock_value == 20 * 6500 + 2 * 900_000
    assert [s.site_name for s in summary.sites] == ["Busan", "Yeouido"]


def test_transactions_reject_inverted_range(service):
    with pytest.raises(ValidationError):
        service.transactions(date_from=date(2025, 3, 2), date_to=date(2025, 3, 1))
