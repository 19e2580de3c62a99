from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date
from typing import List, Optional, Sequence

from ..common.validators import parse_enum, require_non_empty, require_non_negative
from ..core.enums import MaterialTransactionType, StockStatus
from ..core.exceptions import NotFoundError, ValidationError
from ..sites.model import Site
from ..sites.repository import SiteRepository
from .model import (
    InventoryItem,
    InventorySummary,
    Material,
    MaterialDraft,
    MaterialTransaction,
    SiteStockCount,
    StockAdjustment,
    StockMovement,
)
from .repository import InventoryRepository, MaterialRepository
from .stock import apply_transaction

logger = logging.getLogger(__name__)


class MaterialService:
    """Material catalog, per-site stock and the stock movement ledger."""

    def __init__(self, materials: MaterialRepository, inventory: InventoryRepository, sites: SiteRepository):
        self._materials = materials
        self._inventory = inventory
        self._sites = sites

    def _site(self, site_id: int) -> Site:
        site = self._sites.get_by_id(site_id)
        if not site or site.is_deleted:
            raise NotFoundError("Site not found")
        return site

    def _material(self, material_id: int) -> Material:
        material = self._materials.get_by_id(material_id)
        if not material:
            raise NotFoundError("Material not found")
        return material

    # catalog

    def list_materials(self, *, search: Optional[str] = None, active_only: bool = False) -> Sequence[Material]:
        return self._materials.list_materials(search=(search or "").strip() or None, active_only=active_only)

    def get_material(self, material_id: int) -> Material:
        return self._material(material_id)

    def _draft(
        self,
        *,
        code: str,
        name: str,
        unit: str,
        specification: Optional[str] = None,
        unit_price=0,
        is_active: bool = True,
        exclude_id: Optional[int] = None,
    ) -> MaterialDraft:
        code_s = require_non_empty(code, "Material code").upper()
        existing = self._materials.get_by_code(code_s)
        if existing and existing.material_id != exclude_id:
            raise ValidationError(f"Material code {code_s} already exists")
        return MaterialDraft(
            code=code_s,
            name=require_non_empty(name, "Material name"),
            unit=require_non_empty(unit, "Unit"),
            specification=(specification or "").strip() or None,
            unit_price=int(require_non_negative(unit_price or 0, "Unit price")),
            is_active=bool(is_active),
        )

    def create_material(self, **fields) -> int:
        draft = self._draft(**fields)
        material_id = self._materials.create(draft)
        logger.info("Material %s created (%s)", material_id, draft.code)
        return material_id

    def update_material(self, material_id: int, **fields) -> None:
        self._material(material_id)
        self._materials.update(material_id, self._draft(exclude_id=material_id, **fields))
        logger.info("Material %s updated", material_id)

    def delete_material(self, material_id: int) -> None:
        self._material(material_id)
        if self._materials.is_in_use(material_id):
            raise ValidationError("Material has stock or requests; deactivate it instead")
        self._materials.delete(material_id)
        logger.info("Material %s deleted", material_id)

    # inventory

    def inventory_list(
        self,
        *,
        site_id: Optional[int] = None,
        status: Optional[StockStatus] = None,
        search: Optional[str] = None,
    ) -> List[InventoryItem]:
        items = self._inventory.list_inventory(site_id=site_id, search=(search or "").strip() or None)
        if status is not None:
            items = [i for i in items if i.status == status]
        return list(items)

    def inventory_summary(self, *, site_id: Optional[int] = None) -> InventorySummary:
        items = self._inventory.list_inventory(site_id=site_id)

        per_site: dict[int, list[InventoryItem]] = defaultdict(list)
        for item in items:
            per_site[item.site_id].append(item)

        sites = [
            SiteStockCount(
                site_id=sid,
                site_name=rows[0].site_name,
                items=len(rows),
                low_stock_items=sum(1 for r in rows if r.status == StockStatus.LOW),
                out_of_stock_items=sum(1 for r in rows if r.status == StockStatus.OUT_OF_STOCK),
            )
            for sid, rows in per_site.items()
        ]
        sites.sort(key=lambda s: s.site_name)

        return InventorySummary(
            total_materials=len({i.material_id for i in items}),
            tracked_sites=len(per_site),
            low_stock_items=sum(s.low_stock_items for s in sites),
            out_of_stock_items=sum(s.out_of_stock_items for s in sites),
            total_stock_quantity=round(sum(max(i.current_stock, 0) for i in items), 2),
            total_stock_value=int(round(sum(max(i.current_stock, 0) * i.unit_price for i in items))),
            sites=sites,
        )

    def set_inventory_limits(
        self,
        *,
        site_id: int,
        material_id: int,
        minimum_stock=0,
        maximum_stock=None,
        storage_location: Optional[str] = None,
    ) -> None:
        self._site(site_id)
        self._material(material_id)
        minimum = require_non_negative(minimum_stock or 0, "Minimum stock")
        maximum = None
        if maximum_stock not in (None, ""):
            maximum = require_non_negative(maximum_stock, "Maximum stock")
            if maximum < minimum:
                raise ValidationError("Maximum stock cannot be below minimum stock")
        self._inventory.save_limits(
            site_id=site_id,
            material_id=material_id,
            minimum_stock=minimum,
            maximum_stock=maximum,
            storage_location=(storage_location or "").strip() or None,
        )

    # ledger

    def prepare_movement(
        self,
        *,
        site_id: int,
        material_id: int,
        transaction_type,
        quantity,
        notes: Optional[str] = None,
        reference_type: Optional[str] = None,
        reference_id: Optional[int] = None,
    ) -> StockMovement:
        """Validate one movement without touching stock."""
        self._site(site_id)
        material = self._material(material_id)
        tx_type = parse_enum(MaterialTransactionType, transaction_type, "Transaction type")
        try:
            qty = float(quantity)
        except (TypeError, ValueError):
            raise ValidationError("Quantity must be a number")
        if tx_type == MaterialTransactionType.ADJUSTMENT:
            if qty < 0:
                raise ValidationError("Stock cannot be negative")
        elif qty <= 0:
            raise ValidationError("Quantity must be greater than 0")
        if not material.is_active and tx_type == MaterialTransactionType.IN:
            raise ValidationError(f"Material {material.code} is inactive")
        return StockMovement(
            site_id=site_id,
            material_id=material_id,
            transaction_type=tx_type,
            quantity=qty,
            notes=(notes or "").strip() or None,
            reference_type=reference_type,
            reference_id=reference_id,
        )

    def post_movements(
        self, movements: Sequence[StockMovement], *, performed_by: Optional[int]
    ) -> List[MaterialTransaction]:
        """Post prepared movements together; one failure leaves stock untouched."""
        txs = self._inventory.post_transactions(movements, next_stock=_next_stock, performed_by=performed_by)
        for tx in txs:
            logger.info(
                "Stock %s site=%s material=%s qty=%g: %g -> %g",
                tx.transaction_type.value,
                tx.site_id,
                tx.material_id,
                tx.quantity,
                tx.stock_before,
                tx.stock_after,
            )
        return txs

    def record_transaction(
        self,
        *,
        site_id: int,
        material_id: int,
        transaction_type,
        quantity,
        performed_by: Optional[int],
        notes: Optional[str] = None,
        reference_type: Optional[str] = None,
        reference_id: Optional[int] = None,
    ) -> MaterialTransaction:
        movement = self.prepare_movement(
            site_id=site_id,
            material_id=material_id,
            transaction_type=transaction_type,
            quantity=quantity,
            notes=notes,
            reference_type=reference_type,
            reference_id=reference_id,
        )
        return self.post_movements([movement], performed_by=performed_by)[0]

    def adjust_inventory(
        self, adjustments: Sequence[StockAdjustment], *, performed_by: Optional[int]
    ) -> List[MaterialTransaction]:
        """Set stock levels after a physical count; the batch is validated, then posted in one transaction."""
        if not adjustments:
            raise ValidationError("Add at least one adjustment")
        movements = [
            self.prepare_movement(
                site_id=a.site_id,
                material_id=a.material_id,
                transaction_type=MaterialTransactionType.ADJUSTMENT,
                quantity=a.quantity,
                notes=a.notes or "Stock adjustment",
            )
            for a in adjustments
        ]
        return self.post_movements(movements, performed_by=performed_by)

    def transactions(
        self,
        *,
        site_id: Optional[int] = None,
        material_id: Optional[int] = None,
        transaction_type=None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        limit: int = 100,
    ) -> Sequence[MaterialTransaction]:
        if date_from and date_to and date_to < date_from:
            raise ValidationError("End date cannot be before start date")
        return self._inventory.list_transactions(
            site_id=site_id,
            material_id=material_id,
            transaction_type=(
                parse_enum(MaterialTransactionType, transaction_type, "Transaction type") if transaction_type else None
            ),
            date_from=date_from,
            date_to=date_to,
            limit=max(1, min(int(limit), 1000)),
        )


def _next_stock(movement: StockMovement, current: float) -> float:
    return apply_transaction(current, movement.transaction_type, movement.quantity)
