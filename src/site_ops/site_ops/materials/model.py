from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional

from ..core.enums import MaterialRequestStatus, MaterialTransactionType, RequestPriority, StockStatus


def stock_status(current_stock: float, minimum_stock: float) -> StockStatus:
    if current_stock <= 0:
        return StockStatus.OUT_OF_STOCK
    if current_stock < (minimum_stock or 0):
        return StockStatus.LOW
    return StockStatus.NORMAL


@dataclass(frozen=True)
class Material:
    material_id: int
    code: str
    name: str
    unit: str
    specification: Optional[str] = None
    unit_price: int = 0
    is_active: bool = True


@dataclass(frozen=True)
class MaterialDraft:
    code: str
    name: str
    unit: str
    specification: Optional[str] = None
    unit_price: int = 0
    is_active: bool = True


@dataclass(frozen=True)
class InventoryItem:
    """Stock of one material at one site."""

    inventory_id: int
    site_id: int
    site_name: str
    material_id: int
    material_code: str
    material_name: str
    unit: str
    current_stock: float
    minimum_stock: float = 0.0
    maximum_stock: Optional[float] = None
    storage_location: Optional[str] = None
    unit_price: int = 0
    updated_at: Optional[datetime] = None

    @property
    def status(self) -> StockStatus:
        return stock_status(self.current_stock, self.minimum_stock)


@dataclass(frozen=True)
class SiteStockCount:
    site_id: int
    site_name: str
    items: int
    low_stock_items: int
    out_of_stock_items: int


@dataclass(frozen=True)
class InventorySummary:
    total_materials: int
    tracked_sites: int
    low_stock_items: int
    out_of_stock_items: int
    total_stock_quantity: float
    total_stock_value: int
    sites: List[SiteStockCount] = field(default_factory=list)


@dataclass(frozen=True)
class StockAdjustment:
    site_id: int
    material_id: int
    quantity: float
    notes: Optional[str] = None


@dataclass(frozen=True)
class StockMovement:
    """A validated movement waiting to be posted to the ledger."""

    site_id: int
    material_id: int
    transaction_type: MaterialTransactionType
    quantity: float
    notes: Optional[str] = None
    reference_type: Optional[str] = None
    reference_id: Optional[int] = None


@dataclass(frozen=True)
class MaterialTransaction:
    transaction_id: int
    site_id: int
    material_id: int
    transaction_type: MaterialTransactionType
    quantity: float
    stock_before: float
    stock_after: float
    reference_type: Optional[str] = None
    reference_id: Optional[int] = None
    notes: Optional[str] = None
    performed_by: Optional[int] = None
    created_at: Optional[datetime] = None
    material_name: Optional[str] = None
    site_name: Optional[str] = None


@dataclass(frozen=True)
class RequestItemDraft:
    material_id: int
    requested_quantity: float
    notes: Optional[str] = None


@dataclass(frozen=True)
class MaterialRequestItem:
    item_id: int
    request_id: int
    material_id: int
    requested_quantity: float
    approved_quantity: Optional[float] = None
    notes: Optional[str] = None
    material_name: Optional[str] = None
    unit: Optional[str] = None


@dataclass(frozen=True)
class MaterialRequest:
    request_id: int
    request_number: str
    site_id: int
    requested_by: int
    priority: RequestPriority
    status: MaterialRequestStatus
    required_date: Optional[date] = None
    notes: Optional[str] = None
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    approval_comment: Optional[str] = None
    created_at: Optional[datetime] = None
    site_name: Optional[str] = None
    requester_name: Optional[str] = None
    items: List[MaterialRequestItem] = field(default_factory=list)
