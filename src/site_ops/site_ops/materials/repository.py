from __future__ import annotations

from datetime import date, datetime
from typing import Callable, Dict, List, Optional, Protocol, Sequence

from ..core.enums import MaterialRequestStatus, MaterialTransactionType, RequestPriority
from .model import (
    InventoryItem,
    Material,
    MaterialDraft,
    MaterialRequest,
    MaterialTransaction,
    RequestItemDraft,
    StockMovement,
)


class MaterialRepository(Protocol):
    def get_by_id(self, material_id: int) -> Optional[Material]:
        raise NotImplementedError

    def get_by_code(self, code: str) -> Optional[Material]:
        raise NotImplementedError

    def list_materials(self, *, search: Optional[str] = None, active_only: bool = False) -> Sequence[Material]:
        raise NotImplementedError

    def create(self, draft: MaterialDraft) -> int:
        raise NotImplementedError

    def update(self, material_id: int, draft: MaterialDraft) -> bool:
        raise NotImplementedError

    def delete(self, material_id: int) -> bool:
        raise NotImplementedError

    def is_in_use(self, material_id: int) -> bool:
        """True when any site holds stock records or requests for it."""
        raise NotImplementedError


class InventoryRepository(Protocol):
    def list_inventory(
        self, *, site_id: Optional[int] = None, search: Optional[str] = None
    ) -> Sequence[InventoryItem]:
        raise NotImplementedError

    def get(self, site_id: int, material_id: int) -> Optional[InventoryItem]:
        raise NotImplementedError

    def save_limits(
        self,
        *,
        site_id: int,
        material_id: int,
        minimum_stock: float,
        maximum_stock: Optional[float],
        storage_location: Optional[str],
    ) -> None:
        raise NotImplementedError

    def post_transactions(
        self,
        movements: Sequence[StockMovement],
        *,
        next_stock: Callable[[StockMovement, float], float],
        performed_by: Optional[int],
    ) -> List[MaterialTransaction]:
        """Post every movement in one transaction.

        Each stock row is locked, `next_stock` computes the new level, and any error rolls back the whole batch.
        """
        raise NotImplementedError

    def list_transactions(
        self,
        *,
        site_id: Optional[int] = None,
        material_id: Optional[int] = None,
        transaction_type: Optional[MaterialTransactionType] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        limit: int = 100,
    ) -> Sequence[MaterialTransaction]:
        raise NotImplementedError


class MaterialRequestRepository(Protocol):
    def get_by_id(self, request_id: int) -> Optional[MaterialRequest]:
        raise NotImplementedError

    def list_requests(
        self,
        *,
        site_id: Optional[int] = None,
        status: Optional[MaterialRequestStatus] = None,
        priority: Optional[RequestPriority] = None,
        search: Optional[str] = None,
    ) -> Sequence[MaterialRequest]:
        raise NotImplementedError

    def count_numbers_with_prefix(self, prefix: str) -> int:
        raise NotImplementedError

    def create(
        self,
        *,
        request_number: str,
        site_id: int,
        requested_by: int,
        priority: RequestPriority,
        required_date: Optional[date],
        notes: Optional[str],
        items: Sequence[RequestItemDraft],
    ) -> int:
        raise NotImplementedError

    def set_approved_quantities(self, request_id: int, quantities: Dict[int, float]) -> None:
        raise NotImplementedError

    def update_status(
        self,
        request_ids: Sequence[int],
        *,
        from_status: MaterialRequestStatus,
        to_status: MaterialRequestStatus,
        actor_id: Optional[int] = None,
        comment: Optional[str] = None,
        at: Optional[datetime] = None,
    ) -> int:
        raise NotImplementedError
