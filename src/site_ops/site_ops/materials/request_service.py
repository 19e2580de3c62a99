from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Dict, List, Optional, Sequence

from ..common.validators import parse_enum, require_positive
from ..core.enums import MaterialRequestStatus, MaterialTransactionType, RequestPriority
from ..core.exceptions import NotFoundError, ValidationError
from ..sites.repository import SiteRepository
from .model import MaterialRequest, MaterialTransaction, RequestItemDraft
from .repository import MaterialRepository, MaterialRequestRepository
from .service import MaterialService

logger = logging.getLogger(__name__)

REFERENCE_TYPE = "material_request"


def request_number_prefix(day: date) -> str:
    return f"MR-{day.strftime('%Y%m%d')}-"


class MaterialRequestService:
    """Site material requests: pending -> approved|cancelled, approved -> ordered -> delivered."""

    def __init__(
        self,
        requests: MaterialRequestRepository,
        materials: MaterialRepository,
        sites: SiteRepository,
        material_service: MaterialService,
    ):
        self._requests = requests
        self._materials = materials
        self._sites = sites
        self._material_service = material_service

    def get(self, request_id: int) -> MaterialRequest:
        request = self._requests.get_by_id(request_id)
        if not request:
            raise NotFoundError("Material request not found")
        return request

    def list_requests(
        self,
        *,
        site_id: Optional[int] = None,
        status=None,
        priority=None,
        search: Optional[str] = None,
    ) -> Sequence[MaterialRequest]:
        return self._requests.list_requests(
            site_id=site_id,
            status=parse_enum(MaterialRequestStatus, status, "Status") if status else None,
            priority=parse_enum(RequestPriority, priority, "Priority") if priority else None,
            search=(search or "").strip() or None,
        )

    def create_request(
        self,
        *,
        site_id: int,
        requested_by: int,
        items: Sequence[RequestItemDraft],
        priority=RequestPriority.NORMAL,
        required_date: Optional[date] = None,
        notes: Optional[str] = None,
        today: Optional[date] = None,
    ) -> tuple[int, str]:
        today = today or date.today()
        site = self._sites.get_by_id(site_id)
        if not site or site.is_deleted:
            raise NotFoundError("Site not found")
        if not items:
            raise ValidationError("Add at least one material")
        if required_date and required_date < today:
            raise ValidationError("Required date cannot be in the past")

        seen = set()
        clean: List[RequestItemDraft] = []
        for item in items:
            material = self._materials.get_by_id(item.material_id)
            if not material or not material.is_active:
                raise ValidationError(f"Material {item.material_id} is not available")
            if item.material_id in seen:
                raise ValidationError(f"Material {material.code} is listed twice")
            seen.add(item.material_id)
            clean.append(
                RequestItemDraft(
                    material_id=item.material_id,
                    requested_quantity=require_positive(item.requested_quantity, "Requested quantity"),
                    notes=(item.notes or "").strip() or None,
                )
            )

        prefix = request_number_prefix(today)
        number = f"{prefix}{self._requests.count_numbers_with_prefix(prefix) + 1:04d}"
        request_id = self._requests.create(
            request_number=number,
            site_id=site_id,
            requested_by=requested_by,
            priority=parse_enum(RequestPriority, priority, "Priority"),
            required_date=required_date,
            notes=(notes or "").strip() or None,
            items=clean,
        )
        logger.info("Material request %s created for site %s (%d items)", number, site_id, len(clean))
        return request_id, number

    def approve_requests(
        self,
        request_ids: Sequence[int],
        *,
        approver_id: int,
        comment: Optional[str] = None,
        quantities: Optional[Dict[int, float]] = None,
        now: Optional[datetime] = None,
    ) -> int:
        """Approve pending requests; items without an explicit quantity get what was requested."""
        ids = _ids(request_ids)
        quantities = quantities or {}
        if any(float(q) < 0 for q in quantities.values()):
            raise ValidationError("Approved quantity cannot be negative")
        for request_id in ids:
            request = self.get(request_id)
            if request.status != MaterialRequestStatus.PENDING:
                continue
            approved = {}
            for item in request.items:
                approved[item.item_id] = round(float(quantities.get(item.item_id, item.requested_quantity)), 2)
            self._requests.set_approved_quantities(request_id, approved)

        count = self._requests.update_status(
            ids,
            from_status=MaterialRequestStatus.PENDING,
            to_status=MaterialRequestStatus.APPROVED,
            actor_id=approver_id,
            comment=(comment or "").strip() or None,
            at=now or datetime.now(),
        )
        logger.info("Material requests approved by %s: %d of %d", approver_id, count, len(ids))
        return count

    def reject_requests(
        self,
        request_ids: Sequence[int],
        *,
        approver_id: int,
        comment: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> int:
        ids = _ids(request_ids)
        count = self._requests.update_status(
            ids,
            from_status=MaterialRequestStatus.PENDING,
            to_status=MaterialRequestStatus.CANCELLED,
            actor_id=approver_id,
            comment=(comment or "").strip() or None,
            at=now or datetime.now(),
        )
        logger.info("Material requests rejected by %s: %d of %d", approver_id, count, len(ids))
        return count

    def mark_ordered(self, request_ids: Sequence[int]) -> int:
        ids = _ids(request_ids)
        count = self._requests.update_status(
            ids, from_status=MaterialRequestStatus.APPROVED, to_status=MaterialRequestStatus.ORDERED
        )
        logger.info("Material requests ordered: %d of %d", count, len(ids))
        return count

    def mark_delivered(self, request_id: int, *, performed_by: Optional[int]) -> List[MaterialTransaction]:
        """Receive an ordered request into the site's stock.

        Items are validated before the request is claimed ORDERED -> DELIVERED, so a second call
        cannot post it again. Stock movements go in one transaction and a failed post releases the claim.
        """
        request = self.get(request_id)
        if request.status != MaterialRequestStatus.ORDERED:
            raise ValidationError("Only ordered requests can be delivered")

        movements = [
            self._material_service.prepare_movement(
                site_id=request.site_id,
                material_id=item.material_id,
                transaction_type=MaterialTransactionType.IN,
                quantity=item.approved_quantity,
                notes=f"Delivery {request.request_number}",
                reference_type=REFERENCE_TYPE,
                reference_id=request.request_id,
            )
            for item in request.items
            if item.approved_quantity
        ]

        claimed = self._requests.update_status(
            [request_id], from_status=MaterialRequestStatus.ORDERED, to_status=MaterialRequestStatus.DELIVERED
        )
        if claimed != 1:
            raise ValidationError("Request is already being delivered")

        try:
            txs = self._material_service.post_movements(movements, performed_by=performed_by) if movements else []
        except Exception:
            self._requests.update_status(
                [request_id], from_status=MaterialRequestStatus.DELIVERED, to_status=MaterialRequestStatus.ORDERED
            )
            logger.warning("Delivery of %s failed; request returned to ordered", request.request_number)
            raise
        logger.info("Material request %s delivered (%d items)", request.request_number, len(txs))
        return txs


def _ids(values: Sequence) -> List[int]:
    try:
        ids = sorted({int(v) for v in values or []})
    except (TypeError, ValueError):
        raise ValidationError("Invalid request id")
    if not ids:
        raise ValidationError("Select at least one request")
    return ids
