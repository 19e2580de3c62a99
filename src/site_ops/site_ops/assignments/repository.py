from __future__ import annotations

from datetime import date
from typing import Dict, Optional, Protocol, Sequence

from ..core.enums import AssignmentRole, AssignmentType
from .model import Assignment, AssignmentView


class AssignmentRepository(Protocol):
    def get_by_id(self, assignment_id: int) -> Optional[Assignment]:
        raise NotImplementedError

    def get_active(self, *, site_id: int, user_id: int) -> Optional[Assignment]:
        raise NotImplementedError

    def create(
        self,
        *,
        site_id: int,
        user_id: int,
        assignment_type: AssignmentType,
        role: AssignmentRole,
        assigned_date: date,
        end_date: Optional[date],
        notes: Optional[str],
    ) -> int:
        raise NotImplementedError

    def deactivate(self, assignment_id: int, *, unassigned_date: date) -> bool:
        raise NotImplementedError

    def update_role(self, assignment_id: int, role: AssignmentRole) -> bool:
        raise NotImplementedError

    def list_active_for_site(self, site_id: int) -> Sequence[AssignmentView]:
        raise NotImplementedError

    def list_active(self, *, site_ids: Optional[Sequence[int]] = None) -> Sequence[AssignmentView]:
        raise NotImplementedError

    def history(
        self,
        *,
        site_id: Optional[int] = None,
        user_id: Optional[int] = None,
        assignment_type: Optional[AssignmentType] = None,
        is_active: Optional[bool] = None,
        limit: int = 200,
    ) -> Sequence[AssignmentView]:
        raise NotImplementedError

    def count_active_for_sites(self, site_ids: Sequence[int]) -> Dict[int, int]:
        raise NotImplementedError
