from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional, Sequence

from ..common.datetime_utils import now_local
from ..core.enums import AssignmentRole, AssignmentType, Role, SiteStatus
from ..core.exceptions import DomainError, NotFoundError, ValidationError
from ..sites.repository import SiteRepository
from ..users.model import User, UserSummary
from ..users.repository import UserRepository
from .model import AssignmentMatrix, AssignmentView, BulkAssignOutcome, MatrixRow
from .repository import AssignmentRepository

logger = logging.getLogger(__name__)

ASSIGNABLE_ROLES = (Role.WORKER, Role.SITE_MANAGER, Role.PARTNER)


class AssignmentService:
    """Use case: assign workers to sites.

    At most one active assignment exists per (site, user); unassigning keeps
    the row for history and stamps the unassigned date.
    """

    def __init__(self, assignments: AssignmentRepository, users: UserRepository, sites: SiteRepository):
        self._assignments = assignments
        self._users = users
        self._sites = sites

    def _assignable_site(self, site_id: int):
        site = self._sites.get_by_id(site_id)
        if not site or site.is_deleted:
            raise NotFoundError("Site not found")
        if site.status == SiteStatus.COMPLETED:
            raise ValidationError("Workers cannot be assigned to a completed site")
        return site

    def _assignable_user(self, user_id: int) -> User:
        user = self._users.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        if not user.is_active:
            raise ValidationError("Inactive users cannot be assigned")
        if user.role not in ASSIGNABLE_ROLES:
            raise ValidationError("This account cannot be assigned to a site")
        return user

    def assign(
        self,
        *,
        site_id: int,
        user_id: int,
        assignment_type: AssignmentType = AssignmentType.PERMANENT,
        role: AssignmentRole = AssignmentRole.WORKER,
        assigned_date: Optional[date] = None,
        end_date: Optional[date] = None,
        notes: Optional[str] = None,
    ) -> int:
        self._assignable_site(site_id)
        self._assignable_user(user_id)
        assigned_date = assigned_date or now_local().date()
        if end_date and end_date < assigned_date:
            raise ValidationError("End date cannot be before the assignment date")
        if self._assignments.get_active(site_id=site_id, user_id=user_id):
            raise ValidationError("User is already assigned to this site")

        assignment_id = self._assignments.create(
            site_id=site_id,
            user_id=user_id,
            assignment_type=assignment_type,
            role=role,
            assigned_date=assigned_date,
            end_date=end_date,
            notes=(notes or "").strip() or None,
        )
        logger.info("Assigned user %s to site %s as %s (%s)", user_id, site_id, role.value, assignment_type.value)
        return assignment_id

    def bulk_assign(
        self,
        *,
        site_id: int,
        user_ids: Sequence[int],
        assignment_type: AssignmentType = AssignmentType.PERMANENT,
        role: AssignmentRole = AssignmentRole.WORKER,
        assigned_date: Optional[date] = None,
        end_date: Optional[date] = None,
        notes: Optional[str] = None,
    ) -> List[BulkAssignOutcome]:
        """Assignment wizard: report one outcome per user instead of failing the batch."""
        if not user_ids:
            raise ValidationError("Select at least one user")
        self._assignable_site(site_id)

        outcomes: List[BulkAssignOutcome] = []
        for user_id in dict.fromkeys(int(u) for u in user_ids):
            if self._assignments.get_active(site_id=site_id, user_id=user_id):
                outcomes.append(BulkAssignOutcome(user_id=user_id, outcome="already_assigned"))
                continue
            try:
                assignment_id = self.assign(
                    site_id=site_id,
                    user_id=user_id,
                    assignment_type=assignment_type,
                    role=role,
                    assigned_date=assigned_date,
                    end_date=end_date,
                    notes=notes,
                )
            except DomainError as e:
                outcomes.append(BulkAssignOutcome(user_id=user_id, outcome="error", message=str(e)))
                continue
            outcomes.append(BulkAssignOutcome(user_id=user_id, outcome="assigned", assignment_id=assignment_id))
        return outcomes

    def unassign(self, *, site_id: int, user_id: int, unassigned_date: Optional[date] = None) -> None:
        current = self._assignments.get_active(site_id=site_id, user_id=user_id)
        if not current:
            raise ValidationError("No active assignment for this user at this site")
        self._assignments.deactivate(current.assignment_id, unassigned_date=unassigned_date or now_local().date())
        logger.info("Unassigned user %s from site %s", user_id, site_id)

    def change_role(self, *, site_id: int, user_id: int, role: AssignmentRole) -> None:
        current = self._assignments.get_active(site_id=site_id, user_id=user_id)
        if not current:
            raise ValidationError("No active assignment for this user at this site")
        if current.role != role:
            self._assignments.update_role(current.assignment_id, role)

    def is_assigned(self, *, site_id: int, user_id: int) -> bool:
        return self._assignments.get_active(site_id=site_id, user_id=user_id) is not None

    def list_site_workers(self, site_id: int) -> Sequence[AssignmentView]:
        return self._assignments.list_active_for_site(site_id)

    def history(
        self,
        *,
        site_id: Optional[int] = None,
        user_id: Optional[int] = None,
        assignment_type: Optional[AssignmentType] = None,
        is_active: Optional[bool] = None,
        limit: int = 200,
    ) -> Sequence[AssignmentView]:
        return self._assignments.history(
            site_id=site_id,
            user_id=user_id,
            assignment_type=assignment_type,
            is_active=is_active,
            limit=limit,
        )

    def available_users(self, site_id: int, *, search: Optional[str] = None) -> List[UserSummary]:
        """Active assignable users not currently assigned to the site."""
        assigned = {v.assignment.user_id for v in self._assignments.list_active_for_site(site_id)}
        users = self._users.list_users(
            search=(search or "").strip() or None,
            roles=list(ASSIGNABLE_ROLES),
            active_only=True,
        )
        return [UserSummary.of(u) for u in users if u.user_id not in assigned]

    def matrix(self, *, site_ids: Optional[Sequence[int]] = None) -> AssignmentMatrix:
        views = self._assignments.list_active(site_ids=site_ids)

        site_names: dict[int, str] = {}
        rows: dict[int, MatrixRow] = {}
        for v in views:
            a = v.assignment
            site_names.setdefault(a.site_id, v.site_name)
            row = rows.setdefault(a.user_id, MatrixRow(user_id=a.user_id, full_name=v.full_name))
            row.roles_by_site[a.site_id] = a.role.value

        ordered_sites = sorted(site_names, key=lambda sid: site_names[sid])
        return AssignmentMatrix(
            site_ids=ordered_sites,
            site_names=site_names,
            rows=sorted(rows.values(), key=lambda r: r.full_name),
        )

    def count_active_for_sites(self, site_ids: Sequence[int]):
        return self._assignments.count_active_for_sites(site_ids)
