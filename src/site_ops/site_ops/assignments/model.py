from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional

from ..core.enums import AssignmentRole, AssignmentType


@dataclass(frozen=True)
class Assignment:
    assignment_id: int
    site_id: int
    user_id: int
    assignment_type: AssignmentType
    role: AssignmentRole
    assigned_date: date
    end_date: Optional[date] = None
    unassigned_date: Optional[date] = None
    is_active: bool = True
    notes: Optional[str] = None


@dataclass(frozen=True)
class AssignmentView:
    """Assignment joined with user and site names for lists and history."""

    assignment: Assignment
    full_name: str
    site_name: str
    phone: Optional[str] = None


@dataclass(frozen=True)
class BulkAssignOutcome:
    user_id: int
    outcome: str  # "assigned" | "already_assigned" | "error"
    assignment_id: Optional[int] = None
    message: Optional[str] = None


@dataclass(frozen=True)
class MatrixRow:
    user_id: int
    full_name: str
    roles_by_site: Dict[int, str] = field(default_factory=dict)


@dataclass(frozen=True)
class AssignmentMatrix:
    """User x site grid of active assignments."""

    site_ids: List[int]
    site_names: Dict[int, str]
    rows: List[MatrixRow]
