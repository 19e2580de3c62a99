from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class User:
    """Account that can sign in: office staff, site managers, partner staff and workers."""

    user_id: int
    full_name: str
    username: str
    password_hash: str
    role: Role
    phone: Optional[str] = None
    email: Optional[str] = None
    partner_id: Optional[int] = None
    is_active: bool = True


@dataclass(frozen=True)
class UserSummary:
    """Read-model for admin lists (no password hash)."""

    user_id: int
    full_name: str
    username: str
    role: Role
    phone: Optional[str]
    email: Optional[str]
    partner_id: Optional[int]
    is_active: bool

    @classmethod
    def of(cls, user: User) -> "UserSummary":
        return cls(
            user_id=user.user_id,
            full_name=user.full_name,
            username=user.username,
            role=user.role,
            phone=user.phone,
            email=user.email,
            partner_id=user.partner_id,
            is_active=user.is_active,
        )
