from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.enums import Role
from .model import User


class UserRepository(Protocol):
    """Persistence port for users; services depend on this, not on MySQL."""

    def get_by_id(self, user_id: int) -> Optional[User]:
        raise NotImplementedError

    def get_by_username(self, username: str) -> Optional[User]:
        raise NotImplementedError

    def create_user(
        self,
        *,
        full_name: str,
        username: str,
        password_hash: str,
        role: Role,
        phone: Optional[str] = None,
        email: Optional[str] = None,
        partner_id: Optional[int] = None,
    ) -> int:
        raise NotImplementedError

    def update_profile(
        self,
        user_id: int,
        *,
        full_name: str,
        phone: Optional[str],
        email: Optional[str],
        partner_id: Optional[int],
    ) -> bool:
        raise NotImplementedError

    def update_role(self, user_id: int, role: Role) -> bool:
        raise NotImplementedError

    def set_active(self, user_id: int, *, is_active: bool) -> bool:
        raise NotImplementedError

    def update_password_hash(self, user_id: int, password_hash: str) -> bool:
        raise NotImplementedError

    def delete_by_id(self, user_id: int) -> bool:
        raise NotImplementedError

    def list_users(
        self,
        *,
        search: Optional[str] = None,
        roles: Optional[Sequence[Role]] = None,
        active_only: bool = False,
    ) -> Sequence[User]:
        raise NotImplementedError
