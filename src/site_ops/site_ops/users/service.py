from __future__ import annotations

import logging
import secrets
import string
from dataclasses import dataclass
from typing import Optional, Sequence

from werkzeug.security import check_password_hash, generate_password_hash

from ..common.validators import optional_email, optional_phone, require_min_length, require_non_empty
from ..core.enums import Role
from ..core.exceptions import AuthenticationError, AuthorizationError, NotFoundError, ValidationError
from .model import User, UserSummary
from .repository import UserRepository

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
TEMP_PASSWORD_LENGTH = 10


@dataclass(frozen=True)
class SessionUser:
    """What we store into Flask session after login."""

    user_id: int
    full_name: str
    role: Role
    partner_id: Optional[int]


class AuthService:
    """Use case: authenticate user (login)."""

    def __init__(self, users: UserRepository):
        self._users = users

    def authenticate(self, username: str, password: str) -> SessionUser:
        user = self._users.get_by_username((username or "").strip())
        if not user or not user.is_active:
            raise AuthenticationError("Invalid username or password")

        try:
            ok = check_password_hash(user.password_hash, password or "")
        except ValueError:
            # placeholder hashes such as 'CHANGE_ME' in seed data
            ok = False

        if not ok:
            raise AuthenticationError("Invalid username or password")

        logger.info("User %s signed in", user.username)
        return SessionUser(
            user_id=user.user_id,
            full_name=user.full_name,
            role=user.role,
            partner_id=user.partner_id,
        )


class UserService:
    """Use case: manage user accounts (admin)."""

    def __init__(self, users: UserRepository):
        self._users = users

    def get(self, user_id: int) -> User:
        user = self._users.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    def create_account(
        self,
        *,
        full_name: str,
        username: str,
        password: str,
        role: Role,
        phone: Optional[str] = None,
        email: Optional[str] = None,
        partner_id: Optional[int] = None,
    ) -> int:
        full_name = require_non_empty(full_name, "Full name")
        username = require_non_empty(username, "Username")
        require_min_length(password, "Password", MIN_PASSWORD_LENGTH)

        if role == Role.ADMIN:
            raise ValidationError("Admin accounts cannot be created here")
        if role == Role.PARTNER and not partner_id:
            raise ValidationError("Partner accounts must belong to a partner company")

        if self._users.get_by_username(username):
            raise ValidationError("Username already exists")

        user_id = self._users.create_user(
            full_name=full_name,
            username=username,
            password_hash=generate_password_hash(password),
            role=role,
            phone=optional_phone(phone),
            email=optional_email(email),
            partner_id=int(partner_id) if partner_id else None,
        )
        logger.info("Created %s account %s (id=%s)", role.value, username, user_id)
        return user_id

    def update_profile(
        self,
        user_id: int,
        *,
        full_name: str,
        phone: Optional[str] = None,
        email: Optional[str] = None,
        partner_id: Optional[int] = None,
    ) -> None:
        self.get(user_id)
        self._users.update_profile(
            user_id,
            full_name=require_non_empty(full_name, "Full name"),
            phone=optional_phone(phone),
            email=optional_email(email),
            partner_id=int(partner_id) if partner_id else None,
        )

    def update_role(self, *, current_role: Role, user_id: int, role: Role) -> None:
        if current_role != Role.ADMIN:
            raise AuthorizationError("You do not have permission")
        user = self.get(user_id)
        if user.role == Role.ADMIN or role == Role.ADMIN:
            raise ValidationError("Admin role cannot be granted or revoked here")
        if role == Role.PARTNER and not user.partner_id:
            raise ValidationError("Partner accounts must belong to a partner company")
        self._users.update_role(user_id, role)
        logger.info("User %s role changed %s -> %s", user_id, user.role.value, role.value)

    def set_active(self, *, current_user_id: int, user_id: int, is_active: bool) -> None:
        if int(current_user_id) == int(user_id) and not is_active:
            raise ValidationError("You cannot deactivate your own account")
        user = self.get(user_id)
        if user.role == Role.ADMIN and not is_active:
            raise ValidationError("Admin accounts cannot be deactivated")
        self._users.set_active(user_id, is_active=bool(is_active))

    def reset_password(self, *, current_role: Role, user_id: int) -> str:
        """Replace the password with a random temporary one and return it."""
        if current_role != Role.ADMIN:
            raise AuthorizationError("You do not have permission")
        self.get(user_id)
        alphabet = string.ascii_letters + string.digits
        temp = "".join(secrets.choice(alphabet) for _ in range(TEMP_PASSWORD_LENGTH))
        self._users.update_password_hash(user_id, generate_password_hash(temp))
        logger.info("Password reset for user %s", user_id)
        return temp

    def change_password(self, user_id: int, *, current_password: str, new_password: str) -> None:
        user = self.get(user_id)
        if not check_password_hash(user.password_hash, current_password or ""):
            raise AuthenticationError("Current password is incorrect")
        require_min_length(new_password, "New password", MIN_PASSWORD_LENGTH)
        self._users.update_password_hash(user_id, generate_password_hash(new_password))

    def list_users(self, *, search: Optional[str] = None, role: Optional[Role] = None) -> Sequence[UserSummary]:
        users = self._users.list_users(search=(search or "").strip() or None, roles=[role] if role else None)
        return [UserSummary.of(u) for u in users]

    def delete_user(self, *, current_role: Role, user_id: int) -> None:
        if current_role != Role.ADMIN:
            raise AuthorizationError("You do not have permission")

        user = self._users.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        if user.role == Role.ADMIN:
            raise ValidationError("Admin accounts cannot be deleted")

        if not self._users.delete_by_id(user_id):
            raise ValidationError("Failed to delete user")
        logger.info("Deleted user %s (%s)", user_id, user.username)
