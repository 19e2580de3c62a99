from __future__ import annotations

import re
from enum import Enum
from typing import Optional, Type, TypeVar

from ..core.exceptions import ValidationError

E = TypeVar("E", bound=Enum)

_PHONE_RE = re.compile(r"^0\d{1,2}-?\d{3,4}-?\d{4}$")
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_BUSINESS_NUMBER_RE = re.compile(r"^\d{3}-\d{2}-\d{5}$")


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def require_min_length(value: str, field_name: str, min_len: int) -> str:
    if value is None or len(value) < min_len:
        raise ValidationError(f"{field_name} must be at least {min_len} characters")
    return value


def require_positive(value, field_name: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number")
    if number <= 0:
        raise ValidationError(f"{field_name} must be greater than 0")
    return number


def require_non_negative(value, field_name: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number")
    if number < 0:
        raise ValidationError(f"{field_name} cannot be negative")
    return number


def require_percentage(value, field_name: str) -> float:
    rate = require_non_negative(value, field_name)
    if rate > 100:
        raise ValidationError(f"{field_name} must be between 0 and 100")
    return rate


def parse_enum(enum_cls: Type[E], value, field_name: str) -> E:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(e.value for e in enum_cls)
        raise ValidationError(f"{field_name} must be one of: {allowed}")


def optional_phone(value: Optional[str]) -> Optional[str]:
    v = (value or "").strip()
    if not v:
        return None
    if not _PHONE_RE.match(v):
        raise ValidationError("Invalid phone number")
    return v


def optional_email(value: Optional[str]) -> Optional[str]:
    v = (value or "").strip()
    if not v:
        return None
    if not _EMAIL_RE.match(v):
        raise ValidationError("Invalid email address")
    return v.lower()


def optional_business_number(value: Optional[str]) -> Optional[str]:
    v = (value or "").strip()
    if not v:
        return None
    if not _BUSINESS_NUMBER_RE.match(v):
        raise ValidationError("Business number must look like 123-45-67890")
    return v
