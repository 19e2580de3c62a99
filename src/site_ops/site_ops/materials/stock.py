from __future__ import annotations

from ..core.enums import MaterialTransactionType
from ..core.exceptions import ValidationError

_INBOUND = (MaterialTransactionType.IN, MaterialTransactionType.RETURN)
_OUTBOUND = (MaterialTransactionType.OUT, MaterialTransactionType.WASTE)


def apply_transaction(current: float, transaction_type: MaterialTransactionType, quantity: float) -> float:
    """Stock level after the movement; adjustment sets the level outright."""
    current = float(current or 0)
    quantity = float(quantity)

    if transaction_type == MaterialTransactionType.ADJUSTMENT:
        if quantity < 0:
            raise ValidationError("Stock cannot be negative")
        return round(quantity, 2)

    if quantity <= 0:
        raise ValidationError("Quantity must be greater than 0")

    if transaction_type in _INBOUND:
        return round(current + quantity, 2)
    if transaction_type in _OUTBOUND:
        if quantity > current:
            raise ValidationError(f"Insufficient stock (current {current:g}, requested {quantity:g})")
        return round(current - quantity, 2)
    raise ValidationError(f"Unsupported transaction type: {transaction_type}")
