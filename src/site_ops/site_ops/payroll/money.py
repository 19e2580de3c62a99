from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal


def won(amount) -> int:
    """Round to whole won, half-up."""
    return int(Decimal(str(amount)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
