from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

CENT = Decimal("0.01")

# Numeric(10, 2) upper bound
MAX_PRICE = Decimal("99999999.99")


def to_money(value) -> Decimal:
    """Quantize to two decimal places (half-up)."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def money_str(value) -> Optional[str]:
    """Decimal amounts go over the wire as strings, e.g. "12.50"."""
    if value is None:
        return None
    return str(to_money(value))
