"""
Money helpers for cart prices.

Prices arrive from the record service as JSON numbers (occasionally as
strings) and are held as Decimal; they become floats again only when a cart
record or summary is written out as JSON.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Union

CENT = Decimal("0.01")


def parse_price(value: Union[str, int, float, Decimal]) -> Decimal:
    """
    Read a price from the record service.

    Raises:
        ValueError: if the value is not a finite number
    """
    if isinstance(value, bool):
        raise ValueError(f"price must be a number, got {value!r}")
    try:
        # Through str so 19.99 stays 19.99 rather than its binary expansion
        amount = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValueError(f"price is not a number: {value!r}") from None
    if not amount.is_finite():
        raise ValueError(f"price must be finite, got {value!r}")
    return amount


def round_money(value: Decimal) -> Decimal:
    """Round to whole cents."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def to_float(value: Decimal) -> float:
    """JSON boundary only; totals are computed in Decimal."""
    return float(value)


def format_money(value: Decimal) -> str:
    """Display form of a cart amount, e.g. "$1,234.50"."""
    return f"${round_money(value):,.2f}"
