"""Decimal helpers for money and quantity fields."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_decimal(value: Any) -> Decimal | None:
    """Coerce a loosely-typed numeric field to Decimal, or None if it is not a number."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, float):
        value = repr(value)
    try:
        result = Decimal(str(value).strip().replace(",", "").lstrip("$"))
    except (InvalidOperation, ValueError):
        return None
    return result if result.is_finite() else None


def to_money(value: Any) -> Decimal:
    """Like ``to_decimal`` but defaults to zero and rounds to cents."""
    result = to_decimal(value)
    if result is None:
        return ZERO
    return result.quantize(CENT, rounding=ROUND_HALF_UP)


def multiply(quantity: Decimal, rate: Decimal) -> Decimal:
    return (quantity * rate).quantize(CENT, rounding=ROUND_HALF_UP)


def format_currency(value: Any) -> str:
    amount = to_money(value)
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def format_plain(value: Any) -> str:
    return f"{to_money(value):.2f}"
