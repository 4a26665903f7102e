# Overview: Integer-cents money helpers.

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENT = Decimal("0.01")


def to_decimal(value) -> Decimal:
    """Parse a JSON number or numeric string into a Decimal; floats go through str()."""
    if isinstance(value, bool) or value is None:
        raise ValueError("amount must be a number")
    try:
        result = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError("amount must be a number")
    if not result.is_finite():
        raise ValueError("amount must be a finite number")
    return result


def _quantize(value: Decimal, exp: Decimal) -> Decimal:
    # Quantizing past the context precision signals InvalidOperation
    try:
        return value.quantize(exp, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValueError("amount is out of range")


def to_cents(value) -> int:
    """Decimal money amount -> integer cents, rounded half-up."""
    return int(_quantize(to_decimal(value) * 100, Decimal("1")))


def round_money(value: Decimal) -> Decimal:
    return _quantize(value, CENT)
