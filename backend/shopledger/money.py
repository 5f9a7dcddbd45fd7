# Overview: Decimal helpers for prices and totals.

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENT = Decimal("0.01")

# Largest amount a Numeric(14, 2) column holds
MAX_AMOUNT = Decimal("999999999999.99")


def parse_decimal(value) -> Decimal:
    """
    Convert a JSON number/str to an exact Decimal, without rounding.

    Floats go through str() so 19.99 stays 19.99. Raises ValueError for
    booleans, non-numeric input, NaN and infinities.
    """
    if isinstance(value, bool) or value is None:
        raise ValueError("not a number")
    if isinstance(value, Decimal):
        d = value
    elif isinstance(value, (int, float)):
        d = Decimal(str(value))
    elif isinstance(value, str):
        try:
            d = Decimal(value.strip())
        except InvalidOperation:
            raise ValueError("not a number")
    else:
        raise ValueError("not a number")
    if not d.is_finite():
        raise ValueError("not a finite number")
    return d


def has_sub_cent_digits(d: Decimal) -> bool:
    return d != d.quantize(CENT, rounding=ROUND_HALF_UP)


def to_cents(d: Decimal) -> Decimal:
    """Quantize to 2 places; zero is always stored unsigned."""
    d = d.quantize(CENT, rounding=ROUND_HALF_UP)
    if d == 0:
        return Decimal("0.00")
    return d


def money_to_json(value: Decimal | None):
    """Render an amount as an int when whole, otherwise a float."""
    if value is None:
        return None
    d = Decimal(value)
    if d == d.to_integral_value():
        return int(d)
    return float(d)
