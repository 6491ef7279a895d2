from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENT = Decimal("0.01")

# Payment reconciliation tolerance: |sum(payments) - total| <= 0.01
PAYMENT_TOLERANCE = Decimal("0.01")

# Upper bound for any single monetary column (Numeric(12, 2))
MAX_AMOUNT = Decimal("9999999999.99")


def to_decimal(value, field: str = "amount") -> Decimal:
    """
    Parse a JSON/number/string value into a Decimal.

    Floats go through str() so 0.1 becomes Decimal("0.1"), not the binary
    expansion. Booleans, NaN and infinities are rejected.
    """
    if isinstance(value, bool) or value is None:
        raise ValueError(f"{field} must be a number")
    if isinstance(value, Decimal):
        d = value
    elif isinstance(value, (int, float)):
        d = Decimal(str(value))
    elif isinstance(value, str):
        try:
            d = Decimal(value.strip())
        except InvalidOperation:
            raise ValueError(f"{field} must be a number")
    else:
        raise ValueError(f"{field} must be a number")
    if not d.is_finite():
        raise ValueError(f"{field} must be a finite number")
    return d


def quantize(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def money_str(value: Decimal | None) -> str | None:
    if value is None:
        return None
    return str(quantize(Decimal(value)))


def within_tolerance(a: Decimal, b: Decimal, tolerance: Decimal = PAYMENT_TOLERANCE) -> bool:
    return abs(a - b) <= tolerance
