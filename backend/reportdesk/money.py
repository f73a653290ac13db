# Overview: Integer-cents money helpers; decimal strings only at the JSON boundary.

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from .validation import ValidationError

# Maximum amount per value: 9,999,999,999.99
MAX_AMOUNT_CENTS = 999_999_999_999

_CENT = Decimal("0.01")
_MAX_AMOUNT = Decimal(MAX_AMOUNT_CENTS) / 100


def to_cents(value, field: str = "amount", allow_negative: bool = False) -> int:
    """
    Convert a client-supplied amount (number or decimal string) to integer cents.

    Floats are routed through their shortest repr so 0.1 stays 10 cents.
    Raises ValidationError for non-numeric, non-finite, negative or oversized input.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")

    if isinstance(value, str):
        raw = value.strip()
        if not raw:
            raise ValidationError(f"{field} must be a number")
    elif isinstance(value, (int, float, Decimal)):
        raw = repr(value) if isinstance(value, float) else str(value)
    else:
        raise ValidationError(f"{field} must be a number")

    try:
        amount = Decimal(raw)
    except InvalidOperation:
        raise ValidationError(f"{field} must be a number")

    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    if amount < 0 and not allow_negative:
        raise ValidationError(f"{field} must be >= 0")
    # quantize overflows the default context for huge exponents
    if abs(amount) > _MAX_AMOUNT:
        raise ValidationError(f"{field} is too large")

    cents = int((amount.quantize(_CENT, rounding=ROUND_HALF_UP) * 100).to_integral_value())
    if abs(cents) > MAX_AMOUNT_CENTS:
        raise ValidationError(f"{field} is too large")
    return cents


def format_cents(cents: int | None) -> str:
    """Render integer cents as a two-place decimal string ("-12.50")."""
    if cents is None:
        cents = 0
    sign = "-" if cents < 0 else ""
    whole, frac = divmod(abs(int(cents)), 100)
    return f"{sign}{whole}.{frac:02d}"


def cents_to_float(cents: int | None) -> float:
    return round((cents or 0) / 100.0, 2)
