from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from .errors import ValidationError


# Maximum money amount: 9,999,999,999.99 (Numeric(12, 2))
# This prevents database overflow issues and nonsensical totals
MAX_AMOUNT = Decimal("9999999999.99")

CENT = Decimal("0.01")
MILLI = Decimal("0.001")


def to_decimal(value: Any, field_name: str, *, allow_none: bool = False) -> Decimal | None:
    """
    Coerce client or database input into a Decimal.

    - Decimal / int pass through (bool is rejected, it is not a number here)
    - str must parse as a plain decimal ("12.50"); NaN/Infinity are rejected
    - float is converted through str() so 0.1 stays 0.1
    """
    if value is None:
        if allow_none:
            return None
        raise ValidationError(f"{field_name} is required")

    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a number")

    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        result = Decimal(str(value))
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field_name} is required")
        try:
            result = Decimal(stripped)
        except InvalidOperation:
            raise ValidationError(f"{field_name} must be a number")
    else:
        raise ValidationError(f"{field_name} must be a number")

    if not result.is_finite():
        raise ValidationError(f"{field_name} must be a finite number")
    return result


def to_money(value: Any) -> Decimal:
    """Round to cents, half-up. None (empty SQL sum) becomes 0.00."""
    if value is None:
        return Decimal("0.00")
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def to_reading(value: Any) -> Decimal:
    """Meter readings are kept to the thousandth of a unit."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(MILLI, rounding=ROUND_HALF_UP)


def require_non_negative_amount(value: Any, field_name: str) -> Decimal:
    amount = to_decimal(value, field_name)
    if amount < 0:
        raise ValidationError(f"{field_name} cannot be negative")
    if amount > MAX_AMOUNT:
        raise ValidationError(f"{field_name} exceeds maximum allowed value")
    return to_money(amount)


def require_non_blank(value: Any, field_name: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def format_money(value: Decimal | None) -> str | None:
    if value is None:
        return None
    return f"{to_money(value):.2f}"


def format_reading(value: Decimal | None) -> str | None:
    if value is None:
        return None
    return f"{to_reading(value):.3f}"
