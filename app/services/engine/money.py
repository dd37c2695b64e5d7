from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from app.core.errors import ValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0")


def round_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def to_decimal(value: Any, field: str, *, required: bool = True, allow_negative: bool = False) -> Decimal | None:
    """Parse a caller-supplied numeric value, raising ``ValidationError`` naming ``field``."""
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise ValidationError(field, f"{field} is required", rule="required")
        return None
    if isinstance(value, bool):
        raise ValidationError(field, f"{field} must be numeric", rule="numeric")
    try:
        parsed = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(field, f"{field} must be numeric", rule="numeric") from exc
    if not parsed.is_finite():
        raise ValidationError(field, f"{field} must be numeric", rule="numeric")
    if parsed < 0 and not allow_negative:
        raise ValidationError(field, f"{field} must be >= 0", rule="non_negative")
    return parsed


def percent_of(amount: Decimal, percent: Decimal) -> Decimal:
    return round_money(amount * percent / Decimal("100"))
