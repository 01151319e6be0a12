from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from .errors import ValidationError


MONEY = Decimal("0.01")
UNIT_COST = Decimal("0.0001")
QUANTITY = Decimal("0.001")

# Largest amount accepted from a client: 9,999,999,999.99
MAX_AMOUNT = Decimal("9999999999.99")


def quantize_money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(MONEY, rounding=ROUND_HALF_UP)


def quantize_cost(value: Decimal) -> Decimal:
    """WAC and unit costs are carried to 4 decimal places."""
    return Decimal(value).quantize(UNIT_COST, rounding=ROUND_HALF_UP)


def quantize_quantity(value: Decimal) -> Decimal:
    return Decimal(value).quantize(QUANTITY, rounding=ROUND_HALF_UP)


def to_decimal(value: Any, field: str) -> Decimal:
    """
    Coerce client input to Decimal.

    Floats are routed through str() so 0.1 stays 0.1. Booleans, NaN and
    infinities are rejected.
    """
    if value is None:
        raise ValidationError(f"{field} is required")
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, Decimal):
        dec = value
    elif isinstance(value, (int, float)):
        dec = Decimal(str(value))
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be a number")
        try:
            dec = Decimal(stripped)
        except InvalidOperation:
            raise ValidationError(f"{field} must be a number")
    else:
        raise ValidationError(f"{field} must be a number")

    if not dec.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    if abs(dec) > MAX_AMOUNT:
        raise ValidationError(f"{field} is out of range")
    return dec


def positive_amount(value: Any, field: str) -> Decimal:
    dec = quantize_money(to_decimal(value, field))
    if dec <= 0:
        raise ValidationError(f"{field} must be positive")
    return dec


def positive_quantity(value: Any, field: str) -> Decimal:
    dec = quantize_quantity(to_decimal(value, field))
    if dec <= 0:
        raise ValidationError(f"{field} must be positive")
    return dec


def non_negative_quantity(value: Any, field: str) -> Decimal:
    dec = quantize_quantity(to_decimal(value, field))
    if dec < 0:
        raise ValidationError(f"{field} cannot be negative")
    return dec


def non_negative_cost(value: Any, field: str) -> Decimal:
    dec = quantize_cost(to_decimal(value, field))
    if dec < 0:
        raise ValidationError(f"{field} cannot be negative")
    return dec


def require_id(value: Any, field: str) -> int:
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} is required")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    raise ValidationError(f"{field} must be an integer id")


def optional_id(value: Any, field: str) -> int | None:
    if value is None or value == "":
        return None
    return require_id(value, field)


def require_text(value: Any, field: str, max_length: int = 255) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} is required")
    text = str(value).strip()
    if len(text) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return text


def require_fields(payload: dict | None, *fields: str) -> dict:
    """Reject a request body that is missing any of ``fields``."""
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    missing = [f for f in fields if payload.get(f) in (None, "")]
    if missing:
        raise ValidationError(f"Missing required field(s): {', '.join(missing)}")
    return payload


def require_lines(value: Any, field: str) -> list[dict]:
    if not isinstance(value, list) or not value:
        raise ValidationError(f"{field} must include at least one line")
    for line in value:
        if not isinstance(line, dict):
            raise ValidationError(f"Each entry in {field} must be an object")
    return value


def decimal_str(value: Decimal | None) -> str | None:
    """Serialize a stored Decimal for JSON responses."""
    if value is None:
        return None
    return str(value)
