"""Coercion of request values into Decimal and enum labels."""

from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any


def to_decimal(value: Any) -> Decimal | None:
    """Convert ``value`` to Decimal through its string form; None if it is not numeric."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    return result if result.is_finite() else None


def positive_decimal_error(value: Any, field: str, required: bool = True) -> str | None:
    """Validation message for a field that must be a positive number."""
    if value is None:
        return f"{field} is required" if required else None
    amount = to_decimal(value)
    if amount is None:
        return f"{field} must be a number, got {value!r}"
    if amount <= 0:
        return f"{field} must be positive"
    return None


def label_value(value: Any) -> str | None:
    """Stripped string form of a label field, accepting enum members; None for other types."""
    if isinstance(value, Enum):
        value = value.value
    if not isinstance(value, str):
        return None
    return value.strip()
