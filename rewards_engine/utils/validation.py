"""Input validation utilities."""

from decimal import Decimal, InvalidOperation
from typing import Any


def to_decimal(value: Any) -> Decimal | None:
    """
    Coerce a caller-supplied number to a finite Decimal.

    Floats go through str() so 1000.1 becomes Decimal("1000.1") rather
    than its binary expansion.

    Args:
        value: int, float, str or Decimal

    Returns:
        Finite Decimal, or None if value is not a usable number
    """
    if isinstance(value, bool):
        return None
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return None
    if not result.is_finite():
        return None
    return result
