"""
Utility functions for money handling and API responses.
"""
from typing import Any, Dict
from decimal import Decimal, ROUND_DOWN, ROUND_HALF_UP

CENT = Decimal("0.01")
ZERO = Decimal("0")


def to_decimal(value: Any) -> Decimal:
    """Convert ints, floats, strings and Decimals to Decimal without float artifacts."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(amount: Decimal) -> Decimal:
    """Round an amount to cents using ROUND_HALF_UP."""
    return to_decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def floor_money(amount: Decimal) -> Decimal:
    """Truncate an amount to cents."""
    return to_decimal(amount).quantize(CENT, rounding=ROUND_DOWN)


def positive_money(amount: Decimal) -> Decimal:
    """Round an amount to cents and reject anything below one cent."""
    rounded = round_money(amount)
    if rounded < CENT:
        raise ValueError(f"Amount {amount} must be at least {CENT} once rounded to cents")
    return rounded


def format_error(message: str, details: Any = None) -> Dict[str, Any]:
    """Format error response."""
    response = {"error": message}
    if details:
        response["details"] = details
    return response
