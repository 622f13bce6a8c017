"""
Decimal helpers shared by the engine and the cart.

All money and percentages are Decimal so that repeated conversion and
summation never drift. Rounding is only applied by the export helpers.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional

from .errors import InvalidInput

ZERO = Decimal("0")
ONE = Decimal("1")
HUNDRED = Decimal("100")

# Most places an export may round to
MAX_DECIMALS = 10


def to_decimal(value, field: str = "value") -> Decimal:
    """
    Coerce a user or config value to a finite Decimal.

    Floats go through str() so 0.1 stays 0.1 instead of its binary expansion.
    Raises InvalidInput for anything that is not a finite number.
    """
    if isinstance(value, bool) or value is None:
        raise InvalidInput(f"{field} must be a number, got {value!r}")

    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    else:
        text = str(value).strip()
        if not text:
            raise InvalidInput(f"{field} must be a number, got an empty value")
        try:
            result = Decimal(text)
        except InvalidOperation:
            raise InvalidInput(f"{field} must be a number, got {value!r}") from None

    if not result.is_finite():
        raise InvalidInput(f"{field} must be a finite number, got {value!r}")
    return result


def to_quantity(value, field: str = "quantity") -> int:
    """Coerce a value to an integer quantity. Zero and negatives are allowed here."""
    number = to_decimal(value, field)
    if number != number.to_integral_value():
        raise InvalidInput(f"{field} must be a whole number, got {value!r}")
    return int(number)


def percent_factor(percent: Decimal) -> Decimal:
    """1 + percent/100, for percentages on the 0-100 scale."""
    return ONE + percent / HUNDRED


def round_money(value: Decimal, places: Optional[int] = 2) -> Decimal:
    """Round for display. places=None returns the value untouched."""
    if places is None:
        return value
    if isinstance(places, bool) or not isinstance(places, int) or not 0 <= places <= MAX_DECIMALS:
        raise InvalidInput(f"decimals must be a whole number within 0-{MAX_DECIMALS}, got {places!r}")
    return value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)
