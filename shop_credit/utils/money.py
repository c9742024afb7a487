"""Currency helpers: two-decimal Decimal amounts, half-up rounding"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def round_money(value: Decimal) -> Decimal:
    """Round to the cent (half-up)"""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def to_decimal(value) -> Decimal:
    """
    Coerce int/str/float/Decimal into Decimal.

    Floats go through str() so 0.1 becomes Decimal("0.1"), not its binary expansion.

    Raises:
        InvalidOperation: value is not numeric
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise InvalidOperation(f"not a monetary value: {value!r}")
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, (int, str)):
        return Decimal(value)
    raise InvalidOperation(f"not a monetary value: {value!r}")


def has_cent_precision(value: Decimal) -> bool:
    """True when value has no digits beyond the second decimal place"""
    return value == value.quantize(CENT)


def to_cents(value: Decimal) -> int:
    return int(round_money(value) * 100)


def from_cents(cents: int) -> Decimal:
    return (Decimal(cents) / 100).quantize(CENT)
