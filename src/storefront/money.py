"""Decimal money helpers."""

from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: Decimal | int | float | str) -> Decimal:
    """Coerce a value to a Decimal rounded half-up to whole cents.

    Floats go through ``str`` first so 0.1 becomes Decimal("0.1"), not its
    binary expansion.
    """
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def to_minor_units(amount: Decimal) -> int:
    """Convert a money amount to integer cents."""
    return int((to_money(amount) * 100).to_integral_value(rounding=ROUND_HALF_UP))
