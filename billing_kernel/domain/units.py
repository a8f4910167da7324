"""
Units -- kilogram/bag conversion and Decimal coercion.

Responsibility:
    Single home of the bag size and the rounding rule for persisted stock.
    Every weight the user types is in kilograms; every stock figure the
    backend stores is in bags.

Architecture position:
    Kernel > Domain -- pure functions, zero I/O.

Invariants enforced:
    - 1 bag = 30 kg.
    - Bag and kg figures are quantized to 2 decimal places, ROUND_HALF_UP.
    - Floats never enter arithmetic; they are converted through ``str()``.

Failure modes:
    - ``to_decimal`` returns ``default`` for None, empty strings, booleans
      and unparseable or non-finite values; if ``default`` is None it
      raises ValueError instead.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

KG_PER_BAG = Decimal("30")
BAG_PRECISION = Decimal("0.01")
ZERO = Decimal("0")


def to_decimal(value: Any, default: Decimal | None = ZERO) -> Decimal:
    """
    Coerce a JSON/user value to Decimal.

    Floats go through ``str()`` so 0.1 stays 0.1.
    """
    if isinstance(value, Decimal):
        result = value
    elif value is None or isinstance(value, bool) or value == "":
        result = None
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            result = None

    if result is None or not result.is_finite():
        if default is None:
            raise ValueError(f"Not a number: {value!r}")
        return default
    return result


def round_bags(value: Decimal) -> Decimal:
    """Round to 2 decimal places, half away from zero."""
    return value.quantize(BAG_PRECISION, rounding=ROUND_HALF_UP)


def kg_to_bags(kg: Decimal | int | str) -> Decimal:
    """Convert a kilogram figure to bags for persisting (900 kg -> 30.00)."""
    return round_bags(to_decimal(kg, default=None) / KG_PER_BAG)


def bags_to_kg(bags: Decimal | int | str) -> Decimal:
    """Convert a persisted bag figure to kilograms for display (3.33 -> 99.90)."""
    return round_bags(to_decimal(bags, default=None) * KG_PER_BAG)
