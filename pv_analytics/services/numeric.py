"""
Numeric helpers shared by the aggregation and energy services.

Rounding is done on the decimal representation of the value with
ROUND_HALF_UP, which in the decimal module rounds half away from zero
(2.675 -> 2.68, -2.675 -> -2.68).
"""

import math
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation


def to_finite_float(raw: object) -> float | None:
    """Coerce a raw store value to a finite float.

    Accepts ints, floats, Decimals and numeric strings (``"500.50"``).
    Booleans, NaN, infinities and anything unparseable yield None.
    """
    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = float(raw)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value):
        return None
    return value


def round_half_away(value: float, places: int) -> float:
    """Round ``value`` to ``places`` decimals, half away from zero."""
    try:
        quantum = Decimal(1).scaleb(-places)
        return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))
    except InvalidOperation:
        # quantize overflows default precision only for absurd magnitudes
        return value
