"""
Decimal helpers shared by the engines.

All money, rates and attitude state are carried as ``Decimal`` so that
month-over-month compounding does not accumulate binary rounding drift.
Rounding follows the default decimal context (half-even).
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

import numpy as np

ZERO = Decimal("0")
ONE = Decimal("1")
CENT = Decimal("0.01")
EPSILON = Decimal("0.0000001")


def to_decimal(value: Any) -> Decimal:
    """Coerce ints, floats, strings and numpy scalars to ``Decimal``.

    Floats go through ``str`` so ``0.15`` becomes ``Decimal("0.15")``
    rather than its full binary expansion.

    Raises:
        ValueError: If the value is not a finite number.
    """
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (float, np.floating)):
        result = Decimal(str(float(value)))
    elif isinstance(value, np.integer):
        result = Decimal(int(value))
    else:
        try:
            result = Decimal(value)
        except (InvalidOperation, TypeError) as e:
            raise ValueError(f"Not a number: {value!r}") from e

    if not result.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return result


def round2(value: Decimal) -> Decimal:
    """Round to cents."""
    return value.quantize(CENT)


def clamp(value: Decimal, low: Decimal, high: Decimal) -> Decimal:
    if value < low:
        return low
    if value > high:
        return high
    return value


def uniform(rng: np.random.Generator, low: Decimal, high: Decimal) -> Decimal:
    """Draw ``U(low, high)`` from ``rng`` as a ``Decimal``."""
    return low + to_decimal(rng.random()) * (high - low)


def decimal_pow(base: Decimal, exponent: Decimal) -> Decimal:
    """``base ** exponent`` for non-negative bases, computed in float.

    Returns zero for non-positive bases and for non-finite results.
    """
    if base <= ZERO:
        return ZERO
    result = float(base) ** float(exponent)
    if not np.isfinite(result):
        return ZERO
    return to_decimal(result)
