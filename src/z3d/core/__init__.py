"""
Core helpers for Z3D: decimal arithmetic, caller-side defaulting and
exception types.
"""

from z3d.core.numeric import (
    ZERO,
    ONE,
    CENT,
    EPSILON,
    to_decimal,
    round2,
    clamp,
    uniform,
    decimal_pow,
)
from z3d.core.exceptions import (
    Z3DError,
    ConfigurationError,
    InputFileError,
)

__all__ = [
    "ZERO",
    "ONE",
    "CENT",
    "EPSILON",
    "to_decimal",
    "round2",
    "clamp",
    "uniform",
    "decimal_pow",
    "Z3DError",
    "ConfigurationError",
    "InputFileError",
]
