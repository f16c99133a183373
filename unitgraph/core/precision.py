"""Precision Utility - ULP-aware float comparison.

Callers size tolerances to the operands, e.g. 3 * ulp(max(|a|, |b|)),
to absorb rounding accumulated across compositions.
"""

import math


def ulp(x: float) -> float:
    """Gap between |x| and the next representable float above it."""
    return math.ulp(abs(x))


def equals(a: float, b: float, tolerance: float) -> bool:
    return abs(a - b) <= tolerance


def within_ulps(a: float, b: float, ulps: int = 3) -> bool:
    """equals() with a tolerance of `ulps` units in the last place of the larger operand."""
    return equals(a, b, ulps * ulp(max(abs(a), abs(b))))
