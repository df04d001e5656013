"""
Rounding helpers.

Dashboard figures round half away from zero on the positive side
(2.5 -> 3, 6.05 -> 6.1) rather than Python's banker's rounding.
"""

import math


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves rounded up."""
    return int(math.floor(value + 0.5))


def round1(value: float) -> float:
    """Round to one decimal place, halves rounded up."""
    return math.floor(value * 10 + 0.5) / 10
