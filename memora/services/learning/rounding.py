"""
Rounding helpers.

Python's built-in round() uses banker's rounding (round(2.5) == 2). Stored
schedules and metrics are compared across clients that round half away
from zero for non-negative values, so every scheduler computation rounds
through these helpers instead.
"""

import math


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves toward +infinity."""
    return math.floor(value + 0.5)


def round_to(value: float, decimals: int) -> float:
    """Round to a fixed number of decimals, halves toward +infinity."""
    factor = 10**decimals
    return round_half_up(value * factor) / factor
