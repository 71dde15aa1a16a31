"""Small numeric helpers shared by the analysis modules."""

import math
from typing import Sequence

import numpy as np


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves towards +infinity."""
    return int(math.floor(value + 0.5))


def round_to_tenth(value: float) -> float:
    """Round to one decimal place, halves towards +infinity."""
    return math.floor(value * 10 + 0.5) / 10


def clamp(value: float, minimum: float, maximum: float) -> float:
    """Clamp a value between minimum and maximum."""
    return max(minimum, min(maximum, value))


def pct_change(current: float, previous: float) -> float:
    """Percentage change from previous to current, 0 if previous is 0."""
    if previous == 0:
        return 0.0
    return (current - previous) / previous * 100


def std_dev(values: Sequence[float]) -> float:
    """Population standard deviation, 0 for an empty sequence."""
    if len(values) == 0:
        return 0.0
    return float(np.std(np.asarray(values, dtype=float)))
