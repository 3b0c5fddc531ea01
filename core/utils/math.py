"""
Math Utilities

Small, dependency-free statistics helpers shared by the metrics engine.
All functions are pure and return 0 for empty input rather than raising.
"""

import math
from typing import Sequence


def mean(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return sum(values) / len(values)


def std_dev(values: Sequence[float]) -> float:
    """
    Population standard deviation.

    Returns exactly 0.0 when every value is identical.
    """
    if not values:
        return 0.0
    avg = mean(values)
    variance = mean([(value - avg) ** 2 for value in values])
    return math.sqrt(variance)


def ewma(values: Sequence[float], decay: float = 0.94) -> float:
    """
    Exponentially weighted moving average, seeded with the first value.

    Args:
        values: Observations in chronological order
        decay: Weight kept by the running average at each step (lambda)

    Example:
        >>> ewma([1.0, 0.0], decay=0.5)
        0.5
    """
    if not values:
        return 0.0
    weighted = values[0]
    for value in values[1:]:
        weighted = decay * weighted + (1 - decay) * value
    return weighted


def clamp(value: float, low: float, high: float) -> float:
    return min(high, max(low, value))


def normalize(value: float, low: float, high: float) -> float:
    """
    Map value linearly onto [0, 1] between low and high, clamping outside.

    Returns 0 when high <= low so a misconfigured range never divides by zero.

    Example:
        >>> normalize(27.5, 5, 50)
        0.5
    """
    if high <= low:
        return 0.0
    return clamp((value - low) / (high - low), 0.0, 1.0)


def round_to(value: float, decimals: int = 4) -> float:
    """Round half away from zero to a fixed number of decimals."""
    factor = 10 ** decimals
    scaled = abs(value) * factor
    rounded = math.floor(scaled + 0.5) / factor
    return math.copysign(rounded, value) if value else 0.0


def to_score(fraction: float) -> int:
    """
    Convert a 0-1 fraction into an integer 0-100 score (round half up).

    Example:
        >>> to_score(0.875)
        88
    """
    return int(math.floor(100 * clamp(fraction, 0.0, 1.0) + 0.5))
