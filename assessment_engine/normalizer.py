"""
Assessment Engine - Factor Normalizer.

Clamps and scales raw heterogeneous metrics into the [0, 100]
score range. Out-of-range input is clamped, never rejected.
"""

import math
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

SCORE_MIN = 0.0
SCORE_MAX = 100.0


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def clamp(
    value: Optional[float],
    lower: float = SCORE_MIN,
    upper: float = SCORE_MAX,
) -> float:
    """
    Clamp a value into [lower, upper].

    None and NaN collapse to `lower`.
    """
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return float(lower)
    return float(max(lower, min(upper, value)))


def normalize(
    value: Optional[float],
    minimum: Optional[float] = None,
    maximum: Optional[float] = None,
) -> float:
    """
    Normalize a raw value to [0, 100].

    Args:
        value: Raw metric value
        minimum: Optional lower bound of the raw range
        maximum: Optional upper bound of the raw range

    Returns:
        Linear rescale onto [0, 100] when a range is given,
        otherwise the value clamped to [0, 100]. A degenerate
        range yields 0.
    """
    if minimum is None or maximum is None:
        return clamp(value)
    if not _is_number(value):
        return SCORE_MIN
    if maximum <= minimum:
        return SCORE_MIN
    return clamp((value - minimum) / (maximum - minimum) * SCORE_MAX)


def round_score(value: float, places: int = 2) -> float:
    """Round half-up to a fixed number of decimal places."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(Decimal(str(value)).quantize(Decimal(1), rounding=ROUND_HALF_UP))
