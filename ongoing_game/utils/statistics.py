"""Statistical helpers that tolerate empty or degenerate input."""

import statistics
from typing import Iterable


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """
    Divide, returning ``default`` when the denominator is not positive.

    :param numerator: The numerator
    :param denominator: The denominator
    :param default: Value returned for a zero or negative denominator
    :returns: Quotient or default
    """
    return numerator / denominator if denominator > 0 else default


def safe_mean(values: Iterable[float], default: float = 0.0) -> float:
    """Mean of ``values``, or ``default`` when there are none."""
    values = list(values)
    return statistics.fmean(values) if values else default


def safe_stdev(values: Iterable[float], default: float = 0.0) -> float:
    """Sample standard deviation, or ``default`` with fewer than two values."""
    values = list(values)
    return statistics.stdev(values) if len(values) > 1 else default


def kda_ratio(kills: float, deaths: float, assists: float) -> float:
    """(kills + assists) / deaths, with deathless games counted as one death."""
    return (kills + assists) / max(deaths, 1)
