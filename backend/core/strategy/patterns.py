"""Small shape detectors over price and indicator windows."""

from __future__ import annotations

from typing import Sequence

import numpy as np


def find_local_maxima(values: Sequence[float]) -> list[float]:
    """Values strictly greater than both neighbours, in order."""
    return [
        values[i]
        for i in range(1, len(values) - 1)
        if values[i] > values[i - 1] and values[i] > values[i + 1]
    ]


def find_local_minima(values: Sequence[float]) -> list[float]:
    """Values strictly less than both neighbours, in order."""
    return [
        values[i]
        for i in range(1, len(values) - 1)
        if values[i] < values[i - 1] and values[i] < values[i + 1]
    ]


def is_increasing(values: Sequence[float]) -> bool:
    """Strictly increasing (False for fewer than 2 values)."""
    if len(values) < 2:
        return False
    return all(b > a for a, b in zip(values, values[1:]))


def is_decreasing(values: Sequence[float]) -> bool:
    """Strictly decreasing (False for fewer than 2 values)."""
    if len(values) < 2:
        return False
    return all(b < a for a, b in zip(values, values[1:]))


def trend_strength(prices: Sequence[float]) -> float:
    """Total return divided by the population std of simple returns.

    Returns 0 for fewer than 10 prices, a zero first price, or zero
    volatility.
    """
    if len(prices) < 10 or prices[0] == 0:
        return 0.0

    arr = np.asarray(prices, dtype=np.float64)
    total_return = (arr[-1] - arr[0]) / arr[0]
    returns = np.diff(arr) / arr[:-1]
    volatility = float(np.std(returns))
    return float(total_return / volatility) if volatility > 0 else 0.0
