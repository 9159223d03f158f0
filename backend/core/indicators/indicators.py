"""Technical indicators for signal generation.

Every function maps one or more float series to a shorter, right-aligned
output series:

    len(output) == len(input) - warmup + 1

and returns an empty list when the input is shorter than the warm-up (or
the period is not positive). Degenerate windows produce fixed neutral
values instead of NaN/Inf:

- RSI: 100 when the average loss is 0
- KDJ RSV: 50 when highest high == lowest low
- CCI: 0 when the mean absolute deviation is 0
- Williams %R: -50 when highest high == lowest low
- VWAP: 0 when the window volume is 0

RSI uses a simple mean of gains/losses over the window, not Wilder's
smoothing, so values differ from most charting platforms.
"""

from __future__ import annotations

from typing import NamedTuple, Sequence

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

CCI_CONSTANT = 0.015


class MACDResult(NamedTuple):
    macd: list[float]
    signal: list[float]
    histogram: list[float]


class BollingerBands(NamedTuple):
    upper: list[float]
    middle: list[float]
    lower: list[float]


class KDJResult(NamedTuple):
    k: list[float]
    d: list[float]
    j: list[float]


def _as_array(values: Sequence[float]) -> np.ndarray:
    return np.asarray(values, dtype=np.float64)


def _windows(values: Sequence[float], period: int) -> np.ndarray:
    """Trailing windows of ``period`` values, one row per output bar."""
    return sliding_window_view(_as_array(values), period)


def _same_length(*series: Sequence[float]) -> bool:
    return len({len(s) for s in series}) == 1


# =============================================================================
# Moving averages
# =============================================================================

def sma(values: Sequence[float], period: int) -> list[float]:
    """
    Calculate Simple Moving Average.

    Args:
        values: Sequence of price values
        period: SMA period

    Returns:
        List of SMA values, one per full window
    """
    if period <= 0 or len(values) < period:
        return []

    return (_windows(values, period).sum(axis=1) / period).tolist()


def ema(values: Sequence[float], period: int) -> list[float]:
    """
    Calculate Exponential Moving Average.

    The first value is the SMA of the first ``period`` values; after that
    ``v[i] = alpha * x[i] + (1 - alpha) * v[i-1]`` with
    ``alpha = 2 / (period + 1)``.

    Args:
        values: Sequence of price values
        period: EMA period

    Returns:
        List of EMA values (same warm-up as SMA)
    """
    if period <= 0 or len(values) < period:
        return []

    alpha = 2.0 / (period + 1)
    result = [sma(values[:period], period)[0]]

    for value in _as_array(values[period:]).tolist():
        result.append(alpha * value + (1 - alpha) * result[-1])

    return result


def highest(values: Sequence[float], period: int) -> list[float]:
    """Highest value over each trailing window of ``period`` values."""
    if period <= 0 or len(values) < period:
        return []

    return _windows(values, period).max(axis=1).tolist()


def lowest(values: Sequence[float], period: int) -> list[float]:
    """Lowest value over each trailing window of ``period`` values."""
    if period <= 0 or len(values) < period:
        return []

    return _windows(values, period).min(axis=1).tolist()


# =============================================================================
# Momentum
# =============================================================================

def rsi(values: Sequence[float], period: int = 14) -> list[float]:
    """
    Calculate Relative Strength Index.

    avg_gain / avg_loss are plain means of the gains / losses over the
    trailing ``period`` price changes.

    Args:
        values: Sequence of close prices
        period: RSI period

    Returns:
        List of RSI values in [0, 100]; needs ``period + 1`` prices
    """
    if period <= 0 or len(values) <= period:
        return []

    changes = np.diff(_as_array(values))
    gains = np.maximum(changes, 0.0)
    losses = np.maximum(-changes, 0.0)

    avg_gains = sliding_window_view(gains, period).sum(axis=1) / period
    avg_losses = sliding_window_view(losses, period).sum(axis=1) / period

    result = []
    for avg_gain, avg_loss in zip(avg_gains.tolist(), avg_losses.tolist()):
        if avg_loss == 0:
            result.append(100.0)
        else:
            rs = avg_gain / avg_loss
            result.append(100.0 - 100.0 / (1.0 + rs))
    return result


def macd(
    values: Sequence[float],
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
) -> MACDResult:
    """
    Calculate MACD line, signal line and histogram.

    MACD = EMA(fast) - EMA(slow), with both EMA arrays right-aligned to the
    shorter one. Signal = EMA(MACD, signal_period). Histogram = MACD minus
    Signal, right-aligned to the signal line.

    Args:
        values: Sequence of close prices
        fast_period: Fast EMA period
        slow_period: Slow EMA period
        signal_period: Signal EMA period

    Returns:
        MACDResult(macd, signal, histogram)
    """
    fast = ema(values, fast_period)
    slow = ema(values, slow_period)

    length = min(len(fast), len(slow))
    if length == 0:
        return MACDResult([], [], [])

    fast_tail = fast[len(fast) - length:]
    slow_tail = slow[len(slow) - length:]
    macd_line = [f - s for f, s in zip(fast_tail, slow_tail)]

    signal_line = ema(macd_line, signal_period)
    offset = len(macd_line) - len(signal_line)
    histogram = [macd_line[offset + i] - sig for i, sig in enumerate(signal_line)]

    return MACDResult(macd_line, signal_line, histogram)


# =============================================================================
# Volatility
# =============================================================================

def bollinger_bands(
    values: Sequence[float],
    period: int = 20,
    multiplier: float = 2.0,
) -> BollingerBands:
    """
    Calculate Bollinger Bands.

    middle = SMA(period); upper/lower = middle +/- multiplier * population
    standard deviation of the same window.

    Args:
        values: Sequence of close prices
        period: Window length
        multiplier: Standard deviation multiplier (> 0 keeps upper >= lower)

    Returns:
        BollingerBands(upper, middle, lower)
    """
    middle = sma(values, period)
    if not middle:
        return BollingerBands([], [], [])

    std = _windows(values, period).std(axis=1).tolist()
    upper = [m + multiplier * s for m, s in zip(middle, std)]
    lower = [m - multiplier * s for m, s in zip(middle, std)]

    return BollingerBands(upper, middle, lower)


# =============================================================================
# Oscillators
# =============================================================================

def kdj(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
    period: int = 9,
    k_smooth: int = 3,
    d_smooth: int = 3,
) -> KDJResult:
    """
    Calculate the KDJ stochastic oscillator.

    RSV = (close - lowest low) / (highest high - lowest low) * 100, or 50
    when the range is zero. K = SMA(RSV, k_smooth), D = SMA(K, d_smooth),
    J = 3K - 2D (J is aligned to D).

    Args:
        highs: Sequence of high prices
        lows: Sequence of low prices
        closes: Sequence of close prices
        period: RSV lookback
        k_smooth: K smoothing period
        d_smooth: D smoothing period

    Returns:
        KDJResult(k, d, j)
    """
    if not _same_length(highs, lows, closes) or period <= 0 or len(closes) < period:
        return KDJResult([], [], [])

    hh = highest(highs, period)
    ll = lowest(lows, period)
    window_closes = _as_array(closes[period - 1:]).tolist()

    rsv_values = []
    for close, high, low in zip(window_closes, hh, ll):
        if high == low:
            rsv_values.append(50.0)
        else:
            rsv_values.append((close - low) / (high - low) * 100)

    k_values = sma(rsv_values, k_smooth)
    d_values = sma(k_values, d_smooth)

    offset = len(k_values) - len(d_values)
    j_values = [3 * k_values[offset + i] - 2 * d for i, d in enumerate(d_values)]

    return KDJResult(k_values, d_values, j_values)


def cci(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
    period: int = 20,
) -> list[float]:
    """
    Calculate Commodity Channel Index.

    CCI = (TP - SMA(TP)) / (0.015 * mean absolute deviation), where
    TP = (high + low + close) / 3. Zero deviation yields 0.

    Args:
        highs: Sequence of high prices
        lows: Sequence of low prices
        closes: Sequence of close prices
        period: Window length

    Returns:
        List of CCI values
    """
    if not _same_length(highs, lows, closes) or period <= 0 or len(closes) < period:
        return []

    tp = (_as_array(highs) + _as_array(lows) + _as_array(closes)) / 3.0
    tp_sma = sma(tp, period)
    windows = sliding_window_view(tp, period)

    result = []
    for window, mean in zip(windows, tp_sma):
        deviation = float(np.abs(window - mean).sum() / period)
        if deviation > 0:
            result.append((float(window[-1]) - mean) / (CCI_CONSTANT * deviation))
        else:
            result.append(0.0)
    return result


def williams_r(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
    period: int = 14,
) -> list[float]:
    """
    Calculate Williams %R in [-100, 0].

    %R = (highest high - close) / (highest high - lowest low) * -100, or -50
    when the range is zero.
    """
    if not _same_length(highs, lows, closes) or period <= 0 or len(closes) < period:
        return []

    hh = highest(highs, period)
    ll = lowest(lows, period)
    window_closes = _as_array(closes[period - 1:]).tolist()

    result = []
    for close, high, low in zip(window_closes, hh, ll):
        if high == low:
            result.append(-50.0)
        else:
            result.append((high - close) / (high - low) * -100)
    return result


# =============================================================================
# Volume
# =============================================================================

def vwap(
    prices: Sequence[float],
    volumes: Sequence[float],
    period: int = 20,
) -> list[float]:
    """
    Calculate rolling Volume Weighted Average Price.

    VWAP = sum(price * volume) / sum(volume) over the trailing window, 0 when
    the window has no volume. Prices are usually typical prices.

    Args:
        prices: Sequence of prices
        volumes: Sequence of volumes
        period: Window length

    Returns:
        List of VWAP values
    """
    if not _same_length(prices, volumes) or period <= 0 or len(prices) < period:
        return []

    price_arr = _as_array(prices)
    volume_arr = _as_array(volumes)
    pv_sums = sliding_window_view(price_arr * volume_arr, period).sum(axis=1)
    vol_sums = sliding_window_view(volume_arr, period).sum(axis=1)

    return [
        pv / vol if vol > 0 else 0.0
        for pv, vol in zip(pv_sums.tolist(), vol_sums.tolist())
    ]


# =============================================================================
# Scalar helpers
# =============================================================================

def typical_price(high: float, low: float, close: float) -> float:
    """Typical price (H + L + C) / 3."""
    return (high + low + close) / 3.0


def true_range(high: float, low: float, prev_close: float) -> float:
    """
    Calculate True Range for one bar.

    TR = max(high - low, abs(high - prev_close), abs(low - prev_close))
    """
    return max(high - low, abs(high - prev_close), abs(low - prev_close))
