"""Threshold rules that turn raw indicator values into a buy/sell/hold hint.

These are hints consumed by strategies, not signals themselves.
"""

from __future__ import annotations

from enum import Enum


class SignalHint(str, Enum):
    """Direction suggested by a single indicator."""

    BUY = "buy"
    SELL = "sell"
    HOLD = "hold"


def rsi_signal(
    rsi: float,
    overbought: float = 70.0,
    oversold: float = 30.0,
) -> SignalHint:
    """Overbought -> SELL, oversold -> BUY, otherwise HOLD."""
    if rsi > overbought:
        return SignalHint.SELL
    if rsi < oversold:
        return SignalHint.BUY
    return SignalHint.HOLD


def macd_signal(
    macd: float,
    signal: float,
    prev_macd: float,
    prev_signal: float,
) -> SignalHint:
    """
    Detect a MACD / signal-line crossover between the previous and current bar.

    Golden cross (MACD moves above the signal line) -> BUY,
    death cross (MACD moves below it) -> SELL.
    """
    if macd > signal and prev_macd <= prev_signal:
        return SignalHint.BUY
    if macd < signal and prev_macd >= prev_signal:
        return SignalHint.SELL
    return SignalHint.HOLD


def kdj_signal(k: float, d: float, j: float) -> SignalHint:
    """Classify a KDJ reading.

    Extreme zones take priority over the K/D cross:
    - k > 80, d > 80, j > 100 -> SELL (overbought)
    - k < 20, d < 20, j < 0 -> BUY (oversold)
    - k above d in the upper half -> BUY
    - k below d in the lower half -> SELL
    """
    if k > 80 and d > 80 and j > 100:
        return SignalHint.SELL
    if k < 20 and d < 20 and j < 0:
        return SignalHint.BUY
    if k > d and k > 50:
        return SignalHint.BUY
    if k < d and k < 50:
        return SignalHint.SELL
    return SignalHint.HOLD
