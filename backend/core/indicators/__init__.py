"""Technical indicators (pure math, no I/O)."""

from core.indicators.calculator import IndicatorCalculator, IndicatorSet, IndicatorType
from core.indicators.indicators import (
    BollingerBands,
    KDJResult,
    MACDResult,
    bollinger_bands,
    cci,
    ema,
    highest,
    kdj,
    lowest,
    macd,
    rsi,
    sma,
    true_range,
    typical_price,
    vwap,
    williams_r,
)
from core.indicators.signals import SignalHint, kdj_signal, macd_signal, rsi_signal

__all__ = [
    "sma",
    "ema",
    "rsi",
    "macd",
    "bollinger_bands",
    "kdj",
    "cci",
    "williams_r",
    "vwap",
    "highest",
    "lowest",
    "typical_price",
    "true_range",
    "MACDResult",
    "BollingerBands",
    "KDJResult",
    "SignalHint",
    "rsi_signal",
    "macd_signal",
    "kdj_signal",
    "IndicatorCalculator",
    "IndicatorSet",
    "IndicatorType",
]
