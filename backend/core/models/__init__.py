"""Data models shared by strategies and the backtester."""

from core.models.bar import Bar, MarketData
from core.models.config import IndicatorConfig, StrategyParameters
from core.models.signal import Signal, SignalAction

__all__ = [
    "Bar",
    "MarketData",
    "IndicatorConfig",
    "StrategyParameters",
    "Signal",
    "SignalAction",
]
