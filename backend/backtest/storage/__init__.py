"""Backtest data sources (CSV files and in-memory bars)."""

from backtest.storage.bar_source import BarSource, CsvBarSource, InMemoryBarSource

__all__ = [
    "BarSource",
    "CsvBarSource",
    "InMemoryBarSource",
]
