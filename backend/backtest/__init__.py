"""Backtesting system for the timeframe strategies.

Only depends on core/ for business logic. Bars are supplied by the
caller (see backtest.storage); nothing is persisted.

Usage:
    python -m backtest --csv data/BTCUSDT_1h.csv --strategy low_frequency
    python -m backtest --csv data/BTCUSDT_1h.csv --batch
    python -m backtest --list
"""

from backtest.config import BacktestSettings, get_backtest_settings
from backtest.engine import BacktestCancelledError, BacktestEngine, InvalidParametersError
from backtest.models import DailyReturn, EngineState, Portfolio, Position, Trade, TradeAction
from backtest.progress import ProgressChannel
from backtest.runner import (
    BacktestJob,
    BacktestRunner,
    BatchOutcome,
    OptimizationResult,
    OptimizationTrial,
)
from backtest.stats import (
    BacktestReport,
    BacktestResult,
    PerformanceMetrics,
    StatisticsCalculator,
    StrategyRating,
)

__all__ = [
    "BacktestSettings",
    "get_backtest_settings",
    "BacktestEngine",
    "BacktestCancelledError",
    "InvalidParametersError",
    "EngineState",
    "Portfolio",
    "Position",
    "Trade",
    "TradeAction",
    "DailyReturn",
    "ProgressChannel",
    "BacktestJob",
    "BacktestRunner",
    "BatchOutcome",
    "OptimizationResult",
    "OptimizationTrial",
    "BacktestReport",
    "BacktestResult",
    "PerformanceMetrics",
    "StatisticsCalculator",
    "StrategyRating",
]
