"""Statistics calculator for backtest results.

Computes return, risk and trade statistics from the trade ledger and the
per-bar equity curve, and the qualitative rating derived from them.

Conventions:
  - One DailyReturn per replayed bar; annualisation treats each bar as a
    trading day (252 per year), it is not calendar-aware.
  - Sharpe and volatility use the sample standard deviation (n - 1).
  - Sortino's downside deviation is the root-mean-square of the negative
    per-bar returns.
  - Win rate is over all ledger entries, buys included.
"""

from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Sequence

import numpy as np

from backtest.models import DailyReturn, Trade, TradeAction


TRADING_DAYS_PER_YEAR = 252
RISK_FREE_RATE = 0.03
SECONDS_PER_DAY = 86_400


class StrategyRating(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    AVERAGE = "average"
    POOR = "poor"
    VERY_POOR = "very_poor"

    @property
    def stars(self) -> int:
        return _RATING_STARS[self]

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").capitalize()


_RATING_STARS = {
    StrategyRating.EXCELLENT: 5,
    StrategyRating.GOOD: 4,
    StrategyRating.AVERAGE: 3,
    StrategyRating.POOR: 2,
    StrategyRating.VERY_POOR: 1,
}


@dataclass(frozen=True)
class PerformanceMetrics:
    total_return: float = 0.0
    annualized_return: float = 0.0
    sharpe_ratio: float = 0.0
    sortino_ratio: float = 0.0
    calmar_ratio: float = 0.0
    max_drawdown: float = 0.0
    win_rate: float = 0.0
    profit_factor: float = 0.0
    total_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    average_win: float = 0.0
    average_loss: float = 0.0
    largest_win: float = 0.0
    largest_loss: float = 0.0
    average_trade_length: float = 0.0  # days
    volatility: float = 0.0


@dataclass(frozen=True)
class BacktestReport:
    """Human-readable report (Markdown body plus a one-line summary)."""

    strategy: str
    start_date: datetime | None
    end_date: datetime | None
    content: str
    summary: str
    rating: StrategyRating


@dataclass(frozen=True)
class BacktestResult:
    """Complete, immutable output of one simulated run."""

    strategy_name: str
    start_date: datetime | None
    end_date: datetime | None
    initial_capital: float
    final_capital: float
    trades: list[Trade] = field(default_factory=list)
    metrics: PerformanceMetrics = field(default_factory=PerformanceMetrics)
    daily_returns: list[DailyReturn] = field(default_factory=list)
    report: BacktestReport | None = None
    parameters: dict = field(default_factory=dict)


def rating_score(metrics: PerformanceMetrics) -> int:
    """0-8 point score from return, Sharpe, drawdown, win rate and profit factor."""
    score = 0

    if metrics.annualized_return > 0.2:
        score += 2
    elif metrics.annualized_return > 0.1:
        score += 1

    if metrics.sharpe_ratio > 2.0:
        score += 2
    elif metrics.sharpe_ratio > 1.0:
        score += 1

    if metrics.max_drawdown < 0.1:
        score += 2
    elif metrics.max_drawdown < 0.2:
        score += 1

    if metrics.win_rate > 0.6:
        score += 1

    if metrics.profit_factor > 2.0:
        score += 1

    return score


def rate(metrics: PerformanceMetrics) -> StrategyRating:
    """Bucket the rating score into a StrategyRating."""
    score = rating_score(metrics)
    if score >= 7:
        return StrategyRating.EXCELLENT
    if score >= 5:
        return StrategyRating.GOOD
    if score >= 3:
        return StrategyRating.AVERAGE
    if score >= 1:
        return StrategyRating.POOR
    return StrategyRating.VERY_POOR


def return_rates(daily_returns: Sequence[DailyReturn]) -> np.ndarray:
    """Per-bar simple returns; steps from a non-positive value are skipped."""
    values = np.array([d.portfolio_value for d in daily_returns], dtype=np.float64)
    if len(values) < 2:
        return np.array([], dtype=np.float64)
    prev, curr = values[:-1], values[1:]
    mask = prev > 0
    return (curr[mask] - prev[mask]) / prev[mask]


def max_drawdown(daily_returns: Sequence[DailyReturn]) -> float:
    """Largest (running peak - value) / running peak over the equity curve."""
    if not daily_returns:
        return 0.0
    values = np.array([d.portfolio_value for d in daily_returns], dtype=np.float64)
    peaks = np.maximum.accumulate(values)
    with np.errstate(divide="ignore", invalid="ignore"):
        drawdowns = np.where(peaks > 0, (peaks - values) / peaks, 0.0)
    return float(max(drawdowns.max(), 0.0))


class StatisticsCalculator:
    """Calculate performance metrics for one run."""

    def __init__(
        self,
        risk_free_rate: float = RISK_FREE_RATE,
        trading_days_per_year: int = TRADING_DAYS_PER_YEAR,
    ):
        self.trading_days_per_year = trading_days_per_year
        self.daily_risk_free = risk_free_rate / trading_days_per_year

    def calculate(
        self,
        trades: Sequence[Trade],
        daily_returns: Sequence[DailyReturn],
        initial_capital: float,
    ) -> PerformanceMetrics:
        wins = [t.pnl for t in trades if t.pnl > 0]
        losses = [t.pnl for t in trades if t.pnl < 0]
        total_trades = len(trades)

        total_pnl = sum(t.pnl for t in trades)
        total_return = total_pnl / initial_capital if initial_capital > 0 else 0.0

        bars = len(daily_returns)
        annualized = total_return * (self.trading_days_per_year / bars) if bars > 0 else 0.0

        drawdown = max_drawdown(daily_returns)
        rates = return_rates(daily_returns)

        average_win = sum(wins) / len(wins) if wins else 0.0
        average_loss = sum(losses) / len(losses) if losses else 0.0
        profit_factor = abs(average_win / average_loss) if average_loss != 0 else 0.0

        return PerformanceMetrics(
            total_return=total_return,
            annualized_return=annualized,
            sharpe_ratio=self.sharpe_ratio(rates),
            sortino_ratio=self.sortino_ratio(rates),
            calmar_ratio=annualized / abs(drawdown) if drawdown != 0 else 0.0,
            max_drawdown=drawdown,
            win_rate=len(wins) / total_trades if total_trades > 0 else 0.0,
            profit_factor=profit_factor,
            total_trades=total_trades,
            winning_trades=len(wins),
            losing_trades=len(losses),
            average_win=average_win,
            average_loss=average_loss,
            largest_win=max(wins) if wins else 0.0,
            largest_loss=min(losses) if losses else 0.0,
            average_trade_length=average_trade_length(trades),
            volatility=self.volatility(rates),
        )

    def sharpe_ratio(self, rates: np.ndarray) -> float:
        """Annualised Sharpe; 0 for fewer than 2 samples or zero variance."""
        if len(rates) < 2:
            return 0.0
        std = float(np.std(rates, ddof=1))
        if std == 0 or not math.isfinite(std):
            return 0.0
        return (float(np.mean(rates)) - self.daily_risk_free) / std * math.sqrt(self.trading_days_per_year)

    def sortino_ratio(self, rates: np.ndarray) -> float:
        """Annualised Sortino; 0 when no per-bar return is negative."""
        if len(rates) < 2:
            return 0.0
        negative = rates[rates < 0]
        if len(negative) == 0:
            return 0.0
        downside = math.sqrt(float(np.mean(negative ** 2)))
        if downside == 0:
            return 0.0
        return (float(np.mean(rates)) - self.daily_risk_free) / downside * math.sqrt(self.trading_days_per_year)

    def volatility(self, rates: np.ndarray) -> float:
        """Annualised sample standard deviation of per-bar returns."""
        if len(rates) < 2:
            return 0.0
        return float(np.std(rates, ddof=1)) * math.sqrt(self.trading_days_per_year)


def average_trade_length(trades: Sequence[Trade]) -> float:
    """Mean holding period in days, pairing sells with the earliest open buys."""
    open_buys: deque[Trade] = deque()
    holding_days: list[float] = []

    for trade in trades:
        if trade.action == TradeAction.BUY:
            open_buys.append(trade)
            continue
        remaining = trade.quantity
        while remaining > 0 and open_buys:
            buy = open_buys.popleft()
            remaining -= buy.quantity
            held = (trade.timestamp - buy.timestamp).total_seconds() / SECONDS_PER_DAY
            holding_days.append(held)

    if not holding_days:
        return 0.0
    return sum(holding_days) / len(holding_days)
