"""Report formatting for backtest results.

Builds the Markdown report attached to every result, prints a console
summary and serialises results to JSON.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from datetime import datetime
from enum import Enum

from backtest.stats import (
    BacktestReport,
    BacktestResult,
    PerformanceMetrics,
    StrategyRating,
    rate,
)

_RATING_SENTENCES = {
    StrategyRating.EXCELLENT: "Outstanding performance with a strong risk/return profile",
    StrategyRating.GOOD: "Solid performance, worth considering",
    StrategyRating.AVERAGE: "Middling performance, needs further tuning",
    StrategyRating.POOR: "Weak performance, not recommended",
    StrategyRating.VERY_POOR: "Very weak performance with high risk",
}


class ResultEncoder(json.JSONEncoder):
    def default(self, obj):
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        return super().default(obj)


def _fmt_date(value: datetime | None) -> str:
    return f"{value:%Y-%m-%d}" if value is not None else "n/a"


def recommendations(metrics: PerformanceMetrics) -> list[str]:
    """Improvement hints for each threshold the metrics violate."""
    hints = []
    if metrics.sharpe_ratio < 1.0:
        hints.append("Sharpe ratio is low; tighten risk control")
    if metrics.max_drawdown > 0.2:
        hints.append("Maximum drawdown is large; strengthen stop-loss rules")
    if metrics.win_rate < 0.4:
        hints.append("Win rate is low; refine entry conditions")
    if metrics.profit_factor < 1.5:
        hints.append("Profit factor is low; refine exit rules")
    if not hints:
        hints.append("Strategy performs well; consider live evaluation")
    return hints


def rating_line(rating: StrategyRating) -> str:
    return f"{'*' * rating.stars} {rating.label} - {_RATING_SENTENCES[rating]}"


def summarize(metrics: PerformanceMetrics) -> str:
    return (
        f"Total return {metrics.total_return * 100:.2f}%, "
        f"Sharpe {metrics.sharpe_ratio:.2f}, "
        f"max drawdown {metrics.max_drawdown * 100:.2f}%, "
        f"win rate {metrics.win_rate * 100:.1f}%"
    )


class ReportFormatter:
    """Format backtest results for display and export."""

    @staticmethod
    def build_report(
        strategy_name: str,
        timeframe: str,
        metrics: PerformanceMetrics,
        start_date: datetime | None,
        end_date: datetime | None,
    ) -> BacktestReport:
        """Build the Markdown report for one run."""
        m = metrics
        rating = rate(m)
        lines = [
            "# Strategy Backtest Report",
            "",
            "## Basic info",
            f"- Strategy: {strategy_name}",
            f"- Period: {_fmt_date(start_date)} to {_fmt_date(end_date)}",
            f"- Timeframe: {timeframe}",
            f"- Total trades: {m.total_trades}",
            "",
            "## Returns",
            f"- Total return: {m.total_return * 100:.2f}%",
            f"- Annualized return: {m.annualized_return * 100:.2f}%",
            f"- Max drawdown: {m.max_drawdown * 100:.2f}%",
            "",
            "## Risk",
            f"- Sharpe ratio: {m.sharpe_ratio:.3f}",
            f"- Sortino ratio: {m.sortino_ratio:.3f}",
            f"- Calmar ratio: {m.calmar_ratio:.3f}",
            f"- Annualized volatility: {m.volatility * 100:.2f}%",
            "",
            "## Trade statistics",
            f"- Win rate: {m.win_rate * 100:.2f}%",
            f"- Profit factor: {m.profit_factor:.2f}",
            f"- Winning trades: {m.winning_trades}",
            f"- Losing trades: {m.losing_trades}",
            f"- Average win: {m.average_win:.2f}",
            f"- Average loss: {m.average_loss:.2f}",
            f"- Largest win: {m.largest_win:.2f}",
            f"- Largest loss: {m.largest_loss:.2f}",
            f"- Average holding period: {m.average_trade_length:.2f} days",
            "",
            "## Rating",
            rating_line(rating),
            "",
            "## Recommendations",
            *(f"- {hint}" for hint in recommendations(m)),
        ]
        return BacktestReport(
            strategy=strategy_name,
            start_date=start_date,
            end_date=end_date,
            content="\n".join(lines),
            summary=summarize(m),
            rating=rating,
        )

    @staticmethod
    def print_console(result: BacktestResult) -> None:
        """Print formatted report to console."""
        m = result.metrics

        print("\n" + "=" * 70)
        print(f"  BACKTEST RESULTS - {result.strategy_name}")
        print("=" * 70)
        print(f"  Period: {_fmt_date(result.start_date)} -> {_fmt_date(result.end_date)}")
        print(f"  Capital: {result.initial_capital:,.2f} -> {result.final_capital:,.2f}")

        print("\n" + "-" * 70)
        print("  RETURNS / RISK")
        print("-" * 70)
        print(f"  Total return:   {m.total_return * 100:+.2f}%")
        print(f"  Annualized:     {m.annualized_return * 100:+.2f}%")
        print(f"  Max drawdown:   {m.max_drawdown * 100:.2f}%")
        print(f"  Sharpe:         {m.sharpe_ratio:.3f}")
        print(f"  Sortino:        {m.sortino_ratio:.3f}")
        print(f"  Calmar:         {m.calmar_ratio:.3f}")
        print(f"  Volatility:     {m.volatility * 100:.2f}%")

        print("\n" + "-" * 70)
        print("  TRADES")
        print("-" * 70)
        print(f"  Total trades:   {m.total_trades}")
        print(f"  Wins / losses:  {m.winning_trades} / {m.losing_trades}")
        print(f"  Win rate:       {m.win_rate * 100:.1f}%")
        print(f"  Profit factor:  {m.profit_factor:.2f}")

        if result.trades:
            print(f"\n  {'Time':<20} {'Side':<5} {'Qty':>8} {'Price':>12} {'PnL':>12}")
            for t in result.trades[-10:]:
                print(
                    f"  {t.timestamp:%Y-%m-%d %H:%M}     {t.action.value:<5} "
                    f"{t.quantity:>8} {t.price:>12.4f} {t.pnl:>+12.2f}"
                )

        if result.report is not None:
            print("\n" + "-" * 70)
            print("  RATING")
            print("-" * 70)
            print(f"  {rating_line(result.report.rating)}")
            for hint in recommendations(m):
                print(f"  - {hint}")

        print("\n" + "=" * 70)

    @staticmethod
    def to_dict(result: BacktestResult) -> dict:
        """Convert a result to a JSON-serializable dict."""
        report = result.report
        return {
            "metadata": {
                "strategy": result.strategy_name,
                "start_date": result.start_date.isoformat() if result.start_date else None,
                "end_date": result.end_date.isoformat() if result.end_date else None,
                "initial_capital": result.initial_capital,
                "final_capital": round(result.final_capital, 2),
                "parameters": result.parameters,
            },
            "metrics": {
                key: round(value, 6) if isinstance(value, float) else value
                for key, value in asdict(result.metrics).items()
            },
            "trades": [t.model_dump(mode="json") for t in result.trades],
            "daily_returns": [d.model_dump(mode="json") for d in result.daily_returns],
            "report": {
                "summary": report.summary,
                "rating": report.rating.value,
                "content": report.content,
            } if report is not None else None,
        }

    @staticmethod
    def save_json(result: BacktestResult, path: str) -> None:
        """Save results to JSON file."""
        data = ReportFormatter.to_dict(result)
        with open(path, "w") as f:
            json.dump(data, f, indent=2, cls=ResultEncoder)
        print(f"\nResults saved to {path}")
