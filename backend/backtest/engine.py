"""Single-run backtest engine.

Replays an ascending bar sequence through one strategy. For every bar:

1. Build the indicator set from the bar prefix up to and including it
2. Ask the strategy for a signal and execute it at the bar close
3. Mark open positions to the close and record the equity snapshot
4. Publish fractional progress

Statistics and the report are computed once, after the last bar.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Iterable, Sequence

from core.indicators import IndicatorCalculator
from core.models import Bar, MarketData, StrategyParameters
from core.strategy import ParameterInput, Strategy, create_strategy

from backtest.config import BacktestSettings, get_backtest_settings
from backtest.execution import TradeExecutor
from backtest.models import DailyReturn, EngineState, Portfolio, Trade
from backtest.progress import ProgressCallback, ProgressChannel, ProgressReporter
from backtest.report import ReportFormatter
from backtest.stats import BacktestResult, StatisticsCalculator

logger = logging.getLogger(__name__)


class InvalidParametersError(ValueError):
    """Strategy parameters failed validation; the run did not start."""


class BacktestCancelledError(Exception):
    """A cooperative cancel was observed at a bar boundary."""


def prepare_bars(
    bars: Iterable[Bar],
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[Bar]:
    """Filter to [start, end], sort ascending and drop duplicate timestamps.

    The first bar seen for a timestamp wins.
    """
    selected = [
        b for b in bars
        if (start is None or b.timestamp >= start) and (end is None or b.timestamp <= end)
    ]
    selected.sort(key=lambda b: b.timestamp)

    unique: list[Bar] = []
    for bar in selected:
        if unique and unique[-1].timestamp == bar.timestamp:
            continue
        unique.append(bar)
    return unique


class BacktestEngine:
    """Run one strategy over one bar sequence.

    An engine is single-use: ``run`` may be called once. Create a new
    engine per run; engines share no state and are safe to run in parallel.
    """

    def __init__(
        self,
        strategy: Strategy | str,
        initial_capital: float | None = None,
        commission_rate: float | None = None,
        settings: BacktestSettings | None = None,
        progress_callback: ProgressCallback | None = None,
        progress_channel: ProgressChannel | None = None,
        cancel_event: threading.Event | None = None,
    ):
        settings = settings or get_backtest_settings()
        self.strategy: Strategy = (
            create_strategy(strategy) if isinstance(strategy, str) else strategy
        )
        self.initial_capital = (
            settings.initial_capital if initial_capital is None else initial_capital
        )
        self.commission_rate = (
            settings.commission_rate if commission_rate is None else commission_rate
        )
        if self.initial_capital <= 0:
            raise ValueError(f"initial_capital must be positive, got {self.initial_capital}")
        if self.commission_rate < 0:
            raise ValueError(f"commission_rate must be >= 0, got {self.commission_rate}")

        self._statistics = StatisticsCalculator(
            risk_free_rate=settings.risk_free_rate,
            trading_days_per_year=settings.trading_days_per_year,
        )
        self._log_interval = settings.progress_log_interval
        self._progress = ProgressReporter(progress_callback, progress_channel)
        self._cancel_event = cancel_event

        self._state = EngineState.IDLE
        self._result: BacktestResult | None = None

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def result(self) -> BacktestResult | None:
        """The result once the run is COMPLETE."""
        return self._result

    def cancel(self) -> None:
        """Request cancellation; honoured at the next bar boundary."""
        if self._cancel_event is None:
            self._cancel_event = threading.Event()
        self._cancel_event.set()

    def run(
        self,
        bars: Sequence[Bar],
        parameters: ParameterInput = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> BacktestResult:
        """Replay ``bars`` and return the result.

        Raises:
            InvalidParametersError: If the strategy rejects ``parameters``.
            BacktestCancelledError: If cancelled before the last bar.
            Exception: Anything the strategy raises; the engine ends FAILED.
            RuntimeError: If this engine has already run.
        """
        if self._state != EngineState.IDLE:
            raise RuntimeError(f"BacktestEngine already used (state={self._state.value})")
        if not self.strategy.validate_parameters(parameters):
            raise InvalidParametersError(
                f"Invalid parameters for strategy '{self.strategy.name}': {parameters!r}"
            )
        params = self.strategy.parse_parameters(parameters)

        replay = prepare_bars(bars, start, end)
        self._state = EngineState.RUNNING
        logger.info(
            "Starting backtest: strategy=%s sub_strategy=%s bars=%d capital=%.2f commission=%.4f",
            self.strategy.name, params.sub_strategy, len(replay),
            self.initial_capital, self.commission_rate,
        )

        try:
            self._result = self._finish(replay, params, start, end)
        except BacktestCancelledError:
            self._state = EngineState.CANCELLED
            logger.info("Backtest cancelled: strategy=%s", self.strategy.name)
            raise
        except Exception:
            self._state = EngineState.FAILED
            logger.error("Backtest failed: strategy=%s", self.strategy.name, exc_info=True)
            raise

        self._state = EngineState.COMPLETE
        self._progress.report(1.0)

        logger.info(
            "Backtest complete: strategy=%s final_capital=%.2f trades=%d return=%.2f%%",
            self.strategy.name, self._result.final_capital, len(self._result.trades),
            self._result.metrics.total_return * 100,
        )
        return self._result

    def _finish(
        self,
        replay: list[Bar],
        params: StrategyParameters,
        start: datetime | None,
        end: datetime | None,
    ) -> BacktestResult:
        portfolio, trades, daily_returns = self._replay(replay, params)

        start_date = replay[0].timestamp if replay else start
        end_date = replay[-1].timestamp if replay else end
        metrics = self._statistics.calculate(trades, daily_returns, self.initial_capital)
        report = ReportFormatter.build_report(
            self.strategy.name, self.strategy.timeframe, metrics, start_date, end_date
        )

        return BacktestResult(
            strategy_name=self.strategy.name,
            start_date=start_date,
            end_date=end_date,
            initial_capital=self.initial_capital,
            final_capital=portfolio.total_value,
            trades=trades,
            metrics=metrics,
            daily_returns=daily_returns,
            report=report,
            parameters=params.model_dump(mode="json"),
        )

    def _replay(
        self,
        bars: list[Bar],
        params: StrategyParameters,
    ) -> tuple[Portfolio, list[Trade], list[DailyReturn]]:
        portfolio = Portfolio(cash=self.initial_capital)
        executor = TradeExecutor(portfolio, self.commission_rate, self.strategy.name)
        calculator = IndicatorCalculator(self.strategy.indicator_config(params))
        required = self.strategy.required_indicators

        trades: list[Trade] = []
        daily_returns: list[DailyReturn] = []
        previous_value = self.initial_capital
        total = len(bars)

        for i, bar in enumerate(bars):
            if self._cancel_event is not None and self._cancel_event.is_set():
                raise BacktestCancelledError(
                    f"Backtest of '{self.strategy.name}' cancelled at bar {i}/{total}"
                )

            prefix = bars[: i + 1]
            indicators = calculator.calculate(prefix, required)
            signal = self.strategy.generate_signal(
                MarketData.from_bars(prefix), indicators, params
            )
            if signal is not None and signal.is_actionable:
                trade = executor.execute(signal, bar)
                if trade is not None:
                    trades.append(trade)

            portfolio.mark(bar.close)
            value = portfolio.total_value
            daily_returns.append(
                DailyReturn(
                    date=bar.timestamp,
                    portfolio_value=value,
                    cash=portfolio.cash,
                    open_positions=len(portfolio.positions),
                    daily_pnl=value - previous_value,
                )
            )
            previous_value = value

            self._progress.report(i / total)
            if (i + 1) % self._log_interval == 0:
                logger.debug(
                    "[%s] Processed %d/%d bars (value=%.2f)",
                    self.strategy.name, i + 1, total, value,
                )

        return portfolio, trades, daily_returns
