"""Tests for batch runs and parameter optimisation."""

from datetime import datetime, timedelta, timezone
from typing import Literal

import pytest

from core.indicators import IndicatorType
from core.models import Bar, SignalAction, StrategyParameters
from core.strategy import TimeframeStrategy

from backtest.config import BacktestSettings
from backtest.runner import (
    BacktestJob,
    BacktestRunner,
    BatchOutcome,
    parameter_grid,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

START = datetime(2024, 1, 1, tzinfo=timezone.utc)
RISING = [100.0, 101.0, 103.0, 102.0, 106.0, 108.0, 107.0, 110.0, 112.0, 111.0]


def _make_bars(closes: list[float]) -> list[Bar]:
    return [
        Bar(
            symbol="BTCUSDT",
            timeframe="1d",
            timestamp=START + timedelta(days=i),
            open=close,
            high=close + 1.0,
            low=close - 1.0,
            close=close,
            volume=500.0,
        )
        for i, close in enumerate(closes)
    ]


def _runner(**kwargs) -> BacktestRunner:
    return BacktestRunner(
        settings=BacktestSettings(_env_file=None),
        commission_rate=0.0,
        max_workers=2,
        **kwargs,
    )


class EntryParameters(StrategyParameters):
    sub_strategy: Literal["entry"] = "entry"
    buy_bar: int = 0
    lookback_period: int = 5


class EntryStrategy(TimeframeStrategy):
    """Buys on bar ``buy_bar`` and holds to the end."""

    name = "entry"
    display_name = "Entry"
    description = "Test double"
    timeframe = "1d"
    required_indicators = (IndicatorType.SMA,)
    parameters_model = EntryParameters
    sub_strategies = ()

    def _signal_entry(self, market_data, indicators, params):
        if len(market_data) - 1 != params.buy_bar:
            return None
        return self._make_signal(SignalAction.BUY, 1.0, market_data, ["entry"], "entry")


# ---------------------------------------------------------------------------
# Parameter grid
# ---------------------------------------------------------------------------

class TestParameterGrid:
    def test_sorted_key_order(self):
        grid = parameter_grid({"b": [10, 20, 30], "a": [1, 2]}, 10)

        assert len(grid) == 6
        assert grid[:3] == [
            {"a": 1, "b": 10},
            {"a": 1, "b": 20},
            {"a": 1, "b": 30},
        ]

    def test_independent_of_mapping_order(self):
        first = parameter_grid({"x": [1, 2], "y": [3, 4]}, 10)
        second = parameter_grid({"y": [3, 4], "x": [1, 2]}, 10)
        assert first == second

    def test_cap(self):
        assert len(parameter_grid({"a": range(10), "b": range(10)}, 7)) == 7

    def test_empty_range(self):
        assert parameter_grid({"a": [1, 2], "b": []}, 10) == []

    def test_cap_samples_across_whole_range(self):
        grid = parameter_grid({"a": range(10), "b": range(10)}, 5)

        # Positions 0, 20, 40, 60, 80 of the 100-point product
        assert grid == [
            {"a": 0, "b": 0},
            {"a": 2, "b": 0},
            {"a": 4, "b": 0},
            {"a": 6, "b": 0},
            {"a": 8, "b": 0},
        ]

    def test_cap_is_deterministic(self):
        ranges = {"fast": [5, 8, 12], "slow": [21, 26, 34, 55], "rsi": [7, 14]}
        first = parameter_grid(ranges, 7)

        assert first == parameter_grid(ranges, 7)
        assert first[0] == {"fast": 5, "rsi": 7, "slow": 21}
        assert {combo["fast"] for combo in first} == {5, 8, 12}


# ---------------------------------------------------------------------------
# Single and batch runs
# ---------------------------------------------------------------------------

class TestRunner:
    def test_single_run(self):
        result = _runner().run(EntryStrategy(), _make_bars(RISING))

        assert len(result.trades) == 1
        assert result.final_capital == pytest.approx(100_000.0 / 100.0 * 111.0)

    def test_single_run_date_range(self):
        bars = _make_bars(RISING)
        result = _runner().run(EntryStrategy(), bars, start=bars[5].timestamp)

        assert len(result.daily_returns) == 5
        assert result.trades[0].price == 108.0

    def test_batch_isolates_failures(self):
        jobs = [
            BacktestJob("daily"),
            BacktestJob("weekly"),
            BacktestJob("mid_frequency", {"ema_fast": 30, "ema_slow": 10}),
            BacktestJob("high_frequency", {"sub_strategy": "breakout"}),
        ]

        outcomes = _runner().run_batch(jobs, _make_bars(RISING * 3))

        assert [o.name for o in outcomes] == [
            "daily",
            "weekly",
            "mid_frequency",
            "high_frequency:breakout",
        ]
        assert [o.ok for o in outcomes] == [True, False, False, True]
        assert "KeyError" in outcomes[1].error
        assert "InvalidParametersError" in outcomes[2].error
        assert outcomes[0].result.initial_capital == 100_000.0
        assert outcomes[1].result is None

    def test_batch_results_are_independent(self):
        jobs = [BacktestJob("daily", name=f"run-{i}") for i in range(4)]
        outcomes = _runner().run_batch(jobs, _make_bars(RISING * 2))

        finals = {o.result.final_capital for o in outcomes}
        assert len(finals) == 1
        assert all(o.result is not outcomes[0].result for o in outcomes[1:])

    def test_empty_batch(self):
        assert _runner().run_batch([], _make_bars(RISING)) == []

    def test_job_label(self):
        assert BacktestJob("daily").label == "daily"
        assert BacktestJob("daily", {"sub_strategy": "value_reversion"}).label == "daily:value_reversion"
        assert BacktestJob("daily", name="custom").label == "custom"

    def test_outcome_ok(self):
        assert BatchOutcome(name="x").ok
        assert not BatchOutcome(name="x", error="boom").ok


# ---------------------------------------------------------------------------
# Optimisation
# ---------------------------------------------------------------------------

class TestOptimize:
    def test_best_sharpe_and_invalid_combinations(self):
        result = _runner().optimize_parameters(
            EntryStrategy(),
            _make_bars(RISING),
            {"buy_bar": [100, 0], "lookback_period": [5, 0]},
        )

        assert result.strategy == "entry"
        assert len(result.trials) == 2
        assert len(result.failures) == 2
        assert all(f.error == "invalid parameters" for f in result.failures)
        assert all(f.parameters["lookback_period"] == 0 for f in result.failures)

        assert result.best_parameters["buy_bar"] == 0
        assert result.best_parameters["lookback_period"] == 5
        assert result.best_sharpe > 0
        assert result.best_result is not None
        assert len(result.best_result.trades) == 1

    def test_combinations_merged_onto_defaults(self):
        result = _runner().optimize_parameters(
            EntryStrategy(), _make_bars(RISING), {"buy_bar": [3]}
        )

        (trial,) = result.trials
        assert trial.parameters["sub_strategy"] == "entry"
        assert trial.parameters["lookback_period"] == 5
        assert trial.parameters["confidence_threshold"] == 0.6

    def test_ties_keep_first_combination(self):
        # Neither combination ever trades, so both have Sharpe 0
        result = _runner().optimize_parameters(
            EntryStrategy(), _make_bars(RISING), {"buy_bar": [200, 100]}
        )

        assert result.best_sharpe == 0.0
        assert result.best_parameters["buy_bar"] == 200

    def test_max_combinations(self):
        result = _runner().optimize_parameters(
            EntryStrategy(),
            _make_bars(RISING),
            {"buy_bar": list(range(10))},
            max_combinations=3,
        )
        assert len(result.trials) == 3

    def test_all_invalid(self):
        result = _runner().optimize_parameters(
            EntryStrategy(), _make_bars(RISING), {"lookback_period": [0, -1]}
        )

        assert result.best_parameters is None
        assert result.best_sharpe is None
        assert result.best_result is None
        assert len(result.failures) == 2

    def test_registered_strategy_by_name(self):
        result = _runner().optimize_parameters(
            "mid_frequency",
            _make_bars(RISING * 4),
            {"ema_fast": [8, 30], "ema_slow": [21]},
        )

        assert len(result.trials) == 1
        assert result.trials[0].parameters["ema_fast"] == 8
        assert result.failures[0].parameters["ema_fast"] == 30


# ---------------------------------------------------------------------------
# Process pool
# ---------------------------------------------------------------------------

class TestProcessPool:
    def test_batch_order_and_isolation(self):
        jobs = [
            BacktestJob("daily"),
            BacktestJob("weekly"),
            BacktestJob("low_frequency", {"sub_strategy": "macd_strategy"}),
            BacktestJob("mid_frequency", {"ema_fast": 30, "ema_slow": 10}),
        ]
        bars = _make_bars(RISING * 3)

        outcomes = _runner(use_processes=True).run_batch(jobs, bars)
        threaded = _runner().run_batch(jobs, bars)

        assert [o.name for o in outcomes] == [
            "daily",
            "weekly",
            "low_frequency:macd_strategy",
            "mid_frequency",
        ]
        assert [o.ok for o in outcomes] == [True, False, True, False]
        assert "KeyError" in outcomes[1].error
        assert "InvalidParametersError" in outcomes[3].error
        assert outcomes[0].result.final_capital == threaded[0].result.final_capital
        assert outcomes[2].result.final_capital == threaded[2].result.final_capital
        assert outcomes[2].result.parameters["sub_strategy"] == "macd_strategy"

    def test_optimize(self):
        result = _runner(use_processes=True).optimize_parameters(
            "mid_frequency",
            _make_bars(RISING * 4),
            {"ema_fast": [8, 12, 30], "ema_slow": [21]},
        )

        assert [t.parameters["ema_fast"] for t in result.trials] == [8, 12]
        assert all(t.result is not None for t in result.trials)
        assert [f.parameters["ema_fast"] for f in result.failures] == [30]
        best = max(result.trials, key=lambda t: t.sharpe_ratio)
        assert result.best_sharpe == best.sharpe_ratio
        assert result.best_parameters["ema_fast"] in (8, 12)
        assert result.best_result is not None
