"""BacktestRunner: batches of independent runs and parameter grid search.

Every unit of work is one BacktestEngine run with its own portfolio and
ledger, so units run on a bounded worker pool without locking. A unit
that raises is captured in its outcome; the rest of the batch continues.
"""

from __future__ import annotations

import itertools
import logging
import math
import os
import time
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Sequence

from core.models import Bar
from core.strategy import Strategy, create_strategy

from backtest.config import BacktestSettings, get_backtest_settings
from backtest.engine import BacktestEngine, prepare_bars
from backtest.progress import ProgressCallback
from backtest.stats import BacktestResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BacktestJob:
    """One unit of batch work: a strategy plus optional parameters."""

    strategy: str
    parameters: dict[str, Any] | None = None
    name: str | None = None

    @property
    def label(self) -> str:
        if self.name:
            return self.name
        sub = (self.parameters or {}).get("sub_strategy")
        return f"{self.strategy}:{sub}" if sub else self.strategy


@dataclass(frozen=True)
class BatchOutcome:
    """Result or error of one batch job, in job order."""

    name: str
    result: BacktestResult | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class OptimizationTrial:
    parameters: dict[str, Any]
    result: BacktestResult | None = None
    error: str | None = None

    @property
    def sharpe_ratio(self) -> float | None:
        return self.result.metrics.sharpe_ratio if self.result is not None else None


@dataclass(frozen=True)
class OptimizationResult:
    """Best combination by Sharpe ratio plus every trial that ran."""

    strategy: str
    best_parameters: dict[str, Any] | None
    best_sharpe: float | None
    trials: list[OptimizationTrial] = field(default_factory=list)
    failures: list[OptimizationTrial] = field(default_factory=list)

    @property
    def best_result(self) -> BacktestResult | None:
        for trial in self.trials:
            if trial.result is not None and trial.parameters == self.best_parameters:
                return trial.result
        return None


def parameter_grid(
    parameter_ranges: Mapping[str, Sequence[Any]],
    max_combinations: int,
) -> list[dict[str, Any]]:
    """Cartesian product over sorted keys, sampled down to ``max_combinations``.

    A product larger than the cap is sampled at evenly strided positions,
    so every key still sees values from across its whole range.
    """
    keys = sorted(parameter_ranges)
    values = [list(parameter_ranges[k]) for k in keys]
    total = math.prod(len(v) for v in values)
    if total <= max_combinations:
        return [dict(zip(keys, combo)) for combo in itertools.product(*values)]
    if max_combinations <= 0:
        return []

    grid = []
    for i in range(max_combinations):
        index = i * total // max_combinations
        combo = []
        # Decode the product index, last key varying fastest
        for options in reversed(values):
            index, position = divmod(index, len(options))
            combo.append(options[position])
        grid.append(dict(zip(keys, reversed(combo))))
    return grid


def _run_job(
    strategy: Strategy | str,
    parameters: Mapping[str, Any] | None,
    bars: Sequence[Bar],
    initial_capital: float,
    commission_rate: float,
    settings: BacktestSettings,
) -> BacktestResult:
    """Worker entry point (module level so process pools can pickle it)."""
    engine = BacktestEngine(
        strategy,
        initial_capital=initial_capital,
        commission_rate=commission_rate,
        settings=settings,
    )
    return engine.run(bars, parameters)


def _describe_error(exc: BaseException) -> str:
    return f"{type(exc).__name__}: {exc}"


class BacktestRunner:
    """Run single backtests, batches and grid searches."""

    def __init__(
        self,
        settings: BacktestSettings | None = None,
        initial_capital: float | None = None,
        commission_rate: float | None = None,
        max_workers: int | None = None,
        use_processes: bool = False,
    ):
        self.settings = settings or get_backtest_settings()
        self.initial_capital = (
            self.settings.initial_capital if initial_capital is None else initial_capital
        )
        self.commission_rate = (
            self.settings.commission_rate if commission_rate is None else commission_rate
        )
        self.max_workers = max_workers or self.settings.max_workers or os.cpu_count() or 1
        self.use_processes = use_processes

    def _pool(self, units: int) -> Executor:
        workers = max(1, min(self.max_workers, units))
        if self.use_processes:
            return ProcessPoolExecutor(max_workers=workers)
        return ThreadPoolExecutor(max_workers=workers, thread_name_prefix="backtest")

    def run(
        self,
        strategy: Strategy | str,
        bars: Sequence[Bar],
        parameters: Mapping[str, Any] | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> BacktestResult:
        """Run one backtest in the calling thread."""
        engine = BacktestEngine(
            strategy,
            initial_capital=self.initial_capital,
            commission_rate=self.commission_rate,
            settings=self.settings,
            progress_callback=progress_callback,
        )
        return engine.run(bars, parameters, start=start, end=end)

    def _execute(
        self,
        units: list[tuple[Strategy | str, Mapping[str, Any] | None]],
        bars: list[Bar],
    ) -> list[BacktestResult | BaseException]:
        """Run units on the pool; each slot holds a result or the raised exception."""
        if not units:
            return []

        outcomes: list[BacktestResult | BaseException] = []
        with self._pool(len(units)) as pool:
            futures = [
                pool.submit(
                    _run_job, strategy, parameters, bars,
                    self.initial_capital, self.commission_rate, self.settings,
                )
                for strategy, parameters in units
            ]
            for future in futures:
                try:
                    outcomes.append(future.result())
                except Exception as exc:
                    outcomes.append(exc)
        return outcomes

    def run_batch(
        self,
        jobs: Sequence[BacktestJob],
        bars: Sequence[Bar],
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[BatchOutcome]:
        """Run independent jobs in parallel; outcomes come back in job order."""
        started = time.time()
        replay = prepare_bars(bars, start, end)
        raw = self._execute([(job.strategy, job.parameters) for job in jobs], replay)

        outcomes = []
        for job, item in zip(jobs, raw):
            if isinstance(item, BaseException):
                logger.error("Batch job failed: %s", job.label, exc_info=item)
                outcomes.append(BatchOutcome(name=job.label, error=_describe_error(item)))
            else:
                outcomes.append(BatchOutcome(name=job.label, result=item))

        failed = sum(1 for o in outcomes if not o.ok)
        logger.info(
            "Batch complete in %.1fs: %d jobs, %d failed",
            time.time() - started, len(outcomes), failed,
        )
        return outcomes

    def optimize_parameters(
        self,
        strategy: Strategy | str,
        bars: Sequence[Bar],
        parameter_ranges: Mapping[str, Sequence[Any]],
        max_combinations: int | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> OptimizationResult:
        """Grid-search ``parameter_ranges`` and keep the best Sharpe ratio.

        Each combination is merged onto the strategy defaults. Combinations
        the strategy rejects are reported as failures without running.
        Ties keep the earlier combination in grid order.
        """
        instance = create_strategy(strategy) if isinstance(strategy, str) else strategy
        limit = max_combinations or self.settings.max_combinations
        defaults = instance.default_parameters().model_dump(mode="json")

        candidates: list[dict[str, Any]] = []
        failures: list[OptimizationTrial] = []
        for combo in parameter_grid(parameter_ranges, limit):
            merged = {**defaults, **combo}
            if instance.validate_parameters(merged):
                candidates.append(merged)
            else:
                failures.append(OptimizationTrial(parameters=merged, error="invalid parameters"))

        logger.info(
            "Optimizing %s: %d combinations (%d invalid)",
            instance.name, len(candidates) + len(failures), len(failures),
        )

        replay = prepare_bars(bars, start, end)
        raw = self._execute([(instance, params) for params in candidates], replay)

        trials: list[OptimizationTrial] = []
        best_parameters: dict[str, Any] | None = None
        best_sharpe: float | None = None
        for params, item in zip(candidates, raw):
            if isinstance(item, BaseException):
                logger.error("Optimization trial failed: %s", params, exc_info=item)
                failures.append(OptimizationTrial(parameters=params, error=_describe_error(item)))
                continue
            trial = OptimizationTrial(parameters=params, result=item)
            trials.append(trial)
            sharpe = item.metrics.sharpe_ratio
            if best_sharpe is None or sharpe > best_sharpe:
                best_parameters, best_sharpe = params, sharpe

        logger.info(
            "Optimization of %s done: best sharpe=%s with %s",
            instance.name, best_sharpe, best_parameters,
        )
        return OptimizationResult(
            strategy=instance.name,
            best_parameters=best_parameters,
            best_sharpe=best_sharpe,
            trials=trials,
            failures=failures,
        )
