"""CLI entry point for the backtesting system.

Usage:
    python -m backtest --list
    python -m backtest --csv data/BTCUSDT_1h.csv --strategy low_frequency
    python -m backtest --csv data/BTCUSDT_1h.csv --strategy daily --sub-strategy value_reversion
    python -m backtest --csv data/BTCUSDT_1h.csv --batch
    python -m backtest --csv data/BTCUSDT_1h.csv --strategy mid_frequency \\
        --optimize ema_fast=8,12 ema_slow=21,26,34
"""

import argparse
import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

# Add backend to Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.strategy import create_strategy, describe_strategies, list_strategies

from backtest.config import get_backtest_settings
from backtest.engine import InvalidParametersError
from backtest.report import ReportFormatter, ResultEncoder
from backtest.runner import BacktestJob, BacktestRunner
from backtest.storage import CsvBarSource


def parse_date(date_str: str) -> datetime:
    """Parse YYYY-MM-DD to timezone-aware datetime."""
    try:
        dt = datetime.strptime(date_str, "%Y-%m-%d")
        return dt.replace(tzinfo=timezone.utc)
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"Invalid date format: {date_str} (expected YYYY-MM-DD)"
        )


def parse_value(text: str) -> Any:
    """Interpret a CLI parameter value as bool, int, float or string."""
    lowered = text.strip().lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    for cast in (int, float):
        try:
            return cast(text)
        except ValueError:
            pass
    return text.strip()


def parse_assignment(text: str) -> tuple[str, str]:
    key, sep, value = text.partition("=")
    if not sep or not key.strip():
        raise argparse.ArgumentTypeError(f"Expected key=value, got '{text}'")
    return key.strip(), value


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Backtest the timeframe trading strategies on historical bars",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m backtest --list
  python -m backtest --csv btc_1h.csv --strategy low_frequency --start 2024-01-01
  python -m backtest --csv btc_1d.csv --strategy daily --param trend_threshold=0.05
  python -m backtest --csv btc_1h.csv --batch --output batch.json
  python -m backtest --csv btc_15m.csv --strategy mid_frequency --optimize ema_fast=8,12 ema_slow=21,26
        """,
    )

    parser.add_argument("--list", action="store_true", help="List available strategies")
    parser.add_argument("--csv", type=str, default=None, help="CSV file with OHLCV bars")
    parser.add_argument("--symbol", type=str, default=None, help="Symbol for bars without a symbol column")
    parser.add_argument("--timeframe", type=str, default="", help="Timeframe label for the bars")
    parser.add_argument(
        "--strategy",
        type=str,
        default="daily",
        help="Strategy name (default: daily)",
    )
    parser.add_argument("--sub-strategy", type=str, default=None, help="Sub-strategy to select")
    parser.add_argument(
        "--param",
        type=parse_assignment,
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Strategy parameter override (repeatable)",
    )
    parser.add_argument("--start", type=parse_date, default=None, help="Start date (YYYY-MM-DD)")
    parser.add_argument("--end", type=parse_date, default=None, help="End date (YYYY-MM-DD)")
    parser.add_argument("--capital", type=float, default=None, help="Initial capital")
    parser.add_argument("--commission", type=float, default=None, help="Commission rate")
    parser.add_argument(
        "--batch",
        action="store_true",
        help="Run every sub-strategy of every strategy",
    )
    parser.add_argument(
        "--optimize",
        type=parse_assignment,
        nargs="+",
        default=None,
        metavar="KEY=V1,V2",
        help="Grid-search parameter values for --strategy",
    )
    parser.add_argument("--max-combinations", type=int, default=None, help="Grid size cap")
    parser.add_argument("--workers", type=int, default=None, help="Worker pool size")
    parser.add_argument(
        "--threads",
        action="store_true",
        help="Use a thread pool instead of a process pool",
    )
    parser.add_argument(
        "--output", "-o",
        type=str,
        default=None,
        help="Output file path for JSON results",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose logging",
    )
    return parser.parse_args(argv)


def cmd_list() -> None:
    """Print the strategy catalogue."""
    for descriptor in describe_strategies():
        print(f"\n{descriptor.name} ({descriptor.timeframe}) - {descriptor.description}")
        for sub in descriptor.sub_strategies:
            default = " [default]" if sub.name == descriptor.default_sub_strategy else ""
            print(f"    {sub.name:<20} {sub.risk_level.value:<10} {sub.description}{default}")
    print()


def build_parameters(args: argparse.Namespace) -> dict[str, Any] | None:
    params = {key: parse_value(value) for key, value in args.param}
    if args.sub_strategy:
        params["sub_strategy"] = args.sub_strategy
    return params or None


def batch_jobs() -> list[BacktestJob]:
    """One job per sub-strategy of every registered strategy."""
    return [
        BacktestJob(strategy=d.name, parameters={"sub_strategy": sub.name})
        for d in describe_strategies()
        for sub in d.sub_strategies
    ]


def cmd_run(args: argparse.Namespace, runner: BacktestRunner, bars: list) -> int:
    try:
        result = runner.run(
            args.strategy, bars, build_parameters(args), start=args.start, end=args.end
        )
    except InvalidParametersError as exc:
        print(f"Error: {exc}")
        return 1

    ReportFormatter.print_console(result)
    if result.report is not None:
        print(result.report.content)
    if args.output:
        ReportFormatter.save_json(result, args.output)
    return 0


def cmd_batch(args: argparse.Namespace, runner: BacktestRunner, bars: list) -> int:
    outcomes = runner.run_batch(batch_jobs(), bars, start=args.start, end=args.end)

    print(f"\n{'Job':<36} {'Return':>9} {'Sharpe':>8} {'MaxDD':>8} {'Trades':>7} {'Rating':>10}")
    print("-" * 84)
    for outcome in outcomes:
        if outcome.result is None:
            print(f"{outcome.name:<36} FAILED: {outcome.error}")
            continue
        m = outcome.result.metrics
        rating = outcome.result.report.rating.value if outcome.result.report else "-"
        print(
            f"{outcome.name:<36} {m.total_return * 100:>+8.2f}% {m.sharpe_ratio:>8.3f} "
            f"{m.max_drawdown * 100:>7.2f}% {m.total_trades:>7} {rating:>10}"
        )
    print()

    if args.output:
        data = {
            o.name: ReportFormatter.to_dict(o.result) if o.result else {"error": o.error}
            for o in outcomes
        }
        with open(args.output, "w") as f:
            json.dump(data, f, indent=2, cls=ResultEncoder)
        print(f"Results saved to {args.output}")
    return 0 if all(o.ok for o in outcomes) else 1


def cmd_optimize(args: argparse.Namespace, runner: BacktestRunner, bars: list) -> int:
    ranges = {
        key: [parse_value(v) for v in values.split(",") if v.strip()]
        for key, values in args.optimize
    }
    strategy = create_strategy(args.strategy)
    if args.sub_strategy and "sub_strategy" not in ranges:
        ranges["sub_strategy"] = [args.sub_strategy]

    optimization = runner.optimize_parameters(
        strategy, bars, ranges,
        max_combinations=args.max_combinations,
        start=args.start, end=args.end,
    )

    print(f"\nOptimization: {optimization.strategy}")
    print(f"  Trials run:    {len(optimization.trials)}")
    print(f"  Failures:      {len(optimization.failures)}")
    if optimization.best_parameters is None:
        print("  No successful trial.")
        return 1

    print(f"  Best Sharpe:   {optimization.best_sharpe:.3f}")
    print("  Best parameters:")
    for key in sorted(ranges):
        print(f"    {key} = {optimization.best_parameters[key]}")

    best = optimization.best_result
    if best is not None:
        ReportFormatter.print_console(best)
        if args.output:
            ReportFormatter.save_json(best, args.output)
    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    # Configure logging
    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    if args.list:
        cmd_list()
        return 0

    if args.csv is None:
        print("Error: --csv is required unless --list is given")
        return 1
    if args.strategy not in list_strategies():
        print(f"Error: unknown strategy '{args.strategy}'. Available: {', '.join(list_strategies())}")
        return 1

    settings = get_backtest_settings()
    runner = BacktestRunner(
        settings=settings,
        initial_capital=args.capital,
        commission_rate=args.commission,
        max_workers=args.workers,
        use_processes=settings.use_processes and not args.threads,
    )

    source = CsvBarSource(args.csv, symbol=args.symbol, timeframe=args.timeframe)
    if args.symbol is None and len(source.symbols()) > 1:
        print(
            f"Error: {args.csv} holds several symbols ({', '.join(source.symbols())}); "
            "choose one with --symbol"
        )
        return 1
    bars = source.get_range(symbol=args.symbol)
    if not bars:
        print(f"Error: no bars found in {args.csv}")
        return 1

    print(f"\nLoaded {len(bars):,} bars from {args.csv}")
    print(f"Period: {bars[0].timestamp:%Y-%m-%d} -> {bars[-1].timestamp:%Y-%m-%d}")

    if args.batch:
        return cmd_batch(args, runner, bars)
    if args.optimize:
        return cmd_optimize(args, runner, bars)
    return cmd_run(args, runner, bars)


if __name__ == "__main__":
    sys.exit(main())
