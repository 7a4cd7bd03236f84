#!/usr/bin/env python3
"""Command-line interface for the dcalab backtester."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from dcalab.config import BacktestConfig
    from dcalab.types import PriceSeries


def _build_config(args: argparse.Namespace) -> BacktestConfig:
    """Merge the optional YAML config with command-line overrides."""
    from dcalab.config import BacktestConfig, load_backtest_config

    base = load_backtest_config(args.config) if args.config else BacktestConfig()
    raw = base.model_dump(mode="json")

    overrides = {
        "start": args.start,
        "end": args.end,
        "amount": args.amount,
        "frequency": args.frequency,
        "dip_pct": args.dip_pct,
        "ma_window": args.ma_window,
        "granularity": args.granularity,
        "log_level": args.log_level,
    }
    raw.update({k: v for k, v in overrides.items() if v is not None})
    if args.parallel:
        raw["parallel"] = True

    # keep file params (delimiter, date_format, ...) only for the same source type
    if args.csv:
        params = dict(raw["source_params"]) if raw.get("data_source") == "csv" else {}
        params["file_path"] = args.csv
        if args.date_col is not None:
            params["date_col"] = args.date_col
        if args.price_col is not None:
            params["price_col"] = args.price_col
        raw["data_source"] = "csv"
        raw["source_params"] = params
    elif args.symbol:
        params = dict(raw["source_params"]) if raw.get("data_source") == "yahoo" else {}
        params["symbol"] = args.symbol
        raw["data_source"] = "yahoo"
        raw["source_params"] = params

    return BacktestConfig.from_mapping(raw)


def _load_series(config: BacktestConfig) -> PriceSeries:
    from dcalab.data.sources import resolve_price_source
    from dcalab.exceptions import DataSourceError

    if config.data_source is None:
        raise DataSourceError("No price source given. Use --csv, --symbol or --config.")
    source = resolve_price_source(config.data_source, config.source_params)
    return source.fetch_series()


def _prepare(args: argparse.Namespace) -> tuple[BacktestConfig, PriceSeries] | None:
    """Parse configuration, set up logging and load prices."""
    from dcalab.exceptions import ConfigError, DataSourceError

    try:
        config = _build_config(args)
    except ConfigError as e:
        print(f"Configuration error: {e}")
        return None

    logging.basicConfig(
        level=getattr(logging, config.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    print("\n📊 Loading prices...")
    try:
        series = _load_series(config)
    except DataSourceError as e:
        print(f"Failed to load prices: {e}")
        return None

    if series.is_empty:
        print("Error: No price data loaded. Check the source.")
        return None

    print(f"   Loaded {len(series)} prices ({series[0].date} to {series[-1].date})")
    return config, series


def cmd_backtest(args: argparse.Namespace) -> int:
    """Compare all four strategies over one window."""
    from dcalab.backtest import run_comparison, stage_table, summary_table

    prepared = _prepare(args)
    if prepared is None:
        return 1
    config, series = prepared

    print("\n🚀 Running backtest...")
    result = run_comparison(series, config, include_stages=not args.no_stages)

    print("\n" + "=" * 60)
    print("BACKTEST")
    print("=" * 60)
    print(f"Period:      {result.start} to {result.end}")
    print(f"Amount:      {config.amount:,.2f} {config.frequency.value}")
    print(f"Dip:         {config.dip_pct:.0%}")
    print(f"Trend MA:    {config.ma_window} days")
    print()
    print(summary_table(result))

    if result.stage_returns is not None:
        print(f"\n📅 Returns by {config.granularity.value}:")
        print(stage_table(result.stage_returns))

    return 0


def cmd_stages(args: argparse.Namespace) -> int:
    """Print the per-stage return matrix only."""
    from dcalab.backtest import compute_stage_returns, stage_table

    prepared = _prepare(args)
    if prepared is None:
        return 1
    config, series = prepared

    start, end = config.resolve_range(series)
    stage_returns = compute_stage_returns(
        series,
        start,
        end,
        config.amount,
        config.frequency,
        dip_pct=config.dip_pct,
        ma_window=config.ma_window,
        granularity=config.granularity,
        parallel=config.parallel,
    )

    print("\n" + "=" * 60)
    print(f"STAGE RETURNS ({config.granularity.value})")
    print("=" * 60)
    print(stage_table(stage_returns))
    return 0


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--csv", help="CSV file with date and price columns")
    source.add_argument("--symbol", help="Yahoo Finance ticker (e.g., BTC-USD)")
    parser.add_argument("-c", "--config", help="Path to YAML configuration file")
    parser.add_argument("--date-col", help="CSV date column (default: date)")
    parser.add_argument("--price-col", help="CSV price column (default: price)")
    parser.add_argument("--start", help="Start date (YYYY-MM-DD)")
    parser.add_argument("--end", help="End date (YYYY-MM-DD)")
    parser.add_argument(
        "-a", "--amount", type=float, help="Contribution per scheduled day"
    )
    parser.add_argument(
        "-f",
        "--frequency",
        choices=["daily", "weekly", "monthly"],
        help="Contribution frequency (default: weekly)",
    )
    parser.add_argument(
        "--dip-pct", type=float, help="Dip-buy drawdown threshold (default: 0.2)"
    )
    parser.add_argument(
        "--ma-window", type=int, help="Trend DCA moving-average days (default: 200)"
    )
    parser.add_argument(
        "-g",
        "--granularity",
        choices=["month", "quarter", "year"],
        help="Stage granularity (default: year)",
    )
    parser.add_argument(
        "--parallel", action="store_true", help="Run simulations in a process pool"
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO)",
    )


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Recurring-investment strategy backtester",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    backtest_parser = subparsers.add_parser(
        "backtest", help="Compare DCA, lump sum, dip buy and trend DCA"
    )
    _add_common_arguments(backtest_parser)
    backtest_parser.add_argument(
        "--no-stages", action="store_true", help="Skip the per-stage return matrix"
    )

    stages_parser = subparsers.add_parser(
        "stages", help="Show per-stage returns of every strategy"
    )
    _add_common_arguments(stages_parser)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "backtest":
        return cmd_backtest(args)
    elif args.command == "stages":
        return cmd_stages(args)

    return 0


if __name__ == "__main__":
    sys.exit(main())
