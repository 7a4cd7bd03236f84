"""Run every strategy over one window and compare them.

This module produces everything a presentation layer needs for one backtest:
the price timeline, each strategy's simulation, metrics and drawdown curve,
a ranking by total return, and optionally the per-stage return matrix.
"""

from __future__ import annotations

import logging
from concurrent.futures import ProcessPoolExecutor
from datetime import date

from pydantic import BaseModel, Field

from dcalab.backtest.metrics import compute_metrics, drawdown_series
from dcalab.backtest.simulator import simulate
from dcalab.backtest.stages import compute_stage_returns
from dcalab.config import BacktestConfig
from dcalab.types import (
    DrawdownPoint,
    Metrics,
    PricePoint,
    PriceSeries,
    SimulationResult,
    StageReturns,
    StrategyName,
)

logger = logging.getLogger(__name__)


class StrategyReport(BaseModel):
    """Everything computed for one strategy over the window.

    :param result: Simulation timeline and summary.
    :param metrics: Return and risk statistics.
    :param drawdown: Drawdown curve of the portfolio value.
    """

    result: SimulationResult
    metrics: Metrics
    drawdown: list[DrawdownPoint] = Field(default_factory=list)


class ComparisonResult(BaseModel):
    """Results from comparing the four strategies over one window.

    :param start: Window start actually used.
    :param end: Window end actually used.
    :param prices: Price samples inside the window.
    :param strategies: Strategy names in evaluation order.
    :param reports: Mapping of strategy name to StrategyReport.
    :param rankings: Strategies ranked by total return, best first.
    :param best_strategy: Name of the best performing strategy.
    :param worst_strategy: Name of the worst performing strategy.
    :param stage_returns: Per-stage returns, if requested.
    """

    start: date | None = None
    end: date | None = None
    prices: list[PricePoint] = Field(default_factory=list)
    strategies: list[StrategyName] = Field(default_factory=list)
    reports: dict[StrategyName, StrategyReport] = Field(default_factory=dict)
    rankings: list[tuple[StrategyName, float]] = Field(default_factory=list)
    best_strategy: StrategyName | None = None
    worst_strategy: StrategyName | None = None
    stage_returns: StageReturns | None = None


def build_report(
    strategy: StrategyName,
    series: PriceSeries,
    start: date,
    end: date,
    config: BacktestConfig,
) -> StrategyReport:
    """Simulate one strategy and derive its metrics and drawdown curve."""
    result = simulate(
        strategy,
        series,
        start,
        end,
        config.amount,
        config.frequency,
        dip_pct=config.dip_pct,
        ma_window=config.ma_window,
    )
    return StrategyReport(
        result=result,
        metrics=compute_metrics(result.timeline),
        drawdown=drawdown_series(result.timeline),
    )


def run_comparison(
    series: PriceSeries,
    config: BacktestConfig,
    include_stages: bool = True,
) -> ComparisonResult:
    """Run all four strategies for the configured window.

    Example usage::

        from dcalab.backtest import run_comparison
        from dcalab.config import BacktestConfig

        config = BacktestConfig(amount=100, frequency="weekly")
        comparison = run_comparison(series, config)
        print(f"Best strategy: {comparison.best_strategy}")

    :param series: Full price series.
    :param config: Backtest settings; missing window bounds default to the
        series' first and last dates.
    :param include_stages: Whether to compute the per-stage return matrix.
    :returns: ComparisonResult. An empty series gives a result with no reports.
    """
    window = config.resolve_range(series)
    if window is None:
        logger.warning("Price series is empty; nothing to compare")
        return ComparisonResult()
    start, end = window

    strategies = list(StrategyName)
    logger.debug("Running %d strategies from %s to %s", len(strategies), start, end)

    if config.parallel:
        with ProcessPoolExecutor(max_workers=len(strategies)) as pool:
            built = list(
                pool.map(
                    build_report,
                    strategies,
                    [series] * len(strategies),
                    [start] * len(strategies),
                    [end] * len(strategies),
                    [config] * len(strategies),
                )
            )
        reports = dict(zip(strategies, built))
    else:
        reports = {
            name: build_report(name, series, start, end, config) for name in strategies
        }

    # Rank strategies by total return
    rankings = sorted(
        [(name, reports[name].metrics.total_return or 0.0) for name in strategies],
        key=lambda x: x[1],
        reverse=True,
    )

    stage_returns = None
    if include_stages:
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

    return ComparisonResult(
        start=start,
        end=end,
        prices=series.clamp(start, end),
        strategies=strategies,
        reports=reports,
        rankings=rankings,
        best_strategy=rankings[0][0] if rankings else None,
        worst_strategy=rankings[-1][0] if rankings else None,
        stage_returns=stage_returns,
    )


def _fmt_pct(value: float | None, signed: bool = False) -> str:
    if value is None:
        return "N/A"
    return f"{value:+.2%}" if signed else f"{value:.2%}"


def _fmt_num(value: float | None, spec: str = ",.2f") -> str:
    if value is None:
        return "N/A"
    return format(value, spec)


def summary_table(result: ComparisonResult) -> str:
    """Format a comparison as a plain-text table.

    :param result: Comparison to format.
    :returns: Table with one row per strategy, best first.
    """
    lines = [
        "=" * 100,
        f"{'Strategy':<12} {'Cash In':>14} {'End Value':>14} {'Return':>10} "
        f"{'CAGR':>9} {'Vol':>9} {'Sharpe':>7} {'Max DD':>9}",
        "-" * 100,
    ]

    for name, _ in result.rankings:
        m = result.reports[name].metrics
        lines.append(
            f"{name.label:<12} {_fmt_num(m.cash_in):>14} {_fmt_num(m.end_value):>14} "
            f"{_fmt_pct(m.total_return, signed=True):>10} {_fmt_pct(m.cagr):>9} "
            f"{_fmt_pct(m.annualized_volatility):>9} {_fmt_num(m.sharpe, '.2f'):>7} "
            f"{_fmt_pct(m.max_drawdown):>9}"
        )

    lines.append("=" * 100)

    if result.best_strategy:
        lines.append(f"Best: {result.best_strategy.label}")

    return "\n".join(lines)


def stage_table(stage_returns: StageReturns) -> str:
    """Format a stage return matrix as a plain-text table.

    :param stage_returns: Per-stage returns.
    :returns: Table with one row per stage.
    """
    by_strategy = stage_returns.by_strategy()
    header = f"{'Stage':<10}" + "".join(f"{name.label:>12}" for name in by_strategy)
    lines = [header, "-" * len(header)]
    for i, label in enumerate(stage_returns.labels):
        cells = "".join(
            f"{_fmt_pct(values[i], signed=True):>12}" for values in by_strategy.values()
        )
        lines.append(f"{label:<10}{cells}")
    return "\n".join(lines)


__all__ = [
    "ComparisonResult",
    "StrategyReport",
    "build_report",
    "run_comparison",
    "stage_table",
    "summary_table",
]
