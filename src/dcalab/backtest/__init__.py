"""Simulation, metrics and comparison of recurring-investment strategies."""

from dcalab.backtest.comparison import (
    ComparisonResult,
    StrategyReport,
    run_comparison,
    stage_table,
    summary_table,
)
from dcalab.backtest.metrics import compute_metrics, daily_returns, drawdown_series
from dcalab.backtest.simulator import (
    Simulator,
    simulate,
    simulate_dca,
    simulate_dip_buy,
    simulate_lump_sum,
    simulate_trend_dca,
)
from dcalab.backtest.stages import build_stages, compute_stage_returns

__all__ = [
    # Simulation
    "Simulator",
    "simulate",
    "simulate_dca",
    "simulate_lump_sum",
    "simulate_dip_buy",
    "simulate_trend_dca",
    # Metrics
    "compute_metrics",
    "daily_returns",
    "drawdown_series",
    # Stages
    "build_stages",
    "compute_stage_returns",
    # Comparison
    "ComparisonResult",
    "StrategyReport",
    "run_comparison",
    "stage_table",
    "summary_table",
]
