"""Stage aggregation: compare strategies period by period.

Each stage is simulated from scratch. Returns answer "how would the strategy
have done if restarted at the beginning of this month/quarter/year", not how
the full-window run evolved through it.
"""

from __future__ import annotations

import logging
from concurrent.futures import ProcessPoolExecutor
from datetime import date, timedelta

from dcalab.backtest.metrics import compute_metrics
from dcalab.backtest.simulator import simulate
from dcalab.strategies import DEFAULT_DIP_PCT, DEFAULT_MA_WINDOW
from dcalab.types import (
    Frequency,
    Granularity,
    PriceSeries,
    Stage,
    StageReturns,
    StrategyName,
    ordered_range,
)

logger = logging.getLogger(__name__)


def _next_boundary(day: date, granularity: Granularity) -> date:
    """First day of the calendar unit following the one containing ``day``."""
    if granularity is Granularity.YEAR:
        return date(day.year + 1, 1, 1)
    if granularity is Granularity.QUARTER:
        month = (day.month - 1) // 3 * 3 + 1 + 3
    else:
        month = day.month + 1
    if month > 12:
        return date(day.year + 1, month - 12, 1)
    return date(day.year, month, 1)


def _stage_label(day: date, granularity: Granularity) -> str:
    if granularity is Granularity.YEAR:
        return f"{day.year}"
    if granularity is Granularity.QUARTER:
        return f"{day.year}-Q{(day.month - 1) // 3 + 1}"
    return f"{day.year}-{day.month:02d}"


def build_stages(
    start: date,
    end: date,
    granularity: Granularity | str = Granularity.YEAR,
) -> list[Stage]:
    """Split ``[start, end]`` into calendar-aligned stages.

    The first stage starts at ``start`` and the last ends at ``end``; stages in
    between cover whole calendar units with no gaps or overlaps.

    :param start: Window start (inclusive).
    :param end: Window end (inclusive).
    :param granularity: Calendar unit.
    :returns: Stages in chronological order.
    """
    start, end = ordered_range(start, end)
    unit = Granularity(granularity)

    stages: list[Stage] = []
    cur = start
    while cur <= end:
        nxt = _next_boundary(cur, unit)
        stages.append(
            Stage(
                start=cur,
                end=min(end, nxt - timedelta(days=1)),
                label=_stage_label(cur, unit),
            )
        )
        cur = nxt
    return stages


def _stage_total_returns(
    series: PriceSeries,
    stage: Stage,
    amount: float,
    frequency: Frequency,
    dip_pct: float,
    ma_window: int,
) -> dict[StrategyName, float]:
    returns: dict[StrategyName, float] = {}
    for name in StrategyName:
        result = simulate(
            name,
            series,
            stage.start,
            stage.end,
            amount,
            frequency,
            dip_pct=dip_pct,
            ma_window=ma_window,
        )
        metrics = compute_metrics(result.timeline)
        returns[name] = metrics.total_return or 0.0
    return returns


def compute_stage_returns(
    series: PriceSeries,
    start: date,
    end: date,
    amount: float,
    frequency: Frequency | str,
    dip_pct: float = DEFAULT_DIP_PCT,
    ma_window: int = DEFAULT_MA_WINDOW,
    granularity: Granularity | str = Granularity.YEAR,
    parallel: bool = False,
    max_workers: int | None = None,
) -> StageReturns:
    """Total return of every strategy in every stage of a window.

    Stages with no data report a return of 0 for every strategy.

    :param series: Full price series.
    :param start: Window start (inclusive).
    :param end: Window end (inclusive).
    :param amount: Contribution per scheduled day.
    :param frequency: Contribution frequency.
    :param dip_pct: Drawdown threshold for dip buy.
    :param ma_window: Moving-average window for trend DCA.
    :param granularity: Stage calendar unit.
    :param parallel: If True, evaluate stages in a process pool.
    :param max_workers: Pool size when ``parallel`` is True.
    :returns: StageReturns with one value per stage for each strategy.
    """
    stages = build_stages(start, end, granularity)
    freq = Frequency(frequency)
    logger.debug(
        "Computing returns for %d %s stages", len(stages), Granularity(granularity).value
    )

    if parallel and len(stages) > 1:
        with ProcessPoolExecutor(max_workers=max_workers) as pool:
            per_stage = list(
                pool.map(
                    _stage_total_returns,
                    [series] * len(stages),
                    stages,
                    [amount] * len(stages),
                    [freq] * len(stages),
                    [dip_pct] * len(stages),
                    [ma_window] * len(stages),
                )
            )
    else:
        per_stage = [
            _stage_total_returns(series, stage, amount, freq, dip_pct, ma_window)
            for stage in stages
        ]

    return StageReturns(
        labels=[s.label for s in stages],
        stages=stages,
        dca=[r[StrategyName.DCA] for r in per_stage],
        lump_sum=[r[StrategyName.LUMP_SUM] for r in per_stage],
        dip_buy=[r[StrategyName.DIP_BUY] for r in per_stage],
        trend_dca=[r[StrategyName.TREND_DCA] for r in per_stage],
    )


__all__ = ["build_stages", "compute_stage_returns"]
