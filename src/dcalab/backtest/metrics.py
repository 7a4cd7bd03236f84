"""Return and risk statistics derived from a simulation timeline."""

from __future__ import annotations

import logging
import math

import numpy as np

from dcalab.types import DrawdownPoint, Metrics, TimelineEntry

logger = logging.getLogger(__name__)

DAYS_PER_YEAR = 365.25
# annualization factor for calendar-day returns
TRADING_DAYS_PER_YEAR = 365


def drawdown_series(timeline: list[TimelineEntry]) -> list[DrawdownPoint]:
    """Peak-relative drawdown of a timeline's portfolio value.

    :param timeline: Simulation timeline.
    :returns: One point per entry, same dates; every value is ``<= 0``.
    """
    points: list[DrawdownPoint] = []
    peak = -math.inf
    for entry in timeline:
        peak = max(peak, entry.value)
        dd = entry.value / peak - 1 if peak > 0 else 0.0
        points.append(DrawdownPoint(date=entry.date, value=dd))
    return points


def daily_returns(timeline: list[TimelineEntry]) -> np.ndarray:
    """Day-over-day returns of portfolio value.

    A day following a non-positive value counts as a zero return. Non-finite
    returns are dropped.
    """
    returns = []
    for prev, cur in zip(timeline, timeline[1:]):
        r = cur.value / prev.value - 1 if prev.value > 0 else 0.0
        if math.isfinite(r):
            returns.append(r)
    return np.array(returns, dtype=float)


def compute_metrics(timeline: list[TimelineEntry]) -> Metrics:
    """Compute return and risk statistics for a timeline.

    The risk-free rate is taken as zero, so the Sharpe ratio is simply CAGR
    over annualized volatility.

    :param timeline: Simulation timeline.
    :returns: Metrics, with every field None when ``timeline`` is empty.
    """
    if not timeline:
        return Metrics()

    first, last = timeline[0], timeline[-1]
    cash_in = last.cash_in
    end_value = last.value
    pnl = end_value - cash_in
    total_return = end_value / cash_in - 1 if cash_in > 0 else 0.0

    years = (last.date - first.date).days / DAYS_PER_YEAR
    cagr = 0.0
    if cash_in > 0 and years > 0:
        growth = end_value / cash_in
        if growth < 0:
            logger.warning(
                "Negative growth ratio %.4f; reporting CAGR as 0", growth
            )
        else:
            cagr = growth ** (1 / years) - 1

    returns = daily_returns(timeline)
    volatility = 0.0
    if returns.size >= 2:
        volatility = float(np.std(returns, ddof=1)) * math.sqrt(TRADING_DAYS_PER_YEAR)

    sharpe = cagr / volatility if volatility > 0 else 0.0

    drawdowns = drawdown_series(timeline)
    max_drawdown = min(0.0, min(p.value for p in drawdowns))

    return Metrics(
        cash_in=cash_in,
        end_value=end_value,
        pnl=pnl,
        total_return=total_return,
        cagr=cagr,
        annualized_volatility=volatility,
        sharpe=sharpe,
        max_drawdown=max_drawdown,
    )


__all__ = [
    "DAYS_PER_YEAR",
    "TRADING_DAYS_PER_YEAR",
    "compute_metrics",
    "daily_returns",
    "drawdown_series",
]
