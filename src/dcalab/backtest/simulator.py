"""Strategy simulators.

All four strategies share one single-pass loop over the price series. They
differ only in when contributions arrive (on schedule, or all at once for lump
sum) and in the deploy rule that decides when idle cash becomes units.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import TYPE_CHECKING

from dcalab.schedule import build_schedule
from dcalab.strategies import (
    DEFAULT_DIP_PCT,
    DEFAULT_MA_WINDOW,
    AlwaysOnSchedule,
    ThresholdDrawdown,
    TrendFollowing,
)
from dcalab.types import (
    Frequency,
    PriceSeries,
    SimulationResult,
    StrategyName,
    Summary,
    TimelineEntry,
    ordered_range,
)

if TYPE_CHECKING:
    from dcalab.strategies.base import DeployRule

logger = logging.getLogger(__name__)


class Simulator:
    """Single-pass simulation of contributions and purchases.

    Example usage::

        from dcalab.backtest.simulator import Simulator
        from dcalab.strategies import ThresholdDrawdown

        simulator = Simulator(
            series=series,
            start=date(2020, 1, 1),
            end=date(2021, 1, 1),
            contributions={0: 100.0, 7: 100.0},
            rule=ThresholdDrawdown(0.2),
            strategy=StrategyName.DIP_BUY,
        )
        result = simulator.run()

    :param series: Full price series.
    :param start: First day of the active window (inclusive).
    :param end: Last day of the active window (inclusive).
    :param contributions: Cash added to the pile, keyed by series position.
    :param rule: Deploy rule deciding when the pile is converted into units.
    :param strategy: Strategy name recorded on the result.
    """

    def __init__(
        self,
        series: PriceSeries,
        start: date,
        end: date,
        contributions: dict[int, float],
        rule: DeployRule,
        strategy: StrategyName,
    ) -> None:
        self.series = series
        self.start, self.end = ordered_range(start, end)
        self.contributions = contributions
        self.rule = rule
        self.strategy = strategy

    def run(self) -> SimulationResult:
        """Run the simulation.

        :returns: SimulationResult with one timeline entry per trading day in
            the window, or an empty timeline when the window has no data.
        """
        i_start = self.series.first_index_on_or_after(self.start)
        if i_start is None:
            return SimulationResult(strategy=self.strategy)

        self.rule.on_start(self.series)

        cash_in = 0.0
        units = 0.0
        cash_pile = 0.0
        timeline: list[TimelineEntry] = []

        for i in range(i_start, len(self.series)):
            point = self.series[i]
            if point.date > self.end:
                break

            contribution = self.contributions.get(i, 0.0)
            # non-positive contributions are no-ops; there is no sell path
            if contribution > 0:
                cash_in += contribution
                cash_pile += contribution

            if self.rule.should_deploy(i, point.price) and cash_pile > 0:
                units += cash_pile / point.price
                cash_pile = 0.0

            timeline.append(
                TimelineEntry(
                    date=point.date,
                    price=point.price,
                    cash_in=cash_in,
                    units=units,
                    value=units * point.price + cash_pile,
                    cash_pile=cash_pile if self.rule.holds_cash else None,
                    moving_average=self.rule.indicator(i),
                )
            )

        logger.debug(
            "Simulated %s over %d days (%s to %s)",
            self.strategy.value,
            len(timeline),
            self.start,
            self.end,
        )
        return SimulationResult(
            strategy=self.strategy,
            timeline=timeline,
            summary=Summary.from_timeline(timeline),
        )


def _scheduled_contributions(
    series: PriceSeries,
    start: date,
    end: date,
    amount: float,
    frequency: Frequency | str,
) -> dict[int, float]:
    return {i: amount for i in build_schedule(series, start, end, frequency)}


def simulate_dca(
    series: PriceSeries,
    start: date,
    end: date,
    amount: float,
    frequency: Frequency | str,
) -> SimulationResult:
    """Dollar-cost averaging: buy ``amount`` worth on every scheduled day.

    :param series: Full price series.
    :param start: Window start (inclusive).
    :param end: Window end (inclusive).
    :param amount: Contribution per scheduled day.
    :param frequency: Contribution frequency.
    :returns: SimulationResult.
    """
    return Simulator(
        series=series,
        start=start,
        end=end,
        contributions=_scheduled_contributions(series, start, end, amount, frequency),
        rule=AlwaysOnSchedule(),
        strategy=StrategyName.DCA,
    ).run()


def simulate_lump_sum(
    series: PriceSeries,
    start: date,
    end: date,
    amount: float,
    frequency: Frequency | str,
) -> SimulationResult:
    """Invest the capital DCA would contribute, all on the first trading day.

    Total capital is ``len(schedule) * amount`` for the same schedule DCA
    uses, so both strategies always invest the same amount.

    :param series: Full price series.
    :param start: Window start (inclusive).
    :param end: Window end (inclusive).
    :param amount: Contribution per scheduled day that DCA would make.
    :param frequency: Contribution frequency DCA would use.
    :returns: SimulationResult.
    """
    start, end = ordered_range(start, end)
    periods = len(build_schedule(series, start, end, frequency))
    i_start = series.first_index_on_or_after(start)
    contributions = {} if i_start is None else {i_start: periods * amount}
    return Simulator(
        series=series,
        start=start,
        end=end,
        contributions=contributions,
        rule=AlwaysOnSchedule(),
        strategy=StrategyName.LUMP_SUM,
    ).run()


def simulate_dip_buy(
    series: PriceSeries,
    start: date,
    end: date,
    amount: float,
    frequency: Frequency | str,
    dip_pct: float = DEFAULT_DIP_PCT,
) -> SimulationResult:
    """Save contributions as cash and deploy them all on a dip.

    The pile is deployed on any day the price is at least ``dip_pct`` below
    its running peak within the window. Cash never deployed stays in the
    portfolio value at face value.

    :param series: Full price series.
    :param start: Window start (inclusive).
    :param end: Window end (inclusive).
    :param amount: Contribution per scheduled day.
    :param frequency: Contribution frequency.
    :param dip_pct: Drawdown threshold as a fraction.
    :returns: SimulationResult with ``cash_pile`` on every entry.
    """
    return Simulator(
        series=series,
        start=start,
        end=end,
        contributions=_scheduled_contributions(series, start, end, amount, frequency),
        rule=ThresholdDrawdown(dip_pct),
        strategy=StrategyName.DIP_BUY,
    ).run()


def simulate_trend_dca(
    series: PriceSeries,
    start: date,
    end: date,
    amount: float,
    frequency: Frequency | str,
    ma_window: int = DEFAULT_MA_WINDOW,
) -> SimulationResult:
    """Save contributions as cash and deploy them while price is above trend.

    :param series: Full price series.
    :param start: Window start (inclusive).
    :param end: Window end (inclusive).
    :param amount: Contribution per scheduled day.
    :param frequency: Contribution frequency.
    :param ma_window: Moving-average length in trading days.
    :returns: SimulationResult with ``cash_pile`` and ``moving_average``.
    """
    return Simulator(
        series=series,
        start=start,
        end=end,
        contributions=_scheduled_contributions(series, start, end, amount, frequency),
        rule=TrendFollowing(ma_window),
        strategy=StrategyName.TREND_DCA,
    ).run()


def simulate(
    strategy: StrategyName | str,
    series: PriceSeries,
    start: date,
    end: date,
    amount: float,
    frequency: Frequency | str,
    dip_pct: float = DEFAULT_DIP_PCT,
    ma_window: int = DEFAULT_MA_WINDOW,
) -> SimulationResult:
    """Run the simulator for ``strategy``.

    :param strategy: Strategy to simulate.
    :returns: SimulationResult.
    :raises ValueError: If ``strategy`` is not a known strategy name.
    """
    name = StrategyName(strategy)
    if name is StrategyName.DCA:
        return simulate_dca(series, start, end, amount, frequency)
    elif name is StrategyName.LUMP_SUM:
        return simulate_lump_sum(series, start, end, amount, frequency)
    elif name is StrategyName.DIP_BUY:
        return simulate_dip_buy(series, start, end, amount, frequency, dip_pct)
    return simulate_trend_dca(series, start, end, amount, frequency, ma_window)


__all__ = [
    "Simulator",
    "simulate",
    "simulate_dca",
    "simulate_lump_sum",
    "simulate_dip_buy",
    "simulate_trend_dca",
]
