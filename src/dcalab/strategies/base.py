"""Base deploy rule that every recurring-investment strategy plugs into.

The simulator owns the contribution bookkeeping (cash in, idle cash, units).
A deploy rule only answers one question per trading day: should the idle cash
be converted into units now?
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from dcalab.types import PriceSeries


class DeployRule(ABC):
    """Abstract base class for purchase triggers.

    A rule instance carries the side state of exactly one simulation run (a
    running peak, a moving average). The simulator creates a fresh instance
    per run, so no state survives between runs.

    Example usage::

        class BuyOnMondays(DeployRule):
            def should_deploy(self, index: int, price: float) -> bool:
                return self.series[index].date.weekday() == 0
    """

    #: Whether undeployed cash is reported on timeline entries.
    holds_cash: bool = True

    def __init__(self) -> None:
        self.series: PriceSeries | None = None

    def on_start(self, series: PriceSeries) -> None:
        """Called once before the first trading day of a run.

        Override to precompute indicators over the whole series.

        :param series: Full price series the run reads from.
        """
        self.series = series

    @abstractmethod
    def should_deploy(self, index: int, price: float) -> bool:
        """Decide whether to convert idle cash into units today.

        Called on every trading day of the active window in date order,
        whether or not there is cash to deploy, so rules can update their
        running state.

        :param index: Position of the day in the full series.
        :param price: Price on that day.
        :returns: True to deploy the entire idle cash pile.
        """
        ...

    def indicator(self, index: int) -> float | None:
        """Indicator value to carry on the timeline entry for ``index``."""
        return None
