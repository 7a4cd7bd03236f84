"""Deploy rules for the recurring-investment strategies."""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

from dcalab.indicators import sma
from dcalab.strategies.base import DeployRule

if TYPE_CHECKING:
    import numpy as np

    from dcalab.types import PriceSeries

logger = logging.getLogger(__name__)

DEFAULT_DIP_PCT = 0.20
DEFAULT_MA_WINDOW = 200


class AlwaysOnSchedule(DeployRule):
    """Buy every contribution on the day it arrives (plain DCA and lump sum)."""

    holds_cash = False

    def should_deploy(self, index: int, price: float) -> bool:
        return True


class ThresholdDrawdown(DeployRule):
    """Hold cash until price falls far enough below its running peak.

    The peak is tracked over the active window only, starting from the first
    day of the run.

    :param dip_pct: Drawdown from peak (0.20 = 20%) that triggers a purchase.
    """

    def __init__(self, dip_pct: float = DEFAULT_DIP_PCT) -> None:
        super().__init__()
        self.dip_pct = dip_pct
        self.peak = -math.inf

    def on_start(self, series: PriceSeries) -> None:
        super().on_start(series)
        self.peak = -math.inf

    def should_deploy(self, index: int, price: float) -> bool:
        """Update the peak and compare today's drawdown with the threshold."""
        self.peak = max(self.peak, price)
        drawdown = (self.peak - price) / self.peak
        return math.isfinite(drawdown) and drawdown >= self.dip_pct


class TrendFollowing(DeployRule):
    """Hold cash until price trades above its trailing moving average.

    The moving average is taken over the whole series, so it becomes defined
    ``ma_window - 1`` days after the first sample regardless of where the
    active window starts. Days before that never trigger a purchase.

    :param ma_window: Moving-average length in trading days. A non-positive
        window falls back to ``DEFAULT_MA_WINDOW``.
    """

    def __init__(self, ma_window: int = DEFAULT_MA_WINDOW) -> None:
        super().__init__()
        if ma_window <= 0:
            logger.warning(
                "Invalid ma_window %r; using %s", ma_window, DEFAULT_MA_WINDOW
            )
            ma_window = DEFAULT_MA_WINDOW
        self.ma_window = int(ma_window)
        self.moving_average: np.ndarray | None = None

    def on_start(self, series: PriceSeries) -> None:
        super().on_start(series)
        self.moving_average = sma(series.prices, self.ma_window)

    def should_deploy(self, index: int, price: float) -> bool:
        ma = self.indicator(index)
        return ma is not None and price > ma

    def indicator(self, index: int) -> float | None:
        if self.moving_average is None:
            return None
        value = float(self.moving_average[index])
        return value if math.isfinite(value) else None


__all__ = [
    "DEFAULT_DIP_PCT",
    "DEFAULT_MA_WINDOW",
    "AlwaysOnSchedule",
    "ThresholdDrawdown",
    "TrendFollowing",
]
