"""Deploy rules that distinguish the recurring-investment strategies."""

from dcalab.strategies.base import DeployRule
from dcalab.strategies.rules import (
    DEFAULT_DIP_PCT,
    DEFAULT_MA_WINDOW,
    AlwaysOnSchedule,
    ThresholdDrawdown,
    TrendFollowing,
)

__all__ = [
    # Base
    "DeployRule",
    # Rules
    "AlwaysOnSchedule",
    "ThresholdDrawdown",
    "TrendFollowing",
    # Defaults
    "DEFAULT_DIP_PCT",
    "DEFAULT_MA_WINDOW",
]
