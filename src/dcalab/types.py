"""Core type definitions for dcalab.

All data models use Pydantic BaseModel for validation and serialization. Every
value produced by the simulation engine is frozen: it is built once by a pure
function and never mutated afterwards.
"""

from __future__ import annotations

import datetime as dt
import logging
import math
from enum import Enum
from typing import Any, Iterable

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from dcalab.exceptions import DataValidationError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Base Configuration
# ---------------------------------------------------------------------------


class FrozenModel(BaseModel):
    """Base model with frozen (immutable) configuration."""

    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class Frequency(str, Enum):
    """How often a fixed contribution is scheduled."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"

    @property
    def step_days(self) -> int:
        """Calendar days between two schedule ticks."""
        return {"daily": 1, "weekly": 7, "monthly": 30}[self.value]


class Granularity(str, Enum):
    """Calendar unit used to split a backtest window into stages."""

    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"


class StrategyName(str, Enum):
    """Identifiers of the four recurring-investment strategies."""

    DCA = "dca"
    LUMP_SUM = "lump_sum"
    DIP_BUY = "dip_buy"
    TREND_DCA = "trend_dca"

    @property
    def label(self) -> str:
        """Human-readable name."""
        return {
            "dca": "DCA",
            "lump_sum": "Lump Sum",
            "dip_buy": "Dip Buy",
            "trend_dca": "Trend DCA",
        }[self.value]


# ---------------------------------------------------------------------------
# Date helpers
# ---------------------------------------------------------------------------


def parse_date(value: Any) -> dt.date:
    """Parse a calendar date from a date, datetime or ISO string.

    :param value: Value to parse.
    :returns: Calendar date.
    :raises ValueError: If the value cannot be interpreted as a date.
    """
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return dt.date.fromisoformat(text)
        except ValueError:
            pass
        return dt.datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    raise ValueError(f"Cannot interpret {value!r} as a date")


def ordered_range(start: dt.date, end: dt.date) -> tuple[dt.date, dt.date]:
    """Return ``(start, end)`` with the two swapped if given inverted."""
    if start > end:
        return end, start
    return start, end


# ---------------------------------------------------------------------------
# Market Data Types
# ---------------------------------------------------------------------------


class PricePoint(FrozenModel):
    """One daily price sample.

    :param date: Calendar date of the sample.
    :param price: Positive price of the asset on that date.
    """

    date: dt.date
    price: float = Field(gt=0)


class PriceSeries(FrozenModel):
    """Ordered, deduplicated sequence of price samples.

    Every other component reads from a price series and none of them modifies
    it, so one instance can be shared freely across computations.

    :param points: Samples in strictly ascending date order.
    """

    points: tuple[PricePoint, ...] = ()

    @model_validator(mode="after")
    def _check_ascending(self) -> PriceSeries:
        for prev, cur in zip(self.points, self.points[1:]):
            if cur.date <= prev.date:
                raise ValueError(
                    f"price points must be strictly ascending by date: "
                    f"{cur.date} follows {prev.date}"
                )
        return self

    @classmethod
    def from_points(cls, points: Iterable[PricePoint]) -> PriceSeries:
        """Build a series from already-clean points.

        :param points: Points in strictly ascending date order.
        :returns: Validated series.
        :raises DataValidationError: If the points are unsorted or duplicated.
        """
        try:
            return cls(points=tuple(points))
        except ValidationError as e:
            raise DataValidationError(str(e)) from e

    @classmethod
    def from_records(cls, records: Iterable[tuple[Any, Any]]) -> PriceSeries:
        """Build a series from raw ``(date, price)`` records.

        Malformed records (unparseable date, non-numeric, non-finite or
        non-positive price) are dropped. The rest are sorted ascending and,
        where a date repeats, the last record seen for it wins.

        :param records: Iterable of ``(date, price)`` pairs in any order.
        :returns: Validated series.
        :raises DataValidationError: If the cleaned points fail validation.
        """
        by_date: dict[dt.date, float] = {}
        dropped = 0
        for raw_date, raw_price in records:
            try:
                day = parse_date(raw_date)
                price = float(raw_price)
            except (TypeError, ValueError):
                dropped += 1
                continue
            if not math.isfinite(price) or price <= 0:
                dropped += 1
                continue
            by_date[day] = price

        if dropped:
            logger.warning("Dropped %d malformed price records", dropped)

        return cls.from_points(
            PricePoint(date=day, price=by_date[day]) for day in sorted(by_date)
        )

    def __len__(self) -> int:
        return len(self.points)

    def __getitem__(self, index: int) -> PricePoint:
        return self.points[index]

    @property
    def is_empty(self) -> bool:
        return not self.points

    @property
    def dates(self) -> list[dt.date]:
        """Sample dates in order."""
        return [p.date for p in self.points]

    @property
    def prices(self) -> np.ndarray:
        """Sample prices as a float array."""
        return np.array([p.price for p in self.points], dtype=float)

    def first_index_on_or_after(self, day: dt.date, lo: int = 0) -> int | None:
        """Position of the first sample dated on or after ``day``.

        :param day: Target date.
        :param lo: Position to start scanning from.
        :returns: Position, or None if every sample from ``lo`` is earlier.
        """
        for i in range(lo, len(self.points)):
            if self.points[i].date >= day:
                return i
        return None

    def clamp(self, start: dt.date, end: dt.date) -> list[PricePoint]:
        """Samples dated within ``[start, end]`` (inverted ranges are swapped)."""
        start, end = ordered_range(start, end)
        return [p for p in self.points if start <= p.date <= end]


# ---------------------------------------------------------------------------
# Simulation Types
# ---------------------------------------------------------------------------


class TimelineEntry(FrozenModel):
    """State of a strategy's portfolio at the end of one trading day.

    :param date: Trading day.
    :param price: Asset price on that day.
    :param cash_in: Cumulative contributed capital.
    :param units: Units of the asset held.
    :param value: Portfolio value, ``units * price`` plus any idle cash.
    :param cash_pile: Contributed cash not yet deployed, for strategies that hold cash.
    :param moving_average: Trailing moving average of price, when the strategy uses one.
    """

    date: dt.date
    price: float
    cash_in: float
    units: float
    value: float
    cash_pile: float | None = None
    moving_average: float | None = None


class Summary(FrozenModel):
    """Final state snapshot of a timeline.

    :param cash_in: Total contributed capital.
    :param units: Units held at the end.
    :param end_value: Portfolio value at the end.
    """

    cash_in: float = 0.0
    units: float = 0.0
    end_value: float = 0.0

    @classmethod
    def from_timeline(cls, timeline: list[TimelineEntry]) -> Summary:
        """Snapshot the last entry, or zeros for an empty timeline."""
        if not timeline:
            return cls()
        last = timeline[-1]
        return cls(cash_in=last.cash_in, units=last.units, end_value=last.value)


class SimulationResult(FrozenModel):
    """Output of one strategy simulation.

    :param strategy: Strategy that produced this result.
    :param timeline: One entry per trading day in the active window.
    :param summary: Final state snapshot.
    """

    strategy: StrategyName
    timeline: list[TimelineEntry] = Field(default_factory=list)
    summary: Summary = Field(default_factory=Summary)

    @property
    def buy_points(self) -> list[TimelineEntry]:
        """Entries on which units were bought."""
        points: list[TimelineEntry] = []
        prev_units = 0.0
        for entry in self.timeline:
            if entry.units > prev_units:
                points.append(entry)
            prev_units = entry.units
        return points


# ---------------------------------------------------------------------------
# Metrics Types
# ---------------------------------------------------------------------------


class Metrics(FrozenModel):
    """Return and risk statistics of one timeline.

    Every field is None when the timeline was empty; callers should render
    that as "no data" rather than as a zero return.

    :param cash_in: Total contributed capital.
    :param end_value: Final portfolio value.
    :param pnl: ``end_value - cash_in``.
    :param total_return: ``end_value / cash_in - 1`` as a decimal.
    :param cagr: Compound annual growth rate.
    :param annualized_volatility: Annualized standard deviation of daily returns.
    :param sharpe: ``cagr / annualized_volatility`` with a zero risk-free rate.
    :param max_drawdown: Deepest peak-relative decline, ``<= 0``.
    """

    cash_in: float | None = None
    end_value: float | None = None
    pnl: float | None = None
    total_return: float | None = None
    cagr: float | None = None
    annualized_volatility: float | None = None
    sharpe: float | None = None
    max_drawdown: float | None = None

    @property
    def is_empty(self) -> bool:
        return self.total_return is None


class DrawdownPoint(FrozenModel):
    """Peak-relative drawdown of a value series on one date.

    :param date: Trading day.
    :param value: Drawdown fraction, ``<= 0``.
    """

    date: dt.date
    value: float


# ---------------------------------------------------------------------------
# Stage Types
# ---------------------------------------------------------------------------


class Stage(FrozenModel):
    """Calendar-aligned sub-interval of a backtest window.

    :param start: First day of the stage (inclusive).
    :param end: Last day of the stage (inclusive).
    :param label: ``YYYY``, ``YYYY-Qn`` or ``YYYY-MM``.
    """

    start: dt.date
    end: dt.date
    label: str


class StageReturns(FrozenModel):
    """Per-stage total return of each strategy.

    :param labels: Stage labels in order.
    :param stages: Stages the returns were computed for.
    :param dca: DCA total return per stage.
    :param lump_sum: Lump-sum total return per stage.
    :param dip_buy: Dip-buy total return per stage.
    :param trend_dca: Trend-DCA total return per stage.
    """

    labels: list[str] = Field(default_factory=list)
    stages: list[Stage] = Field(default_factory=list)
    dca: list[float] = Field(default_factory=list)
    lump_sum: list[float] = Field(default_factory=list)
    dip_buy: list[float] = Field(default_factory=list)
    trend_dca: list[float] = Field(default_factory=list)

    def by_strategy(self) -> dict[StrategyName, list[float]]:
        """Return series keyed by strategy."""
        return {
            StrategyName.DCA: self.dca,
            StrategyName.LUMP_SUM: self.lump_sum,
            StrategyName.DIP_BUY: self.dip_buy,
            StrategyName.TREND_DCA: self.trend_dca,
        }


# ---------------------------------------------------------------------------
# Exports
# ---------------------------------------------------------------------------

__all__ = [
    # Base models
    "FrozenModel",
    # Enumerations
    "Frequency",
    "Granularity",
    "StrategyName",
    # Dates
    "parse_date",
    "ordered_range",
    # Market data
    "PricePoint",
    "PriceSeries",
    # Simulation
    "TimelineEntry",
    "Summary",
    "SimulationResult",
    # Metrics
    "Metrics",
    "DrawdownPoint",
    # Stages
    "Stage",
    "StageReturns",
]
