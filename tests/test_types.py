"""Tests for core type definitions."""

from datetime import date, datetime, timezone
from unittest.mock import patch

import numpy as np
import pytest
from pydantic import ValidationError

from dcalab.exceptions import DataValidationError
from dcalab.types import (
    Frequency,
    Granularity,
    Metrics,
    PricePoint,
    PriceSeries,
    SimulationResult,
    StageReturns,
    StrategyName,
    Summary,
    TimelineEntry,
    ordered_range,
    parse_date,
)

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


def test_frequency_step_days() -> None:
    """Frequencies map to 1, 7 and 30 calendar days."""
    assert Frequency.DAILY.step_days == 1
    assert Frequency("weekly").step_days == 7
    assert Frequency.MONTHLY.step_days == 30


def test_granularity_values() -> None:
    """Granularity accepts the three calendar units."""
    assert [g.value for g in Granularity] == ["month", "quarter", "year"]


def test_strategy_name_labels() -> None:
    """Every strategy has a display label."""
    assert StrategyName.DCA.label == "DCA"
    assert StrategyName.LUMP_SUM.label == "Lump Sum"
    assert StrategyName.DIP_BUY.label == "Dip Buy"
    assert StrategyName.TREND_DCA.label == "Trend DCA"


# ---------------------------------------------------------------------------
# Date helpers
# ---------------------------------------------------------------------------


def test_parse_date_accepts_common_inputs() -> None:
    """Dates, datetimes and ISO strings all parse to a calendar date."""
    assert parse_date(date(2024, 1, 15)) == date(2024, 1, 15)
    assert parse_date(datetime(2024, 1, 15, 10, tzinfo=timezone.utc)) == date(2024, 1, 15)
    assert parse_date("2024-01-15") == date(2024, 1, 15)
    assert parse_date(" 2024-01-15T10:30:00Z ") == date(2024, 1, 15)


def test_parse_date_rejects_garbage() -> None:
    """Unparseable values raise ValueError."""
    with pytest.raises(ValueError):
        parse_date("not-a-date")
    with pytest.raises(ValueError):
        parse_date(42)


def test_ordered_range_swaps_inverted_bounds() -> None:
    """An inverted range is swapped rather than rejected."""
    a, b = date(2024, 1, 1), date(2024, 2, 1)
    assert ordered_range(a, b) == (a, b)
    assert ordered_range(b, a) == (a, b)


# ---------------------------------------------------------------------------
# PriceSeries
# ---------------------------------------------------------------------------


class TestPricePoint:
    """Tests for PricePoint."""

    def test_requires_positive_price(self) -> None:
        """Zero or negative prices are rejected."""
        with pytest.raises(ValidationError):
            PricePoint(date=date(2024, 1, 1), price=0.0)
        with pytest.raises(ValidationError):
            PricePoint(date=date(2024, 1, 1), price=-5.0)

    def test_is_frozen(self) -> None:
        """Points cannot be mutated after construction."""
        point = PricePoint(date=date(2024, 1, 1), price=10.0)
        with pytest.raises(ValidationError):
            point.price = 11.0  # type: ignore[misc]


class TestPriceSeries:
    """Tests for PriceSeries construction and lookups."""

    def test_rejects_unsorted_points(self) -> None:
        """Points must be strictly ascending by date."""
        points = (
            PricePoint(date=date(2024, 1, 2), price=1.0),
            PricePoint(date=date(2024, 1, 1), price=1.0),
        )
        with pytest.raises(ValidationError):
            PriceSeries(points=points)

    def test_from_points_wraps_validation_error(self) -> None:
        """from_points reports invariant violations as DataValidationError."""
        points = [
            PricePoint(date=date(2024, 1, 1), price=1.0),
            PricePoint(date=date(2024, 1, 1), price=2.0),
        ]
        with pytest.raises(DataValidationError):
            PriceSeries.from_points(points)

    def test_from_records_sorts_and_drops_malformed(self) -> None:
        """Malformed records are dropped and the rest sorted ascending."""
        records = [
            ("2024-01-03", "30"),
            ("garbage", "10"),
            ("2024-01-01", "10"),
            ("2024-01-04", "abc"),
            ("2024-01-05", "-1"),
            ("2024-01-06", "nan"),
            ("2024-01-02", 20),
            (None, 5),
        ]
        series = PriceSeries.from_records(records)

        assert series.dates == [date(2024, 1, 1), date(2024, 1, 2), date(2024, 1, 3)]
        assert series.prices.tolist() == [10.0, 20.0, 30.0]

    def test_from_records_keeps_last_duplicate(self) -> None:
        """A repeated date keeps the last record seen."""
        series = PriceSeries.from_records([("2024-01-01", 1), ("2024-01-01", 2)])

        assert len(series) == 1
        assert series[0].price == 2.0

    def test_from_records_logs_dropped_count(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Dropped records are reported as a warning."""
        PriceSeries.from_records([("2024-01-01", 1), ("bad", 1)])

        assert "Dropped 1 malformed price records" in caplog.text

    def test_from_records_validates_through_from_points(self) -> None:
        """Ingestion builds its series with from_points."""
        with patch.object(
            PriceSeries, "from_points", side_effect=DataValidationError("bad series")
        ) as from_points:
            with pytest.raises(DataValidationError, match="bad series"):
                PriceSeries.from_records([("2024-01-01", 1)])

        assert from_points.call_count == 1

    def test_empty_series(self) -> None:
        """Default series is empty."""
        series = PriceSeries()

        assert series.is_empty
        assert len(series) == 0
        assert series.dates == []
        assert series.first_index_on_or_after(date(2024, 1, 1)) is None

    def test_prices_is_float_array(self) -> None:
        """prices returns a numpy float array."""
        series = PriceSeries.from_records([("2024-01-01", 1), ("2024-01-02", 2)])

        assert isinstance(series.prices, np.ndarray)
        assert series.prices.dtype == float

    def test_first_index_on_or_after(self) -> None:
        """Lookup finds the first sample on or after a date."""
        series = PriceSeries.from_records(
            [("2024-01-01", 1), ("2024-01-03", 2), ("2024-01-05", 3)]
        )

        assert series.first_index_on_or_after(date(2023, 12, 1)) == 0
        assert series.first_index_on_or_after(date(2024, 1, 3)) == 1
        assert series.first_index_on_or_after(date(2024, 1, 4)) == 2
        assert series.first_index_on_or_after(date(2024, 1, 6)) is None
        assert series.first_index_on_or_after(date(2024, 1, 1), lo=2) == 2

    def test_clamp(self) -> None:
        """clamp keeps samples inside the inclusive window."""
        series = PriceSeries.from_records(
            [("2024-01-01", 1), ("2024-01-03", 2), ("2024-01-05", 3)]
        )

        clamped = series.clamp(date(2024, 1, 2), date(2024, 1, 5))
        assert [p.price for p in clamped] == [2.0, 3.0]
        assert series.clamp(date(2024, 1, 5), date(2024, 1, 2)) == clamped


# ---------------------------------------------------------------------------
# Simulation and metrics types
# ---------------------------------------------------------------------------


def _entry(day: int, units: float, value: float) -> TimelineEntry:
    return TimelineEntry(
        date=date(2024, 1, day), price=10.0, cash_in=value, units=units, value=value
    )


def test_summary_from_empty_timeline_is_zero() -> None:
    """An empty timeline summarizes to zeros."""
    assert Summary.from_timeline([]) == Summary(cash_in=0.0, units=0.0, end_value=0.0)


def test_summary_from_timeline_uses_last_entry() -> None:
    """Summary snapshots the last entry."""
    summary = Summary.from_timeline([_entry(1, 1.0, 10.0), _entry(2, 3.0, 30.0)])

    assert summary == Summary(cash_in=30.0, units=3.0, end_value=30.0)


def test_buy_points_are_days_units_increased() -> None:
    """buy_points lists entries where units went up."""
    timeline = [_entry(1, 1.0, 10.0), _entry(2, 1.0, 10.0), _entry(3, 2.0, 20.0)]
    result = SimulationResult(
        strategy=StrategyName.DCA,
        timeline=timeline,
        summary=Summary.from_timeline(timeline),
    )

    assert [e.date.day for e in result.buy_points] == [1, 3]


def test_metrics_default_is_empty() -> None:
    """Default metrics have every field unset."""
    metrics = Metrics()

    assert metrics.is_empty
    assert all(v is None for v in metrics.model_dump().values())
    assert not Metrics(total_return=0.0).is_empty


def test_stage_returns_by_strategy() -> None:
    """by_strategy maps every strategy to its series."""
    returns = StageReturns(
        labels=["2024"], dca=[0.1], lump_sum=[0.2], dip_buy=[0.0], trend_dca=[0.05]
    )

    assert returns.by_strategy() == {
        StrategyName.DCA: [0.1],
        StrategyName.LUMP_SUM: [0.2],
        StrategyName.DIP_BUY: [0.0],
        StrategyName.TREND_DCA: [0.05],
    }
