"""Tests for the deploy rules."""

from datetime import date, timedelta

import pytest

from dcalab.strategies import (
    DEFAULT_DIP_PCT,
    DEFAULT_MA_WINDOW,
    AlwaysOnSchedule,
    DeployRule,
    ThresholdDrawdown,
    TrendFollowing,
)
from dcalab.types import PricePoint, PriceSeries


def make_series(prices: list[float]) -> PriceSeries:
    """Create a daily series from a list of prices."""
    start = date(2024, 1, 1)
    return PriceSeries(
        points=tuple(
            PricePoint(date=start + timedelta(days=i), price=p)
            for i, p in enumerate(prices)
        )
    )


class TestDeployRule:
    """Tests for the DeployRule base class."""

    def test_is_abstract(self) -> None:
        """DeployRule cannot be instantiated directly."""
        with pytest.raises(TypeError, match="abstract"):
            DeployRule()  # type: ignore[abstract]

    def test_subclass_requires_should_deploy(self) -> None:
        """Subclasses must implement should_deploy."""

        class IncompleteRule(DeployRule):
            pass

        with pytest.raises(TypeError, match="abstract"):
            IncompleteRule()  # type: ignore[abstract]

    def test_on_start_records_series(self) -> None:
        """on_start keeps a reference to the series."""

        class BuyOnMondays(DeployRule):
            def should_deploy(self, index: int, price: float) -> bool:
                assert self.series is not None
                return self.series[index].date.weekday() == 0

        series = make_series([1.0, 2.0])  # 2024-01-01 is a Monday
        rule = BuyOnMondays()
        rule.on_start(series)

        assert rule.series is series
        assert rule.should_deploy(0, 1.0)
        assert not rule.should_deploy(1, 2.0)
        assert rule.indicator(0) is None


class TestAlwaysOnSchedule:
    """Tests for AlwaysOnSchedule."""

    def test_always_deploys(self) -> None:
        """Every day is a deploy day."""
        rule = AlwaysOnSchedule()
        rule.on_start(make_series([1.0, 2.0, 3.0]))

        assert all(rule.should_deploy(i, p) for i, p in enumerate([1.0, 2.0, 3.0]))

    def test_does_not_report_cash(self) -> None:
        """Cash never sits idle so it is not reported."""
        assert AlwaysOnSchedule.holds_cash is False


class TestThresholdDrawdown:
    """Tests for ThresholdDrawdown."""

    def test_default_threshold(self) -> None:
        """Defaults to a 20% dip."""
        assert ThresholdDrawdown().dip_pct == DEFAULT_DIP_PCT == 0.20

    def test_triggers_at_threshold(self) -> None:
        """Deploys once drawdown from the running peak reaches dip_pct."""
        prices = [100.0, 90.0, 75.0, 80.0, 81.0]
        rule = ThresholdDrawdown(0.2)
        rule.on_start(make_series(prices))

        decisions = [rule.should_deploy(i, p) for i, p in enumerate(prices)]

        assert decisions == [False, False, True, True, False]

    def test_peak_tracks_new_highs(self) -> None:
        """A new high raises the reference peak."""
        prices = [100.0, 200.0, 170.0, 160.0]
        rule = ThresholdDrawdown(0.2)
        rule.on_start(make_series(prices))

        decisions = [rule.should_deploy(i, p) for i, p in enumerate(prices)]

        assert decisions == [False, False, False, True]
        assert rule.peak == 200.0

    def test_on_start_resets_peak(self) -> None:
        """A reused rule starts each run with no peak."""
        rule = ThresholdDrawdown(0.5)
        rule.on_start(make_series([100.0]))
        rule.should_deploy(0, 100.0)

        rule.on_start(make_series([10.0]))

        assert not rule.should_deploy(0, 10.0)
        assert rule.peak == 10.0


class TestTrendFollowing:
    """Tests for TrendFollowing."""

    def test_default_window(self) -> None:
        """Defaults to a 200 day moving average."""
        assert TrendFollowing().ma_window == DEFAULT_MA_WINDOW == 200

    @pytest.mark.parametrize("ma_window", [0, -3])
    def test_non_positive_window_uses_default(
        self, ma_window: int, caplog: pytest.LogCaptureFixture
    ) -> None:
        """A non-positive window falls back to the default with a warning."""
        rule = TrendFollowing(ma_window)

        assert rule.ma_window == DEFAULT_MA_WINDOW
        assert "Invalid ma_window" in caplog.text

    def test_indicator_none_before_start(self) -> None:
        """No moving average is available before on_start."""
        assert TrendFollowing(3).indicator(0) is None

    def test_indicator_undefined_during_warmup(self) -> None:
        """The first ma_window - 1 days have no moving average."""
        rule = TrendFollowing(3)
        rule.on_start(make_series([10.0, 10.0, 10.0, 20.0]))

        assert rule.indicator(0) is None
        assert rule.indicator(1) is None
        assert rule.indicator(2) == pytest.approx(10.0)
        assert rule.indicator(3) == pytest.approx(40.0 / 3)

    def test_deploys_only_strictly_above_average(self) -> None:
        """Price equal to the average does not trigger."""
        prices = [10.0, 10.0, 10.0, 20.0, 5.0]
        rule = TrendFollowing(3)
        rule.on_start(make_series(prices))

        decisions = [rule.should_deploy(i, p) for i, p in enumerate(prices)]

        assert decisions == [False, False, False, True, False]

    def test_window_longer_than_series_never_deploys(self) -> None:
        """Without a defined average the rule never deploys."""
        prices = [1.0, 2.0, 3.0]
        rule = TrendFollowing(10)
        rule.on_start(make_series(prices))

        assert not any(rule.should_deploy(i, p) for i, p in enumerate(prices))
