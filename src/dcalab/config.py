"""Backtest configuration and its YAML loader.

Example config file (backtest.yaml):

    data:
      source: "csv"
      params:
        file_path: "data/btc-price.csv"
        date_col: "date"
        price_col: "price"
    window:
      start: "2018-01-01"  # Optional, defaults to the first price date
      end: "2024-12-31"    # Optional, defaults to the last price date
    contribution:
      amount: 100
      frequency: "weekly"
    strategies:
      dip_pct: 0.2
      ma_window: 200
    stages:
      granularity: "year"
      parallel: false
    logging:
      level: "INFO"

Numeric settings that are missing or invalid fall back to their documented
default with a warning. Structural problems (missing file, bad YAML, dates
that cannot be parsed) raise :class:`ConfigError`.
"""

from __future__ import annotations

import logging
import math
from datetime import date
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field

from dcalab.exceptions import ConfigError
from dcalab.strategies import DEFAULT_DIP_PCT, DEFAULT_MA_WINDOW
from dcalab.types import (
    FrozenModel,
    Frequency,
    Granularity,
    PriceSeries,
    ordered_range,
    parse_date,
)

logger = logging.getLogger(__name__)

DEFAULT_AMOUNT = 0.0
DEFAULT_FREQUENCY = Frequency.WEEKLY
DEFAULT_GRANULARITY = Granularity.YEAR

# Valid log levels
VALID_LOG_LEVELS = frozenset(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])

# Valid price sources
VALID_SOURCES = frozenset(["csv", "yahoo"])


class BacktestConfig(FrozenModel):
    """Settings for one backtest comparison.

    :param start: Window start, or None for the first price date.
    :param end: Window end, or None for the last price date.
    :param amount: Contribution per scheduled day.
    :param frequency: Contribution frequency.
    :param dip_pct: Drawdown threshold for dip buy, as a fraction.
    :param ma_window: Moving-average window for trend DCA, in trading days.
    :param granularity: Stage calendar unit.
    :param parallel: Whether to evaluate independent simulations in a process pool.
    :param log_level: Logging level for the CLI.
    :param data_source: Price source type ("csv" or "yahoo"), if configured.
    :param source_params: Source-specific parameters.
    """

    start: date | None = None
    end: date | None = None
    amount: float = DEFAULT_AMOUNT
    frequency: Frequency = DEFAULT_FREQUENCY
    dip_pct: float = DEFAULT_DIP_PCT
    ma_window: int = DEFAULT_MA_WINDOW
    granularity: Granularity = DEFAULT_GRANULARITY
    parallel: bool = False
    log_level: str = "INFO"
    data_source: str | None = None
    source_params: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_mapping(cls, raw: dict[str, Any]) -> BacktestConfig:
        """Build a config from flat keys, substituting defaults for bad values.

        Recognised keys: ``start``, ``end``, ``amount``, ``frequency``,
        ``dip_pct``, ``ma_window``, ``granularity``, ``parallel``,
        ``log_level``, ``data_source``, ``source_params``.

        :param raw: Mapping of setting name to raw value.
        :returns: Validated BacktestConfig.
        :raises ConfigError: If a date cannot be parsed or a non-numeric
            setting has the wrong type.
        """
        parallel = raw.get("parallel", False)
        if not isinstance(parallel, bool):
            raise ConfigError("'parallel' must be a boolean")

        log_level = str(raw.get("log_level") or "INFO").upper()
        if log_level not in VALID_LOG_LEVELS:
            raise ConfigError(
                f"Invalid log level '{log_level}'. "
                f"Valid options: {sorted(VALID_LOG_LEVELS)}"
            )

        data_source = raw.get("data_source")
        if data_source is not None:
            data_source = str(data_source).lower()
            if data_source not in VALID_SOURCES:
                raise ConfigError(
                    f"Invalid data source '{data_source}'. "
                    f"Valid options: {sorted(VALID_SOURCES)}"
                )

        source_params = raw.get("source_params") or {}
        if not isinstance(source_params, dict):
            raise ConfigError("'source_params' must be a mapping")

        return cls(
            start=_optional_date(raw.get("start"), "start"),
            end=_optional_date(raw.get("end"), "end"),
            amount=_amount(raw.get("amount")),
            frequency=_choice(raw.get("frequency"), Frequency, DEFAULT_FREQUENCY, "frequency"),
            dip_pct=_dip_pct(raw.get("dip_pct")),
            ma_window=_ma_window(raw.get("ma_window")),
            granularity=_choice(
                raw.get("granularity"), Granularity, DEFAULT_GRANULARITY, "granularity"
            ),
            parallel=parallel,
            log_level=log_level,
            data_source=data_source,
            source_params=source_params,
        )

    def resolve_range(self, series: PriceSeries) -> tuple[date, date] | None:
        """Concrete ``(start, end)`` window for a series.

        Missing bounds default to the series' first and last dates; an
        inverted range is swapped.

        :param series: Series the window applies to.
        :returns: Window, or None if a bound is missing and the series is empty.
        """
        start = self.start
        end = self.end
        if start is None or end is None:
            if series.is_empty:
                return None
            start = start or series[0].date
            end = end or series[-1].date
        return ordered_range(start, end)


def _optional_date(value: Any, name: str) -> date | None:
    if value is None or value == "":
        return None
    try:
        return parse_date(value)
    except ValueError as e:
        raise ConfigError(f"Invalid date for '{name}': {value}") from e


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _amount(value: Any) -> float:
    if value is None:
        return DEFAULT_AMOUNT
    if isinstance(value, str):
        try:
            value = float(value)
        except ValueError:
            pass
    if _is_number(value) and math.isfinite(value):
        return float(value)
    logger.warning("Invalid amount %r; using %s", value, DEFAULT_AMOUNT)
    return DEFAULT_AMOUNT


def _dip_pct(value: Any) -> float:
    if value is None:
        return DEFAULT_DIP_PCT
    if _is_number(value) and 0 < value <= 1:
        return float(value)
    logger.warning("Invalid dip_pct %r; using %s", value, DEFAULT_DIP_PCT)
    return DEFAULT_DIP_PCT


def _ma_window(value: Any) -> int:
    if value is None:
        return DEFAULT_MA_WINDOW
    if _is_number(value) and value > 0 and float(value).is_integer():
        return int(value)
    logger.warning("Invalid ma_window %r; using %s", value, DEFAULT_MA_WINDOW)
    return DEFAULT_MA_WINDOW


def _choice(value: Any, enum: type, default: Any, name: str) -> Any:
    if value is None:
        return default
    if isinstance(value, enum):
        return value
    try:
        return enum(str(value).lower())
    except ValueError:
        logger.warning("Invalid %s %r; using %s", name, value, default.value)
        return default


def _section(raw_config: dict[str, Any], name: str) -> dict[str, Any]:
    section = raw_config.get(name, {})
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigError(f"'{name}' must be a mapping")
    return section


def load_backtest_config(config_path: str | Path) -> BacktestConfig:
    """Parse a backtest configuration file.

    :param config_path: Path to YAML configuration file.
    :returns: BacktestConfig.
    :raises ConfigError: If the file cannot be read or is structurally invalid.
    """
    config_path = Path(config_path)

    try:
        with open(config_path) as f:
            raw_config = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"Configuration file not found: {config_path}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in configuration file: {e}") from e

    if raw_config is None:
        raw_config = {}
    if not isinstance(raw_config, dict):
        raise ConfigError("Configuration must be a YAML mapping")

    data = _section(raw_config, "data")
    window = _section(raw_config, "window")
    contribution = _section(raw_config, "contribution")
    strategies = _section(raw_config, "strategies")
    stages = _section(raw_config, "stages")
    raw_logging = _section(raw_config, "logging")

    return BacktestConfig.from_mapping(
        {
            "start": window.get("start"),
            "end": window.get("end"),
            "amount": contribution.get("amount"),
            "frequency": contribution.get("frequency"),
            "dip_pct": strategies.get("dip_pct"),
            "ma_window": strategies.get("ma_window"),
            "granularity": stages.get("granularity"),
            "parallel": stages.get("parallel", False),
            "log_level": raw_logging.get("level"),
            "data_source": data.get("source"),
            "source_params": data.get("params"),
        }
    )


__all__ = [
    "DEFAULT_AMOUNT",
    "DEFAULT_FREQUENCY",
    "DEFAULT_GRANULARITY",
    "VALID_LOG_LEVELS",
    "VALID_SOURCES",
    "BacktestConfig",
    "load_backtest_config",
]
