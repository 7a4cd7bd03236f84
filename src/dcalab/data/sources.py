"""Price sources that turn historical records into a PriceSeries.

Sources are the only part of dcalab that performs I/O. They drop malformed
records, sort what is left ascending by date, and raise
:class:`DataSourceError` only when the source as a whole cannot be read.
"""

from __future__ import annotations

import csv
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator

from dcalab.exceptions import DataSourceError
from dcalab.types import PriceSeries, parse_date

logger = logging.getLogger(__name__)


class PriceSource(ABC):
    """Abstract base class for price sources."""

    @abstractmethod
    def fetch_series(self) -> PriceSeries:
        """Load the price series.

        :returns: PriceSeries in ascending date order.
        :raises DataSourceError: If the source cannot be read.
        """
        ...


class CSVPriceSource(PriceSource):
    """Price source that reads ``date,price`` rows from a CSV file.

    Rows may be in any order (many exports are newest first). Rows with an
    unparseable date or a missing, non-numeric or non-positive price are
    skipped.

    :param source_params: Required parameters:
        - file_path: Path to the CSV file.
        Optional parameters:
        - date_col: Column name for the date (default: "date")
        - price_col: Column name for the price (default: "price")
        - delimiter: CSV delimiter (default: ",")
        - date_format: strptime format for dates (default: ISO format)
    """

    def __init__(self, source_params: dict[str, Any] | None = None) -> None:
        """Initialize CSV price source.

        :param source_params: Configuration with file_path and optional column names.
        :raises DataSourceError: If file_path is not provided.
        """
        self.params = source_params or {}
        self.file_path = self.params.get("file_path")
        if not self.file_path:
            raise DataSourceError("CSVPriceSource requires 'file_path' in source_params")

        self.date_col = self.params.get("date_col", "date")
        self.price_col = self.params.get("price_col", "price")
        self.delimiter = self.params.get("delimiter", ",")
        self.date_format = self.params.get("date_format")

    def _parse_date(self, text: str) -> Any:
        if self.date_format:
            return datetime.strptime(text.strip(), self.date_format).date()
        return parse_date(text)

    def _records(self, reader: csv.DictReader) -> Iterator[tuple[Any, Any]]:
        for row in reader:
            raw_date = (row.get(self.date_col) or "").strip()
            raw_price = (row.get(self.price_col) or "").strip().replace(",", "")
            try:
                day = self._parse_date(raw_date)
            except ValueError:
                # counted as malformed by PriceSeries.from_records
                day = None
            yield day, raw_price

    def fetch_series(self) -> PriceSeries:
        """Read the CSV file into a series.

        :returns: PriceSeries sorted ascending by date.
        :raises DataSourceError: If the file is missing, unreadable, or lacks
            the date/price columns.
        """
        path = Path(self.file_path)
        if not path.exists():
            raise DataSourceError(f"CSV file not found: {self.file_path}")

        try:
            with open(path, newline="", encoding="utf-8-sig") as f:
                reader = csv.DictReader(f, delimiter=self.delimiter)
                header = reader.fieldnames or []
                missing = [c for c in (self.date_col, self.price_col) if c not in header]
                if missing:
                    raise DataSourceError(
                        f"CSV file {self.file_path} is missing columns: {missing}"
                    )
                series = PriceSeries.from_records(self._records(reader))
        except UnicodeDecodeError as e:
            raise DataSourceError(f"CSV file is not valid UTF-8: {e}") from e
        except csv.Error as e:
            raise DataSourceError(f"CSV parsing error: {e}") from e
        except OSError as e:
            raise DataSourceError(f"Failed to read CSV file: {e}") from e

        logger.info("Loaded %d price points from %s", len(series), path)
        return series


class YahooPriceSource(PriceSource):
    """Price source that downloads daily closes from Yahoo Finance via yfinance.

    :param source_params: Required parameters:
        - symbol: Ticker to download (e.g. "BTC-USD").
        Optional parameters:
        - start: First date to request (default: full history)
        - end: Last date to request (default: today)
        - timeout: Request timeout in seconds (default: 30)
    """

    def __init__(self, source_params: dict[str, Any] | None = None) -> None:
        """Initialize Yahoo price source.

        :param source_params: Configuration with symbol.
        :raises DataSourceError: If symbol is not provided.
        """
        self.params = source_params or {}
        self.symbol = self.params.get("symbol")
        if not self.symbol:
            raise DataSourceError("YahooPriceSource requires 'symbol' in source_params")
        self.start = self.params.get("start")
        self.end = self.params.get("end")
        self.timeout = self.params.get("timeout", 30)

    def fetch_series(self) -> PriceSeries:
        """Download daily closes.

        :returns: PriceSeries sorted ascending by date.
        :raises DataSourceError: If yfinance is missing or the download fails.
        """
        try:
            import yfinance as yf
        except ImportError as e:
            raise DataSourceError(
                "yfinance is not installed. Install it with: pip install dcalab[yahoo]"
            ) from e

        history_args: dict[str, Any] = {"interval": "1d", "timeout": self.timeout}
        if self.start is not None:
            history_args["start"] = parse_date(self.start).isoformat()
        else:
            history_args["period"] = "max"
        if self.end is not None:
            history_args["end"] = parse_date(self.end).isoformat()

        try:
            df = yf.Ticker(str(self.symbol)).history(**history_args)
        except Exception as e:
            raise DataSourceError(
                f"Failed to fetch data for symbol '{self.symbol}': {e}"
            ) from e

        if df.empty:
            raise DataSourceError(f"No price data returned for symbol '{self.symbol}'")

        series = PriceSeries.from_records(
            (timestamp.to_pydatetime().date(), row["Close"])
            for timestamp, row in df.iterrows()
        )
        logger.info("Fetched %d price points for %s", len(series), self.symbol)
        return series


def resolve_price_source(
    source_type: str,
    source_params: dict[str, Any] | None = None,
) -> PriceSource:
    """Construct a price source by type name.

    :param source_type: "csv" or "yahoo".
    :param source_params: Source-specific parameters.
    :returns: PriceSource instance.
    :raises DataSourceError: If the source type is unrecognized.
    """
    kind = source_type.lower()

    if kind == "csv":
        return CSVPriceSource(source_params)
    elif kind == "yahoo":
        return YahooPriceSource(source_params)
    else:
        raise DataSourceError(
            f"Unrecognized price source type: '{source_type}'. "
            f"Supported types: csv, yahoo"
        )
