"""Price ingestion."""

from dcalab.data.sources import (
    CSVPriceSource,
    PriceSource,
    YahooPriceSource,
    resolve_price_source,
)

__all__ = [
    "PriceSource",
    "CSVPriceSource",
    "YahooPriceSource",
    "resolve_price_source",
]
