"""dcalab package root."""

from dcalab.exceptions import (
    ConfigError,
    DataSourceError,
    DataValidationError,
    DcaLabError,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "DcaLabError",
    "ConfigError",
    "DataSourceError",
    "DataValidationError",
]
