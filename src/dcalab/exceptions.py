"""dcalab exception hierarchy.

All package-specific exceptions derive from :class:`DcaLabError` so callers can
catch them uniformly. Note that "no data in range" is not an error anywhere in
the simulation path: it is represented by empty timelines and metrics.
"""

from __future__ import annotations


class DcaLabError(Exception):
    """Base class for dcalab exceptions."""


class ConfigError(DcaLabError):
    """Raised when configuration files or parameters are structurally invalid."""


class DataSourceError(DcaLabError):
    """Raised when a price source cannot be read or parsed as a whole."""


class DataValidationError(DcaLabError):
    """Raised when price data violates series invariants.

    Named DataValidationError to avoid conflict with pydantic's ValidationError.
    """


__all__ = [
    "DcaLabError",
    "ConfigError",
    "DataSourceError",
    "DataValidationError",
]
