"""Price indicators used by the deploy rules."""

from __future__ import annotations

from typing import Sequence

import numpy as np


def sma(prices: Sequence[float] | np.ndarray, window: int) -> np.ndarray:
    """Simple moving average over a trailing window.

    Computed in one pass with a running sum. Position ``i`` averages prices
    ``i - window + 1 .. i``; positions before the window first fills are NaN.

    :param prices: Price samples in chronological order.
    :param window: Number of samples to average (must be positive).
    :returns: Float array of the same length as ``prices``.
    :raises ValueError: If ``window`` is not positive.
    """
    if window <= 0:
        raise ValueError(f"window must be positive, got {window}")

    values = np.asarray(prices, dtype=float)
    out = np.full(values.shape[0], np.nan)
    running = 0.0
    for i, price in enumerate(values):
        running += price
        if i >= window:
            running -= values[i - window]
        if i >= window - 1:
            out[i] = running / window
    return out


__all__ = ["sma"]
