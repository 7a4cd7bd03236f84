"""Contribution schedules.

A schedule is the ordered list of price-series positions on which one fixed
contribution is made. It is derived from a calendar cursor that advances by
the frequency's step; each tick resolves to the first trading day on or after
it.
"""

from __future__ import annotations

from datetime import date, timedelta

from dcalab.types import Frequency, PriceSeries, ordered_range


def build_schedule(
    series: PriceSeries,
    start: date,
    end: date,
    frequency: Frequency | str,
) -> list[int]:
    """Map a date range and frequency to contribution positions.

    Ticks that fall inside the same data gap resolve to the same trading day;
    only the first of them is kept, so the result is strictly ascending.

    :param series: Price series to schedule against.
    :param start: First calendar day eligible for a contribution.
    :param end: Last calendar day eligible for a contribution.
    :param frequency: Contribution frequency.
    :returns: Strictly increasing positions within ``[0, len(series))``.
    """
    start, end = ordered_range(start, end)
    step = timedelta(days=Frequency(frequency).step_days)

    i_start = series.first_index_on_or_after(start)
    if i_start is None:
        return []

    dates = series.dates
    end_date = min(end, dates[-1])
    schedule: list[int] = []
    cursor = dates[i_start]
    j = i_start

    while cursor <= end_date:
        # cursor only moves forward, so the scan resumes from the last match
        while j < len(dates) and dates[j] < cursor:
            j += 1
        if j < len(dates) and dates[j] <= end_date:
            if not schedule or j > schedule[-1]:
                schedule.append(j)
        cursor += step

    return schedule


__all__ = ["build_schedule"]
