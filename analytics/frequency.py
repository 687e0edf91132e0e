"""Frequency classification and next-occurrence prediction."""

from __future__ import annotations

from datetime import date, timedelta

from core.formatting import round_days
from core.models import Frequency

__all__ = ["FREQUENCY_BUCKETS", "classify_frequency", "predict_next_date"]

# Upper bounds (inclusive), checked in order. Anything longer is annual.
FREQUENCY_BUCKETS: tuple[tuple[int, Frequency], ...] = (
    (8, Frequency.WEEKLY),
    (16, Frequency.BIWEEKLY),
    (35, Frequency.MONTHLY),
    (100, Frequency.QUARTERLY),
)


def classify_frequency(interval_days: float) -> Frequency:
    """Map an average interval to its cadence label.

    The interval is rounded to whole days first, so 8.4 is weekly and 8.5 is
    biweekly.
    """

    rounded = round_days(interval_days)
    for upper_bound, frequency in FREQUENCY_BUCKETS:
        if rounded <= upper_bound:
            return frequency
    return Frequency.ANNUAL


def predict_next_date(last_date: date, avg_interval_days: float, today: date) -> date:
    """Return the first occurrence on or after ``today``.

    Steps forward from ``last_date`` in whole-day increments of the rounded
    average interval. The step is clamped to at least one day.
    """

    step = timedelta(days=max(round_days(avg_interval_days), 1))
    next_date = last_date + step
    while next_date < today:
        next_date += step
    return next_date
