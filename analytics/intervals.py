"""Consecutive-gap statistics for merchant clusters."""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable

import numpy as np
import pandas as pd

from config.settings import DetectionPolicy
from core.formatting import to_cents
from core.logging_setup import get_logger

__all__ = [
    "CLUSTER_KEYS",
    "STATS_COLUMNS",
    "compute_interval_stats",
    "filter_interval_stats",
]

CLUSTER_KEYS = ["merchant_key", "norm_amount"]
STATS_COLUMNS = [
    "merchant_key",
    "norm_amount",
    "description",
    "avg_amount",
    "gap_count",
    "occurrence_count",
    "avg_interval_days",
    "stddev_interval_days",
    "last_date",
]

logger = get_logger("cashflow.intervals")


def _mean_amount(amounts: Iterable[Decimal]) -> Decimal:
    values = list(amounts)
    return to_cents(sum(values, Decimal("0")) / len(values))


def _population_std(gaps: pd.Series) -> float:
    values = gaps.dropna().to_numpy(dtype=float)
    if values.size == 0:
        return float("nan")
    return float(np.std(values, ddof=0))


def compute_interval_stats(keyed: pd.DataFrame) -> pd.DataFrame:
    """Return one row of gap statistics per ``(merchant_key, norm_amount)`` cluster.

    Members are ordered by date (input order breaks ties) and each gap is the
    day count back to the immediate predecessor. Same-day repeats contribute a
    zero-day gap rather than being collapsed. ``occurrence_count`` is the gap
    count plus one, and single-member clusters report NaN statistics.
    """

    if keyed.empty:
        return pd.DataFrame(columns=STATS_COLUMNS)

    ordered = keyed.sort_values(["date", "seq"], kind="mergesort").copy()
    ordered["gap_days"] = ordered.groupby(CLUSTER_KEYS, sort=False)["date"].diff().dt.days

    grouped = ordered.groupby(CLUSTER_KEYS, sort=False)
    stats = grouped.agg(
        description=("description", "last"),
        avg_amount=("amount", _mean_amount),
        gap_count=("gap_days", "count"),
        avg_interval_days=("gap_days", "mean"),
        stddev_interval_days=("gap_days", _population_std),
        last_date=("date", "max"),
    ).reset_index()

    stats["gap_count"] = stats["gap_count"].astype(int)
    stats["occurrence_count"] = stats["gap_count"] + 1
    stats["avg_interval_days"] = stats["avg_interval_days"].astype(float)
    stats["stddev_interval_days"] = stats["stddev_interval_days"].astype(float)
    return stats.loc[:, STATS_COLUMNS]


def filter_interval_stats(stats: pd.DataFrame, policy: DetectionPolicy) -> pd.DataFrame:
    """Keep clusters that repeat often enough at a plausible, steady cadence."""

    if stats.empty:
        return stats.copy()

    avg = stats["avg_interval_days"]
    mask = (
        (stats["gap_count"] >= 1)
        & avg.notna()
        & (stats["occurrence_count"] >= policy.min_occurrences)
        & (avg >= policy.min_interval_days)
        & (avg <= policy.max_interval_days)
    )
    if policy.consistency_filter:
        mask &= stats["stddev_interval_days"] < 0.5 * avg

    kept = stats[mask].reset_index(drop=True)
    logger.debug("Kept %d of %d clusters after interval filtering", len(kept), len(stats))
    return kept
