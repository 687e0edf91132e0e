"""Recurring income and expense detection."""

from __future__ import annotations

from datetime import date
from typing import AbstractSet

import pandas as pd

from analytics.clustering import SimilarityScorer, assign_merchant_keys
from analytics.frequency import classify_frequency, predict_next_date
from analytics.intervals import compute_interval_stats, filter_interval_stats
from analytics.normalize import normalize_transactions
from config.settings import DASHBOARD_POLICY, DetectionPolicy
from core.logging_setup import get_logger
from core.models import RecurringPattern

__all__ = [
    "DetectionError",
    "detect_recurring_patterns",
    "sort_patterns",
]

logger = get_logger("cashflow.recurring")


class DetectionError(RuntimeError):
    """Raised when recurring-pattern detection cannot complete."""


def detect_recurring_patterns(
    transactions: pd.DataFrame,
    today: date,
    *,
    policy: DetectionPolicy = DASHBOARD_POLICY,
    exclusions: AbstractSet[str] = frozenset(),
    similarity: SimilarityScorer | None = None,
) -> list[RecurringPattern]:
    """Identify recurring transactions and predict when each lands next.

    Parameters
    ----------
    transactions:
        Ledger rows with ``description``, ``amount`` and ``date`` columns.
    today:
        Reference date for next-occurrence prediction.
    policy:
        Occurrence and cadence thresholds. See :data:`config.settings.DASHBOARD_POLICY`
        and :data:`config.settings.SUGGESTION_POLICY`.
    exclusions:
        Merchant keys the user has hidden. Matching patterns are still
        returned, flagged with ``is_hidden``.
    similarity:
        Optional replacement for the default Jaro-Winkler scorer.

    Returns
    -------
    list[RecurringPattern]
        Sorted by next date, then by absolute amount (largest first).

    Raises
    ------
    DetectionError
        When normalisation, clustering or aggregation fails, including a
        source frame that lacks a required column. No partial result is
        returned.
    """

    try:
        normalized = normalize_transactions(transactions)
        if normalized.empty:
            return []
        keyed = assign_merchant_keys(
            normalized,
            similarity=similarity,
            threshold=policy.similarity_threshold,
        )
        stats = filter_interval_stats(compute_interval_stats(keyed), policy)
    except Exception as exc:
        raise DetectionError(f"Recurring detection failed: {exc}") from exc

    patterns: list[RecurringPattern] = []
    for row in stats.to_dict(orient="records"):
        last_date = pd.Timestamp(row["last_date"]).date()
        avg_interval = float(row["avg_interval_days"])
        merchant_key = str(row["merchant_key"])
        patterns.append(
            RecurringPattern(
                merchant_key=merchant_key,
                description=str(row["description"]),
                avg_amount=row["avg_amount"],
                occurrence_count=int(row["occurrence_count"]),
                avg_interval_days=avg_interval,
                stddev_interval_days=float(row["stddev_interval_days"]),
                last_date=last_date,
                next_date=predict_next_date(last_date, avg_interval, today),
                frequency=classify_frequency(avg_interval),
                is_hidden=merchant_key in exclusions,
            )
        )

    logger.debug("Detected %d recurring patterns from %d transactions", len(patterns), len(normalized))
    return sort_patterns(patterns)


def sort_patterns(patterns: list[RecurringPattern]) -> list[RecurringPattern]:
    return sorted(
        patterns,
        key=lambda pattern: (pattern.next_date, -abs(pattern.avg_amount), pattern.merchant_key),
    )
