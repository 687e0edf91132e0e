"""Recurring-pattern detection and balance projection pipeline."""

from analytics.clustering import (
    SimilarityScorer,
    assign_merchant_keys,
    build_merchant_clusters,
    jaro_winkler_similarity,
)
from analytics.forecasting import (
    monthly_rate,
    project_balance,
    summarise_projection,
    upcoming_occurrences,
)
from analytics.frequency import classify_frequency, predict_next_date
from analytics.intervals import compute_interval_stats, filter_interval_stats
from analytics.normalize import normalize_transactions, to_normalized_records
from analytics.recurring import DetectionError, detect_recurring_patterns, sort_patterns

__all__ = [
    "SimilarityScorer",
    "assign_merchant_keys",
    "build_merchant_clusters",
    "jaro_winkler_similarity",
    "monthly_rate",
    "project_balance",
    "summarise_projection",
    "upcoming_occurrences",
    "classify_frequency",
    "predict_next_date",
    "compute_interval_stats",
    "filter_interval_stats",
    "normalize_transactions",
    "to_normalized_records",
    "DetectionError",
    "detect_recurring_patterns",
    "sort_patterns",
]
