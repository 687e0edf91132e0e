"""Fuzzy merchant clustering within same-amount buckets.

Each distinct normalised amount gets one canonical description: the upper-cased
description of its chronologically earliest transaction (input order breaks
date ties). Every other transaction in the bucket takes the canonical
description as its merchant key when the two descriptions score above the
similarity threshold, and keeps its own upper-cased description otherwise.

This is a greedy, single-canonical-per-amount heuristic rather than transitive
clustering. Two distinct merchants with similar names and the same amount will
merge, and a recurring merchant whose name drifted away from the canonical
label splits off under its own description. Transactions that share an
off-canonical description still group together under that description.
"""

from __future__ import annotations

from typing import Callable

import pandas as pd
from rapidfuzz.distance import JaroWinkler

from analytics.normalize import to_normalized_records
from config.settings import DEFAULT_SIMILARITY_THRESHOLD
from core.logging_setup import get_logger
from core.models import MerchantCluster

__all__ = [
    "SimilarityScorer",
    "jaro_winkler_similarity",
    "assign_merchant_keys",
    "build_merchant_clusters",
]

SimilarityScorer = Callable[[str, str], float]

logger = get_logger("cashflow.clustering")


def jaro_winkler_similarity(left: str, right: str) -> float:
    """Return the Jaro-Winkler similarity of two strings in ``[0, 1]``."""

    return float(JaroWinkler.normalized_similarity(left, right))


def assign_merchant_keys(
    normalized: pd.DataFrame,
    *,
    similarity: SimilarityScorer | None = None,
    threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
) -> pd.DataFrame:
    """Return ``normalized`` with ``canonical_description`` and ``merchant_key`` columns.

    Rows come back in their original input order. Exceptions raised by the
    scorer propagate unchanged.
    """

    if normalized.empty:
        return normalized.assign(
            canonical_description=pd.Series(dtype=object),
            merchant_key=pd.Series(dtype=object),
        )

    scorer = similarity or jaro_winkler_similarity
    ordered = normalized.sort_values(["date", "seq"], kind="mergesort")
    canonical = ordered.groupby("norm_amount", sort=False)["upper_description"].transform("first")

    scores: dict[tuple[str, str], float] = {}
    keys: list[str] = []
    for description, canonical_description in zip(ordered["upper_description"], canonical):
        if description == canonical_description:
            keys.append(canonical_description)
            continue
        pair = (description, canonical_description)
        if pair not in scores:
            scores[pair] = float(scorer(description, canonical_description))
        keys.append(canonical_description if scores[pair] > threshold else description)

    keyed = ordered.assign(canonical_description=canonical.to_numpy(), merchant_key=keys)
    keyed = keyed.sort_values("seq", kind="mergesort").reset_index(drop=True)
    logger.debug(
        "Assigned %d merchant keys across %d amount buckets",
        keyed["merchant_key"].nunique(),
        keyed["norm_amount"].nunique(),
    )
    return keyed


def build_merchant_clusters(keyed: pd.DataFrame) -> list[MerchantCluster]:
    """Group keyed rows into clusters sharing ``(merchant_key, norm_amount)``.

    Detection aggregates the keyed frame directly; this record view is for
    inspecting how transactions were grouped.
    """

    if keyed.empty:
        return []

    clusters: list[MerchantCluster] = []
    ordered = keyed.sort_values(["date", "seq"], kind="mergesort")
    for (merchant_key, norm_amount), group_df in ordered.groupby(["merchant_key", "norm_amount"], sort=False):
        clusters.append(
            MerchantCluster(
                merchant_key=str(merchant_key),
                norm_amount=norm_amount,
                members=tuple(to_normalized_records(group_df)),
            )
        )

    clusters.sort(key=lambda cluster: (cluster.merchant_key, cluster.norm_amount))
    return clusters
