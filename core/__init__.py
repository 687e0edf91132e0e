"""Core domain package for the cash-flow forecaster.

``core.cashflow_service`` is imported directly by hosts; it depends on
``config`` and ``analytics``, which in turn import from this package.
"""

from .data_loader import coerce_transactions, current_balance, load_balances, load_transactions
from .exclusions import ExclusionStore, ExclusionStoreError, InMemoryExclusionStore, JsonExclusionStore
from .models import (
    CashflowReport,
    Frequency,
    MerchantCluster,
    NormalizedTransaction,
    Occurrence,
    ProjectedOccurrence,
    ProjectionDay,
    ProjectionSummary,
    RecurringPattern,
)

__all__ = [
    "CashflowReport",
    "Frequency",
    "MerchantCluster",
    "NormalizedTransaction",
    "Occurrence",
    "ProjectedOccurrence",
    "ProjectionDay",
    "ProjectionSummary",
    "RecurringPattern",
    "ExclusionStore",
    "ExclusionStoreError",
    "InMemoryExclusionStore",
    "JsonExclusionStore",
    "coerce_transactions",
    "current_balance",
    "load_balances",
    "load_transactions",
]
