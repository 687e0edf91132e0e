"""Shared data model definitions for the cash-flow forecaster."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum

from core.formatting import round_days


class Frequency(str, Enum):
    """Discrete cadence assigned to a recurring pattern."""

    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUAL = "annual"


@dataclass(frozen=True, slots=True)
class NormalizedTransaction:
    norm_amount: Decimal
    upper_description: str
    description: str
    amount: Decimal
    date: date


@dataclass(frozen=True, slots=True)
class MerchantCluster:
    """Transactions judged to belong to one counterparty at one amount.

    ``members`` is ordered by date; every member shares ``norm_amount``.
    """

    merchant_key: str
    norm_amount: Decimal
    members: tuple[NormalizedTransaction, ...]


@dataclass(frozen=True, slots=True)
class RecurringPattern:
    merchant_key: str
    description: str
    avg_amount: Decimal
    occurrence_count: int
    avg_interval_days: float
    stddev_interval_days: float
    last_date: date
    next_date: date
    frequency: Frequency
    is_hidden: bool = False

    @property
    def is_income(self) -> bool:
        return self.avg_amount > 0

    @property
    def interval_days(self) -> int:
        """Whole-day step used when advancing occurrences."""

        return round_days(self.avg_interval_days)


@dataclass(frozen=True, slots=True)
class Occurrence:
    description: str
    amount: Decimal


@dataclass(frozen=True, slots=True)
class ProjectionDay:
    date: date
    balance: Decimal
    occurring: tuple[Occurrence, ...]
    below_threshold: bool


@dataclass(frozen=True, slots=True)
class ProjectedOccurrence:
    """A single upcoming recurring transaction with the balance it leaves."""

    date: date
    description: str
    amount: Decimal
    balance_after: Decimal


@dataclass(frozen=True, slots=True)
class ProjectionSummary:
    starting_balance: Decimal
    ending_balance: Decimal
    lowest_balance: Decimal
    lowest_balance_date: date | None
    first_below_threshold: date | None
    days_below_threshold: int
    monthly_income: Decimal
    monthly_expenses: Decimal
    monthly_net: Decimal


@dataclass(frozen=True, slots=True)
class CashflowReport:
    """Everything one refresh cycle produces for the host views."""

    generated_for: date
    generation: int
    horizon_days: int
    danger_threshold: Decimal
    patterns: tuple[RecurringPattern, ...]
    projection: tuple[ProjectionDay, ...]
    summary: ProjectionSummary
    detection_failed: bool = False
    error: str | None = None
    upcoming: tuple[ProjectedOccurrence, ...] = field(default_factory=tuple)

    @property
    def visible_patterns(self) -> list[RecurringPattern]:
        return [pattern for pattern in self.patterns if not pattern.is_hidden]

    @property
    def hidden_patterns(self) -> list[RecurringPattern]:
        return [pattern for pattern in self.patterns if pattern.is_hidden]


__all__ = [
    "Frequency",
    "NormalizedTransaction",
    "MerchantCluster",
    "RecurringPattern",
    "Occurrence",
    "ProjectionDay",
    "ProjectedOccurrence",
    "ProjectionSummary",
    "CashflowReport",
]
