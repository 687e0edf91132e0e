"""Refresh-cycle orchestration: detection, projection and hide/restore."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import AbstractSet, Callable, Iterable

import pandas as pd

from analytics.clustering import SimilarityScorer
from analytics.forecasting import project_balance, summarise_projection, upcoming_occurrences
from analytics.recurring import DetectionError, detect_recurring_patterns
from config.settings import DetectionPolicy, Settings, get_settings, resolve_horizon_days
from core.data_loader import current_balance, load_balances, load_transactions
from core.exclusions import ExclusionStore, InMemoryExclusionStore, JsonExclusionStore
from core.formatting import format_money, to_cents
from core.logging_setup import configure_logging, get_logger
from core.models import CashflowReport, RecurringPattern

__all__ = [
    "RefreshTicket",
    "build_cashflow_report",
    "CashflowService",
]

TransactionProvider = Callable[[], pd.DataFrame]
BalanceProvider = Callable[[], Decimal]
Clock = Callable[[], date]

logger = get_logger("cashflow.service")


def build_cashflow_report(
    transactions: pd.DataFrame,
    starting_balance: Decimal,
    exclusions: AbstractSet[str],
    *,
    today: date,
    horizon_days: int,
    danger_threshold: Decimal = Decimal("0"),
    policy: DetectionPolicy,
    similarity: SimilarityScorer | None = None,
    generation: int = 0,
) -> CashflowReport:
    """Run detection and projection once for a fixed set of inputs.

    A detection failure yields a report with no patterns and
    ``detection_failed`` set; the projection then shows the balance unchanged.
    """

    start = to_cents(starting_balance)
    threshold = to_cents(danger_threshold)

    patterns: list[RecurringPattern]
    error: str | None = None
    try:
        patterns = detect_recurring_patterns(
            transactions,
            today,
            policy=policy,
            exclusions=exclusions,
            similarity=similarity,
        )
    except DetectionError as exc:
        logger.exception("Recurring detection failed; publishing an empty pattern list")
        patterns = []
        error = str(exc)

    projection = project_balance(
        start,
        patterns,
        today=today,
        horizon_days=horizon_days,
        danger_threshold=threshold,
    )
    summary = summarise_projection(start, projection, patterns)

    return CashflowReport(
        generated_for=today,
        generation=generation,
        horizon_days=horizon_days,
        danger_threshold=threshold,
        patterns=tuple(patterns),
        projection=tuple(projection),
        summary=summary,
        detection_failed=error is not None,
        error=error,
        upcoming=tuple(upcoming_occurrences(start, projection)),
    )


@dataclass(frozen=True, slots=True)
class RefreshTicket:
    """Inputs captured when a refresh cycle starts."""

    generation: int
    today: date
    exclusions: frozenset[str]
    horizon_days: int
    danger_threshold: Decimal


class CashflowService:
    """Holds the collaborators for repeated refresh cycles.

    Each cycle receives a generation number when it starts. A finished cycle
    is published only when no newer cycle has already been published, so a
    slow, stale cycle can never overwrite fresher results. Hiding or
    restoring a merchant writes through the exclusion store and then runs a
    new cycle; published reports are never modified.
    """

    def __init__(
        self,
        transactions: TransactionProvider,
        balance: BalanceProvider,
        exclusions: ExclusionStore,
        *,
        settings: Settings | None = None,
        policy: DetectionPolicy | None = None,
        clock: Clock = date.today,
        similarity: SimilarityScorer | None = None,
    ) -> None:
        self._transactions = transactions
        self._balance = balance
        self._exclusions = exclusions
        self.settings = settings or get_settings()
        self.policy = policy or self.settings.detection_policy
        self._clock = clock
        self._similarity = similarity
        self._horizon_days: int | None = None
        self._generation = 0
        self._published_generation = 0
        self._latest: CashflowReport | None = None

    @classmethod
    def from_csv(
        cls,
        transactions_path: str | Path,
        balances_path: str | Path,
        *,
        accounts: Iterable[str] | None = None,
        settings: Settings | None = None,
        clock: Clock = date.today,
    ) -> CashflowService:
        """Build a service backed by CSV exports and the configured exclusion file.

        This is the host entrypoint, so it also configures package logging at
        ``settings.log_level``.
        """

        resolved = settings or get_settings()
        configure_logging(resolved.log_level)
        selected = list(accounts) if accounts is not None else None
        store: ExclusionStore
        if resolved.exclusions_path is not None:
            store = JsonExclusionStore(resolved.exclusions_path)
        else:
            store = InMemoryExclusionStore()
        return cls(
            lambda: load_transactions(transactions_path),
            lambda: current_balance(load_balances(balances_path), selected),
            store,
            settings=resolved,
            clock=clock,
        )

    @property
    def latest(self) -> CashflowReport | None:
        return self._latest

    @property
    def danger_threshold(self) -> Decimal:
        return self.settings.danger_threshold

    def set_horizon(self, *, days: int | None = None, months: int | None = None) -> CashflowReport:
        """Change the projection horizon and start a fresh cycle."""

        self._horizon_days = resolve_horizon_days(self._clock(), days=days, months=months)
        return self.refresh()

    def begin_refresh(self) -> RefreshTicket:
        """Start a cycle, reading the exclusion set before anything is projected."""

        self._generation += 1
        today = self._clock()
        horizon = self._horizon_days if self._horizon_days is not None else self.settings.resolve_horizon(today)
        return RefreshTicket(
            generation=self._generation,
            today=today,
            exclusions=frozenset(self._exclusions.get()),
            horizon_days=horizon,
            danger_threshold=self.danger_threshold,
        )

    def run(self, ticket: RefreshTicket) -> CashflowReport:
        return build_cashflow_report(
            self._transactions(),
            self._balance(),
            ticket.exclusions,
            today=ticket.today,
            horizon_days=ticket.horizon_days,
            danger_threshold=ticket.danger_threshold,
            policy=self.policy,
            similarity=self._similarity,
            generation=ticket.generation,
        )

    def complete_refresh(self, ticket: RefreshTicket, report: CashflowReport) -> bool:
        """Publish ``report`` unless a newer cycle has already been published."""

        if ticket.generation <= self._published_generation:
            logger.debug(
                "Discarding stale refresh %d (published %d)",
                ticket.generation,
                self._published_generation,
            )
            return False
        self._published_generation = ticket.generation
        self._latest = report
        logger.info(
            "Refresh %d: %d patterns (%d hidden), ending balance %s",
            ticket.generation,
            len(report.patterns),
            len(report.hidden_patterns),
            format_money(report.summary.ending_balance),
        )
        return True

    def refresh(self) -> CashflowReport:
        ticket = self.begin_refresh()
        report = self.run(ticket)
        self.complete_refresh(ticket, report)
        return self._latest or report

    def hide(self, merchant_key: str) -> CashflowReport:
        """Exclude ``merchant_key`` from projections.

        Raises :class:`core.exclusions.ExclusionStoreError` when the write
        fails, in which case the published report is left as it was.
        """

        self._exclusions.add(merchant_key)
        logger.info("Hid recurring merchant %s", merchant_key)
        return self.refresh()

    def unhide(self, merchant_key: str) -> CashflowReport:
        self._exclusions.remove(merchant_key)
        logger.info("Restored recurring merchant %s", merchant_key)
        return self.refresh()
