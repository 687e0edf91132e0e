"""Day-by-day balance projection from recurring patterns."""

from __future__ import annotations

from collections import defaultdict
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Sequence

from core.formatting import to_cents
from core.logging_setup import get_logger
from core.models import (
    Occurrence,
    ProjectedOccurrence,
    ProjectionDay,
    ProjectionSummary,
    RecurringPattern,
)

__all__ = [
    "DAYS_PER_MONTH",
    "project_balance",
    "monthly_rate",
    "summarise_projection",
    "upcoming_occurrences",
]

DAYS_PER_MONTH = 30

logger = get_logger("cashflow.forecasting")


def _schedule_occurrences(
    patterns: Iterable[RecurringPattern],
    today: date,
    end: date,
) -> dict[date, list[Occurrence]]:
    schedule: dict[date, list[Occurrence]] = defaultdict(list)
    for pattern in patterns:
        if pattern.is_hidden:
            continue
        step = timedelta(days=max(pattern.interval_days, 1))
        occurrence_date = pattern.next_date
        while occurrence_date <= end:
            if occurrence_date >= today:
                schedule[occurrence_date].append(Occurrence(pattern.description, pattern.avg_amount))
            occurrence_date += step
    return schedule


def project_balance(
    starting_balance: Decimal,
    patterns: Iterable[RecurringPattern],
    *,
    today: date,
    horizon_days: int,
    danger_threshold: Decimal = Decimal("0"),
) -> list[ProjectionDay]:
    """Simulate the account balance from ``today`` through ``today + horizon_days``.

    Each visible pattern lands on ``next_date`` and every ``interval_days``
    after it. A day's occurrences are summed, added to the running balance and
    rounded to cents before the day is recorded, so day 0 already reflects
    anything due today. Hidden patterns are skipped. The result always holds
    ``horizon_days + 1`` days.
    """

    if horizon_days < 0:
        raise ValueError("horizon_days must not be negative")

    end = today + timedelta(days=horizon_days)
    threshold = to_cents(danger_threshold)
    schedule = _schedule_occurrences(patterns, today, end)

    balance = to_cents(starting_balance)
    days: list[ProjectionDay] = []
    for offset in range(horizon_days + 1):
        current = today + timedelta(days=offset)
        occurring = schedule.get(current, [])
        if occurring:
            balance = to_cents(balance + sum((item.amount for item in occurring), Decimal("0")))
        days.append(
            ProjectionDay(
                date=current,
                balance=balance,
                occurring=tuple(occurring),
                below_threshold=balance < threshold,
            )
        )

    logger.debug(
        "Projected %d days with %d occurrences",
        len(days),
        sum(len(day.occurring) for day in days),
    )
    return days


def monthly_rate(pattern: RecurringPattern) -> Decimal:
    """Return the pattern's amount scaled to a 30-day month (unrounded)."""

    return pattern.avg_amount * DAYS_PER_MONTH / max(pattern.interval_days, 1)


def summarise_projection(
    starting_balance: Decimal,
    projection: Sequence[ProjectionDay],
    patterns: Iterable[RecurringPattern],
) -> ProjectionSummary:
    """Return headline figures for a projection run.

    Monthly income and expenses cover visible patterns only and are summed
    separately by sign; expenses stay negative so the net is their sum.
    """

    start = to_cents(starting_balance)

    income = Decimal("0")
    expenses = Decimal("0")
    for pattern in patterns:
        if pattern.is_hidden:
            continue
        rate = monthly_rate(pattern)
        if rate > 0:
            income += rate
        else:
            expenses += rate
    monthly_income = to_cents(income)
    monthly_expenses = to_cents(expenses)

    if not projection:
        return ProjectionSummary(
            starting_balance=start,
            ending_balance=start,
            lowest_balance=start,
            lowest_balance_date=None,
            first_below_threshold=None,
            days_below_threshold=0,
            monthly_income=monthly_income,
            monthly_expenses=monthly_expenses,
            monthly_net=monthly_income + monthly_expenses,
        )

    lowest_day = min(projection, key=lambda day: day.balance)
    below = [day for day in projection if day.below_threshold]
    return ProjectionSummary(
        starting_balance=start,
        ending_balance=projection[-1].balance,
        lowest_balance=lowest_day.balance,
        lowest_balance_date=lowest_day.date,
        first_below_threshold=below[0].date if below else None,
        days_below_threshold=len(below),
        monthly_income=monthly_income,
        monthly_expenses=monthly_expenses,
        monthly_net=monthly_income + monthly_expenses,
    )


def upcoming_occurrences(
    starting_balance: Decimal,
    projection: Sequence[ProjectionDay],
) -> list[ProjectedOccurrence]:
    """Flatten a projection into individual upcoming transactions in date order."""

    balance = to_cents(starting_balance)
    upcoming: list[ProjectedOccurrence] = []
    for day in projection:
        for item in day.occurring:
            balance = to_cents(balance + item.amount)
            upcoming.append(
                ProjectedOccurrence(
                    date=day.date,
                    description=item.description,
                    amount=item.amount,
                    balance_after=balance,
                )
            )
    return upcoming
