"""Synthetic ledger generator for developing and testing the forecaster.

Produces a bank-statement style history mixing fixed-amount recurring
counterparties (salary, rent, subscriptions, insurance) with irregular
card spending, so detection has both signal and noise to work through.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import List, Sequence, Tuple, TypeVar

import numpy as np
import pandas as pd

T = TypeVar("T")

FIELDS: Tuple[str, ...] = ("date", "description", "amount")


@dataclass(frozen=True)
class RecurringProfile:
    """A counterparty that charges or pays a fixed amount on a cadence."""

    description: str
    amount: str
    every_days: int | None = None
    every_months: int | None = None
    # Alternate statement labels the bank sometimes uses for the same payee.
    variants: Tuple[str, ...] = ()


RECURRING_PROFILES: Sequence[RecurringProfile] = (
    RecurringProfile("BACS CREDIT THAMES TECH LTD", "2650.00", every_days=14),
    RecurringProfile("STANDING ORDER RENT OAKWOOD ESTATES", "-1780.00", every_months=1),
    RecurringProfile(
        "DIRECT DEBIT NETFLIX.COM",
        "-10.99",
        every_months=1,
        variants=("DIRECT DEBIT NETFLIX.COM LOS GATOS",),
    ),
    RecurringProfile("DIRECT DEBIT PUREGYM", "-24.99", every_days=7),
    RecurringProfile("DIRECT DEBIT AVIVA HOME INSURANCE", "-96.40", every_months=3),
)

CARD_MERCHANTS: Sequence[Tuple[str, float, float]] = (
    ("TESCO EXPRESS LONDON", 62.0, 18.0),
    ("SAINSBURYS LOCAL", 38.0, 12.0),
    ("TFL TRAVEL CHARGE", 9.0, 4.0),
    ("UBER TRIP HELP.UBER.COM", 17.0, 6.0),
    ("PRET A MANGER", 7.5, 2.0),
)


def generate_synthetic_ledger(
    end_date: date | datetime | str,
    *,
    days: int = 365,
    card_spend_per_week: int = 6,
    seed: int | None = None,
) -> pd.DataFrame:
    """Generate ``days`` of history ending on ``end_date``.

    Recurring profiles are anchored ``days`` before ``end_date`` and stepped
    forward on their cadence. Card spending is random in date and amount.
    """

    if days <= 0:
        raise ValueError("days must be a positive integer")

    rng = np.random.default_rng(seed)
    period_end = _normalize_date(end_date)
    period_start = period_end - timedelta(days=days - 1)

    records: List[dict] = []
    for offset, profile in enumerate(RECURRING_PROFILES):
        anchor = period_start + timedelta(days=offset)
        for index, txn_date in enumerate(_cadence_dates(profile, anchor, period_end)):
            description = profile.description
            if profile.variants and index % 4 == 3:
                description = _rng_choice(profile.variants, rng)
            records.append(
                {
                    "date": txn_date.isoformat(),
                    "description": description,
                    "amount": Decimal(profile.amount),
                }
            )

    all_days = [d.date() for d in pd.date_range(period_start, period_end, freq="D")]
    card_count = max(1, days * card_spend_per_week // 7)
    for _ in range(card_count):
        description, mean, spread = _rng_choice(CARD_MERCHANTS, rng)
        amount = -abs(rng.normal(mean, spread))
        records.append(
            {
                "date": _rng_choice(all_days, rng).isoformat(),
                "description": description,
                "amount": Decimal(f"{amount:.2f}"),
            }
        )

    df = pd.DataFrame.from_records(records, columns=FIELDS)
    df.sort_values("date", inplace=True, kind="mergesort")
    df.reset_index(drop=True, inplace=True)
    return df


def write_ledger_csv(path: str, end_date: date | datetime | str, **kwargs) -> pd.DataFrame:
    """Generate a synthetic ledger and persist it to ``path``.

    Additional keyword arguments are forwarded to
    :func:`generate_synthetic_ledger`.
    """

    df = generate_synthetic_ledger(end_date, **kwargs)
    df.to_csv(path, index=False)
    return df


def _cadence_dates(profile: RecurringProfile, anchor: date, period_end: date) -> List[date]:
    dates: List[date] = []
    step = 0
    while True:
        if profile.every_months is not None:
            txn_date = _add_months(anchor, step * profile.every_months)
        else:
            txn_date = anchor + timedelta(days=step * (profile.every_days or 30))
        if txn_date > period_end:
            return dates
        dates.append(txn_date)
        step += 1


def _normalize_date(value: date | datetime | str) -> date:
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str):
        parsed = datetime.fromisoformat(value)
        return parsed.date()
    raise TypeError(f"Unsupported date value: {value!r}")


def _add_months(anchor: date, months: int) -> date:
    month = anchor.month - 1 + months
    year = anchor.year + month // 12
    month = month % 12 + 1
    day = min(anchor.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def _rng_choice(options: Sequence[T], rng: np.random.Generator) -> T:
    if not options:
        raise ValueError("Cannot choose from an empty sequence")
    idx = int(rng.integers(0, len(options)))
    return options[idx]
