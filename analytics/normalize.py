"""Canonicalise raw ledger rows before merchant matching."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

import pandas as pd

from core.formatting import to_cents
from core.logging_setup import get_logger
from core.models import NormalizedTransaction

__all__ = [
    "NORMALIZED_COLUMNS",
    "normalize_transactions",
    "to_normalized_records",
]

NORMALIZED_COLUMNS = ["seq", "description", "amount", "date", "norm_amount", "upper_description"]

logger = get_logger("cashflow.normalize")


def _safe_decimal(value: object) -> Decimal | None:
    if value is None:
        return None
    try:
        if pd.isna(value):  # type: ignore[arg-type]
            return None
    except (TypeError, ValueError):
        pass
    try:
        decimal_value = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    return decimal_value if decimal_value.is_finite() else None


def normalize_transactions(transactions: pd.DataFrame) -> pd.DataFrame:
    """Return one normalised row per usable raw transaction.

    Parameters
    ----------
    transactions:
        Frame with ``description``, ``amount`` and ``date`` columns.

    Returns
    -------
    pandas.DataFrame
        Columns from :data:`NORMALIZED_COLUMNS`. ``seq`` preserves the input
        order so later stages can break date ties stably. Rows with an empty
        description, an unreadable amount or an unreadable date are dropped.
    """

    if transactions.empty:
        return pd.DataFrame(columns=NORMALIZED_COLUMNS)

    frame = transactions.loc[:, ["description", "amount", "date"]].copy()
    frame["seq"] = range(len(frame))

    description = frame["description"].where(frame["description"].notna(), "")
    frame["description"] = description.astype(str)
    frame = frame[frame["description"].str.strip() != ""].copy()

    frame["amount"] = frame["amount"].astype(object).map(_safe_decimal)
    frame["date"] = pd.to_datetime(frame["date"], errors="coerce", format="mixed").dt.normalize()
    usable = frame["amount"].notna() & frame["date"].notna()

    dropped = len(transactions) - int(usable.sum())
    if dropped:
        logger.debug("Dropped %d unusable transaction rows", dropped)

    frame = frame[usable].copy()
    frame["norm_amount"] = frame["amount"].map(to_cents)
    frame["upper_description"] = frame["description"].str.upper()
    return frame.loc[:, NORMALIZED_COLUMNS].reset_index(drop=True)


def to_normalized_records(frame: pd.DataFrame) -> list[NormalizedTransaction]:
    return [
        NormalizedTransaction(
            norm_amount=row["norm_amount"],
            upper_description=row["upper_description"],
            description=row["description"],
            amount=row["amount"],
            date=pd.Timestamp(row["date"]).date(),
        )
        for row in frame.to_dict(orient="records")
    ]
