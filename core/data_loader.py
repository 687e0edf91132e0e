"""Data loading utilities for the forecaster's transaction and balance sources."""

from __future__ import annotations

from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Final, Iterable

import pandas as pd

from core.formatting import to_cents
from core.logging_setup import get_logger

__all__ = [
    "TRANSACTION_COLUMNS",
    "load_transactions",
    "coerce_transactions",
    "load_balances",
    "current_balance",
]

TRANSACTION_COLUMNS: Final[list[str]] = ["description", "amount", "date"]

_CACHE_SIZE: Final[int] = 8

logger = get_logger("cashflow.data_loader")


@lru_cache(maxsize=_CACHE_SIZE)
def _read_csv(path: str, modified_ns: int) -> pd.DataFrame:
    return pd.read_csv(path, dtype={"description": "string", "amount": "string"})


def load_transactions(csv_path: str | Path) -> pd.DataFrame:
    """Return the ledger at ``csv_path`` as description/amount/date rows ordered by date.

    Parsed files are cached per modification time, so an edited file is
    re-read on the next refresh while repeated refreshes of an unchanged file
    skip the disk.
    """

    path = Path(csv_path)
    if not path.exists():
        raise FileNotFoundError(f"CSV file not found: {path}")

    raw = _read_csv(str(path), path.stat().st_mtime_ns)
    return coerce_transactions(raw.copy())


def coerce_transactions(frame: pd.DataFrame) -> pd.DataFrame:
    """Select the ledger columns, drop unusable rows and order by date.

    Rows without a description, or whose date or amount cannot be read, are
    dropped. Amounts are returned as :class:`~decimal.Decimal`.
    """

    missing = [column for column in TRANSACTION_COLUMNS if column not in frame.columns]
    if missing:
        raise ValueError(f"Transactions are missing columns: {', '.join(missing)}")

    ledger = frame.loc[:, TRANSACTION_COLUMNS].copy()
    ledger["description"] = ledger["description"].astype("string").str.strip()
    ledger["date"] = pd.to_datetime(ledger["date"], errors="coerce", format="mixed").dt.normalize()
    ledger["amount"] = ledger["amount"].astype(object).map(_parse_amount)

    usable = (
        ledger["description"].fillna("").ne("")
        & ledger["date"].notna()
        & ledger["amount"].notna()
    )
    dropped = len(ledger) - int(usable.sum())
    if dropped:
        logger.debug("Dropped %d malformed ledger rows", dropped)

    ledger = ledger[usable].astype({"description": object})
    return ledger.sort_values("date", kind="mergesort").reset_index(drop=True)


def _parse_amount(value: object) -> Decimal | None:
    if value is None or value is pd.NA:
        return None
    if isinstance(value, float) and value != value:
        return None
    try:
        parsed = Decimal(str(value).strip())
    except ArithmeticError:
        return None
    return parsed if parsed.is_finite() else None


def load_balances(csv_path: str | Path) -> pd.DataFrame:
    """Return account balances with ``account`` and ``balance`` columns."""

    path = Path(csv_path)
    if not path.exists():
        raise FileNotFoundError(f"CSV file not found: {path}")

    balances = pd.read_csv(path, dtype={"account": "string", "balance": "string"})
    missing = [column for column in ("account", "balance") if column not in balances.columns]
    if missing:
        raise ValueError(f"Balances are missing columns: {', '.join(missing)}")
    return balances


def current_balance(balances: pd.DataFrame, accounts: Iterable[str] | None = None) -> Decimal:
    """Sum the balances of the selected accounts, or of every account."""

    selected = balances
    if accounts is not None:
        wanted = set(accounts)
        selected = balances[balances["account"].isin(wanted)]

    total = Decimal("0")
    for value in selected["balance"]:
        amount = _parse_amount(value)
        if amount is not None:
            total += amount
    return to_cents(total)
