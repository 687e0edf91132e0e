"""Shared pytest fixtures for the forecaster test suite."""

from __future__ import annotations

import logging
import sys
from datetime import date, timedelta
from decimal import Decimal
from pathlib import Path

import pandas as pd
import pytest
import streamlit as st

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from config.settings import Settings, get_settings  # noqa: E402
from core import logging_setup  # noqa: E402

TODAY = date(2024, 6, 1)


@pytest.fixture(autouse=True)
def clear_streamlit_secrets(monkeypatch):
    """Provide an empty secrets mapping so tests don't rely on Streamlit runtime."""

    monkeypatch.setattr(st, "secrets", {}, raising=False)
    for name in Settings.model_fields:
        monkeypatch.delenv(f"CASHFLOW_{name.upper()}", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def isolate_package_logger(monkeypatch):
    """Undo any ``configure_logging`` call a test triggers."""

    pkg_logger = logging.getLogger("cashflow")
    saved = (list(pkg_logger.handlers), pkg_logger.level, pkg_logger.propagate)
    monkeypatch.setattr(logging_setup, "_CONFIGURED", False)
    yield
    pkg_logger.handlers[:] = saved[0]
    pkg_logger.setLevel(saved[1])
    pkg_logger.propagate = saved[2]


@pytest.fixture()
def today() -> date:
    return TODAY


def _ledger(rows: list[tuple[int, str, str]], today: date = TODAY) -> pd.DataFrame:
    return pd.DataFrame(
        {
            "date": [today - timedelta(days=days_ago) for days_ago, _, _ in rows],
            "description": [description for _, description, _ in rows],
            "amount": [Decimal(amount) for _, _, amount in rows],
        }
    )


@pytest.fixture()
def make_ledger():
    """Return a builder for ledgers given ``(days_ago, description, amount)`` tuples."""

    return _ledger


@pytest.fixture()
def household_ledger() -> pd.DataFrame:
    """Salary, rent and a streaming subscription plus one-off card spend."""

    rows: list[tuple[int, str, str]] = []
    for days_ago in (84, 70, 56, 42, 28, 14):
        rows.append((days_ago, "ACME PAYROLL", "2500.00"))
    for days_ago in (121, 91, 61, 31, 1):
        rows.append((days_ago, "Oakwood Rent", "-1200.00"))
    for days_ago, label in ((95, "Netflix.com"), (65, "NETFLIX.COM"), (35, "netflix.com"), (5, "NETFLIX.COM")):
        rows.append((days_ago, label, "-15.49"))
    rows.extend(
        [
            (3, "TESCO EXPRESS", "-23.17"),
            (9, "PRET A MANGER", "-6.85"),
            (40, "TESCO EXPRESS", "-41.02"),
        ]
    )
    return _ledger(rows)
