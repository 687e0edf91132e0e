"""Tests for refresh-cycle orchestration and hide/restore behaviour."""

from __future__ import annotations

import io
import logging
from datetime import timedelta
from decimal import Decimal

import pandas as pd
import pytest
import streamlit as st

from config.settings import SUGGESTION_POLICY, Settings, get_settings
from core.cashflow_service import CashflowService, build_cashflow_report
from core.exclusions import ExclusionStoreError, InMemoryExclusionStore, JsonExclusionStore
from core.logging_setup import configure_logging, get_logger


class FailingExclusionStore(InMemoryExclusionStore):
    def add(self, merchant_key: str) -> None:
        raise ExclusionStoreError("disk full")

    def remove(self, merchant_key: str) -> None:
        raise ExclusionStoreError("disk full")


@pytest.fixture()
def service_factory(household_ledger, today):
    def factory(store=None, **kwargs) -> CashflowService:
        return CashflowService(
            lambda: household_ledger,
            lambda: Decimal("1000.00"),
            store if store is not None else InMemoryExclusionStore(),
            settings=Settings(horizon_days=30),
            clock=lambda: today,
            **kwargs,
        )

    return factory


def test_refresh_builds_full_report(service_factory, today):
    report = service_factory().refresh()

    assert report.generated_for == today
    assert len(report.projection) == 31
    assert [pattern.merchant_key for pattern in report.patterns] == ["ACME PAYROLL", "NETFLIX.COM", "OAKWOOD RENT"]
    assert report.projection[0].balance == Decimal("3500.00")
    assert report.summary.ending_balance == Decimal("7284.51")
    assert report.summary.lowest_balance == Decimal("3500.00")
    assert report.summary.monthly_income == Decimal("5357.14")
    assert report.summary.monthly_expenses == Decimal("-1215.49")
    assert report.summary.monthly_net == Decimal("4141.65")
    assert [item.description for item in report.upcoming][:2] == ["ACME PAYROLL", "ACME PAYROLL"]
    assert not report.detection_failed


def test_hide_then_unhide_round_trips(service_factory, today):
    service = service_factory()
    baseline = service.refresh()

    hidden = service.hide("ACME PAYROLL")
    assert [pattern.merchant_key for pattern in hidden.hidden_patterns] == ["ACME PAYROLL"]
    assert len(hidden.visible_patterns) == 2
    assert hidden.summary.ending_balance == Decimal("-215.49")
    assert hidden.summary.first_below_threshold == today + timedelta(days=29)
    assert hidden.summary.days_below_threshold == 2
    assert baseline.patterns[0].is_hidden is False

    restored = service.unhide("ACME PAYROLL")
    assert restored.patterns == baseline.patterns
    assert restored.projection == baseline.projection
    assert restored.summary == baseline.summary
    assert restored.generation > baseline.generation


def test_failed_hide_leaves_published_report(service_factory):
    service = service_factory(store=FailingExclusionStore())
    before = service.refresh()

    with pytest.raises(ExclusionStoreError):
        service.hide("ACME PAYROLL")

    assert service.latest is before
    assert not any(pattern.is_hidden for pattern in service.latest.patterns)


def test_stale_refresh_is_discarded(service_factory):
    service = service_factory()
    older = service.begin_refresh()
    newer = service.begin_refresh()

    newer_report = service.run(newer)
    older_report = service.run(older)

    assert service.complete_refresh(newer, newer_report) is True
    assert service.complete_refresh(older, older_report) is False
    assert service.latest is newer_report


def test_exclusions_are_read_when_cycle_starts(service_factory):
    store = InMemoryExclusionStore()
    service = service_factory(store=store)

    ticket = service.begin_refresh()
    store.add("NETFLIX.COM")
    report = service.run(ticket)

    assert not any(pattern.is_hidden for pattern in report.patterns)


def test_set_horizon_in_months(service_factory, today):
    report = service_factory().set_horizon(months=3)

    assert report.horizon_days == 92
    assert len(report.projection) == 93
    assert report.projection[-1].date == today + timedelta(days=92)


def test_detection_failure_publishes_empty_patterns(service_factory):
    def broken(left: str, right: str) -> float:
        raise RuntimeError("similarity backend unavailable")

    frame = pd.DataFrame(
        {
            "description": ["Alpha", "Beta"],
            "amount": [Decimal("-5.00"), Decimal("-5.00")],
            "date": ["2024-05-01", "2024-05-02"],
        }
    )
    service = CashflowService(
        lambda: frame,
        lambda: Decimal("250.00"),
        InMemoryExclusionStore(),
        settings=Settings(horizon_days=7),
        clock=lambda: pd.Timestamp("2024-06-01").date(),
        similarity=broken,
    )

    report = service.refresh()

    assert report.detection_failed
    assert "similarity backend unavailable" in (report.error or "")
    assert report.patterns == ()
    assert all(day.balance == Decimal("250.00") for day in report.projection)


def test_build_report_with_suggestion_policy(make_ledger, today):
    frame = make_ledger([(30, "Water", "-31.00"), (0, "Water", "-31.00")])

    report = build_cashflow_report(
        frame,
        Decimal("100"),
        frozenset(),
        today=today,
        horizon_days=30,
        danger_threshold=Decimal("80"),
        policy=SUGGESTION_POLICY,
    )

    assert [pattern.merchant_key for pattern in report.patterns] == ["WATER"]
    assert report.projection[30].occurring[0].amount == Decimal("-31.00")
    assert report.projection[30].below_threshold
    assert report.danger_threshold == Decimal("80.00")


def test_json_store_persists_keys(tmp_path):
    path = tmp_path / "state" / "hidden.json"
    store = JsonExclusionStore(path)

    assert store.get() == frozenset()
    store.add("NETFLIX.COM")
    store.add("GYM")
    store.remove("GYM")
    store.remove("NOT THERE")

    assert JsonExclusionStore(path).get() == frozenset({"NETFLIX.COM"})


def test_json_store_rejects_corrupt_file(tmp_path):
    path = tmp_path / "hidden.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(ExclusionStoreError):
        JsonExclusionStore(path).get()

    path.write_text('{"keys": []}', encoding="utf-8")
    with pytest.raises(ExclusionStoreError):
        JsonExclusionStore(path).get()


def test_from_csv_wires_loader_and_store(tmp_path, household_ledger, today):
    transactions_path = tmp_path / "transactions.csv"
    household_ledger.assign(date=household_ledger["date"].astype(str)).to_csv(transactions_path, index=False)
    balances_path = tmp_path / "balances.csv"
    balances_path.write_text("account,balance\nchecking,900.00\nsavings,5000.00\nbrokerage,100.00\n", encoding="utf-8")

    settings = Settings(horizon_days=30, exclusions_path=tmp_path / "hidden.json")
    service = CashflowService.from_csv(
        transactions_path,
        balances_path,
        accounts=["checking", "brokerage"],
        settings=settings,
        clock=lambda: today,
    )

    report = service.hide("OAKWOOD RENT")

    assert report.summary.starting_balance == Decimal("1000.00")
    assert [pattern.merchant_key for pattern in report.hidden_patterns] == ["OAKWOOD RENT"]
    assert JsonExclusionStore(tmp_path / "hidden.json").get() == frozenset({"OAKWOOD RENT"})


def test_from_csv_configures_logging_from_secrets(monkeypatch, tmp_path):
    monkeypatch.setattr(st, "secrets", {"cashflow": {"log_level": "DEBUG"}}, raising=False)
    get_settings.cache_clear()

    CashflowService.from_csv(tmp_path / "transactions.csv", tmp_path / "balances.csv")

    assert get_settings().log_level == "DEBUG"
    assert logging.getLogger("cashflow").level == logging.DEBUG


def test_configure_logging_honours_settings_level():
    stream = io.StringIO()
    configure_logging(Settings(log_level="warning").log_level, stream=stream)

    get_logger("cashflow.service").info("suppressed")
    get_logger("cashflow.service").warning("kept")

    assert logging.getLogger("cashflow").level == logging.WARNING
    assert "kept" in stream.getvalue()
    assert "suppressed" not in stream.getvalue()


def test_report_flags_ledger_missing_columns(today):
    frame = pd.DataFrame({"description": ["Rent"], "amount": [Decimal("-900.00")]})

    report = build_cashflow_report(
        frame,
        Decimal("100.00"),
        frozenset(),
        today=today,
        horizon_days=3,
        policy=SUGGESTION_POLICY,
    )

    assert report.detection_failed
    assert "date" in (report.error or "")
    assert report.patterns == ()
    assert [day.balance for day in report.projection] == [Decimal("100.00")] * 4
