"""Centralised configuration handling for the cash-flow forecaster."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping

import pandas as pd
import streamlit as st
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.formatting import to_cents

DEFAULT_HORIZON_DAYS = 90
DEFAULT_SIMILARITY_THRESHOLD = 0.7


@dataclass(frozen=True, slots=True)
class DetectionPolicy:
    """Thresholds applied when deciding whether a cluster is recurring."""

    min_occurrences: int = 3
    consistency_filter: bool = True
    min_interval_days: float = 5.0
    max_interval_days: float = 400.0
    similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD

    def __post_init__(self) -> None:
        if self.min_occurrences < 2:
            raise ValueError("min_occurrences must be at least 2")
        if not 0.0 < self.similarity_threshold < 1.0:
            raise ValueError("similarity_threshold must be between 0 and 1")


# Live dashboard: three or more charges with a consistent cadence.
DASHBOARD_POLICY = DetectionPolicy(min_occurrences=3, consistency_filter=True)
# One-shot suggestion list: any repeat, cadence consistency not required.
SUGGESTION_POLICY = DetectionPolicy(min_occurrences=2, consistency_filter=False)


def _streamlit_section(name: str) -> Mapping[str, Any] | None:
    """Return a mapping from Streamlit secrets for the given section."""

    try:
        if hasattr(st, "secrets") and name in st.secrets:
            section = st.secrets[name]
            if isinstance(section, Mapping):
                return section
            return dict(section)
    except Exception:  # pragma: no cover - accessing secrets may fail outside a Streamlit runtime
        return None
    return None


class Settings(BaseSettings):
    """Forecaster settings sourced from env vars and Streamlit secrets."""

    horizon_days: int = Field(default=DEFAULT_HORIZON_DAYS, ge=0)
    horizon_months: int | None = Field(default=None, ge=1)
    danger_threshold: Decimal = Decimal("0")
    min_occurrences: int = Field(default=3, ge=2)
    consistency_filter: bool = True
    similarity_threshold: float = Field(default=DEFAULT_SIMILARITY_THRESHOLD, gt=0.0, lt=1.0)
    exclusions_path: Path | None = None
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_prefix="CASHFLOW_", extra="ignore")

    @field_validator("danger_threshold")
    @classmethod
    def _quantize_threshold(cls, value: Decimal) -> Decimal:
        return to_cents(value)

    @property
    def detection_policy(self) -> DetectionPolicy:
        return DetectionPolicy(
            min_occurrences=self.min_occurrences,
            consistency_filter=self.consistency_filter,
            similarity_threshold=self.similarity_threshold,
        )

    def resolve_horizon(self, today: date) -> int:
        return resolve_horizon_days(today, days=self.horizon_days, months=self.horizon_months)


def resolve_horizon_days(today: date, *, days: int | None = None, months: int | None = None) -> int:
    """Return the projection horizon in days.

    A month-based horizon is measured with calendar arithmetic from ``today``,
    so three months from 31 January ends on 30 April.
    """

    if months is not None:
        if months < 1:
            raise ValueError("months must be positive")
        start = pd.Timestamp(today)
        end = start + pd.DateOffset(months=months)
        return int((end - start).days)
    if days is None:
        return DEFAULT_HORIZON_DAYS
    if days < 0:
        raise ValueError("horizon must not be negative")
    return int(days)


@lru_cache
def get_settings() -> Settings:
    """Load and cache forecaster settings."""

    overrides: dict[str, Any] = {}
    secrets_section = _streamlit_section("cashflow")
    if secrets_section:
        overrides = {
            key: secrets_section.get(key)
            for key in Settings.model_fields
            if secrets_section.get(key) is not None
        }

    return Settings(**overrides)
