"""Application configuration utilities."""

from .settings import (
    DASHBOARD_POLICY,
    DEFAULT_HORIZON_DAYS,
    SUGGESTION_POLICY,
    DetectionPolicy,
    Settings,
    get_settings,
    resolve_horizon_days,
)

__all__ = [
    "DASHBOARD_POLICY",
    "DEFAULT_HORIZON_DAYS",
    "SUGGESTION_POLICY",
    "DetectionPolicy",
    "Settings",
    "get_settings",
    "resolve_horizon_days",
]
