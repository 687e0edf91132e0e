"""Rounding and formatting helpers shared by the forecaster."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

__all__ = ["CENTS", "to_cents", "round_days", "format_money"]

CENTS = Decimal("0.01")


def to_cents(value: Any) -> Decimal:
    """Return ``value`` as a Decimal quantized to cents (half-up).

    Floats go through ``str`` first so ``0.1`` becomes ``Decimal("0.10")``
    rather than its binary expansion. Raises ``ValueError`` for values that
    cannot be read as a number.
    """

    if isinstance(value, Decimal):
        decimal_value = value
    else:
        try:
            decimal_value = Decimal(str(value).strip())
        except (InvalidOperation, ValueError) as exc:
            raise ValueError(f"Not a monetary amount: {value!r}") from exc
    if not decimal_value.is_finite():
        raise ValueError(f"Not a monetary amount: {value!r}")
    return decimal_value.quantize(CENTS, rounding=ROUND_HALF_UP)


def round_days(value: float) -> int:
    """Round a day count to the nearest whole day, halves away from zero."""

    return int(Decimal(repr(float(value))).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_money(amount: Decimal, currency: str = "$") -> str:
    sign = "-" if amount < 0 else ""
    return f"{sign}{currency}{abs(amount):,.2f}"
