"""Decimal helpers shared by the pricing services."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

ZERO = Decimal("0")
HUNDRED = Decimal("100")
Q2 = Decimal("0.01")


def q2(value: Decimal) -> Decimal:
    return value.quantize(Q2, rounding=ROUND_HALF_UP)


def safe_div(numerator: Decimal, denominator: Decimal) -> Decimal:
    if denominator == ZERO:
        return ZERO
    return numerator / denominator


def positive_or_zero(value: Decimal | None) -> Decimal:
    """Treat missing and non-positive inputs as "not configured"."""

    if value is None or value <= ZERO:
        return ZERO
    return value
