"""Batch price adjustments over a whole line collection.

Each operator returns new line copies and leaves its input untouched.
Group headers and discounts are never adjusted, and no operator touches
``percentage_fee``. Percentage-priced lines take their amount from the
fee base, so only the fixed-mode unit price they keep in reserve is
adjusted; change the base to move their amounts.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from decimal import ROUND_HALF_UP, Decimal

from quotebuilder.core.errors import InvalidOperationError
from quotebuilder.core.money import ZERO, q2
from quotebuilder.models.entities import EngineWarning, LineItem, WarningCode
from quotebuilder.services.aggregation import aggregate
from quotebuilder.services.line_items import copy_lines

logger = logging.getLogger(__name__)

ONE = Decimal("1")


def _adjustable(line: LineItem) -> bool:
    return not line.is_group and not line.is_discount


def _apply(lines: Sequence[LineItem], reprice: Callable[[Decimal], Decimal]) -> list[LineItem]:
    adjusted = copy_lines(lines)
    for line in adjusted:
        if not _adjustable(line):
            continue
        if line.is_percentage_priced:
            if line.fixed_unit_price is not None:
                line.fixed_unit_price = reprice(line.fixed_unit_price)
            continue
        line.unit_price = reprice(line.unit_price)
        line.amount = q2(line.quantity * line.unit_price)
    return adjusted


def scale_by_percentage(lines: Sequence[LineItem], delta: Decimal) -> list[LineItem]:
    """Multiply unit prices by ``1 + delta`` (``delta=Decimal("0.1")`` is +10 %)."""

    factor = ONE + delta
    return _apply(lines, lambda price: q2(price * factor))


def scale_to_target(
    lines: Sequence[LineItem],
    target_total: Decimal,
    *,
    warnings: list[EngineWarning] | None = None,
) -> list[LineItem]:
    """Scale prices by ``target_total / current total HT``.

    A zero current total, or a zero target, is a documented no-op: the
    lines come back unchanged.
    """

    current_total = aggregate(lines, costs={}).total_ht
    if current_total == ZERO:
        logger.info("scale_to_target skipped: current total HT is zero.")
        if warnings is not None:
            warnings.append(
                EngineWarning(
                    code=WarningCode.SCALE_TARGET_ZERO_TOTAL,
                    message="Current total HT is zero; nothing to scale.",
                )
            )
        return copy_lines(lines)
    if target_total <= ZERO:
        logger.info("scale_to_target skipped: target %s is not positive.", target_total)
        return copy_lines(lines)
    ratio = target_total / current_total
    return _apply(lines, lambda price: q2(price * ratio))


def round_prices(lines: Sequence[LineItem], increment: Decimal) -> list[LineItem]:
    """Round unit prices to the nearest multiple of ``increment``."""

    if increment <= ZERO:
        raise InvalidOperationError("increment must be greater than zero.")

    def _round(price: Decimal) -> Decimal:
        steps = (price / increment).quantize(ONE, rounding=ROUND_HALF_UP)
        return steps * increment

    return _apply(lines, _round)
