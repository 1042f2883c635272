"""Amount derivation for percentage-priced lines.

Every percentage-priced line is normalized against the sum of the
*included* percentage lines' fees, so included lines always exhaust the
resolved base exactly, even when their fees do not add up to 100.
Excluded lines are priced with the same share so they can be displayed
as options, but they never enter totals.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from decimal import Decimal

from quotebuilder.core.config import get_settings
from quotebuilder.core.errors import InvalidOperationError, UnknownLineError
from quotebuilder.core.money import HUNDRED, ZERO, safe_div
from quotebuilder.models.entities import EngineWarning, LineItem, WarningCode

logger = logging.getLogger(__name__)


def included_percentage_total(lines: Iterable[LineItem]) -> Decimal:
    return sum(
        (line.percentage_fee or ZERO for line in lines if line.is_percentage_priced and line.is_included),
        ZERO,
    )


def derive_amount(percentage_fee: Decimal | None, included_total: Decimal, base: Decimal) -> Decimal:
    if not percentage_fee or included_total <= ZERO or base <= ZERO:
        return ZERO
    return safe_div(percentage_fee, included_total) * base


def recompute_percentage_lines(lines: Sequence[LineItem], base: Decimal) -> Sequence[LineItem]:
    """Set ``amount`` and ``unit_price`` of every percentage line in place.

    Idempotent for unchanged inputs. Returns the same sequence.
    """

    total = included_percentage_total(lines)
    for line in lines:
        if not line.is_percentage_priced:
            continue
        derived = derive_amount(line.percentage_fee, total, base)
        line.unit_price = derived
        line.amount = derived
    return lines


def set_percentage_fee(
    lines: Sequence[LineItem],
    line_id: str,
    percentage_fee: Decimal,
    base: Decimal,
) -> LineItem:
    """Change one line's fee and re-derive all percentage siblings.

    Siblings move too because the normalization denominator changed.
    """

    target = next((line for line in lines if line.id == line_id), None)
    if target is None:
        raise UnknownLineError(line_id)
    if not target.is_percentage_priced:
        raise InvalidOperationError(f"Line '{line_id}' is not priced as a percentage.")
    if percentage_fee < ZERO:
        raise InvalidOperationError("percentage_fee must be greater or equal zero.")
    target.percentage_fee = percentage_fee
    recompute_percentage_lines(lines, base)
    return target


def percentage_total_warning(lines: Iterable[LineItem], tolerance: Decimal | None = None) -> EngineWarning | None:
    """Informational warning when included percentage fees miss 100 %."""

    percentage_lines = [line for line in lines if line.is_percentage_priced and line.is_included]
    if not percentage_lines:
        return None
    total = included_percentage_total(percentage_lines)
    allowed = tolerance if tolerance is not None else get_settings().percentage_total_tolerance
    if abs(total - HUNDRED) <= allowed:
        return None
    logger.info("Included percentage lines sum to %s%% instead of 100%%.", total)
    return EngineWarning(
        code=WarningCode.PERCENTAGE_TOTAL_DEVIATION,
        message=f"Included percentage lines sum to {total}% instead of 100%.",
    )
