"""Fee mode resolution: the base amount percentage-priced lines share."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from decimal import Decimal

from quotebuilder.core.config import get_settings
from quotebuilder.core.money import HUNDRED, ZERO, positive_or_zero, safe_div
from quotebuilder.models.entities import FeeConfig, FeeMode, LineItem, LineType

logger = logging.getLogger(__name__)


def percentage_base(config: FeeConfig) -> Decimal:
    """``construction_budget x fee_percentage / 100``, or 0 when unconfigured."""

    budget = positive_or_zero(config.construction_budget)
    rate = positive_or_zero(config.fee_percentage)
    if budget == ZERO or rate == ZERO:
        return ZERO
    return budget * rate / HUNDRED


def count_included_phases(lines: Iterable[LineItem]) -> int:
    return sum(1 for line in lines if line.type is LineType.PHASE and line.is_included)


def hourly_estimate(config: FeeConfig, included_phase_count: int, hours_per_phase: int | None = None) -> Decimal:
    """Coarse estimate: a flat number of hours per included phase.

    This is not tied to any time tracking; it only gives hourly-mode
    documents a base to spread across their phases.
    """

    rate = positive_or_zero(config.hourly_rate)
    if rate == ZERO or included_phase_count <= 0:
        return ZERO
    hours = hours_per_phase if hours_per_phase is not None else get_settings().hourly_hours_per_phase
    return Decimal(included_phase_count) * Decimal(hours) * rate


def resolve_base(
    config: FeeConfig,
    lines: Iterable[LineItem] = (),
    *,
    hours_per_phase: int | None = None,
) -> Decimal:
    """Base amount against which percentage-priced lines are scaled.

    Never raises: missing inputs resolve to 0, the "not yet configured"
    state. In mixed mode only percentage-priced lines consume this base;
    fixed lines keep their own ``quantity x unit_price``.
    """

    mode = config.fee_mode
    if mode is FeeMode.FIXED:
        base = positive_or_zero(config.total_amount)
    elif mode is FeeMode.PERCENTAGE or mode is FeeMode.MIXED:
        base = percentage_base(config)
    elif mode is FeeMode.HOURLY:
        base = hourly_estimate(config, count_included_phases(lines), hours_per_phase)
    else:
        base = ZERO

    if base == ZERO:
        logger.debug("Fee base unresolved for mode %s; percentage lines fall back to zero.", mode.value)
    return base


def fee_to_budget_ratio(fee_total: Decimal, config: FeeConfig) -> Decimal | None:
    """Fees as a percentage of the construction budget, when there is one."""

    budget = positive_or_zero(config.construction_budget)
    if budget == ZERO or fee_total <= ZERO:
        return None
    return safe_div(fee_total, budget) * HUNDRED
