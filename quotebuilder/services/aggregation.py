"""Roll quote lines up into subtotals, HT/VAT/TTC totals and margins."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from decimal import Decimal

from quotebuilder.core.config import get_settings
from quotebuilder.core.money import HUNDRED, ZERO, safe_div
from quotebuilder.models.entities import LineItem, LineType, MarginStatus
from quotebuilder.services.cost_resolution import CostResolver, LineCost
from quotebuilder.services.percentage_lines import included_percentage_total

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SectionSubtotals:
    phases: Decimal = ZERO
    other_services: Decimal = ZERO
    excluded: Decimal = ZERO
    discounts: Decimal = ZERO


@dataclass(slots=True)
class QuoteTotals:
    """Full-precision totals; callers quantize when presenting them."""

    subtotal: Decimal
    total_discount: Decimal
    total_ht: Decimal
    vat_rate: Decimal
    vat: Decimal
    total_ttc: Decimal
    sections: SectionSubtotals
    total_purchase_cost: Decimal
    total_margin: Decimal
    total_margin_percentage: Decimal
    margin_status: MarginStatus
    percentage_total: Decimal
    total_estimated_days: Decimal = ZERO
    average_daily_rate: Decimal = ZERO
    average_daily_cost: Decimal = ZERO
    group_subtotals: dict[str, Decimal] = field(default_factory=dict)
    low_margin_line_ids: list[str] = field(default_factory=list)
    negative_margin_line_ids: list[str] = field(default_factory=list)


def margin_status_for(margin_percentage: Decimal) -> MarginStatus:
    settings = get_settings()
    if margin_percentage < ZERO:
        return MarginStatus.DEFICIT
    if margin_percentage < settings.low_margin_threshold:
        return MarginStatus.LOW
    if margin_percentage < settings.good_margin_threshold:
        return MarginStatus.FAIR
    return MarginStatus.EXCELLENT


def _section_subtotals(lines: Sequence[LineItem]) -> SectionSubtotals:
    sections = SectionSubtotals()
    for line in lines:
        if line.is_group:
            continue
        if line.is_discount:
            sections.discounts += abs(line.amount)
            continue
        if not line.is_included:
            sections.excluded += line.amount
        elif line.type is LineType.PHASE:
            sections.phases += line.amount
        else:
            sections.other_services += line.amount
    return sections


def _group_subtotals(lines: Sequence[LineItem]) -> dict[str, Decimal]:
    subtotals = {line.id: ZERO for line in lines if line.is_group}
    for line in lines:
        if line.group_id in subtotals and line.counts_in_subtotal:
            subtotals[line.group_id] += line.amount
    return subtotals


def aggregate(
    lines: Sequence[LineItem],
    *,
    vat_rate: Decimal | None = None,
    costs: Mapping[str, LineCost] | None = None,
) -> QuoteTotals:
    """Totals over ``lines`` as they are; amounts must already be derived.

    Every discount line is subtracted by magnitude, whatever its stored
    sign and inclusion flag.
    Without ``costs``, only manual purchase prices are known.
    """

    settings = get_settings()
    rate = vat_rate if vat_rate is not None else settings.default_vat_rate
    if costs is None:
        costs, _ = CostResolver().resolve_all(lines)

    included = [line for line in lines if line.counts_in_subtotal]
    sections = _section_subtotals(lines)

    subtotal = sum((line.amount for line in included), ZERO)
    total_discount = sections.discounts
    total_ht = subtotal - total_discount
    vat = total_ht * rate

    total_cost = ZERO
    days = ZERO
    costed_revenue = ZERO
    costed_cost = ZERO
    low_margin: list[str] = []
    negative_margin: list[str] = []
    for line in included:
        line_cost = costs.get(line.id)
        if line_cost is None:
            continue
        total_cost += line_cost.cost
        if line_cost.estimated_days is not None:
            days += line_cost.estimated_days
            costed_revenue += line.amount
            costed_cost += line_cost.cost
        if not line_cost.has_margin_signal:
            continue
        if line_cost.margin_percentage < ZERO:
            negative_margin.append(line.id)
        elif line_cost.margin_percentage < settings.low_margin_threshold:
            low_margin.append(line.id)

    total_margin = total_ht - total_cost
    total_margin_percentage = safe_div(total_margin, total_ht) * HUNDRED if total_ht > ZERO else ZERO

    totals = QuoteTotals(
        subtotal=subtotal,
        total_discount=total_discount,
        total_ht=total_ht,
        vat_rate=rate,
        vat=vat,
        total_ttc=total_ht + vat,
        sections=sections,
        total_purchase_cost=total_cost,
        total_margin=total_margin,
        total_margin_percentage=total_margin_percentage,
        margin_status=margin_status_for(total_margin_percentage),
        percentage_total=included_percentage_total(lines),
        total_estimated_days=days,
        average_daily_rate=safe_div(costed_revenue, days),
        average_daily_cost=safe_div(costed_cost, days),
        group_subtotals=_group_subtotals(lines),
        low_margin_line_ids=low_margin,
        negative_margin_line_ids=negative_margin,
    )
    logger.debug("Aggregated %d line(s): total HT %s.", len(lines), total_ht)
    return totals
