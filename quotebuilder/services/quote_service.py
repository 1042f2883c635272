"""Application service driving the quote pricing pipeline.

``recompute`` is the single explicit entry point the host calls after
every edit. It always runs in the same order, so cost, margin and total
figures never read a stale per-line amount:

1. detach dangling group references
2. refresh ``quantity x unit_price`` on fixed-priced lines
3. resolve the fee base and derive percentage-line amounts
4. resolve per-line cost and margin
5. aggregate totals
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import Decimal

from quotebuilder.core.config import get_settings
from quotebuilder.core.money import q2
from quotebuilder.models.entities import EngineWarning, FeeConfig, LineItem, LineType, Skill, TeamMember
from quotebuilder.services.aggregation import QuoteTotals, aggregate
from quotebuilder.services.budget_adjustment import round_prices, scale_by_percentage, scale_to_target
from quotebuilder.services.cost_resolution import CostResolver, LineCost
from quotebuilder.services.fee_mode import fee_to_budget_ratio, resolve_base
from quotebuilder.services.line_items import append_line, copy_lines, duplicate_line, find_line
from quotebuilder.services.percentage_lines import percentage_total_warning, recompute_percentage_lines, set_percentage_fee
from quotebuilder.services.phase_templates import ProjectType, phase_lines_from_template
from quotebuilder.services.sections import (
    Destination,
    delete_line,
    detach_dangling_group_refs,
    move_line,
    partition,
    renumber_all,
    reorder_line,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RecomputeConfig:
    fee: FeeConfig = field(default_factory=FeeConfig)
    vat_rate: Decimal | None = None
    skills: list[Skill] = field(default_factory=list)
    members: list[TeamMember] = field(default_factory=list)


@dataclass(slots=True)
class RecomputeResult:
    lines: list[LineItem]
    base: Decimal
    costs: dict[str, LineCost]
    totals: QuoteTotals
    warnings: list[EngineWarning]
    fee_to_budget_ratio: Decimal | None = None


def _q2_or_none(value: Decimal | None) -> str | None:
    return str(q2(value)) if value is not None else None


class QuoteEngineService:
    """Stateless facade over the pricing, cost and aggregation services."""

    def __init__(self) -> None:
        self.settings = get_settings()

    # ---------- Pipeline ----------
    def _run(
        self,
        lines: list[LineItem],
        config: RecomputeConfig,
        warnings: list[EngineWarning],
    ) -> RecomputeResult:
        warnings.extend(detach_dangling_group_refs(lines))

        for line in lines:
            line.refresh_amount()

        base = resolve_base(config.fee, lines, hours_per_phase=self.settings.hourly_hours_per_phase)
        recompute_percentage_lines(lines, base)
        deviation = percentage_total_warning(lines, self.settings.percentage_total_tolerance)
        if deviation is not None:
            warnings.append(deviation)

        resolver = CostResolver(config.skills, config.members)
        costs, cost_warnings = resolver.resolve_all(lines)
        warnings.extend(cost_warnings)

        vat_rate = config.vat_rate if config.vat_rate is not None else self.settings.default_vat_rate
        totals = aggregate(lines, vat_rate=vat_rate, costs=costs)
        if warnings:
            logger.info("Recomputed %d line(s) with %d warning(s).", len(lines), len(warnings))
        return RecomputeResult(
            lines=lines,
            base=base,
            costs=costs,
            totals=totals,
            warnings=warnings,
            fee_to_budget_ratio=fee_to_budget_ratio(totals.total_ht, config.fee),
        )

    def recompute(self, lines: Sequence[LineItem], config: RecomputeConfig) -> RecomputeResult:
        """Pure: works on copies and leaves ``lines`` untouched."""

        return self._run(copy_lines(lines), config, [])

    # ---------- Structural edits ----------
    def move_line(
        self,
        lines: Sequence[LineItem],
        config: RecomputeConfig,
        *,
        line_id: str,
        destination: Destination,
        position: int | None = None,
    ) -> RecomputeResult:
        working = copy_lines(lines)
        warnings = detach_dangling_group_refs(working)
        move_line(working, line_id, destination, position=position)
        return self._run(working, config, warnings)

    def delete_line(self, lines: Sequence[LineItem], config: RecomputeConfig, *, line_id: str) -> RecomputeResult:
        working = copy_lines(lines)
        warnings = detach_dangling_group_refs(working)
        delete_line(working, line_id)
        return self._run(working, config, warnings)

    def duplicate_line(self, lines: Sequence[LineItem], config: RecomputeConfig, *, line_id: str) -> RecomputeResult:
        working = copy_lines(lines)
        warnings = detach_dangling_group_refs(working)
        duplicate_line(working, line_id)
        renumber_all(working)
        return self._run(working, config, warnings)

    def add_line(
        self,
        lines: Sequence[LineItem],
        config: RecomputeConfig,
        *,
        line_type: LineType,
        designation: str = "",
        group_id: str | None = None,
    ) -> RecomputeResult:
        working = copy_lines(lines)
        warnings = detach_dangling_group_refs(working)
        append_line(working, line_type, designation=designation, group_id=group_id)
        renumber_all(working)
        return self._run(working, config, warnings)

    def add_phases_from_template(
        self,
        lines: Sequence[LineItem],
        config: RecomputeConfig,
        *,
        project_type: ProjectType,
    ) -> RecomputeResult:
        working = copy_lines(lines)
        working.extend(phase_lines_from_template(project_type, start_sort_order=len(working)))
        renumber_all(working)
        return self._run(working, config, [])

    def reorder_line(
        self,
        lines: Sequence[LineItem],
        config: RecomputeConfig,
        *,
        line_id: str,
        position: int,
    ) -> RecomputeResult:
        working = copy_lines(lines)
        warnings = detach_dangling_group_refs(working)
        reorder_line(working, line_id, position)
        return self._run(working, config, warnings)

    # ---------- Line edits ----------
    def set_percentage_fee(
        self,
        lines: Sequence[LineItem],
        config: RecomputeConfig,
        *,
        line_id: str,
        percentage_fee: Decimal,
    ) -> RecomputeResult:
        working = copy_lines(lines)
        warnings = detach_dangling_group_refs(working)
        base = resolve_base(config.fee, working, hours_per_phase=self.settings.hourly_hours_per_phase)
        set_percentage_fee(working, line_id, percentage_fee, base)
        return self._run(working, config, warnings)

    def set_included(
        self,
        lines: Sequence[LineItem],
        config: RecomputeConfig,
        *,
        line_id: str,
        is_included: bool,
    ) -> RecomputeResult:
        # Toggling a percentage line changes the normalization total of its siblings.
        working = copy_lines(lines)
        find_line(working, line_id).set_included(is_included)
        return self._run(working, config, [])

    # ---------- Budget adjustments ----------
    def scale_by_percentage(self, lines: Sequence[LineItem], config: RecomputeConfig, *, delta: Decimal) -> RecomputeResult:
        return self._run(scale_by_percentage(lines, delta), config, [])

    def scale_to_target(
        self,
        lines: Sequence[LineItem],
        config: RecomputeConfig,
        *,
        target_total: Decimal,
    ) -> RecomputeResult:
        # Scale against up-to-date amounts, not whatever the caller sent.
        current = self.recompute(lines, config)
        warnings: list[EngineWarning] = []
        scaled = scale_to_target(current.lines, target_total, warnings=warnings)
        return self._run(scaled, config, warnings)

    def round_prices(self, lines: Sequence[LineItem], config: RecomputeConfig, *, increment: Decimal) -> RecomputeResult:
        return self._run(round_prices(lines, increment), config, [])

    # ---------- Serialization ----------
    @staticmethod
    def serialize_line(line: LineItem) -> dict[str, object]:
        return {
            "id": line.id,
            "type": line.type.value,
            "designation": line.designation,
            "description": line.description,
            "pricing_mode": line.pricing_mode.value,
            "quantity": str(line.quantity),
            "unit": line.unit,
            "unit_price": str(q2(line.unit_price)),
            "amount": str(q2(line.amount)),
            "percentage_fee": str(line.percentage_fee) if line.percentage_fee is not None else None,
            "is_included": line.is_included,
            "group_id": line.group_id,
            "deliverables": list(line.deliverables),
            "assigned_member_id": line.assigned_member_id,
            "assigned_skill_ids": list(line.assigned_skill_ids),
            "purchase_price": _q2_or_none(line.purchase_price),
            "sort_order": line.sort_order,
            "phase_code": line.phase_code,
            "fixed_unit_price": _q2_or_none(line.fixed_unit_price),
        }

    @staticmethod
    def serialize_cost(line_cost: LineCost) -> dict[str, object]:
        return {
            "line_id": line_cost.line_id,
            "cost": str(q2(line_cost.cost)),
            "source": line_cost.source.value,
            "margin": str(q2(line_cost.margin)),
            "margin_percentage": str(q2(line_cost.margin_percentage)),
            "estimated_days": _q2_or_none(line_cost.estimated_days),
            "has_margin_signal": line_cost.has_margin_signal,
        }

    @staticmethod
    def serialize_totals(totals: QuoteTotals) -> dict[str, object]:
        return {
            "subtotal": str(q2(totals.subtotal)),
            "total_discount": str(q2(totals.total_discount)),
            "total_ht": str(q2(totals.total_ht)),
            "vat_rate": str(totals.vat_rate),
            "vat": str(q2(totals.vat)),
            "total_ttc": str(q2(totals.total_ttc)),
            "sections": {
                "phases": str(q2(totals.sections.phases)),
                "other_services": str(q2(totals.sections.other_services)),
                "excluded": str(q2(totals.sections.excluded)),
                "discounts": str(q2(totals.sections.discounts)),
            },
            "group_subtotals": {group_id: str(q2(value)) for group_id, value in totals.group_subtotals.items()},
            "total_purchase_cost": str(q2(totals.total_purchase_cost)),
            "total_margin": str(q2(totals.total_margin)),
            "total_margin_percentage": str(q2(totals.total_margin_percentage)),
            "margin_status": totals.margin_status.value,
            "percentage_total": str(q2(totals.percentage_total)),
            "total_estimated_days": str(q2(totals.total_estimated_days)),
            "average_daily_rate": str(q2(totals.average_daily_rate)),
            "average_daily_cost": str(q2(totals.average_daily_cost)),
            "low_margin_line_ids": list(totals.low_margin_line_ids),
            "negative_margin_line_ids": list(totals.negative_margin_line_ids),
        }

    @staticmethod
    def serialize_warning(warning: EngineWarning) -> dict[str, object]:
        return {"code": warning.code.value, "message": warning.message, "line_id": warning.line_id}

    @staticmethod
    def serialize_sections(lines: Sequence[LineItem]) -> dict[str, object]:
        """Line ids per container, each in ``sort_order``."""

        sections = partition(lines)
        return {
            "percentage": [line.id for line in sections.percentage],
            "fixed": [line.id for line in sections.fixed],
            "group_headers": [line.id for line in sections.group_headers],
            "groups": {group_id: [line.id for line in members] for group_id, members in sections.groups.items()},
        }

    def serialize_result(self, result: RecomputeResult) -> dict[str, object]:
        return {
            "base": str(q2(result.base)),
            "fee_to_budget_ratio": _q2_or_none(result.fee_to_budget_ratio),
            "sections": self.serialize_sections(result.lines),
            "lines": [self.serialize_line(line) for line in result.lines],
            "costs": [self.serialize_cost(result.costs[line.id]) for line in result.lines],
            "totals": self.serialize_totals(result.totals),
            "warnings": [self.serialize_warning(warning) for warning in result.warnings],
        }
