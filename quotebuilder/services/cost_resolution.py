"""Internal cost (purchase price) resolution for quote lines.

Priority chain, first applicable wins:

1. assigned member with a cost rate (``CostSource.MEMBER``)
2. first assigned skill with a cost rate (``CostSource.SKILL``)
3. agency-average rates for lump-sum lines (``CostSource.AVERAGE``)
4. manual ``purchase_price`` (``CostSource.MANUAL``)
5. nothing (``CostSource.NONE``), cost 0 and no margin signal

An assigned member or skill decides the branch: when it yields no cost
the line resolves to ``CostSource.NONE``. The agency average and a
manual purchase price only apply to unassigned lines.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import Decimal

from quotebuilder.core.config import get_settings
from quotebuilder.core.money import HUNDRED, ZERO, safe_div
from quotebuilder.models.entities import CostSource, EngineWarning, LineItem, Skill, TeamMember, WarningCode

logger = logging.getLogger(__name__)

ONE = Decimal("1")
DAY_UNITS = frozenset({"jour", "jours", "day", "days", "j"})


def is_day_unit(unit: str | None) -> bool:
    if not unit:
        return False
    return unit.strip().lower() in DAY_UNITS


@dataclass(frozen=True, slots=True)
class DailyRates:
    cost_rate: Decimal
    sell_rate: Decimal


@dataclass(frozen=True, slots=True)
class AgencyRates:
    """Agency-wide average daily rates; zero when not computable."""

    sell_rate: Decimal = ZERO
    cost_rate: Decimal = ZERO

    @property
    def is_computable(self) -> bool:
        return self.sell_rate > ZERO and self.cost_rate > ZERO


@dataclass(frozen=True, slots=True)
class LineCost:
    line_id: str
    cost: Decimal
    source: CostSource
    margin: Decimal
    margin_percentage: Decimal
    estimated_days: Decimal | None = None

    @property
    def has_margin_signal(self) -> bool:
        return self.source is not CostSource.NONE


def _mean(values: list[Decimal]) -> Decimal:
    if not values:
        return ZERO
    return sum(values, ZERO) / Decimal(len(values))


def compute_agency_rates(
    skills: Iterable[Skill],
    members: Iterable[TeamMember] = (),
    *,
    working_days_per_year: int | None = None,
) -> AgencyRates:
    """Average sell and cost day rates across configured skills.

    When no skill carries a cost rate, the cost side falls back to member
    annual salaries spread over the working days of a year.
    """

    skills = list(skills)
    sell_rate = _mean([skill.sell_daily_rate for skill in skills if skill.sell_daily_rate > ZERO])
    cost_rate = _mean([skill.cost_daily_rate for skill in skills if skill.cost_daily_rate > ZERO])

    if cost_rate == ZERO:
        days = Decimal(working_days_per_year or get_settings().working_days_per_year)
        salaries = [member.annual_salary for member in members if member.annual_salary and member.annual_salary > ZERO]
        cost_rate = _mean([salary / days for salary in salaries])

    return AgencyRates(sell_rate=sell_rate, cost_rate=cost_rate)


def margin_for(amount: Decimal, cost: Decimal) -> tuple[Decimal, Decimal]:
    margin = amount - cost
    margin_percentage = safe_div(margin, amount) * HUNDRED if amount > ZERO else ZERO
    return margin, margin_percentage


class CostResolver:
    """Resolve line costs against read-only skill and member snapshots."""

    def __init__(
        self,
        skills: Iterable[Skill] = (),
        members: Iterable[TeamMember] = (),
        *,
        agency_rates: AgencyRates | None = None,
    ) -> None:
        self.skills_by_id: dict[str, Skill] = {skill.id: skill for skill in skills}
        self.members_by_id: dict[str, TeamMember] = {member.id: member for member in members}
        self.agency_rates = agency_rates or compute_agency_rates(
            self.skills_by_id.values(),
            self.members_by_id.values(),
        )

    # ---------- Rate lookup ----------
    def member_rates(self, member_id: str) -> DailyRates | None:
        member = self.members_by_id.get(member_id)
        if member is None:
            return None
        primary = next(
            (self.skills_by_id[skill_id] for skill_id in member.skill_ids if skill_id in self.skills_by_id),
            None,
        )
        if member.custom_daily_rate is not None and member.custom_daily_rate > ZERO:
            cost_rate = member.custom_daily_rate
        elif primary is not None:
            cost_rate = primary.cost_daily_rate
        else:
            return None
        if cost_rate <= ZERO:
            return None
        sell_rate = primary.sell_daily_rate if primary is not None else ZERO
        return DailyRates(cost_rate=cost_rate, sell_rate=sell_rate)

    def skill_rates(self, skill_ids: Sequence[str]) -> DailyRates | None:
        if not skill_ids:
            return None
        skill = self.skills_by_id.get(skill_ids[0])
        if skill is None or skill.cost_daily_rate <= ZERO:
            return None
        return DailyRates(cost_rate=skill.cost_daily_rate, sell_rate=skill.sell_daily_rate)

    # ---------- Resolution ----------
    def _build(
        self,
        line: LineItem,
        cost: Decimal,
        source: CostSource,
        estimated_days: Decimal | None = None,
    ) -> LineCost:
        margin, margin_percentage = margin_for(line.amount, cost)
        return LineCost(
            line_id=line.id,
            cost=cost,
            source=source,
            margin=margin,
            margin_percentage=margin_percentage,
            estimated_days=estimated_days,
        )

    def _estimate_forfait_days(self, line: LineItem, sell_rate: Decimal) -> Decimal | None:
        if line.amount <= ZERO:
            return None
        effective_sell = sell_rate if sell_rate > ZERO else self.agency_rates.sell_rate
        if effective_sell <= ZERO:
            return None
        return line.amount / effective_sell

    def _cost_from_rates(self, line: LineItem, rates: DailyRates, source: CostSource) -> LineCost | None:
        if is_day_unit(line.unit):
            days = line.quantity if line.quantity > ZERO else ONE
        else:
            days = self._estimate_forfait_days(line, rates.sell_rate)
            if days is None:
                return None
        return self._build(line, rates.cost_rate * days, source, days)

    def resolve(self, line: LineItem) -> LineCost:
        if line.is_group or line.is_discount:
            return self._build(line, ZERO, CostSource.NONE)

        # An assignment picks the branch; it never falls back to average or manual cost.
        if line.assigned_member_id:
            rates = self.member_rates(line.assigned_member_id)
            resolved = self._cost_from_rates(line, rates, CostSource.MEMBER) if rates is not None else None
            return resolved or self._build(line, ZERO, CostSource.NONE)

        if line.assigned_skill_ids:
            rates = self.skill_rates(line.assigned_skill_ids)
            resolved = self._cost_from_rates(line, rates, CostSource.SKILL) if rates is not None else None
            return resolved or self._build(line, ZERO, CostSource.NONE)

        if not is_day_unit(line.unit) and line.amount > ZERO and self.agency_rates.is_computable:
            days = line.amount / self.agency_rates.sell_rate
            return self._build(line, self.agency_rates.cost_rate * days, CostSource.AVERAGE, days)

        if line.purchase_price is not None and line.purchase_price > ZERO:
            return self._build(line, line.purchase_price, CostSource.MANUAL)

        return self._build(line, ZERO, CostSource.NONE)

    def resolve_all(self, lines: Iterable[LineItem]) -> tuple[dict[str, LineCost], list[EngineWarning]]:
        costs: dict[str, LineCost] = {}
        warnings: list[EngineWarning] = []
        for line in lines:
            line_cost = self.resolve(line)
            costs[line.id] = line_cost
            if line_cost.source is CostSource.NONE and line.counts_in_subtotal:
                logger.debug("No cost source for line %s.", line.id, extra={"line_id": line.id})
                warnings.append(
                    EngineWarning(
                        code=WarningCode.COST_SOURCE_NONE,
                        message="No cost could be resolved for this line; margin is not tracked.",
                        line_id=line.id,
                    )
                )
        return costs, warnings


def resolve_cost(
    line: LineItem,
    skills: Iterable[Skill] = (),
    members: Iterable[TeamMember] = (),
) -> LineCost:
    """Single-line convenience wrapper around ``CostResolver``."""

    return CostResolver(skills, members).resolve(line)
