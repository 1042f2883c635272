from __future__ import annotations

from decimal import Decimal

from quotebuilder.models.entities import CostSource, LineItem, LineType, Skill, TeamMember, WarningCode
from quotebuilder.services.cost_resolution import (
    CostResolver,
    compute_agency_rates,
    is_day_unit,
    resolve_cost,
)


def _line(line_id: str = "l1", **overrides: object) -> LineItem:
    values: dict[str, object] = {"id": line_id, "type": LineType.SERVICE}
    values.update(overrides)
    line = LineItem(**values)
    line.refresh_amount()
    return line


def test_day_units_are_recognised() -> None:
    assert is_day_unit("jour")
    assert is_day_unit(" Jours ")
    assert is_day_unit("days")
    assert is_day_unit("j")
    assert not is_day_unit("forfait")
    assert not is_day_unit(None)


def test_member_cost_on_day_line() -> None:
    member = TeamMember(id="m1", custom_daily_rate=Decimal("300"))
    line = _line(unit="jour", quantity=Decimal("5"), unit_price=Decimal("600"), assigned_member_id="m1")

    cost = resolve_cost(line, members=[member])

    assert cost.source is CostSource.MEMBER
    assert cost.cost == Decimal("1500")
    assert cost.estimated_days == Decimal("5")
    assert cost.margin == Decimal("1500")
    assert cost.margin_percentage == Decimal("50")


def test_member_forfait_days_come_from_primary_skill_sell_rate(skills: list[Skill], members: list[TeamMember]) -> None:
    line = _line(unit_price=Decimal("1200"), assigned_member_id="member-anna")

    cost = resolve_cost(line, skills, members)

    assert cost.source is CostSource.MEMBER
    assert cost.estimated_days == Decimal("2")
    assert cost.cost == Decimal("600")


def test_member_custom_rate_beats_skill_cost(skills: list[Skill], members: list[TeamMember]) -> None:
    line = _line(unit="jour", quantity=Decimal("2"), unit_price=Decimal("800"), assigned_member_id="member-bob")

    cost = resolve_cost(line, skills, members)

    assert cost.source is CostSource.MEMBER
    assert cost.cost == Decimal("500")


def test_manual_price_never_hides_member_cost(skills: list[Skill], members: list[TeamMember]) -> None:
    line = _line(
        unit="jour",
        quantity=Decimal("1"),
        unit_price=Decimal("600"),
        assigned_member_id="member-anna",
        purchase_price=Decimal("50"),
    )

    cost = resolve_cost(line, skills, members)

    assert cost.source is CostSource.MEMBER
    assert cost.cost == Decimal("300")


def test_skill_cost_when_no_member(skills: list[Skill]) -> None:
    line = _line(unit_price=Decimal("1200"), assigned_skill_ids=["skill-architect", "skill-designer"])

    cost = resolve_cost(line, skills)

    assert cost.source is CostSource.SKILL
    assert cost.estimated_days == Decimal("2")
    assert cost.cost == Decimal("600")


def test_unresolvable_member_never_falls_back(skills: list[Skill]) -> None:
    line = _line(
        unit_price=Decimal("1400"),
        assigned_member_id="ghost",
        assigned_skill_ids=["skill-designer"],
        purchase_price=Decimal("300"),
    )

    cost = resolve_cost(line, skills)

    assert cost.source is CostSource.NONE
    assert cost.cost == 0
    assert not cost.has_margin_signal


def test_unresolvable_skill_ignores_manual_price(skills: list[Skill]) -> None:
    line = _line(
        unit_price=Decimal("1000"),
        assigned_skill_ids=["skill-unknown"],
        purchase_price=Decimal("400"),
    )

    cost = resolve_cost(line, skills)

    assert cost.source is CostSource.NONE


def test_non_positive_day_quantity_counts_as_one_day(skills: list[Skill]) -> None:
    line = _line(unit="jour", quantity=Decimal("0"), assigned_skill_ids=["skill-architect"])

    cost = resolve_cost(line, skills)

    assert cost.estimated_days == Decimal("1")
    assert cost.cost == Decimal("300")


def test_agency_average_for_unassigned_forfait(skills: list[Skill]) -> None:
    line = _line(unit_price=Decimal("1400"))

    cost = resolve_cost(line, skills)

    assert cost.source is CostSource.AVERAGE
    assert cost.estimated_days == Decimal("2")
    assert cost.cost == Decimal("700")


def test_manual_purchase_price_when_nothing_else_applies() -> None:
    line = _line(unit_price=Decimal("1000"), purchase_price=Decimal("400"))

    cost = resolve_cost(line)

    assert cost.source is CostSource.MANUAL
    assert cost.cost == Decimal("400")
    assert cost.margin == Decimal("600")
    assert cost.margin_percentage == Decimal("60")


def test_no_cost_source_has_no_margin_signal() -> None:
    line = _line(unit_price=Decimal("1000"))
    resolver = CostResolver()

    costs, warnings = resolver.resolve_all([line])

    assert costs["l1"].source is CostSource.NONE
    assert costs["l1"].cost == 0
    assert not costs["l1"].has_margin_signal
    assert [warning.code for warning in warnings] == [WarningCode.COST_SOURCE_NONE]


def test_groups_and_discounts_never_carry_cost() -> None:
    group = _line("g1", type=LineType.GROUP)
    discount = _line("d1", type=LineType.DISCOUNT, amount=Decimal("100"), purchase_price=Decimal("10"))

    costs, warnings = CostResolver().resolve_all([group, discount])

    assert costs["g1"].source is CostSource.NONE
    assert costs["d1"].source is CostSource.NONE
    assert warnings == []


def test_agency_rates_average_positive_skill_rates(skills: list[Skill]) -> None:
    rates = compute_agency_rates([*skills, Skill(id="intern")])

    assert rates.sell_rate == Decimal("700")
    assert rates.cost_rate == Decimal("350")
    assert rates.is_computable


def test_agency_cost_rate_falls_back_to_salaries() -> None:
    skills = [Skill(id="s1", sell_daily_rate=Decimal("500"))]
    members = [TeamMember(id="m1", annual_salary=Decimal("43600"))]

    rates = compute_agency_rates(skills, members, working_days_per_year=218)

    assert rates.cost_rate == Decimal("200")
    assert rates.sell_rate == Decimal("500")
