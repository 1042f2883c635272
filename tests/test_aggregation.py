from __future__ import annotations

from decimal import Decimal

from quotebuilder.models.entities import LineItem, LineType, MarginStatus, PricingMode
from quotebuilder.services.aggregation import aggregate, margin_status_for


def _line(line_id: str, line_type: LineType = LineType.SERVICE, **overrides: object) -> LineItem:
    values: dict[str, object] = {"id": line_id, "type": line_type}
    values.update(overrides)
    line = LineItem(**values)
    line.refresh_amount()
    return line


def test_discount_is_subtracted_by_magnitude() -> None:
    service = _line("s1", quantity=Decimal("2"), unit_price=Decimal("500"))
    negative = _line("d1", LineType.DISCOUNT, quantity=Decimal("1"), unit_price=Decimal("-100"))
    positive = _line("d2", LineType.DISCOUNT, quantity=Decimal("1"), unit_price=Decimal("100"))

    assert service.amount == Decimal("1000")
    assert aggregate([service, negative]).total_ht == Decimal("900")
    assert aggregate([service, positive]).total_ht == Decimal("900")


def test_excluded_lines_are_reported_but_not_totalled() -> None:
    lines = [
        _line("s1", unit_price=Decimal("1000")),
        _line("o1", LineType.OPTION, unit_price=Decimal("300"), is_included=False),
    ]

    totals = aggregate(lines)

    assert totals.subtotal == Decimal("1000")
    assert totals.total_ht == Decimal("1000")
    assert totals.sections.excluded == Decimal("300")


def test_every_discount_is_subtracted_whatever_its_inclusion_flag() -> None:
    service = _line("s1", quantity=Decimal("2"), unit_price=Decimal("500"))
    excluded_discount = _line("d1", LineType.DISCOUNT, unit_price=Decimal("100"), is_included=False)

    totals = aggregate([service, excluded_discount])

    assert totals.total_discount == Decimal("100")
    assert totals.total_ht == Decimal("900")
    assert totals.sections.discounts == Decimal("100")
    assert totals.sections.excluded == 0


def test_vat_and_ttc() -> None:
    lines = [_line("s1", unit_price=Decimal("1000"))]

    default_rate = aggregate(lines)
    reduced_rate = aggregate(lines, vat_rate=Decimal("0.10"))

    assert default_rate.vat == Decimal("200")
    assert default_rate.total_ttc == Decimal("1200")
    assert reduced_rate.vat == Decimal("100")
    assert reduced_rate.total_ttc == Decimal("1100")


def test_section_subtotals_split_phases_from_other_services() -> None:
    phase = _line("p1", LineType.PHASE, pricing_mode=PricingMode.PERCENTAGE, percentage_fee=Decimal("100"))
    phase.amount = Decimal("4000")
    lines = [
        phase,
        _line("s1", unit_price=Decimal("1000")),
        _line("e1", LineType.EXPENSE, unit_price=Decimal("150")),
        _line("d1", LineType.DISCOUNT, unit_price=Decimal("-150")),
    ]

    totals = aggregate(lines)

    assert totals.sections.phases == Decimal("4000")
    assert totals.sections.other_services == Decimal("1150")
    assert totals.sections.discounts == Decimal("150")
    assert totals.total_ht == Decimal("5000")
    assert totals.percentage_total == Decimal("100")


def test_margin_from_manual_purchase_prices() -> None:
    lines = [
        _line("s1", unit_price=Decimal("1000"), purchase_price=Decimal("400")),
        _line("s2", unit_price=Decimal("1000"), purchase_price=Decimal("900")),
        _line("s3", unit_price=Decimal("1000"), purchase_price=Decimal("1200")),
        _line("s4", unit_price=Decimal("1000")),
    ]

    totals = aggregate(lines)

    assert totals.total_purchase_cost == Decimal("2500")
    assert totals.total_margin == Decimal("1500")
    assert totals.total_margin_percentage == Decimal("37.5")
    assert totals.margin_status is MarginStatus.FAIR
    assert totals.low_margin_line_ids == ["s2"]
    assert totals.negative_margin_line_ids == ["s3"]


def test_group_subtotals_only_count_included_members() -> None:
    lines = [
        _line("g1", LineType.GROUP),
        _line("s1", unit_price=Decimal("700"), group_id="g1"),
        _line("o1", LineType.OPTION, unit_price=Decimal("300"), group_id="g1", is_included=False),
        _line("s2", unit_price=Decimal("100")),
    ]

    totals = aggregate(lines)

    assert totals.group_subtotals == {"g1": Decimal("700")}
    assert totals.total_ht == Decimal("800")


def test_empty_quote_totals_are_zero() -> None:
    totals = aggregate([])

    assert totals.total_ht == 0
    assert totals.total_ttc == 0
    assert totals.total_margin_percentage == 0
    assert totals.average_daily_rate == 0


def test_margin_status_thresholds() -> None:
    assert margin_status_for(Decimal("-1")) is MarginStatus.DEFICIT
    assert margin_status_for(Decimal("0")) is MarginStatus.LOW
    assert margin_status_for(Decimal("19.99")) is MarginStatus.LOW
    assert margin_status_for(Decimal("20")) is MarginStatus.FAIR
    assert margin_status_for(Decimal("40")) is MarginStatus.EXCELLENT
