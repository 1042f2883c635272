from __future__ import annotations

from decimal import Decimal

import pytest

from quotebuilder.core.errors import InvalidOperationError, UnknownLineError
from quotebuilder.models.entities import LineItem, LineType, PricingMode, WarningCode
from quotebuilder.services.percentage_lines import (
    included_percentage_total,
    percentage_total_warning,
    recompute_percentage_lines,
    set_percentage_fee,
)


def _phase(line_id: str, fee: str, *, included: bool = True) -> LineItem:
    return LineItem(
        id=line_id,
        type=LineType.PHASE,
        pricing_mode=PricingMode.PERCENTAGE,
        percentage_fee=Decimal(fee),
        is_included=included,
    )


def test_phases_share_the_base_by_percentage() -> None:
    lines = [_phase("p1", "60"), _phase("p2", "40")]

    recompute_percentage_lines(lines, Decimal("15000"))

    assert [line.amount for line in lines] == [Decimal("9000"), Decimal("6000")]
    assert [line.unit_price for line in lines] == [Decimal("9000"), Decimal("6000")]


def test_included_lines_exhaust_base_when_fees_do_not_sum_to_hundred() -> None:
    lines = [_phase("p1", "30"), _phase("p2", "20")]

    recompute_percentage_lines(lines, Decimal("1000"))

    assert lines[0].amount == Decimal("600")
    assert lines[1].amount == Decimal("400")
    assert sum(line.amount for line in lines) == Decimal("1000")


def test_excluded_line_priced_with_its_share_but_not_in_denominator() -> None:
    lines = [_phase("p1", "50"), _phase("option", "25", included=False)]

    recompute_percentage_lines(lines, Decimal("1000"))

    assert included_percentage_total(lines) == Decimal("50")
    assert lines[0].amount == Decimal("1000")
    assert lines[1].amount == Decimal("500")


def test_fixed_lines_are_left_alone() -> None:
    service = LineItem(id="s1", type=LineType.SERVICE, quantity=Decimal("2"), unit_price=Decimal("500"), amount=Decimal("1000"))
    lines = [_phase("p1", "100"), service]

    recompute_percentage_lines(lines, Decimal("2000"))

    assert service.amount == Decimal("1000")
    assert service.unit_price == Decimal("500")


def test_recompute_is_idempotent() -> None:
    lines = [_phase("p1", "35"), _phase("p2", "65")]

    recompute_percentage_lines(lines, Decimal("12345"))
    first = [(line.amount, line.unit_price) for line in lines]
    recompute_percentage_lines(lines, Decimal("12345"))

    assert [(line.amount, line.unit_price) for line in lines] == first


def test_zero_base_yields_zero_amounts() -> None:
    lines = [_phase("p1", "60"), _phase("p2", "40")]

    recompute_percentage_lines(lines, Decimal("0"))

    assert all(line.amount == 0 for line in lines)


def test_set_percentage_fee_rederives_siblings() -> None:
    lines = [_phase("p1", "50"), _phase("p2", "50")]
    recompute_percentage_lines(lines, Decimal("1000"))

    set_percentage_fee(lines, "p1", Decimal("150"), Decimal("1000"))

    assert lines[0].amount == Decimal("750")
    assert lines[1].amount == Decimal("250")


def test_set_percentage_fee_failures() -> None:
    service = LineItem(id="s1", type=LineType.SERVICE)
    lines = [_phase("p1", "50"), service]

    with pytest.raises(UnknownLineError):
        set_percentage_fee(lines, "missing", Decimal("10"), Decimal("1000"))
    with pytest.raises(InvalidOperationError):
        set_percentage_fee(lines, "s1", Decimal("10"), Decimal("1000"))
    with pytest.raises(InvalidOperationError):
        set_percentage_fee(lines, "p1", Decimal("-1"), Decimal("1000"))


def test_percentage_total_warning() -> None:
    assert percentage_total_warning([_phase("p1", "60"), _phase("p2", "40")], Decimal("0.01")) is None
    assert percentage_total_warning([], Decimal("0.01")) is None

    warning = percentage_total_warning([_phase("p1", "60"), _phase("p2", "30")], Decimal("0.01"))

    assert warning is not None
    assert warning.code is WarningCode.PERCENTAGE_TOTAL_DEVIATION
