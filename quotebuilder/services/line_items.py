"""Line item lifecycle helpers: creation, duplication, copies."""

from __future__ import annotations

from collections.abc import Iterable, MutableSequence
from dataclasses import replace
from decimal import Decimal

from quotebuilder.core.errors import UnknownLineError
from quotebuilder.models.entities import LineItem, LineType, PricingMode, generate_line_id

DEFAULT_PHASE_PERCENTAGE = Decimal("15")


def new_line(
    line_type: LineType,
    *,
    sort_order: int = 0,
    designation: str = "",
    group_id: str | None = None,
    quantity: Decimal = Decimal("1"),
    unit: str = "forfait",
    unit_price: Decimal = Decimal("0"),
) -> LineItem:
    """Create a line with editor defaults for its type."""

    is_phase = line_type is LineType.PHASE
    line = LineItem(
        id=generate_line_id(),
        type=line_type,
        designation=designation,
        pricing_mode=PricingMode.PERCENTAGE if is_phase else PricingMode.FIXED,
        quantity=quantity,
        unit=unit,
        unit_price=unit_price,
        percentage_fee=DEFAULT_PHASE_PERCENTAGE if is_phase else None,
        is_included=line_type is not LineType.OPTION,
        group_id=group_id,
        sort_order=sort_order,
    )
    line.refresh_amount()
    return line


def append_line(lines: MutableSequence[LineItem], line_type: LineType, **kwargs) -> LineItem:
    """Create a line at ``sort_order = len(lines)`` and add it to ``lines``."""

    line = new_line(line_type, sort_order=len(lines), **kwargs)
    lines.append(line)
    return line


def copy_line(line: LineItem) -> LineItem:
    """Independent copy: list fields are not shared with the source."""

    return replace(
        line,
        deliverables=list(line.deliverables),
        assigned_skill_ids=list(line.assigned_skill_ids),
    )


def copy_lines(lines: Iterable[LineItem]) -> list[LineItem]:
    return [copy_line(line) for line in lines]


def find_line(lines: Iterable[LineItem], line_id: str) -> LineItem:
    for line in lines:
        if line.id == line_id:
            return line
    raise UnknownLineError(line_id)


def duplicate_line(lines: MutableSequence[LineItem], line_id: str) -> LineItem:
    source = find_line(lines, line_id)
    duplicate = copy_line(source)
    duplicate.id = generate_line_id()
    duplicate.designation = f"{source.designation} (copie)"
    duplicate.sort_order = max((line.sort_order for line in lines), default=-1) + 1
    lines.append(duplicate)
    return duplicate
