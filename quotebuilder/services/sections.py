"""Grouping and section partition of quote lines.

Every non-group line lives in exactly one container: a named group
(``group_id`` set to an existing group line), the percentage section
(ungrouped, percentage priced) or the fixed section (ungrouped, fixed
priced). Group header lines are ordered among themselves. ``sort_order``
is contiguous inside each container.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, MutableSequence, Sequence
from dataclasses import dataclass, field
from decimal import Decimal

from quotebuilder.core.errors import InvalidOperationError, UnknownLineError
from quotebuilder.models.entities import (
    PERCENTAGE_CAPABLE_TYPES,
    EngineWarning,
    LineItem,
    Section,
    WarningCode,
)
from quotebuilder.services.percentage_lines import recompute_percentage_lines

logger = logging.getLogger(__name__)

GROUP_HEADERS = "groups"


@dataclass(frozen=True, slots=True)
class Destination:
    """Target container of a move: a section or a group, never both."""

    section: Section | None = None
    group_id: str | None = None

    def __post_init__(self) -> None:
        if (self.section is None) == (self.group_id is None):
            raise InvalidOperationError("Destination must name exactly one section or group.")


@dataclass(slots=True)
class SectionPartition:
    percentage: list[LineItem] = field(default_factory=list)
    fixed: list[LineItem] = field(default_factory=list)
    groups: dict[str, list[LineItem]] = field(default_factory=dict)
    group_headers: list[LineItem] = field(default_factory=list)


def _group_ids(lines: Iterable[LineItem]) -> set[str]:
    return {line.id for line in lines if line.is_group}


def _find(lines: Iterable[LineItem], line_id: str) -> LineItem:
    for line in lines:
        if line.id == line_id:
            return line
    raise UnknownLineError(line_id)


def container_key(line: LineItem, group_ids: set[str]) -> str:
    """Stable key naming the container a line currently lives in.

    A ``group_id`` that points at no group line is read as ungrouped.
    """

    if line.is_group:
        return GROUP_HEADERS
    if line.group_id is not None and line.group_id in group_ids:
        return f"group:{line.group_id}"
    if line.is_percentage_priced:
        return f"section:{Section.PERCENTAGE.value}"
    return f"section:{Section.FIXED.value}"


def _siblings(lines: Iterable[LineItem], key: str, group_ids: set[str], exclude: LineItem | None = None) -> list[LineItem]:
    members = [line for line in lines if line is not exclude and container_key(line, group_ids) == key]
    # sorted() is stable: ties keep collection order.
    return sorted(members, key=lambda line: line.sort_order)


def _renumber(ordered: Sequence[LineItem]) -> None:
    for index, line in enumerate(ordered):
        line.sort_order = index


def partition(lines: Iterable[LineItem]) -> SectionPartition:
    lines = list(lines)
    group_ids = _group_ids(lines)
    result = SectionPartition()
    for line in sorted(lines, key=lambda row: row.sort_order):
        key = container_key(line, group_ids)
        if key == GROUP_HEADERS:
            result.group_headers.append(line)
        elif key.startswith("group:"):
            result.groups.setdefault(line.group_id, []).append(line)
        elif key == f"section:{Section.PERCENTAGE.value}":
            result.percentage.append(line)
        else:
            result.fixed.append(line)
    for header in result.group_headers:
        result.groups.setdefault(header.id, [])
    return result


def renumber_all(lines: Sequence[LineItem]) -> None:
    """Make ``sort_order`` contiguous inside every container."""

    group_ids = _group_ids(lines)
    keys = dict.fromkeys(container_key(line, group_ids) for line in lines)
    for key in keys:
        _renumber(_siblings(lines, key, group_ids))


def detach_dangling_group_refs(lines: Sequence[LineItem]) -> list[EngineWarning]:
    """Clear ``group_id`` values that reference no existing group line."""

    group_ids = _group_ids(lines)
    warnings: list[EngineWarning] = []
    for line in lines:
        if line.is_group or line.group_id is None or line.group_id in group_ids:
            continue
        logger.warning(
            "Line %s references missing group %s; treating it as ungrouped.",
            line.id,
            line.group_id,
            extra={"line_id": line.id},
        )
        warnings.append(
            EngineWarning(
                code=WarningCode.DANGLING_GROUP_REFERENCE,
                message=f"Group '{line.group_id}' does not exist; line treated as ungrouped.",
                line_id=line.id,
            )
        )
        line.group_id = None
    return warnings


def move_line(
    lines: Sequence[LineItem],
    line_id: str,
    destination: Destination,
    *,
    position: int | None = None,
    base: Decimal | None = None,
) -> LineItem:
    """Move a line into a section or group at ``position`` (end by default).

    Moving a phase or service into the percentage section switches it to
    percentage pricing; moving into the fixed section switches it back,
    restoring the unit price it had in fixed mode. When ``base`` is given,
    percentage lines are re-derived right away, so no stale amount is left
    for aggregation to read.
    """

    line = _find(lines, line_id)
    if line.is_group:
        raise InvalidOperationError("Group lines cannot be moved into a section or another group.")

    group_ids = _group_ids(lines)
    if destination.group_id is not None and destination.group_id not in group_ids:
        raise InvalidOperationError(f"Line '{destination.group_id}' is not a group.")
    if destination.section is Section.PERCENTAGE and line.type not in PERCENTAGE_CAPABLE_TYPES:
        raise InvalidOperationError("Only phase and service lines can be priced as a percentage.")

    source_key = container_key(line, group_ids)

    if destination.group_id is not None:
        line.group_id = destination.group_id
    else:
        line.group_id = None
        if destination.section is Section.PERCENTAGE:
            line.switch_to_percentage()
        else:
            line.switch_to_fixed()

    destination_key = container_key(line, group_ids)
    ordered = _siblings(lines, destination_key, group_ids, exclude=line)
    index = len(ordered) if position is None else max(0, min(position, len(ordered)))
    ordered.insert(index, line)
    _renumber(ordered)
    if source_key != destination_key:
        _renumber(_siblings(lines, source_key, group_ids))

    if base is not None:
        recompute_percentage_lines(lines, base)
    logger.debug("Moved line %s from %s to %s at %s.", line.id, source_key, destination_key, index)
    return line


def reorder_line(lines: Sequence[LineItem], line_id: str, position: int) -> LineItem:
    """Move a line to ``position`` inside its current container."""

    line = _find(lines, line_id)
    group_ids = _group_ids(lines)
    key = container_key(line, group_ids)
    ordered = _siblings(lines, key, group_ids, exclude=line)
    ordered.insert(max(0, min(position, len(ordered))), line)
    _renumber(ordered)
    return line


def delete_line(lines: MutableSequence[LineItem], line_id: str, *, base: Decimal | None = None) -> LineItem:
    """Remove a line from the collection in place.

    Deleting a group detaches its members, which land at the end of the
    section matching their pricing mode.
    """

    line = _find(lines, line_id)
    group_ids = _group_ids(lines)
    source_key = container_key(line, group_ids)

    detached: list[LineItem] = []
    if line.is_group:
        detached = _siblings(lines, f"group:{line.id}", group_ids)
    del lines[next(index for index, row in enumerate(lines) if row is line)]
    group_ids.discard(line.id)

    # Detached members go after every existing line, keeping group order.
    offset = max((row.sort_order for row in lines), default=0) + 1
    for index, member in enumerate(detached):
        member.group_id = None
        member.sort_order = offset + index

    _renumber(_siblings(lines, source_key, group_ids))
    for key in dict.fromkeys(container_key(member, group_ids) for member in detached):
        _renumber(_siblings(lines, key, group_ids))

    if base is not None:
        recompute_percentage_lines(lines, base)
    logger.debug("Deleted line %s (%d member(s) detached).", line.id, len(detached))
    return line
