"""Quote pricing endpoints: recompute, structural edits, budget adjustments."""

from __future__ import annotations

import json
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field, field_validator

from quotebuilder.api.dependencies import get_quote_service
from quotebuilder.core.errors import InvalidOperationError, UnknownLineError
from quotebuilder.models.entities import (
    FeeConfig,
    FeeMode,
    LineItem,
    LineType,
    PricingMode,
    Section,
    Skill,
    TeamMember,
)
from quotebuilder.services.phase_templates import ProjectType
from quotebuilder.services.quote_service import QuoteEngineService, RecomputeConfig, RecomputeResult
from quotebuilder.services.sections import Destination

router = APIRouter(prefix="/quotes", tags=["quotes"])


def parse_skill_ids(value: object) -> list[str]:
    """Accept a list, a JSON array string or a comma-separated string."""

    if value is None:
        return []
    if isinstance(value, list):
        return [str(item) for item in value if str(item).strip()]
    if isinstance(value, str):
        trimmed = value.strip()
        if not trimmed:
            return []
        if trimmed.startswith("["):
            try:
                parsed = json.loads(trimmed)
            except json.JSONDecodeError:
                return []
            return [item for item in parsed if isinstance(item, str)] if isinstance(parsed, list) else []
        return [part.strip() for part in trimmed.split(",") if part.strip()]
    return []


class LineItemPayload(BaseModel):
    id: str = Field(min_length=1, max_length=128)
    type: LineType
    designation: str = ""
    description: str = ""
    pricing_mode: PricingMode = PricingMode.FIXED
    quantity: Decimal = Decimal("1")
    unit: str = Field(default="forfait", max_length=32)
    unit_price: Decimal = Decimal("0")
    amount: Decimal = Decimal("0")
    percentage_fee: Decimal | None = Field(default=None, ge=0)
    is_included: bool = True
    group_id: str | None = None
    deliverables: list[str] = Field(default_factory=list)
    assigned_member_id: str | None = None
    assigned_skill_ids: list[str] = Field(default_factory=list)
    purchase_price: Decimal | None = Field(default=None, ge=0)
    sort_order: int = 0
    phase_code: str | None = None
    fixed_unit_price: Decimal | None = None

    @field_validator("type", mode="before")
    @classmethod
    def parse_type(cls, value: object) -> object:
        if isinstance(value, str):
            return LineType.parse(value)
        return value

    @field_validator("assigned_skill_ids", mode="before")
    @classmethod
    def parse_skills(cls, value: object) -> list[str]:
        return parse_skill_ids(value)


class FeeConfigPayload(BaseModel):
    fee_mode: FeeMode = FeeMode.FIXED
    construction_budget: Decimal | None = None
    fee_percentage: Decimal | None = None
    hourly_rate: Decimal | None = None
    total_amount: Decimal | None = None


class SkillPayload(BaseModel):
    id: str = Field(min_length=1)
    name: str = ""
    sell_daily_rate: Decimal = Field(default=Decimal("0"), ge=0)
    cost_daily_rate: Decimal = Field(default=Decimal("0"), ge=0)


class TeamMemberPayload(BaseModel):
    id: str = Field(min_length=1)
    display_name: str = ""
    skill_ids: list[str] = Field(default_factory=list)
    custom_daily_rate: Decimal | None = Field(default=None, ge=0)
    annual_salary: Decimal | None = Field(default=None, ge=0)


class QuotePayload(BaseModel):
    lines: list[LineItemPayload] = Field(default_factory=list)
    fee: FeeConfigPayload = Field(default_factory=FeeConfigPayload)
    vat_rate: Decimal | None = Field(default=None, ge=0)
    skills: list[SkillPayload] = Field(default_factory=list)
    members: list[TeamMemberPayload] = Field(default_factory=list)


class MoveLinePayload(QuotePayload):
    line_id: str
    section: Section | None = None
    group_id: str | None = None
    position: int | None = Field(default=None, ge=0)


class LineRefPayload(QuotePayload):
    line_id: str


class ReorderLinePayload(LineRefPayload):
    position: int = Field(ge=0)


class PercentageFeePayload(LineRefPayload):
    percentage_fee: Decimal = Field(ge=0)


class IncludedPayload(LineRefPayload):
    is_included: bool


class AddLinePayload(QuotePayload):
    line_type: LineType
    designation: str = ""
    group_id: str | None = None

    @field_validator("line_type", mode="before")
    @classmethod
    def parse_type(cls, value: object) -> object:
        if isinstance(value, str):
            return LineType.parse(value)
        return value


class PhaseTemplatePayload(QuotePayload):
    project_type: ProjectType


class ScalePayload(QuotePayload):
    delta: Decimal = Field(gt=-1)


class ScaleToTargetPayload(QuotePayload):
    target_total: Decimal = Field(ge=0)


class RoundPayload(QuotePayload):
    increment: Decimal = Field(gt=0)


def _to_lines(payload: QuotePayload) -> list[LineItem]:
    seen: set[str] = set()
    lines: list[LineItem] = []
    for item in payload.lines:
        if item.id in seen:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Duplicate line id in payload.",
            )
        seen.add(item.id)
        lines.append(LineItem(**item.model_dump()))
    return lines


def _to_config(payload: QuotePayload) -> RecomputeConfig:
    return RecomputeConfig(
        fee=FeeConfig(**payload.fee.model_dump()),
        vat_rate=payload.vat_rate,
        skills=[Skill(**skill.model_dump()) for skill in payload.skills],
        members=[TeamMember(**member.model_dump()) for member in payload.members],
    )


@contextmanager
def _engine_errors() -> Iterator[None]:
    try:
        yield
    except UnknownLineError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except InvalidOperationError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc


def _respond(
    service: QuoteEngineService,
    payload: QuotePayload,
    operation: Callable[[list[LineItem], RecomputeConfig], RecomputeResult],
) -> dict[str, object]:
    lines = _to_lines(payload)
    config = _to_config(payload)
    with _engine_errors():
        result = operation(lines, config)
    return service.serialize_result(result)


@router.post("/recompute")
def recompute_quote(
    payload: QuotePayload,
    service: QuoteEngineService = Depends(get_quote_service),
) -> dict[str, object]:
    return _respond(service, payload, service.recompute)


@router.post("/lines/move")
def move_quote_line(
    payload: MoveLinePayload,
    service: QuoteEngineService = Depends(get_quote_service),
) -> dict[str, object]:
    with _engine_errors():
        destination = Destination(section=payload.section, group_id=payload.group_id)
    return _respond(
        service,
        payload,
        lambda lines, config: service.move_line(
            lines,
            config,
            line_id=payload.line_id,
            destination=destination,
            position=payload.position,
        ),
    )


@router.post("/lines/delete")
def delete_quote_line(
    payload: LineRefPayload,
    service: QuoteEngineService = Depends(get_quote_service),
) -> dict[str, object]:
    return _respond(
        service,
        payload,
        lambda lines, config: service.delete_line(lines, config, line_id=payload.line_id),
    )


@router.post("/lines/duplicate")
def duplicate_quote_line(
    payload: LineRefPayload,
    service: QuoteEngineService = Depends(get_quote_service),
) -> dict[str, object]:
    return _respond(
        service,
        payload,
        lambda lines, config: service.duplicate_line(lines, config, line_id=payload.line_id),
    )


@router.post("/lines", status_code=201)
def add_quote_line(
    payload: AddLinePayload,
    service: QuoteEngineService = Depends(get_quote_service),
) -> dict[str, object]:
    return _respond(
        service,
        payload,
        lambda lines, config: service.add_line(
            lines,
            config,
            line_type=payload.line_type,
            designation=payload.designation,
            group_id=payload.group_id,
        ),
    )


@router.post("/phases/from-template")
def add_template_phases(
    payload: PhaseTemplatePayload,
    service: QuoteEngineService = Depends(get_quote_service),
) -> dict[str, object]:
    return _respond(
        service,
        payload,
        lambda lines, config: service.add_phases_from_template(lines, config, project_type=payload.project_type),
    )


@router.post("/adjust/scale")
def scale_quote(
    payload: ScalePayload,
    service: QuoteEngineService = Depends(get_quote_service),
) -> dict[str, object]:
    return _respond(
        service,
        payload,
        lambda lines, config: service.scale_by_percentage(lines, config, delta=payload.delta),
    )


@router.post("/adjust/scale-to-target")
def scale_quote_to_target(
    payload: ScaleToTargetPayload,
    service: QuoteEngineService = Depends(get_quote_service),
) -> dict[str, object]:
    return _respond(
        service,
        payload,
        lambda lines, config: service.scale_to_target(lines, config, target_total=payload.target_total),
    )


@router.post("/adjust/round")
def round_quote_prices(
    payload: RoundPayload,
    service: QuoteEngineService = Depends(get_quote_service),
) -> dict[str, object]:
    return _respond(
        service,
        payload,
        lambda lines, config: service.round_prices(lines, config, increment=payload.increment),
    )


@router.post("/lines/reorder")
def reorder_quote_line(
    payload: ReorderLinePayload,
    service: QuoteEngineService = Depends(get_quote_service),
) -> dict[str, object]:
    return _respond(
        service,
        payload,
        lambda lines, config: service.reorder_line(lines, config, line_id=payload.line_id, position=payload.position),
    )


@router.post("/lines/percentage-fee")
def set_quote_line_percentage_fee(
    payload: PercentageFeePayload,
    service: QuoteEngineService = Depends(get_quote_service),
) -> dict[str, object]:
    return _respond(
        service,
        payload,
        lambda lines, config: service.set_percentage_fee(
            lines,
            config,
            line_id=payload.line_id,
            percentage_fee=payload.percentage_fee,
        ),
    )


@router.post("/lines/included")
def set_quote_line_included(
    payload: IncludedPayload,
    service: QuoteEngineService = Depends(get_quote_service),
) -> dict[str, object]:
    return _respond(
        service,
        payload,
        lambda lines, config: service.set_included(lines, config, line_id=payload.line_id, is_included=payload.is_included),
    )
