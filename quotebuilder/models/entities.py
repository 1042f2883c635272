"""Domain entities for quote line items, fee configuration and resourcing."""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, field
from decimal import Decimal

from quotebuilder.core.money import ZERO


class LineType(str, enum.Enum):
    PHASE = "phase"
    SERVICE = "service"
    OPTION = "option"
    EXPENSE = "expense"
    DISCOUNT = "discount"
    GROUP = "group"

    @classmethod
    def parse(cls, value: str | LineType) -> LineType:
        """Accept the French "prestation" label used by older documents."""

        if isinstance(value, LineType):
            return value
        normalized = value.strip().lower()
        if normalized == "prestation":
            return cls.SERVICE
        return cls(normalized)


class PricingMode(str, enum.Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class FeeMode(str, enum.Enum):
    FIXED = "fixed"
    PERCENTAGE = "percentage"
    HOURLY = "hourly"
    MIXED = "mixed"


class Section(str, enum.Enum):
    """Ungrouped containers a line can live in."""

    PERCENTAGE = "percentage"
    FIXED = "fixed"


class CostSource(str, enum.Enum):
    MANUAL = "manual"
    SKILL = "skill"
    MEMBER = "member"
    AVERAGE = "average"
    NONE = "none"


class MarginStatus(str, enum.Enum):
    DEFICIT = "deficit"
    LOW = "low"
    FAIR = "fair"
    EXCELLENT = "excellent"


class WarningCode(str, enum.Enum):
    PERCENTAGE_TOTAL_DEVIATION = "percentage_total_deviation"
    SCALE_TARGET_ZERO_TOTAL = "scale_target_zero_total"
    COST_SOURCE_NONE = "cost_source_none"
    DANGLING_GROUP_REFERENCE = "dangling_group_reference"


# Only these types can be priced as a share of the fee base.
PERCENTAGE_CAPABLE_TYPES = frozenset({LineType.PHASE, LineType.SERVICE})


def generate_line_id() -> str:
    return f"line-{uuid.uuid4().hex[:12]}"


@dataclass(slots=True)
class LineItem:
    """A priced entry of a commercial document.

    ``amount`` is kept consistent with the pricing formula by the edit
    helpers below; percentage-priced lines get their amount from the fee
    base instead (see ``quotebuilder.services.percentage_lines``).
    Discount amounts are magnitudes: aggregation subtracts ``abs(amount)``
    whatever the stored sign.
    """

    id: str
    type: LineType
    designation: str = ""
    description: str = ""
    pricing_mode: PricingMode = PricingMode.FIXED
    quantity: Decimal = Decimal("1")
    unit: str = "forfait"
    unit_price: Decimal = ZERO
    amount: Decimal = ZERO
    percentage_fee: Decimal | None = None
    is_included: bool = True
    group_id: str | None = None
    deliverables: list[str] = field(default_factory=list)
    assigned_member_id: str | None = None
    assigned_skill_ids: list[str] = field(default_factory=list)
    purchase_price: Decimal | None = None
    sort_order: int = 0
    phase_code: str | None = None
    # Unit price the line carried in fixed mode, restored when it leaves
    # percentage mode.
    fixed_unit_price: Decimal | None = None

    @property
    def is_group(self) -> bool:
        return self.type is LineType.GROUP

    @property
    def is_discount(self) -> bool:
        return self.type is LineType.DISCOUNT

    @property
    def is_percentage_priced(self) -> bool:
        return self.pricing_mode is PricingMode.PERCENTAGE and self.type in PERCENTAGE_CAPABLE_TYPES

    @property
    def counts_in_subtotal(self) -> bool:
        """Included, priced, and not a discount or a group header."""

        return self.is_included and self.type not in (LineType.DISCOUNT, LineType.GROUP)

    def refresh_amount(self) -> None:
        if self.is_group:
            self.amount = ZERO
            return
        if self.is_percentage_priced:
            return
        if self.is_discount and self.unit_price == ZERO and self.amount != ZERO:
            # Discount entered by its amount only: the amount is authoritative.
            if self.quantity != ZERO:
                self.unit_price = self.amount / self.quantity
            return
        self.amount = self.quantity * self.unit_price

    def set_quantity(self, value: Decimal) -> None:
        self.quantity = value
        self.refresh_amount()

    def set_unit_price(self, value: Decimal) -> None:
        self.unit_price = value
        self.refresh_amount()

    def set_included(self, value: bool) -> None:
        self.is_included = value

    def switch_to_percentage(self) -> None:
        if self.pricing_mode is PricingMode.PERCENTAGE:
            return
        self.fixed_unit_price = self.unit_price
        self.pricing_mode = PricingMode.PERCENTAGE

    def switch_to_fixed(self) -> None:
        if self.pricing_mode is PricingMode.FIXED:
            return
        if self.fixed_unit_price is not None:
            self.unit_price = self.fixed_unit_price
        self.fixed_unit_price = None
        self.pricing_mode = PricingMode.FIXED
        self.refresh_amount()


@dataclass(slots=True)
class FeeConfig:
    """Fee attributes read from the owning commercial document."""

    fee_mode: FeeMode = FeeMode.FIXED
    construction_budget: Decimal | None = None
    fee_percentage: Decimal | None = None
    hourly_rate: Decimal | None = None
    total_amount: Decimal | None = None


@dataclass(slots=True)
class Skill:
    id: str
    name: str = ""
    sell_daily_rate: Decimal = ZERO
    cost_daily_rate: Decimal = ZERO


@dataclass(slots=True)
class TeamMember:
    """Agency member; the first skill drives default sell and cost rates."""

    id: str
    display_name: str = ""
    skill_ids: list[str] = field(default_factory=list)
    custom_daily_rate: Decimal | None = None
    annual_salary: Decimal | None = None


@dataclass(frozen=True, slots=True)
class EngineWarning:
    code: WarningCode
    message: str
    line_id: str | None = None
