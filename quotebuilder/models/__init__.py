"""Quote domain model package."""

from quotebuilder.models.entities import (
    CostSource,
    EngineWarning,
    FeeConfig,
    FeeMode,
    LineItem,
    LineType,
    MarginStatus,
    PricingMode,
    Section,
    Skill,
    TeamMember,
    WarningCode,
)

__all__ = [
    "CostSource",
    "EngineWarning",
    "FeeConfig",
    "FeeMode",
    "LineItem",
    "LineType",
    "MarginStatus",
    "PricingMode",
    "Section",
    "Skill",
    "TeamMember",
    "WarningCode",
]
