"""Application configuration."""

from decimal import Decimal
from functools import lru_cache
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables."""

    app_name: str = "Quote Builder Engine"
    app_env: str = "development"
    api_prefix: str = "/api/v1"

    log_level: str = "INFO"
    log_json: bool = False

    # Fallback when a document does not carry its own VAT rate.
    default_vat_rate: Decimal = Field(default=Decimal("0.20"), ge=0)
    # Hourly fee mode estimates each included phase at this many hours.
    hourly_hours_per_phase: int = Field(default=40, ge=0)
    # Used to turn member annual salaries into a daily cost rate.
    working_days_per_year: int = Field(default=218, ge=1)
    low_margin_threshold: Decimal = Decimal("20")
    good_margin_threshold: Decimal = Decimal("40")
    percentage_total_tolerance: Decimal = Field(default=Decimal("0.01"), ge=0)

    # Keep .env support for comma-separated values (non-JSON).
    allowed_origins: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: [
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ]
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def parse_origins(cls, value: str | list[str]) -> list[str]:
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""

    return Settings()
