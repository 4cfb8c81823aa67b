"""Application configuration via pydantic settings."""

from functools import lru_cache
from pathlib import Path

from typing import Any, Literal

from pydantic import Field
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Typed application configuration."""

    app_env: str = Field("local", alias="APP_ENV")
    app_name: str = "Scenario Booking API"
    api_v1_prefix: str = "/api/v1"

    database_url: str = Field(
        "sqlite+aiosqlite:///./scenario_booking.db", alias="DATABASE_URL"
    )
    sync_database_url: str | None = Field(default=None, alias="SYNC_DATABASE_URL")

    redis_url: str | None = Field(default=None, alias="REDIS_URL")

    availability_max_range_days: int = Field(366, alias="AVAILABILITY_MAX_RANGE_DAYS")
    availability_rounding: Literal["half_up", "half_even", "floor"] = Field(
        "half_up", alias="AVAILABILITY_ROUNDING"
    )
    availability_cache_seconds: int = Field(300, alias="AVAILABILITY_CACHE_SECONDS")
    default_open_hour: int = Field(6, alias="DEFAULT_OPEN_HOUR")
    default_close_hour: int = Field(22, alias="DEFAULT_CLOSE_HOUR")

    export_service_url: str | None = Field(default=None, alias="EXPORT_SERVICE_URL")
    export_api_token: str | None = Field(default=None, alias="EXPORT_API_TOKEN")
    export_poll_interval_seconds: float = Field(
        3.0, alias="EXPORT_POLL_INTERVAL_SECONDS"
    )
    export_max_attempts: int = Field(20, alias="EXPORT_MAX_ATTEMPTS")
    export_request_timeout_seconds: float = Field(
        10.0, alias="EXPORT_REQUEST_TIMEOUT_SECONDS"
    )

    cors_allow_origins: list[str] = Field(
        default_factory=lambda: [
            "http://localhost:3000",
            "http://localhost:5173",
        ],
        alias="CORS_ALLOW_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=False, alias="CORS_ALLOW_CREDENTIALS")
    cors_allowlist: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000"], alias="CORS_ALLOWLIST"
    )

    rate_limit_default: str = Field("100/minute", alias="RATE_LIMIT_DEFAULT")
    rate_limit_availability: str = Field("60/minute", alias="RATE_LIMIT_AVAILABILITY")

    model_config = SettingsConfigDict(
        env_file=Path(__file__).resolve().parents[3] / ".env",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("cors_allow_origins", "cors_allowlist", mode="before")
    @classmethod
    def _split_origins(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @field_validator("default_close_hour")
    @classmethod
    def _check_operating_window(cls, value: int) -> int:
        if not 1 <= value <= 24:
            raise ValueError("DEFAULT_CLOSE_HOUR must be between 1 and 24")
        return value


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""
    return Settings()  # type: ignore[call-arg]
