"""Process configuration, read from the environment and an optional `.env` file."""

from __future__ import annotations

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Typed view of the `APP_*`, `STORE_*`, `LLM_*` and `DATABASE_URL` variables.

    Without `DATABASE_URL` the assistant keeps transactions in memory.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_url: str | None = Field(default=None, alias="DATABASE_URL")
    app_timezone: str = Field(default="Asia/Jakarta", alias="APP_TIMEZONE")
    store_timeout_s: float = Field(default=5.0, gt=0, alias="STORE_TIMEOUT_S")

    llm_enabled: bool = Field(default=False, alias="LLM_ENABLED")
    llm_api_key: str | None = Field(default=None, alias="LLM_API_KEY")
    llm_model: str = Field(default="gpt-4o-mini", alias="LLM_MODEL")
    llm_api_base: str = Field(default="https://api.openai.com/v1", alias="LLM_API_BASE")
    llm_timeout_s: float = Field(default=10.0, gt=0, alias="LLM_TIMEOUT_S")
    llm_min_confidence: int = Field(default=50, ge=0, le=100, alias="LLM_MIN_CONFIDENCE")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @field_validator("app_timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Reject timezone names unknown to the system tz database."""

        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown APP_TIMEZONE: {value}") from exc
        return value

    @model_validator(mode="after")
    def require_key_for_llm(self) -> Settings:
        if self.llm_enabled and not self.llm_api_key:
            raise ValueError("LLM_ENABLED=true needs LLM_API_KEY")
        return self

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.app_timezone)


def load_settings() -> Settings:
    """Build `Settings`, turning validation failures into a single startup error.

    Raises:
        RuntimeError: If any variable is missing or malformed.
    """

    try:
        return Settings()
    except ValidationError as exc:
        raise RuntimeError(f"Invalid configuration: {exc}") from exc
