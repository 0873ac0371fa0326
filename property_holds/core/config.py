from functools import lru_cache
from typing import Any

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO", alias="LOG_LEVEL")
    json_output: bool = Field(default=False, alias="LOG_JSON")


class AppConfig(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    env: str = Field(default="development", alias="APP_ENV")
    host: str = Field(default="0.0.0.0", alias="APP_HOST")
    port: int = Field(default=8000, alias="APP_PORT")
    timezone: str | None = Field(default=None, alias="PRIMARY_TIMEZONE")

    database_url: str = Field(default="sqlite:///./data/holds.db", alias="DATABASE_URL")

    api_token: str | None = Field(default=None, alias="API_TOKEN")

    # Seed values for the hold_* SystemConfig rows, also used when a row is missing.
    hold_duration_hours: float = Field(default=24, alias="HOLD_DURATION_HOURS")
    hold_max_extends: int = Field(default=2, alias="HOLD_MAX_EXTENDS")
    hold_extend_before_hours: float = Field(default=2, alias="HOLD_EXTEND_BEFORE_HOURS")

    hold_sweep_interval_seconds: int = Field(default=60, alias="HOLD_SWEEP_INTERVAL_SECONDS")

    logging: LoggingConfig = Field(default_factory=LoggingConfig)


@lru_cache
def get_settings() -> AppConfig:
    return AppConfig()


def get_config_value(key: str, default: Any | None = None) -> Any:
    settings = get_settings()
    return getattr(settings, key, default)
