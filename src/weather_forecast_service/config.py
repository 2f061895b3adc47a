"""Typed settings loader for the weather forecast service."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import AnyUrl, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigError

SUPPORTED_UNITS: dict[str, str] = {
    "metric": "celsius",
    "imperial": "fahrenheit",
}
MAX_FORECAST_DAYS = 16


class Settings(BaseSettings):
    """Application settings loaded from environment variables and `.env`."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_env: Literal["dev", "staging", "prod"] = Field(default="dev", alias="APP_ENV")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", alias="LOG_LEVEL"
    )

    open_meteo_forecast_url: AnyUrl = Field(
        default=AnyUrl("https://api.open-meteo.com/v1/forecast"),
        alias="OPEN_METEO_FORECAST_URL",
    )
    open_meteo_geocoding_url: AnyUrl = Field(
        default=AnyUrl("https://geocoding-api.open-meteo.com/v1/search"),
        alias="OPEN_METEO_GEOCODING_URL",
    )
    open_meteo_api_key: str | None = Field(
        default=None, alias="OPEN_METEO_API_KEY", repr=False
    )

    weather_user_agent: str = Field(
        default="weather-forecast-service/0.1 (contact: ops@example.com)",
        alias="WEATHER_USER_AGENT",
    )
    weather_timeout_seconds: float = Field(default=15.0, alias="WEATHER_TIMEOUT_SECONDS")
    weather_max_retries: int = Field(default=1, alias="WEATHER_MAX_RETRIES")
    weather_retry_delay_seconds: float = Field(
        default=1.0, alias="WEATHER_RETRY_DELAY_SECONDS"
    )
    weather_default_location: str | None = Field(
        default=None, alias="WEATHER_DEFAULT_LOCATION"
    )
    weather_default_units: str = Field(default="metric", alias="WEATHER_DEFAULT_UNITS")
    weather_default_days: int = Field(default=7, alias="WEATHER_DEFAULT_DAYS")
    weather_max_print: int = Field(default=7, alias="WEATHER_MAX_PRINT")
    weather_journal_raw_payloads: bool = Field(default=True, alias="WEATHER_JOURNAL_RAW_PAYLOADS")

    journal_dir: Path = Field(default=Path("./data/journal"), alias="JOURNAL_DIR")
    weather_raw_payload_dir: Path = Field(
        default=Path("./data/raw/weather"),
        alias="WEATHER_RAW_PAYLOAD_DIR",
    )

    @field_validator("open_meteo_api_key", "weather_default_location", mode="before")
    @classmethod
    def empty_string_to_none(cls, value: Any) -> Any:
        """Treat empty env-string values as unset."""
        if isinstance(value, str) and value.strip() == "":
            return None
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @field_validator("weather_default_units", mode="before")
    @classmethod
    def lower_units(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @model_validator(mode="after")
    def validate_weather(self) -> Settings:
        """Validate provider and default-query settings."""
        if not self.weather_user_agent.strip():
            raise ValueError("WEATHER_USER_AGENT must not be empty.")
        if self.weather_timeout_seconds <= 0:
            raise ValueError("WEATHER_TIMEOUT_SECONDS must be > 0.")
        if self.weather_max_retries < 0:
            raise ValueError("WEATHER_MAX_RETRIES must be >= 0.")
        if self.weather_retry_delay_seconds < 0:
            raise ValueError("WEATHER_RETRY_DELAY_SECONDS must be >= 0.")
        if self.weather_default_units not in SUPPORTED_UNITS:
            raise ValueError(
                "WEATHER_DEFAULT_UNITS must be one of: " + ", ".join(sorted(SUPPORTED_UNITS))
            )
        if not (1 <= self.weather_default_days <= MAX_FORECAST_DAYS):
            raise ValueError(f"WEATHER_DEFAULT_DAYS must be between 1 and {MAX_FORECAST_DAYS}.")
        if self.weather_max_print <= 0:
            raise ValueError("WEATHER_MAX_PRINT must be > 0.")
        return self

    def safe_summary(self) -> dict[str, Any]:
        """Return config summary safe for journaling (no credentials)."""
        return {
            "app_env": self.app_env,
            "forecast_url": str(self.open_meteo_forecast_url),
            "geocoding_url": str(self.open_meteo_geocoding_url),
            "api_key_configured": self.open_meteo_api_key is not None,
            "weather_timeout_seconds": self.weather_timeout_seconds,
            "weather_max_retries": self.weather_max_retries,
            "weather_default_units": self.weather_default_units,
            "weather_default_days": self.weather_default_days,
            "weather_raw_journaling": self.weather_journal_raw_payloads,
        }


def load_settings() -> Settings:
    """Load and validate settings, raising ConfigError on failure.

    Journal directories are created by the journal, not here.
    """
    try:
        settings = Settings()
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Failed reading environment/.env: {exc}") from exc

    return settings
