"""Typed settings loader for the skywatch weather client."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigError


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

    nws_api_base_url: str = Field(
        default="https://api.weather.gov",
        alias="NWS_API_BASE_URL",
    )
    nws_user_agent: str = Field(
        default="skywatch/0.1 (contact: weather@example.com)",
        alias="NWS_USER_AGENT",
    )
    weather_timeout_seconds: float = Field(default=20.0, alias="WEATHER_TIMEOUT_SECONDS")
    weather_default_lat: float | None = Field(default=None, alias="WEATHER_DEFAULT_LAT")
    weather_default_lon: float | None = Field(default=None, alias="WEATHER_DEFAULT_LON")

    alert_notifications_enabled: bool = Field(
        default=True, alias="ALERT_NOTIFICATIONS_ENABLED"
    )
    location_label: str | None = Field(default=None, alias="LOCATION_LABEL")
    state_store_path: Path = Field(
        default=Path("./data/skywatch_state.json"),
        alias="STATE_STORE_PATH",
    )

    current_conditions_source: Literal["noaa", "pws"] = Field(
        default="noaa", alias="CURRENT_CONDITIONS_SOURCE"
    )
    pws_api_base_url: str = Field(
        default="https://api.weather.com",
        alias="PWS_API_BASE_URL",
    )
    pws_station_id: str | None = Field(default=None, alias="PWS_STATION_ID")
    pws_api_key: str | None = Field(default=None, alias="PWS_API_KEY", repr=False)
    pws_timeout_seconds: float = Field(default=15.0, alias="PWS_TIMEOUT_SECONDS")

    @field_validator(
        "weather_default_lat",
        "weather_default_lon",
        "location_label",
        "pws_station_id",
        "pws_api_key",
        mode="before",
    )
    @classmethod
    def empty_string_to_none(cls, value: Any) -> Any:
        """Treat empty env-string values as unset optionals."""
        if isinstance(value, str) and value.strip() == "":
            return None
        if isinstance(value, str):
            return value.strip()
        return value

    @model_validator(mode="after")
    def validate_ranges(self) -> Settings:
        """Validate cross-field and range constraints."""
        for name, url in (
            ("NWS_API_BASE_URL", self.nws_api_base_url),
            ("PWS_API_BASE_URL", self.pws_api_base_url),
        ):
            if not url.startswith(("http://", "https://")):
                raise ValueError(f"{name} must be an http(s) URL.")
        if not self.nws_user_agent.strip():
            raise ValueError("NWS_USER_AGENT must not be empty.")
        if self.weather_timeout_seconds <= 0:
            raise ValueError("WEATHER_TIMEOUT_SECONDS must be > 0.")
        if self.pws_timeout_seconds <= 0:
            raise ValueError("PWS_TIMEOUT_SECONDS must be > 0.")

        has_default_lat = self.weather_default_lat is not None
        has_default_lon = self.weather_default_lon is not None
        if has_default_lat != has_default_lon:
            raise ValueError("WEATHER_DEFAULT_LAT and WEATHER_DEFAULT_LON must be set together.")
        if has_default_lat and not (-90 <= self.weather_default_lat <= 90):
            raise ValueError("WEATHER_DEFAULT_LAT must be between -90 and 90.")
        if has_default_lon and not (-180 <= self.weather_default_lon <= 180):
            raise ValueError("WEATHER_DEFAULT_LON must be between -180 and 180.")
        return self

    @property
    def nws_base_url(self) -> str:
        """NWS base URL without a trailing slash."""
        return self.nws_api_base_url.rstrip("/")

    @property
    def pws_base_url(self) -> str:
        """PWS base URL without a trailing slash."""
        return self.pws_api_base_url.rstrip("/")

    def safe_summary(self) -> dict[str, Any]:
        """Return config summary safe for logging (no credentials)."""
        return {
            "app_env": self.app_env,
            "nws_base_url": self.nws_base_url,
            "weather_timeout_seconds": self.weather_timeout_seconds,
            "alert_notifications_enabled": self.alert_notifications_enabled,
            "location_label": self.location_label,
            "state_store_path": str(self.state_store_path),
            "current_conditions_source": self.current_conditions_source,
            "pws_configured": bool(self.pws_station_id and self.pws_api_key),
        }


def load_settings() -> Settings:
    """Load and validate settings, raising ConfigError on failure."""
    try:
        settings = Settings()
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Failed reading environment/.env: {exc}") from exc

    settings.state_store_path.parent.mkdir(parents=True, exist_ok=True)
    return settings
