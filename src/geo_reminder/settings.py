from pathlib import Path
from typing import Literal

import pydantic
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from geo_reminder.core.exceptions import ConfigurationError


class TrackingSettings(BaseSettings):
    # Routing provider throttle (cost control)
    provider_refresh_interval_seconds: float = Field(
        default=300.0,
        ge=0.0,
        le=3600.0,
        description="Minimum time between two routing provider calls in road mode",
    )
    # Pre-alert notification throttle (spam control), independent of the above
    notification_interval_seconds: float = Field(
        default=300.0,
        ge=0.0,
        le=3600.0,
        description="Minimum time between two pre-alert notifications",
    )
    routing_timeout_seconds: float = Field(default=10.0, gt=0.0, le=60.0)
    alarm_command_timeout_seconds: float = Field(default=5.0, gt=0.0, le=60.0)

    final_approach_distance_m: float = Field(
        default=500.0,
        gt=0.0,
        description="Remaining distance below which the hard alarm fires",
    )
    final_approach_time_seconds: float = Field(
        default=60.0,
        gt=0.0,
        description="Remaining time below which the hard alarm fires",
    )
    min_correction_distance_m: float = Field(
        default=100.0,
        ge=1.0,
        description="Great-circle distance below which the road ratio is not updated",
    )
    aerial_speed_mps: float = Field(default=222.0, gt=0.0)

    model_config = SettingsConfigDict(env_prefix="TRACKING_")


class OSRMSettings(BaseSettings):
    base_url: str = "https://router.project-osrm.org"
    profile: str = "driving"
    max_retries: int = Field(default=1, ge=0, le=5)
    retry_base_delay: float = Field(default=0.5, ge=0.0, le=5.0)

    model_config = SettingsConfigDict(env_prefix="OSRM_")

    @field_validator("base_url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("OSRM base URL must start with http:// or https://")
        return v.rstrip("/")


class GeocodingSettings(BaseSettings):
    search_url: str = "https://photon.komoot.io/api/"
    reverse_url: str = "https://nominatim.openstreetmap.org/reverse"
    user_agent: str = "GeoReminderApp/1.0"
    timeout: float = Field(default=5.0, gt=0.0, le=30.0)

    model_config = SettingsConfigDict(env_prefix="GEOCODING_")


class LoggingSettings(BaseSettings):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["text", "json"] = "text"
    environment: str = "development"

    model_config = SettingsConfigDict(env_prefix="LOG_")


class StorageSettings(BaseSettings):
    settings_path: Path = Path.home() / ".geo_reminder" / "settings.json"

    model_config = SettingsConfigDict(env_prefix="STORAGE_")


class Settings(BaseSettings):
    tracking: TrackingSettings = Field(default_factory=TrackingSettings)
    osrm: OSRMSettings = Field(default_factory=OSRMSettings)
    geocoding: GeocodingSettings = Field(default_factory=GeocodingSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)

    model_config = SettingsConfigDict(
        env_nested_delimiter="__",
        case_sensitive=False,
    )


def get_settings() -> Settings:
    """Load and validate settings from environment variables.

    Raises:
        ConfigurationError: an environment variable holds an invalid value.
    """
    try:
        return Settings()
    except pydantic.ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise ConfigurationError(
            f"Invalid settings: {fields}", details={"errors": e.errors()}
        ) from e
