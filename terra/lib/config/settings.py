"""Settings models and configuration loading for the Terra alert monitor."""

from datetime import timedelta
from functools import cached_property, lru_cache
from typing import Annotated, Any, Self

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    HttpUrl,
    SecretStr,
    ValidationError,
    model_validator,
)
from pydantic.alias_generators import to_camel
from pydantic_settings import BaseSettings, SettingsConfigDict

from terra.lib.config.enums import CooldownBackend, RecipientSource
from terra.lib.exceptions import ConfigurationError

# Defaults carried over from the mobile app thresholds
_LOW_HUMIDITY = 60.0  # %
_LOW_SOIL_MOISTURE = 30.0  # %
_HIGH_TEMPERATURE = 35.0  # Celsius
_LOW_TEMPERATURE = 15.0  # Celsius

_ALERT_COOLDOWN_MINUTES = 30


def _parse_bool(v: Any) -> bool:
    """Parse boolean from string '1'/'0' or actual bool."""
    if isinstance(v, bool):
        return v
    if isinstance(v, str):
        return v == "1"
    return bool(v)


def _validate_http_url_or_empty(v: str) -> str:
    """Validate HTTP URL format, allowing empty string."""
    if not v:
        return v
    HttpUrl(v)
    return v


_BoolFromStr = Annotated[bool, BeforeValidator(_parse_bool)]
_HttpUrlOrEmpty = Annotated[str, AfterValidator(_validate_http_url_or_empty)]


class ThresholdSet(BaseModel):
    """Alert thresholds, read-only once loaded."""

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    low_humidity: float = _LOW_HUMIDITY
    low_soil_moisture: float = _LOW_SOIL_MOISTURE
    high_temperature: float = _HIGH_TEMPERATURE
    low_temperature: float = _LOW_TEMPERATURE


class CooldownSettings(BaseModel):
    """Alert cooldown settings."""

    model_config = ConfigDict(frozen=True)

    minutes: int = _ALERT_COOLDOWN_MINUTES
    backend: CooldownBackend = CooldownBackend.MEMORY

    @property
    def window(self) -> timedelta:
        return timedelta(minutes=self.minutes)


class NotificationSettings(BaseModel):
    """Push notification settings."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    endpoint_url: _HttpUrlOrEmpty = ""
    auth_token: SecretStr = SecretStr("")
    recipient_source: RecipientSource = RecipientSource.STATIC
    recipient_tokens: tuple[str, ...] = ()
    max_retries: int = 3
    initial_backoff_sec: float = 2.0
    timeout_sec: float = 10.0


class EventBusSettings(BaseModel):
    """Redis event bus settings."""

    model_config = ConfigDict(frozen=True)

    redis_url: str = "redis://localhost:6379/0"
    reading_topic: str = "sensor.reading"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Logging
    log_level: str = "INFO"

    # Database
    db_path: str = "terra.sqlite3"
    db_timeout_sec: float = Field(default=30.0, gt=0)

    # Thresholds
    low_humidity: float = Field(default=_LOW_HUMIDITY, ge=0, le=100)
    low_soil_moisture: float = Field(default=_LOW_SOIL_MOISTURE, ge=0, le=100)
    high_temperature: float = Field(default=_HIGH_TEMPERATURE, ge=-40, le=80)
    low_temperature: float = Field(default=_LOW_TEMPERATURE, ge=-40, le=80)

    # Cooldown
    alert_cooldown_minutes: int = Field(default=_ALERT_COOLDOWN_MINUTES, ge=0)
    cooldown_backend: CooldownBackend = CooldownBackend.MEMORY

    # Redis
    redis_url: str = "redis://localhost:6379/0"
    reading_topic: str = "sensor.reading"

    # Notifications
    enable_notification_service: _BoolFromStr = False
    push_endpoint_url: _HttpUrlOrEmpty = ""
    push_auth_token: SecretStr = SecretStr("")
    notification_max_retries: int = Field(default=3, ge=1)
    notification_initial_backoff_sec: float = Field(default=2.0, ge=0)
    notification_timeout_sec: float = Field(default=10.0, gt=0)

    # Recipients
    recipient_source: RecipientSource = RecipientSource.STATIC
    recipient_tokens: str = ""  # Comma-separated list

    # Manual trigger
    test_unit_id: str = "basket1"

    @cached_property
    def thresholds(self) -> ThresholdSet:
        """Get threshold settings as nested object."""
        return ThresholdSet(
            low_humidity=self.low_humidity,
            low_soil_moisture=self.low_soil_moisture,
            high_temperature=self.high_temperature,
            low_temperature=self.low_temperature,
        )

    @cached_property
    def cooldown(self) -> CooldownSettings:
        """Get cooldown settings as nested object."""
        return CooldownSettings(
            minutes=self.alert_cooldown_minutes,
            backend=self.cooldown_backend,
        )

    @cached_property
    def notifications(self) -> NotificationSettings:
        """Get notification settings as nested object."""
        tokens = tuple(
            t.strip() for t in self.recipient_tokens.split(",") if t.strip()
        )
        return NotificationSettings(
            enabled=self.enable_notification_service,
            endpoint_url=self.push_endpoint_url,
            auth_token=self.push_auth_token,
            recipient_source=self.recipient_source,
            recipient_tokens=tokens,
            max_retries=self.notification_max_retries,
            initial_backoff_sec=self.notification_initial_backoff_sec,
            timeout_sec=self.notification_timeout_sec,
        )

    @cached_property
    def eventbus(self) -> EventBusSettings:
        """Get event bus settings."""
        return EventBusSettings(
            redis_url=self.redis_url, reading_topic=self.reading_topic
        )

    @model_validator(mode="after")
    def validate_settings(self) -> Self:
        """Validate cross-field configuration constraints."""
        errors: list[str] = []

        if self.low_temperature >= self.high_temperature:
            errors.append(
                f"LOW_TEMPERATURE ({self.low_temperature}) must be less than "
                f"HIGH_TEMPERATURE ({self.high_temperature})"
            )

        if self.enable_notification_service and not self.push_endpoint_url:
            errors.append(
                "Notifications enabled but PUSH_ENDPOINT_URL is not set"
            )

        if errors:
            raise ValueError(
                "Configuration validation failed:\n  - "
                + "\n  - ".join(errors)
            )

        return self


# Settings override for testing - allows injecting custom Settings without
# modifying environment variables or clearing the lru_cache.
_settings_override: Settings | None = None


@lru_cache(maxsize=1)
def _load_settings() -> Settings:
    """Load settings from environment (cached)."""
    try:
        return Settings()
    except ValidationError as e:
        raise ConfigurationError(str(e)) from e


def get_settings() -> Settings:
    """Get the global settings instance.

    Returns the test override if set, otherwise loads from environment
    variables (cached after first load). For testing, use set_settings()
    from terra.lib.config.testing to override.

    Raises:
        ConfigurationError: If the environment holds invalid settings.
    """
    if _settings_override is not None:
        return _settings_override
    return _load_settings()
