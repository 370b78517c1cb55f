"""Enumerations for the Terra alert monitor."""

from enum import StrEnum


class AlertKind(StrEnum):
    """Alert conditions a reading can raise."""

    LOW_HUMIDITY = "Low Humidity"
    WATER_NEEDED = "Water Needed"
    HIGH_TEMPERATURE = "High Temperature"
    LOW_TEMPERATURE = "Low Temperature"
    TEST = "Test Alert"  # Manual trigger only


class Severity(StrEnum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class Unit(StrEnum):
    """Measurement units for sensor readings."""

    CELSIUS = "°C"
    PERCENT = "%"


class CooldownBackend(StrEnum):
    """Where cooldown timestamps are kept."""

    MEMORY = "memory"
    REDIS = "redis"


class RecipientSource(StrEnum):
    """Where notification recipients are looked up."""

    STATIC = "static"
    DATABASE = "database"
