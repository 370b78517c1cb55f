"""Centralized configuration for the Terra alert monitor.

This package provides:
- Enums for alert kinds, severities and backends
- Pydantic settings models for configuration
"""

from .enums import (
    AlertKind,
    CooldownBackend,
    RecipientSource,
    Severity,
    Unit,
)
from .settings import (
    CooldownSettings,
    EventBusSettings,
    NotificationSettings,
    Settings,
    ThresholdSet,
    get_settings,
)
from .testing import set_settings

__all__ = [
    # Enums
    "AlertKind",
    "CooldownBackend",
    "RecipientSource",
    "Severity",
    "Unit",
    # Settings models
    "CooldownSettings",
    "EventBusSettings",
    "NotificationSettings",
    "Settings",
    "ThresholdSet",
    # Functions
    "get_settings",
    "set_settings",
]
