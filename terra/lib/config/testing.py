"""Settings override used by the test suite. Not for production code."""

import terra.lib.config.settings as _settings_module
from terra.lib.config.settings import Settings, _load_settings


def set_settings(settings: Settings | None) -> None:
    """Make `get_settings()` return `settings`; None restores env loading."""
    _settings_module._settings_override = settings
    _load_settings.cache_clear()
