"""Sensor snapshot model and payload normalization."""

import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Self

from terra.lib.exceptions import MalformedReadingError

# Alternate spellings accepted for each field in incoming payloads
_FIELD_KEYS: dict[str, tuple[str, ...]] = {
    "temperature": ("temperature",),
    "humidity": ("humidity",),
    "soil_moisture": ("soilMoisture", "soil_moisture"),
}


def _to_float(value: Any) -> float:
    """Coerce a raw field to float, treating anything unusable as zero."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return number


@dataclass(frozen=True, slots=True)
class SensorSnapshot:
    """One point-in-time set of readings for a unit.

    A zero value means "not reporting"; the threshold policy never raises
    low-side alerts for it.
    """

    temperature: float = 0.0
    humidity: float = 0.0
    soil_moisture: float = 0.0

    @classmethod
    def from_raw(cls, data: Mapping[str, Any]) -> Self:
        """Build a snapshot from a raw payload.

        Absent, null or non-numeric fields are normalized to zero rather
        than rejected.

        Raises:
            MalformedReadingError: If the payload is not a mapping.
        """
        if not isinstance(data, Mapping):
            raise MalformedReadingError(
                f"Expected reading object, got {type(data).__name__}"
            )

        values: dict[str, float] = {}
        for name, keys in _FIELD_KEYS.items():
            raw = next((data[k] for k in keys if k in data), None)
            values[name] = _to_float(raw)
        return cls(**values)
