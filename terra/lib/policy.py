"""Threshold policy for sensor snapshots.

Maps a snapshot to the alert conditions it currently satisfies. Pure and
deterministic: the same snapshot and thresholds always yield the same list,
in the same order (humidity, soil moisture, high temperature, low
temperature).

A reading of exactly zero is treated as "sensor not reporting", so the
low-side rules require a strictly positive value.
"""

import operator
from collections.abc import Callable
from dataclasses import dataclass

from terra.lib.config import AlertKind, Severity, ThresholdSet, Unit
from terra.lib.reading import SensorSnapshot

type CooldownKey = tuple[str, AlertKind]


@dataclass(frozen=True, slots=True)
class AlertCondition:
    """A threshold crossing detected on one unit."""

    unit_id: str
    kind: AlertKind
    severity: Severity
    message: str

    @property
    def key(self) -> CooldownKey:
        return (self.unit_id, self.kind)


@dataclass(frozen=True, slots=True)
class _Rule:
    """One threshold rule over a snapshot field."""

    kind: AlertKind
    severity: Severity
    measure: str
    threshold: str
    compare: Callable[[float, float], bool]
    guard_zero: bool
    template: str

    def matches(self, snapshot: SensorSnapshot, thresholds: ThresholdSet) -> bool:
        value: float = getattr(snapshot, self.measure)
        if self.guard_zero and value <= 0:
            return False
        return self.compare(value, getattr(thresholds, self.threshold))

    def format(self, snapshot: SensorSnapshot) -> str:
        return self.template.format(value=getattr(snapshot, self.measure))


_RULES: tuple[_Rule, ...] = (
    _Rule(
        kind=AlertKind.LOW_HUMIDITY,
        severity=Severity.WARNING,
        measure="humidity",
        threshold="low_humidity",
        compare=operator.lt,
        guard_zero=True,
        template=(
            "Humidity is {value:.0f}" + Unit.PERCENT
            + ". Consider increasing ventilation or moisture."
        ),
    ),
    _Rule(
        kind=AlertKind.WATER_NEEDED,
        severity=Severity.CRITICAL,
        measure="soil_moisture",
        threshold="low_soil_moisture",
        compare=operator.lt,
        guard_zero=True,
        template=(
            "Soil moisture is low ({value:.0f}" + Unit.PERCENT
            + "). Water your plants!"
        ),
    ),
    _Rule(
        kind=AlertKind.HIGH_TEMPERATURE,
        severity=Severity.WARNING,
        measure="temperature",
        threshold="high_temperature",
        compare=operator.gt,
        guard_zero=False,
        template=(
            "Temperature is {value:.1f}" + Unit.CELSIUS
            + ". Provide shade or cooling."
        ),
    ),
    _Rule(
        kind=AlertKind.LOW_TEMPERATURE,
        severity=Severity.WARNING,
        measure="temperature",
        threshold="low_temperature",
        compare=operator.lt,
        guard_zero=True,
        template=(
            "Temperature is {value:.1f}" + Unit.CELSIUS + ". Melons need warmth!"
        ),
    ),
)


def evaluate(
    unit_id: str, snapshot: SensorSnapshot, thresholds: ThresholdSet
) -> list[AlertCondition]:
    """Return the alert conditions the snapshot satisfies.

    Each rule is checked independently, so a snapshot yields zero to four
    conditions.
    """
    return [
        AlertCondition(
            unit_id=unit_id,
            kind=rule.kind,
            severity=rule.severity,
            message=rule.format(snapshot),
        )
        for rule in _RULES
        if rule.matches(snapshot, thresholds)
    ]


def format_unit_name(unit_id: str) -> str:
    """Get a human-readable label for a unit (e.g. 'basket1' -> 'Basket 1')."""
    if unit_id.startswith("basket"):
        return f"Basket {unit_id.removeprefix('basket')}"
    return unit_id
