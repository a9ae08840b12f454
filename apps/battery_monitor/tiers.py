"""Battery tiers and the threshold configuration that defines them."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Mapping

import voluptuous as vol

from battery_monitor.const import (
    CONF_CRITICAL_THRESHOLD,
    CONF_HIGH_THRESHOLD,
    CONF_LOW_THRESHOLD,
    CONF_MEDIUM_THRESHOLD,
    CRITICAL_THRESHOLD_RANGE,
    DEFAULT_CRITICAL_THRESHOLD,
    DEFAULT_HIGH_THRESHOLD,
    DEFAULT_LOW_THRESHOLD,
    DEFAULT_MEDIUM_THRESHOLD,
    HIGH_THRESHOLD_RANGE,
    LOW_THRESHOLD_RANGE,
    MEDIUM_THRESHOLD_RANGE,
)
from battery_monitor.exceptions import ConfigError


class Tier(IntEnum):
    """Battery health tiers, ordered from worst to best."""

    CRITICAL = 1
    LOW = 2
    MEDIUM = 3
    HIGH = 4
    VERY_HIGH = 5

    @property
    def key(self) -> str:
        return self.name.lower()

    @property
    def display(self) -> str:
        return self.key.replace("_", " ")

    @property
    def icon(self) -> str:
        return TIER_ICONS[self]

    @classmethod
    def from_key(cls, key: str) -> Tier:
        return cls[key.upper()]


TIER_ICONS = {
    Tier.CRITICAL: "🔴",
    Tier.LOW: "🟠",
    Tier.MEDIUM: "🟡",
    Tier.HIGH: "🟢",
    Tier.VERY_HIGH: "🔋",
}
UNKNOWN_ICON = "❓"


def tier_key(tier: Tier | None) -> str:
    """Name of a tier, or ``unknown`` for a device never classified."""
    return tier.key if tier is not None else "unknown"


def tier_display(tier: Tier | None) -> str:
    return tier.display if tier is not None else "unknown"


def _threshold(bounds):
    low, high = bounds
    return vol.All(vol.Coerce(int), vol.Range(min=low, max=high))


THRESHOLD_SCHEMA = vol.Schema(
    {
        vol.Optional(CONF_HIGH_THRESHOLD, default=DEFAULT_HIGH_THRESHOLD): _threshold(HIGH_THRESHOLD_RANGE),
        vol.Optional(CONF_MEDIUM_THRESHOLD, default=DEFAULT_MEDIUM_THRESHOLD): _threshold(MEDIUM_THRESHOLD_RANGE),
        vol.Optional(CONF_LOW_THRESHOLD, default=DEFAULT_LOW_THRESHOLD): _threshold(LOW_THRESHOLD_RANGE),
        vol.Optional(CONF_CRITICAL_THRESHOLD, default=DEFAULT_CRITICAL_THRESHOLD): _threshold(CRITICAL_THRESHOLD_RANGE),
    },
    extra=vol.REMOVE_EXTRA,
)


@dataclass(frozen=True)
class ThresholdConfig:
    """Upper bounds (inclusive) of the four lowest tiers.

    Anything above ``high`` is very high. Boundaries must be strictly
    increasing: ``critical < low < medium < high``.
    """

    critical: int = DEFAULT_CRITICAL_THRESHOLD
    low: int = DEFAULT_LOW_THRESHOLD
    medium: int = DEFAULT_MEDIUM_THRESHOLD
    high: int = DEFAULT_HIGH_THRESHOLD

    def __post_init__(self):
        if not self.critical < self.low < self.medium < self.high:
            raise ConfigError(
                "Battery thresholds must be strictly increasing "
                f"(critical < low < medium < high), got critical={self.critical}, "
                f"low={self.low}, medium={self.medium}, high={self.high}"
            )

    @classmethod
    def from_args(cls, args: Mapping[str, Any]) -> ThresholdConfig:
        """Build and validate thresholds from apps.yaml arguments."""
        try:
            values = THRESHOLD_SCHEMA(dict(args))
        except vol.Invalid as err:
            raise ConfigError(f"Invalid battery threshold configuration: {err}") from err
        return cls(
            critical=values[CONF_CRITICAL_THRESHOLD],
            low=values[CONF_LOW_THRESHOLD],
            medium=values[CONF_MEDIUM_THRESHOLD],
            high=values[CONF_HIGH_THRESHOLD],
        )

    def range_for(self, tier: Tier) -> str:
        """Human-readable percent range covered by a tier."""
        if tier is Tier.CRITICAL:
            return f"≤{self.critical}%"
        if tier is Tier.LOW:
            return f"{self.critical + 1}-{self.low}%"
        if tier is Tier.MEDIUM:
            return f"{self.low + 1}-{self.medium}%"
        if tier is Tier.HIGH:
            return f"{self.medium + 1}-{self.high}%"
        return f">{self.high}%"


def classify(percent: int, config: ThresholdConfig) -> Tier:
    """Map a battery percentage to its tier. Bounds belong to the lower tier."""
    if percent <= config.critical:
        return Tier.CRITICAL
    if percent <= config.low:
        return Tier.LOW
    if percent <= config.medium:
        return Tier.MEDIUM
    if percent <= config.high:
        return Tier.HIGH
    return Tier.VERY_HIGH
