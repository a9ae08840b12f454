"""Detect tier crossings and battery replacements between two readings."""

from __future__ import annotations

from enum import Enum

from battery_monitor.const import REPLACEMENT_DELTA
from battery_monitor.tiers import Tier


class Direction(Enum):
    UP = 1
    DOWN = -1
    NONE = 0


def _ordinal(tier: Tier | None) -> int:
    # unknown sorts below every tier
    return int(tier) if tier is not None else 0


def detect(previous: Tier | None, new: Tier | None) -> Direction:
    """Direction of the move from ``previous`` to ``new``."""
    previous_value, new_value = _ordinal(previous), _ordinal(new)
    if new_value > previous_value:
        return Direction.UP
    if new_value < previous_value:
        return Direction.DOWN
    return Direction.NONE


def is_replacement(previous_tier: Tier | None, previous_percent: int, new_percent: int) -> bool:
    """True when the battery jumped up enough to have been swapped.

    Never true on a device's first observation.
    """
    if previous_tier is None:
        return False
    return new_percent - previous_percent > REPLACEMENT_DELTA
