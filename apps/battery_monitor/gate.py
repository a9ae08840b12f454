"""One-shot notification flags per device and tier.

A flag for ``(device_id, tier)`` means "already notified about this tier".
Flags never expire. They are cleared when the battery recovers past a tier,
when the device drops back into a tier, or all at once when the battery is
replaced.
"""

from __future__ import annotations

from enum import Enum
from typing import Callable, Dict, List, NamedTuple, Optional, Tuple

from battery_monitor.crossing import Direction, detect, is_replacement
from battery_monitor.tiers import Tier, tier_key

FlagKey = Tuple[str, Tier]

# Upward crossings into these tiers announce the recovery
RESTORED_TIERS = (Tier.HIGH, Tier.VERY_HIGH)


class NotificationKind(Enum):
    ALERT = "alert"
    RESTORED = "restored"
    REPLACED = "replaced"


class Notification(NamedTuple):
    kind: NotificationKind
    device_id: str
    previous: Optional[Tier]
    new: Tier
    percent: int


class NotificationGate:
    """Decides which crossings notify and keeps the de-duplication flags."""

    def __init__(self, flags: Dict[FlagKey, float] | None = None, log: Callable[..., None] | None = None):
        self.flags: Dict[FlagKey, float] = flags if flags is not None else {}
        self._log = log

    def _debug(self, message: str) -> None:
        if self._log:
            self._log(message, level="DEBUG")

    def is_set(self, device_id: str, tier: Tier) -> bool:
        return (device_id, tier) in self.flags

    def set(self, device_id: str, tier: Tier, now: float) -> None:
        self.flags[(device_id, tier)] = now

    def clear(self, device_id: str, tier: Tier) -> bool:
        return self.flags.pop((device_id, tier), None) is not None

    def clear_up_to(self, device_id: str, tier: Tier) -> List[Tier]:
        """Clear the flags of ``tier`` and every tier below it."""
        cleared = [t for t in Tier if t <= tier and self.clear(device_id, t)]
        if cleared:
            self._debug(f"Reset notification flags for {device_id}: {', '.join(t.key for t in cleared)}")
        return cleared

    def clear_device(self, device_id: str) -> List[Tier]:
        cleared = sorted(tier for dev, tier in self.flags if dev == device_id)
        for tier in cleared:
            del self.flags[(device_id, tier)]
        self._debug(
            f"Reset ALL notification flags for {device_id} (battery replacement): "
            f"{', '.join(t.key for t in cleared) or 'none cleared'}"
        )
        return cleared

    def flags_for(self, device_id: str) -> List[Tier]:
        return sorted(tier for dev, tier in self.flags if dev == device_id)

    def evaluate(
        self,
        device_id: str,
        previous_tier: Tier | None,
        previous_percent: int,
        new_tier: Tier,
        new_percent: int,
        now: float,
    ) -> Notification | None:
        """Apply one reading to the flags and return the notification to send, if any."""
        # First observation of a device never notifies
        if previous_tier is None:
            return None

        if is_replacement(previous_tier, previous_percent, new_percent):
            self.clear_device(device_id)
            # No flag is set so the next regular crossing still notifies
            return Notification(NotificationKind.REPLACED, device_id, previous_tier, new_tier, new_percent)

        direction = detect(previous_tier, new_tier)

        if direction is Direction.UP:
            self.clear_up_to(device_id, new_tier)
            if new_tier in RESTORED_TIERS and not self.is_set(device_id, new_tier):
                self.set(device_id, new_tier, now)
                return Notification(NotificationKind.RESTORED, device_id, previous_tier, new_tier, new_percent)
            return None

        if direction is Direction.DOWN:
            # Clearing first lets an up/down flap notify again
            self.clear(device_id, new_tier)
            if not self.is_set(device_id, new_tier):
                self.set(device_id, new_tier, now)
                return Notification(NotificationKind.ALERT, device_id, previous_tier, new_tier, new_percent)
            self._debug(f"Skipped duplicate notification for {device_id} {tier_key(new_tier)} level")
            return None

        return None
