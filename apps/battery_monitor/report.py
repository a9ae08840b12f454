"""Render fleet-wide battery reports and notification messages."""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, List

from battery_monitor.devices import (
    NO_BATTERY_DATA,
    READ_ERROR,
    DeviceReading,
    MonitoredDevice,
    parse_battery,
)
from battery_monitor.gate import Notification, NotificationKind
from battery_monitor.tiers import UNKNOWN_ICON, ThresholdConfig, Tier, classify, tier_key


class Classification:
    """Devices grouped by tier, plus the ones without a usable reading."""

    def __init__(self):
        self.by_tier: Dict[Tier, List[DeviceReading]] = {tier: [] for tier in Tier}
        self.unknown: List[DeviceReading] = []

    def count(self, tier: Tier) -> int:
        return len(self.by_tier[tier])

    def worst(self) -> Tier | None:
        for tier in Tier:
            if self.by_tier[tier]:
                return tier
        return None

    def __len__(self):
        return sum(len(readings) for readings in self.by_tier.values()) + len(self.unknown)


class ReportBuilder:

    def __init__(self, config: ThresholdConfig, log: Callable[..., None] | None = None):
        self.config = config
        self._log = log

    def classify_devices(
        self, devices: Iterable[MonitoredDevice], read_battery: Callable[[str], Any]
    ) -> Classification:
        """Read and classify every device. A failing device only lands in unknown."""
        result = Classification()
        for device in devices:
            try:
                percent = parse_battery(read_battery(device.device_id))
            except Exception as e:
                result.unknown.append(DeviceReading(device, None, READ_ERROR))
                if self._log:
                    self._log(f"Error reading battery for {device.name}: {e}", level="DEBUG")
                continue
            if percent is None:
                result.unknown.append(DeviceReading(device, None, NO_BATTERY_DATA))
                if self._log:
                    self._log(f"No battery data for {device.name}", level="DEBUG")
                continue
            result.by_tier[classify(percent, self.config)].append(DeviceReading(device, percent))
        return result

    def _level_line(self, icon: str, label: str, range_text: str, count: int) -> str:
        if not range_text:
            return f"{icon} {label}: {count}"
        return f"{icon} {label} ({range_text}): {count}"

    def compact(self, classification: Classification) -> str:
        """Single line with a count for every tier, worst first."""
        parts = [
            self._level_line(tier.icon, tier.display.title(), self.config.range_for(tier), classification.count(tier))
            for tier in Tier
        ]
        if classification.unknown:
            parts.append(self._level_line(UNKNOWN_ICON, "Unknown", "", len(classification.unknown)))
        return " | ".join(parts)

    def detailed(self, classification: Classification) -> List[str]:
        """Per-tier headers followed by one bullet per device. Empty tiers are left out."""
        lines: List[str] = []
        for tier in Tier:
            readings = classification.by_tier[tier]
            if not readings:
                continue
            lines.append(self._level_line(tier.icon, tier.display.upper(), self.config.range_for(tier), len(readings)))
            lines.extend(f"  • {r.device.name}: {r.percent}%" for r in readings)
        if classification.unknown:
            lines.append(self._level_line(UNKNOWN_ICON, "UNKNOWN", "", len(classification.unknown)))
            lines.extend(f"  • {r.device.name}: {r.reason}" for r in classification.unknown)
        return lines

    def status_line(self, classification: Classification) -> str:
        return f"Current Battery Status: {self.compact(classification)}"

    def message(self, header: str, classification: Classification) -> str:
        lines = [header, "", self.compact(classification), "", "Detailed Status:"]
        lines.extend(self.detailed(classification))
        return "\n".join(lines)

    def summary(self, classification: Classification) -> str:
        """Report stored by a manual check."""
        parts = [f"{count} {tier.display}" for tier in Tier if (count := classification.count(tier))]
        if classification.count(Tier.CRITICAL) or classification.count(Tier.LOW):
            summary = f"🔋 Battery Report: {', '.join(parts)}"
        else:
            summary = "🔋 Battery Report: All devices have adequate battery levels"
            if parts:
                summary += f" ({', '.join(parts)})"
        lines = self.detailed(classification)
        if lines:
            summary += "\n\n" + "\n".join(lines)
        return summary

    def ranges(self) -> List[str]:
        """Labelled tier ranges, best tier first, for the status entity."""
        return [f"{tier.icon} {tier.display.title()}: {self.config.range_for(tier)}" for tier in reversed(Tier)]

    def header(self, notification: Notification, name: str) -> str:
        crossing = f"{tier_key(notification.previous)} to {tier_key(notification.new)}"
        percent = notification.percent
        if notification.kind is NotificationKind.REPLACED:
            return f"🔋 Battery Replaced: {name} battery has been replaced ({percent}%) - {crossing}"
        if notification.kind is NotificationKind.RESTORED:
            return (f"🔋 Battery Restored: {name} has reached {notification.new.display} battery level "
                    f"({percent}%) - {crossing}")
        return (f"🔋 Battery Alert: {name} has crossed to {notification.new.display} battery level "
                f"({percent}%) - {crossing}")
