"""Monitored devices and how their battery readings are parsed."""

from __future__ import annotations

from typing import Any, Iterable, List, NamedTuple, Optional

import voluptuous as vol

from battery_monitor.const import UNREADABLE_STATES
from battery_monitor.exceptions import ConfigError


class MonitoredDevice(NamedTuple):
    device_id: str  # the battery entity, e.g. sensor.front_door_battery
    name: str


class DeviceReading(NamedTuple):
    device: MonitoredDevice
    percent: Optional[int]
    reason: Optional[str] = None  # why percent is missing


NO_BATTERY_DATA = "No battery data"
READ_ERROR = "Error reading battery"


SENSOR_SCHEMA = vol.Schema(
    {
        vol.Optional("device"): vol.Coerce(str),
        vol.Required("entity"): vol.Schema(
            {vol.Required("battery"): vol.All(str, vol.Strip, vol.Length(min=1))}, extra=vol.ALLOW_EXTRA
        ),
    },
    extra=vol.ALLOW_EXTRA,
)


def devices_from_args(sensors: Iterable[Any] | None) -> List[MonitoredDevice]:
    """Parse the ``sensors`` list from apps.yaml.

    Each entry looks like ``{"device": "Front door", "entity": {"battery": "sensor.front_door_battery"}}``.
    The device name falls back to the entity id.
    """
    devices: List[MonitoredDevice] = []
    seen = set()
    for index, sensor in enumerate(sensors or []):
        try:
            sensor = SENSOR_SCHEMA(sensor)
        except vol.Invalid as err:
            raise ConfigError(f"Invalid sensor entry #{index + 1}: {err}") from err
        entity = sensor["entity"]["battery"]
        if entity in seen:
            continue
        seen.add(entity)
        devices.append(MonitoredDevice(entity, sensor.get("device", entity)))
    return devices


def parse_battery(value: Any) -> Optional[int]:
    """Turn a raw state into a percent in 0..100, or None when unreadable."""
    if value is None:
        return None
    if isinstance(value, str) and value.strip().lower() in UNREADABLE_STATES:
        return None
    try:
        percent = int(round(float(value)))
    except (TypeError, ValueError, OverflowError):
        return None
    return max(0, min(100, percent))
