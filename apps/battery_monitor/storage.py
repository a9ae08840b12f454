"""Monitor state and its versioned, JSON-compatible serialization.

The payload layout (version 1)::

    {
        "version": 1,
        "devices": {"sensor.door_battery": {"tier": "high", "percent": 60, "updated": 1700000000.0}},
        "flags": {"sensor.door_battery": {"high": 1700000000.0}},
        "last_check": 1700000000.0,
        "last_report": "..."
    }

Flags are nested per device so keys never need to be split apart again.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from battery_monitor.const import STATE_ENTITY, STATE_VERSION
from battery_monitor.exceptions import StateVersionError
from battery_monitor.gate import FlagKey
from battery_monitor.tiers import Tier, tier_key


@dataclass
class DeviceState:
    tier: Optional[Tier]
    percent: int
    updated: float


@dataclass
class MonitorState:
    devices: Dict[str, DeviceState] = field(default_factory=dict)
    flags: Dict[FlagKey, float] = field(default_factory=dict)
    last_check: Optional[float] = None
    last_report: Optional[str] = None


def _tier_or_none(key: Optional[str]) -> Optional[Tier]:
    if key in (None, "unknown"):
        return None
    return Tier.from_key(key)


def dump_state(state: MonitorState) -> Dict[str, Any]:
    flags: Dict[str, Dict[str, float]] = {}
    for (device_id, tier), stamp in state.flags.items():
        flags.setdefault(device_id, {})[tier.key] = stamp
    return {
        "version": STATE_VERSION,
        "devices": {
            device_id: {"tier": tier_key(ds.tier), "percent": ds.percent, "updated": ds.updated}
            for device_id, ds in state.devices.items()
        },
        "flags": flags,
        "last_check": state.last_check,
        "last_report": state.last_report,
    }


def _entries(payload: Mapping[str, Any], section: str):
    """Per-device entries of ``section``. Raises ValueError when they are not mappings."""
    entries = payload.get(section) or {}
    if not isinstance(entries, Mapping):
        raise ValueError(f"Malformed '{section}' section in battery monitor state")
    for device_id, data in entries.items():
        if not isinstance(data, Mapping):
            raise ValueError(f"Malformed '{section}' entry for {device_id}")
        yield device_id, data


def load_state(payload: Optional[Mapping[str, Any]]) -> MonitorState:
    """Rebuild state from a payload. An empty payload gives an empty state."""
    if not payload:
        return MonitorState()
    version = payload.get("version")
    if version != STATE_VERSION:
        raise StateVersionError(version)

    state = MonitorState(
        last_check=payload.get("last_check"),
        last_report=payload.get("last_report"),
    )
    for device_id, data in _entries(payload, "devices"):
        state.devices[device_id] = DeviceState(
            tier=_tier_or_none(data.get("tier")),
            percent=int(data.get("percent", 0)),
            updated=float(data.get("updated", 0)),
        )
    for device_id, tiers in _entries(payload, "flags"):
        for key, stamp in tiers.items():
            state.flags[(device_id, Tier.from_key(key))] = float(stamp)
    return state


class NamespaceStore:
    """Persist the payload as attributes of one entity in a persistent AppDaemon namespace.

    ``app`` is anything with AppDaemon's ``add_namespace``, ``namespace_exists``,
    ``get_state`` and ``set_state``.
    """

    def __init__(self, app, namespace: str, entity_id: str = STATE_ENTITY):
        self.app = app
        self.namespace = namespace
        self.entity_id = entity_id

    def ensure(self) -> None:
        if not self.app.namespace_exists(self.namespace):
            self.app.add_namespace(self.namespace)

    def load(self) -> Optional[Dict[str, Any]]:
        entity = self.app.get_state(self.entity_id, attribute="all", namespace=self.namespace)
        if not entity:
            return None
        return entity.get("attributes", {}).get("payload")

    def save(self, payload: Mapping[str, Any]) -> None:
        self.app.set_state(
            self.entity_id,
            state=f"v{payload.get('version')}",
            attributes={"payload": dict(payload)},
            namespace=self.namespace,
            replace=True,
            check_existence=False,
        )


class MemoryStore:
    """Keeps the payload in memory. For tests and apps without persistence."""

    def __init__(self, payload: Optional[Mapping[str, Any]] = None):
        self.payload = dict(payload) if payload else None
        self.saves = 0

    def load(self) -> Optional[Dict[str, Any]]:
        return self.payload

    def save(self, payload: Mapping[str, Any]) -> None:
        self.payload = dict(payload)
        self.saves += 1

