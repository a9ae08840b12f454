"""Parse and validate the app's apps.yaml arguments."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional

import voluptuous as vol

from battery_monitor.const import (
    CONF_CHECK_NOW_ENTITY,
    CONF_CHECK_NOW_EVENT,
    CONF_DEBUG,
    CONF_NAMESPACE,
    CONF_NOTIFIERS,
    CONF_SENSORS,
    CONF_STATUS_ENTITY,
    DEFAULT_CHECK_NOW_EVENT,
    DEFAULT_NAMESPACE,
    DEFAULT_STATUS_ENTITY,
)
from battery_monitor.devices import MonitoredDevice, devices_from_args
from battery_monitor.exceptions import ConfigError
from battery_monitor.tiers import ThresholdConfig


def _notifier(value: Any) -> str:
    """Accept ``notify/foo``, ``notify.foo`` or just ``foo``."""
    value = str(value).strip()
    if not value:
        raise vol.Invalid("empty notifier")
    if "/" in value:
        return value
    if value.startswith("notify."):
        return value.replace(".", "/", 1)
    return f"notify/{value}"


APP_SCHEMA = vol.Schema(
    {
        vol.Optional(CONF_SENSORS, default=list): vol.All(vol.Any(None, list), lambda v: v or []),
        vol.Optional(CONF_NOTIFIERS, default=list): vol.All(
            vol.Any(None, str, list), lambda v: [] if v is None else ([v] if isinstance(v, str) else v), [_notifier]
        ),
        vol.Optional(CONF_DEBUG, default=False): vol.Boolean(),
        vol.Optional(CONF_CHECK_NOW_ENTITY): vol.Any(None, str),
        vol.Optional(CONF_CHECK_NOW_EVENT, default=DEFAULT_CHECK_NOW_EVENT): str,
        vol.Optional(CONF_STATUS_ENTITY, default=DEFAULT_STATUS_ENTITY): str,
        vol.Optional(CONF_NAMESPACE, default=DEFAULT_NAMESPACE): str,
    },
    extra=vol.ALLOW_EXTRA,
)


@dataclass
class MonitorSettings:
    thresholds: ThresholdConfig = field(default_factory=ThresholdConfig)
    devices: List[MonitoredDevice] = field(default_factory=list)
    notifiers: List[str] = field(default_factory=list)
    debug: bool = False
    check_now_entity: Optional[str] = None
    check_now_event: str = DEFAULT_CHECK_NOW_EVENT
    status_entity: str = DEFAULT_STATUS_ENTITY
    namespace: str = DEFAULT_NAMESPACE


def settings_from_args(args: Mapping[str, Any] | None) -> MonitorSettings:
    """Validate apps.yaml arguments. Raises ConfigError with the offending key."""
    args = dict(args or {})
    thresholds = ThresholdConfig.from_args(args)
    try:
        values = APP_SCHEMA(args)
    except vol.Invalid as err:
        raise ConfigError(f"Invalid battery monitor configuration: {err}") from err
    return MonitorSettings(
        thresholds=thresholds,
        devices=devices_from_args(values[CONF_SENSORS]),
        notifiers=values[CONF_NOTIFIERS],
        debug=values[CONF_DEBUG],
        check_now_entity=values.get(CONF_CHECK_NOW_ENTITY),
        check_now_event=values[CONF_CHECK_NOW_EVENT],
        status_entity=values[CONF_STATUS_ENTITY],
        namespace=values[CONF_NAMESPACE],
    )
