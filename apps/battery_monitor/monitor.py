"""The battery threshold monitor service.

Host-independent: it is handed callables to read a battery entity and to send
a notification, a store to persist its state, and a ``log`` callable with
AppDaemon's ``log(message, level=...)`` signature.
"""

from __future__ import annotations

import threading
import time
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from appdaemon.adbase import app_lock

from battery_monitor.config import MonitorSettings
from battery_monitor.devices import MonitoredDevice, parse_battery
from battery_monitor.exceptions import StateVersionError
from battery_monitor.gate import Notification, NotificationGate
from battery_monitor.report import Classification, ReportBuilder
from battery_monitor.storage import DeviceState, MonitorState, dump_state, load_state
from battery_monitor.tiers import Tier, classify, tier_key

NOTIFICATION_TITLE = "Battery Monitor"

ReadBattery = Callable[[str], Any]
SendNotification = Callable[[str, str, str], Any]


class BatteryThresholdMonitor:
    """Watches battery readings and notifies when a device crosses a tier.

    Every public operation runs under ``self.lock`` so reading the previous
    state, updating the flags and storing the new state happen as one step
    per event.
    """

    def __init__(
        self,
        read_battery: ReadBattery,
        send_notification: SendNotification,
        store,
        log: Callable[..., None],
        now: Callable[[], float] = time.time,
    ):
        self.read_battery = read_battery
        self.send_notification = send_notification
        self.store = store
        self.log = log
        self.now = now
        self.lock = threading.RLock()

        self.settings = MonitorSettings()
        self.state = MonitorState()
        self.gate = NotificationGate(self.state.flags, log=self.log_debug)
        self.reports = ReportBuilder(self.settings.thresholds, log=self.log_debug)
        self.running = False

    def log_debug(self, message: str, level: str = "DEBUG") -> None:
        if self.settings.debug:
            self.log(message, level=level)

    @property
    def devices(self) -> List[MonitoredDevice]:
        return self.settings.devices

    # --- Lifecycle ---

    @app_lock
    def start(self, settings: MonitorSettings) -> None:
        """Load persisted state and seed devices that have none.

        On a first start every readable device is seeded. With persisted
        state the start is an update and goes through ``reconfigure``.
        Seeding never notifies.
        """
        self._apply(settings)
        try:
            self.state = load_state(self.store.load())
        except (StateVersionError, AttributeError, KeyError, TypeError, ValueError) as e:
            self.log(f"Discarding persisted battery state: {e}", level="WARNING")
            self.state = MonitorState()
        self.gate = NotificationGate(self.state.flags, log=self.log_debug)
        self.running = True
        if self.state.devices or self.state.flags:
            self.reconfigure(settings)
        else:
            self._seed_devices()
            self._save()
        self.log(f"Battery monitor started for {len(self.devices)} device(s)", level="INFO")

    @app_lock
    def reconfigure(self, settings: MonitorSettings) -> None:
        """Swap in new settings. Existing device state and flags are kept."""
        self._apply(settings)
        self._seed_devices()
        self._save()
        self.log_debug("Battery monitor updated - reinitializing")

    @app_lock
    def stop(self) -> None:
        if self.running:
            self._save()
        self.running = False
        self.log_debug("Battery monitor stopped")

    def _apply(self, settings: MonitorSettings) -> None:
        self.settings = settings
        self.reports = ReportBuilder(settings.thresholds, log=self.log_debug)

    def _seed_devices(self) -> None:
        for device in self.devices:
            if device.device_id in self.state.devices:
                continue
            try:
                percent = parse_battery(self.read_battery(device.device_id))
            except Exception as e:
                self.log(f"Error initializing device state for {device.name}: {e}", level="WARNING")
                continue
            if percent is None:
                self.log_debug(f"No battery data for {device.name}, waiting for its first report")
                continue
            tier = classify(percent, self.settings.thresholds)
            self.state.devices[device.device_id] = DeviceState(tier, percent, self.now())
            self.log_debug(f"Initialized state for {device.name}: {percent}% ({tier.key})")

    def _save(self) -> None:
        self.store.save(dump_state(self.state))

    # --- Events ---

    def _device(self, device_id: str) -> Optional[MonitoredDevice]:
        for device in self.devices:
            if device.device_id == device_id:
                return device
        return None

    @app_lock
    def handle_battery_event(self, device_id: str, value: Any) -> Optional[Notification]:
        """Process one battery report. Returns the notification sent, if any."""
        device = self._device(device_id)
        if device is None:
            self.log_debug(f"Ignoring battery report for unmonitored {device_id}")
            return None

        percent = parse_battery(value)
        if percent is None:
            self.log_debug(f"Unreadable battery value {value!r} for {device.name}")
            return None

        now = self.now()
        new_tier = classify(percent, self.settings.thresholds)
        previous = self.state.devices.get(device_id)

        notification = None
        if previous is not None:
            notification = self.gate.evaluate(device_id, previous.tier, previous.percent, new_tier, percent, now)

        self.state.devices[device_id] = DeviceState(new_tier, percent, now)
        self._save()

        if notification:
            self._notify(notification, device.name)
        return notification

    def _notify(self, notification: Notification, name: str) -> int:
        classification = self.classify()
        message = self.reports.message(self.reports.header(notification, name), classification)
        sent = self.dispatch(message)
        if sent:
            self.log(
                f"Battery {notification.kind.value} notification sent to {sent} target(s) for {name}",
                level="INFO",
            )
        return sent

    def dispatch(self, message: str) -> int:
        """Send ``message`` to every notifier. Failures are logged, not retried."""
        if not self.settings.notifiers:
            self.log("No notification devices configured", level="WARNING")
            return 0
        sent = 0
        for notifier in self.settings.notifiers:
            try:
                self.send_notification(notifier, NOTIFICATION_TITLE, message)
                sent += 1
            except Exception as e:
                self.log(f"Failed to send notification via {notifier}: {e}", level="ERROR")
        return sent

    # --- Reports ---

    def classify(self) -> Classification:
        return self.reports.classify_devices(self.devices, self.read_battery)

    @app_lock
    def check_now(self) -> Optional[str]:
        """Recompute the report and remember it. Never notifies."""
        if not self.devices:
            self.log("No battery devices configured for monitoring", level="WARNING")
            return None

        classification = self.classify()
        report = self.reports.summary(classification)
        self.state.last_check = self.now()
        self.state.last_report = report
        self._save()

        counts = ", ".join(f"{tier.display.title()}={classification.count(tier)}" for tier in reversed(Tier))
        self.log_debug(f"Battery check completed: {counts}")
        return report

    @app_lock
    def status(self) -> Dict[str, Any]:
        """State and attributes for the status entity shown in Home Assistant."""
        attributes: Dict[str, Any] = {
            "friendly_name": "Battery Monitor",
            "icon": "mdi:battery-heart-variant",
            "ranges": self.reports.ranges(),
        }
        if not self.devices:
            attributes["status"] = "No devices selected for monitoring"
            return {"state": "idle", "attributes": attributes}

        classification = self.classify()
        attributes["status"] = self.reports.status_line(classification)
        attributes["monitored_devices"] = f"Currently monitoring {len(self.devices)} device(s) with battery capability"
        attributes["counts"] = {tier.key: classification.count(tier) for tier in Tier}
        attributes["counts"]["unknown"] = len(classification.unknown)
        if self.settings.notifiers:
            attributes["notification_targets"] = (
                f"Notifications will be sent to {len(self.settings.notifiers)} device(s): "
                f"{', '.join(self.settings.notifiers)}"
            )
        if self.state.last_check:
            attributes["last_check"] = datetime.fromtimestamp(self.state.last_check).strftime("%m/%d/%Y %I:%M %p")
            attributes["last_report"] = self.state.last_report
        return {"state": tier_key(classification.worst()), "attributes": attributes}
