from appdaemon.plugins.hass.hassapi import Hass
from common.decorators import debugpy_init, handle_errors, log_call, requires_active_listener, time_it

from battery_monitor.config import settings_from_args
from battery_monitor.exceptions import ConfigError
from battery_monitor.monitor import BatteryThresholdMonitor
from battery_monitor.storage import NamespaceStore


class BatteryMonitor(Hass):
    """Send notifications when a device's battery crosses one of five tiers.

    Subscribes to the battery entity of every configured sensor, keeps the
    last tier per device in a persistent namespace and publishes a status
    sensor with the current fleet overview.
    """

    def extract_config(self) -> None:
        """Extract and validate configuration from apps.yaml."""
        try:
            self.settings = settings_from_args(self.args)
        except ConfigError as e:
            self.log(f"Invalid configuration: {e}", level="ERROR")
            raise

    @debugpy_init()
    def initialize(self) -> None:
        """Initialize the battery monitor app."""
        self.log("----- Initializing BatteryMonitor App -----")
        self.extract_config()

        self.store = NamespaceStore(self, self.settings.namespace)
        self.store.ensure()
        self.monitor = BatteryThresholdMonitor(
            read_battery=self.read_battery,
            send_notification=self.send_notification,
            store=self.store,
            log=self.log,
            now=self.get_now_ts,
        )
        self.monitor.start(self.settings)

        # Subscribe to battery events
        self.handles = []
        for device in self.settings.devices:
            self.handles.append(self.listen_state(self.on_battery_change, device.device_id))
        self.log(f"Subscribed to battery events for {len(self.settings.devices)} devices")

        # Manual check, from an input_button or a fired event
        if self.settings.check_now_entity:
            self.handles.append(self.listen_state(self.on_check_now_button, self.settings.check_now_entity))
        self.event_handle = self.listen_event(self.on_check_now_event, self.settings.check_now_event)

        self.active = True
        self.publish_status()

    def terminate(self) -> None:
        """Release subscriptions and persist state."""
        self.active = False
        for handle in getattr(self, "handles", []):
            self.cancel_listen_state(handle)
        self.handles = []
        if getattr(self, "event_handle", None):
            self.cancel_listen_event(self.event_handle)
            self.event_handle = None
        if getattr(self, "monitor", None):
            self.monitor.stop()
        self.log("Battery Monitor terminated")

    def log_debug(self, message: str, level: str = "DEBUG") -> None:
        settings = getattr(self, "settings", None)
        if settings and settings.debug:
            self.log(message, level=level)

    def read_battery(self, entity_id: str):
        return self.get_state(entity_id)

    def send_notification(self, notifier: str, title: str, message: str) -> None:
        self.call_service(notifier, title=title, message=message)

    @requires_active_listener
    @handle_errors(level="WARNING")
    def on_battery_change(self, entity, attribute, old, new, **kwargs):
        """Callback for a battery level report of a monitored device."""
        self.monitor.handle_battery_event(entity, new)
        self.publish_status()

    @requires_active_listener
    @handle_errors(level="WARNING")
    def on_check_now_button(self, entity, attribute, old, new, **kwargs):
        self.check_now()

    @requires_active_listener
    @handle_errors(level="WARNING")
    def on_check_now_event(self, event_name, data, **kwargs):
        self.check_now()

    @log_call
    @time_it
    def check_now(self):
        """Recompute and publish the report. Manual checks never notify."""
        report = self.monitor.check_now()
        if report:
            self.log(report)
        self.publish_status()
        return report

    @handle_errors(level="ERROR")
    def publish_status(self) -> None:
        """Expose the current overview as a sensor in Home Assistant."""
        status = self.monitor.status()
        self.set_state(self.settings.status_entity, state=status["state"], attributes=status["attributes"])
