import unittest
from unittest.mock import MagicMock
import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from battery_monitor.config import settings_from_args
from battery_monitor.gate import NotificationKind
from battery_monitor.monitor import NOTIFICATION_TITLE, BatteryThresholdMonitor
from battery_monitor.storage import MemoryStore, load_state
from battery_monitor.tiers import Tier

ARGS = {
    "sensors": [
        {"device": "Front Door Lock", "entity": {"battery": "sensor.lock_battery"}},
        {"device": "Hallway Motion", "entity": {"battery": "sensor.motion_battery"}},
    ],
    "notifiers": ["notify/mobile_app_phone", "mobile_app_tablet"],
}


class TestBatteryThresholdMonitor(unittest.TestCase):

    def setUp(self):
        """Set up a monitor with in-memory state and mocked host callables."""
        self.states = {"sensor.lock_battery": "80", "sensor.motion_battery": "40"}
        self.send = MagicMock()
        self.log = MagicMock()
        self.store = MemoryStore()
        self.clock = [1000.0]
        self.monitor = BatteryThresholdMonitor(
            read_battery=self.states.get,
            send_notification=self.send,
            store=self.store,
            log=self.log,
            now=lambda: self.clock[0],
        )
        self.settings = settings_from_args(ARGS)

    def report(self, entity_id, value):
        """Simulate Home Assistant updating the entity and calling back."""
        self.clock[0] += 60
        self.states[entity_id] = value
        return self.monitor.handle_battery_event(entity_id, value)

    def test_start_seeds_devices_without_notifying(self):
        self.monitor.start(self.settings)

        self.send.assert_not_called()
        self.assertEqual(self.monitor.state.devices["sensor.lock_battery"].tier, Tier.VERY_HIGH)
        self.assertEqual(self.monitor.state.devices["sensor.motion_battery"].percent, 40)
        self.assertEqual(load_state(self.store.payload).devices.keys(), {"sensor.lock_battery", "sensor.motion_battery"})

    def test_start_skips_unreadable_devices(self):
        self.states["sensor.motion_battery"] = "unavailable"
        self.monitor.start(self.settings)
        self.assertNotIn("sensor.motion_battery", self.monitor.state.devices)

    def test_first_report_of_unseeded_device_is_silent(self):
        self.states["sensor.motion_battery"] = "unavailable"
        self.monitor.start(self.settings)

        self.assertIsNone(self.report("sensor.motion_battery", "3"))
        self.send.assert_not_called()
        self.assertEqual(self.monitor.state.devices["sensor.motion_battery"].tier, Tier.CRITICAL)

    def test_downward_crossing_notifies_every_target(self):
        """80% -> 60% sends one alert to each notifier with the full report."""
        self.monitor.start(self.settings)

        notification = self.report("sensor.lock_battery", "60")

        self.assertEqual(notification.kind, NotificationKind.ALERT)
        self.assertEqual(self.send.call_count, 2)
        targets = [c.args[0] for c in self.send.call_args_list]
        self.assertEqual(targets, ["notify/mobile_app_phone", "notify/mobile_app_tablet"])
        _, title, message = self.send.call_args.args
        self.assertEqual(title, NOTIFICATION_TITLE)
        self.assertTrue(message.startswith(
            "🔋 Battery Alert: Front Door Lock has crossed to high battery level (60%) - very_high to high\n\n"))
        self.assertIn("\n\nDetailed Status:\n", message)
        self.assertIn("  • Front Door Lock: 60%", message)
        self.assertTrue(self.monitor.gate.is_set("sensor.lock_battery", Tier.HIGH))

    def test_replacement_sends_a_single_notification(self):
        self.states["sensor.motion_battery"] = "20"
        self.monitor.start(self.settings)

        notification = self.report("sensor.motion_battery", "45")

        self.assertEqual(notification.kind, NotificationKind.REPLACED)
        self.assertEqual(self.send.call_count, 2)  # one message, two targets
        self.assertEqual(self.monitor.gate.flags_for("sensor.motion_battery"), [])

    def test_repeated_reports_in_same_tier_are_silent(self):
        self.monitor.start(self.settings)
        self.report("sensor.motion_battery", "3")
        self.send.reset_mock()

        for _ in range(3):
            self.assertIsNone(self.report("sensor.motion_battery", "3"))
        self.send.assert_not_called()

    def test_missing_notifiers_still_records_crossing(self):
        self.monitor.start(settings_from_args({"sensors": ARGS["sensors"]}))

        notification = self.report("sensor.lock_battery", "60")

        self.assertIsNotNone(notification)
        self.send.assert_not_called()
        self.log.assert_any_call("No notification devices configured", level="WARNING")
        self.assertTrue(self.monitor.gate.is_set("sensor.lock_battery", Tier.HIGH))
        self.assertEqual(self.monitor.state.devices["sensor.lock_battery"].percent, 60)

    def test_failing_notifier_does_not_stop_the_others(self):
        self.send.side_effect = [RuntimeError("service not found"), None]
        self.monitor.start(self.settings)

        self.report("sensor.lock_battery", "60")

        self.assertEqual(self.send.call_count, 2)
        self.log.assert_any_call(
            "Failed to send notification via notify/mobile_app_phone: service not found", level="ERROR")

    def test_unreadable_event_is_ignored(self):
        self.monitor.start(self.settings)
        before = self.monitor.state.devices["sensor.lock_battery"]

        self.assertIsNone(self.report("sensor.lock_battery", "unavailable"))

        self.assertEqual(self.monitor.state.devices["sensor.lock_battery"], before)
        self.send.assert_not_called()

    def test_unmonitored_entity_is_ignored(self):
        self.monitor.start(self.settings)
        self.assertIsNone(self.report("sensor.other_battery", "3"))
        self.assertNotIn("sensor.other_battery", self.monitor.state.devices)

    def test_check_now_never_notifies(self):
        self.states["sensor.motion_battery"] = "3"
        self.monitor.start(self.settings)

        report = self.monitor.check_now()

        self.send.assert_not_called()
        self.assertTrue(report.startswith("🔋 Battery Report: 1 critical, 1 very high"))
        self.assertEqual(self.monitor.state.last_report, report)
        self.assertEqual(self.monitor.state.last_check, self.clock[0])
        self.assertEqual(load_state(self.store.payload).last_report, report)

    def test_check_now_without_devices(self):
        self.monitor.start(settings_from_args({}))
        self.assertIsNone(self.monitor.check_now())
        self.log.assert_any_call("No battery devices configured for monitoring", level="WARNING")

    def test_restart_keeps_flags(self):
        self.monitor.start(self.settings)
        self.report("sensor.lock_battery", "60")

        restarted = BatteryThresholdMonitor(self.states.get, self.send, self.store, self.log)
        restarted.start(self.settings)

        self.assertTrue(restarted.gate.is_set("sensor.lock_battery", Tier.HIGH))
        self.assertEqual(restarted.state.devices["sensor.lock_battery"].percent, 60)

    def test_unsupported_state_version_starts_fresh(self):
        self.store.payload = {"version": 99}
        self.monitor.start(self.settings)

        self.log.assert_any_call("Discarding persisted battery state: Unsupported battery monitor state version: 99",
                                 level="WARNING")
        self.assertEqual(len(self.monitor.state.devices), 2)

    def test_malformed_state_starts_fresh(self):
        self.store.payload = {"version": 1, "devices": {"sensor.lock_battery": 5}}
        self.monitor.start(self.settings)

        self.log.assert_any_call(
            "Discarding persisted battery state: Malformed 'devices' entry for sensor.lock_battery", level="WARNING"
        )
        self.assertEqual(self.monitor.state.devices["sensor.lock_battery"].percent, 80)
        self.assertTrue(self.monitor.running)

    def test_start_with_persisted_state_goes_through_reconfigure(self):
        self.monitor.start(self.settings)
        self.states["sensor.lock_battery"] = "10"

        restarted = BatteryThresholdMonitor(self.states.get, self.send, self.store, self.log)
        restarted.reconfigure = MagicMock(wraps=restarted.reconfigure)
        restarted.start(self.settings)

        restarted.reconfigure.assert_called_once_with(self.settings)
        self.assertEqual(restarted.state.devices["sensor.lock_battery"].percent, 80)
        self.send.assert_not_called()

    def test_reconfigure_keeps_state_and_seeds_new_devices(self):
        self.monitor.start(self.settings)
        self.report("sensor.lock_battery", "60")
        self.states["sensor.trv_battery"] = "55"

        args = dict(ARGS, sensors=ARGS["sensors"] + [{"device": "TRV", "entity": {"battery": "sensor.trv_battery"}}])
        self.monitor.reconfigure(settings_from_args(args))

        self.assertTrue(self.monitor.gate.is_set("sensor.lock_battery", Tier.HIGH))
        self.assertEqual(self.monitor.state.devices["sensor.trv_battery"].tier, Tier.HIGH)
        self.assertEqual(len(self.monitor.devices), 3)

    def test_stop_persists_state(self):
        self.monitor.start(self.settings)
        saves = self.store.saves
        self.monitor.stop()
        self.assertEqual(self.store.saves, saves + 1)
        self.assertFalse(self.monitor.running)

    def test_status_attributes(self):
        self.monitor.start(self.settings)

        status = self.monitor.status()

        self.assertEqual(status["state"], "medium")
        self.assertTrue(status["attributes"]["status"].startswith("Current Battery Status: 🔴 Critical (≤5%): 0"))
        self.assertEqual(status["attributes"]["counts"]["very_high"], 1)
        self.assertIn("2 device(s)", status["attributes"]["notification_targets"])

    def test_debug_messages_follow_the_debug_setting(self):
        self.monitor.start(self.settings)
        self.assertNotIn("DEBUG", [c.kwargs.get("level") for c in self.log.call_args_list])

        self.monitor.reconfigure(settings_from_args(dict(ARGS, debug=True)))
        self.log.assert_any_call("Battery monitor updated - reinitializing", level="DEBUG")


if __name__ == '__main__':
    unittest.main()
