"""Constants for the battery monitor app."""

# Threshold arguments in apps.yaml
CONF_HIGH_THRESHOLD = "high_threshold"
CONF_MEDIUM_THRESHOLD = "medium_threshold"
CONF_LOW_THRESHOLD = "low_threshold"
CONF_CRITICAL_THRESHOLD = "critical_threshold"

DEFAULT_HIGH_THRESHOLD = 75
DEFAULT_MEDIUM_THRESHOLD = 50
DEFAULT_LOW_THRESHOLD = 25
DEFAULT_CRITICAL_THRESHOLD = 5

# Valid (min, max) input range per threshold
HIGH_THRESHOLD_RANGE = (51, 100)
MEDIUM_THRESHOLD_RANGE = (26, 74)
LOW_THRESHOLD_RANGE = (6, 49)
CRITICAL_THRESHOLD_RANGE = (1, 24)

# Other app arguments
CONF_SENSORS = "sensors"
CONF_NOTIFIERS = "notifiers"
CONF_DEBUG = "debug"
CONF_CHECK_NOW_ENTITY = "check_now_entity"
CONF_CHECK_NOW_EVENT = "check_now_event"
CONF_STATUS_ENTITY = "status_entity"
CONF_NAMESPACE = "namespace"

DEFAULT_CHECK_NOW_EVENT = "battery_monitor_check_now"
DEFAULT_STATUS_ENTITY = "sensor.battery_monitor_status"
DEFAULT_NAMESPACE = "battery_monitor"
STATE_ENTITY = "battery_monitor.state"

# An increase larger than this between two readings means a new battery
REPLACEMENT_DELTA = 20

STATE_VERSION = 1

# Values Home Assistant reports for entities without a reading
UNREADABLE_STATES = ("unavailable", "unknown", "none", "")
