"""Exceptions raised by the battery monitor."""


class BatteryMonitorError(Exception):
    """Base class for battery monitor errors."""


class ConfigError(BatteryMonitorError):
    """The apps.yaml configuration is invalid."""


class StateVersionError(BatteryMonitorError):
    """Persisted state was written by an unsupported format version."""

    def __init__(self, version):
        super().__init__(f"Unsupported battery monitor state version: {version!r}")
        self.version = version
