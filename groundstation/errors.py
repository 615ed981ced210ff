"""
Exception types used across the ground station
"""


class GroundStationError(Exception):
    """Base class for all ground station errors"""


class StartupError(GroundStationError):
    """A resource needed at startup could not be acquired. Fatal."""


class ProfileError(StartupError):
    """Controller profile is missing or malformed"""


class TelemetryError(GroundStationError):
    """Telemetry payload from the aircraft could not be interpreted"""


class ShortReadError(GroundStationError):
    """The decoder stream ended before a full frame was read"""

    def __init__(self, expected, received):
        super().__init__(f"short read: expected {expected} bytes, got {received}")
        self.expected = expected
        self.received = received


class FrameDecodeError(GroundStationError):
    """Raw bytes could not be turned into an image"""
