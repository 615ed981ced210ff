"""
Shared state between the event router, the control loop and the video pipeline

Each field is replaced by a single attribute rebind, which is atomic in
CPython, so readers always see either the old or the new value. No lock is
taken: every consumer needs one field or one whole snapshot, never a
multi-field transaction.
"""

from typing import NamedTuple, Optional

from groundstation.config import AXIS_OFFSET
from groundstation.telemetry import TelemetrySnapshot


class StickPair(NamedTuple):
    x: int
    y: int


def clamp_axis(value):
    """Clamp a raw axis reading into the device range"""
    return max(-AXIS_OFFSET, min(AXIS_OFFSET, int(value)))


class SharedState:
    """Four joystick axes plus the latest telemetry snapshot"""

    def __init__(self):
        self.left_x = 0
        self.left_y = 0
        self.right_x = 0
        self.right_y = 0
        self.telemetry: Optional[TelemetrySnapshot] = None

    def set_axis(self, name, value):
        if name not in ("left_x", "left_y", "right_x", "right_y"):
            raise KeyError(f"unknown axis: {name}")
        setattr(self, name, clamp_axis(value))

    def left_stick(self) -> StickPair:
        return StickPair(self.left_x, self.left_y)

    def right_stick(self) -> StickPair:
        return StickPair(self.right_x, self.right_y)

    def set_telemetry(self, snapshot: TelemetrySnapshot):
        self.telemetry = snapshot

    def reset_axes(self):
        """Center every stick, used when the controller goes away"""
        self.left_x = 0
        self.left_y = 0
        self.right_x = 0
        self.right_y = 0
