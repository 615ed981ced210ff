"""
Flight control loop
Turns the shared stick positions into rate-limited movement commands
"""

import logging
from dataclasses import dataclass
from enum import Enum

from groundstation.config import (
    AXIS_OFFSET, COMMAND_MAX, VALIDATE_MIN_RATIO, CONTROL_TICK_INTERVAL,
    TRANSLATION_DEADZONE, THROTTLE_DEADZONE, YAW_DEADZONE
)
from groundstation.drone_threads import RepeatingTask

logger = logging.getLogger(__name__)


class Direction(Enum):
    FORWARD = "forward"
    BACKWARD = "backward"
    LEFT = "left"
    RIGHT = "right"
    UP = "up"
    DOWN = "down"
    CLOCKWISE = "clockwise"
    COUNTER_CLOCKWISE = "counter_clockwise"


@dataclass(frozen=True)
class ControlCommand:
    direction: Direction
    magnitude: int


def validate(value, offset=AXIS_OFFSET):
    """Map a raw axis value to the 0-100 magnitude the aircraft expects.

    Anything under 10% of the range is treated as zero, anything past the
    range saturates at 100. Never raises for out of range input.
    """
    scaled = abs(value) / offset
    if scaled < VALIDATE_MIN_RATIO:
        return 0
    if scaled > 1.0:
        return COMMAND_MAX
    return int(scaled * COMMAND_MAX)


def _axis_command(value, deadzone, negative, positive):
    # Strict inequalities: the boundary itself is still inside the dead-zone
    if value < -deadzone:
        return ControlCommand(negative, validate(value))
    if value > deadzone:
        return ControlCommand(positive, validate(value))
    return ControlCommand(positive, 0)


def translation_commands(stick, invert_y=False):
    """Forward/back and left/right commands for the right stick"""
    y = -stick.y if invert_y else stick.y
    return (
        _axis_command(y, TRANSLATION_DEADZONE, Direction.BACKWARD, Direction.FORWARD),
        _axis_command(stick.x, TRANSLATION_DEADZONE, Direction.LEFT, Direction.RIGHT),
    )


def throttle_yaw_commands(stick, invert_y=False):
    """Up/down and rotation commands for the left stick.

    The vertical dead-zone is much wider than the yaw one so that rotating
    the aircraft does not make it climb or sink by accident.
    """
    y = -stick.y if invert_y else stick.y
    return (
        _axis_command(y, THROTTLE_DEADZONE, Direction.DOWN, Direction.UP),
        _axis_command(stick.x, YAW_DEADZONE, Direction.COUNTER_CLOCKWISE, Direction.CLOCKWISE),
    )


class FlightControlLoop:
    """Two independent 50ms ticks, one per stick.

    The ticks govern disjoint axes and are not synchronized with each other,
    so commands from the two may interleave on the link.
    """

    def __init__(self, state, link, shutdown=None, invert_y=False, interval=CONTROL_TICK_INTERVAL):
        self.state = state
        self.link = link
        self.invert_y = invert_y
        self._tasks = [
            RepeatingTask("Translation", interval, self.tick_translation, shutdown),
            RepeatingTask("Throttle/Yaw", interval, self.tick_throttle_yaw, shutdown),
        ]

    def start(self):
        for task in self._tasks:
            task.start()
        logger.info(f"Flight control started (invert_y={self.invert_y})")

    def stop(self):
        for task in self._tasks:
            task.cancel()
        logger.info("Flight control stopped")

    def tick_translation(self):
        commands = translation_commands(self.state.right_stick(), self.invert_y)
        self._send(commands)
        return commands

    def tick_throttle_yaw(self):
        commands = throttle_yaw_commands(self.state.left_stick(), self.invert_y)
        self._send(commands)
        return commands

    def _send(self, commands):
        for command in commands:
            try:
                self.link.move(command.direction, command.magnitude)
            except Exception as e:
                logger.warning(f"Could not send {command.direction.value} command: {e}")
