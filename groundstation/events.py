"""
Typed events delivered to the input event router

Device events come from the joystick pump, link events from the aircraft
link. Every variant is a small frozen dataclass so handlers never have to
cast an untyped payload.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Union

from groundstation.telemetry import TelemetrySnapshot


class Axis(Enum):
    LEFT_X = "left_x"
    LEFT_Y = "left_y"
    RIGHT_X = "right_x"
    RIGHT_Y = "right_y"


class Button(Enum):
    SQUARE = "square"
    TRIANGLE = "triangle"
    CIRCLE = "circle"
    X = "x"
    START = "start"
    SELECT = "select"


@dataclass(frozen=True)
class ButtonPressed:
    button: Button


@dataclass(frozen=True)
class AxisChanged:
    axis: Axis
    value: int


@dataclass(frozen=True)
class LinkConnected:
    pass


@dataclass(frozen=True)
class LinkDisconnected:
    reason: str = ""


@dataclass(frozen=True)
class TelemetryUpdated:
    snapshot: TelemetrySnapshot


DeviceEvent = Union[ButtonPressed, AxisChanged]
LinkEvent = Union[LinkConnected, LinkDisconnected, TelemetryUpdated]
Event = Union[DeviceEvent, LinkEvent]
