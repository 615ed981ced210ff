"""
Telemetry snapshot of the aircraft

The Tello SDK pushes a ``key:value;`` state string which djitellopy parses
into a dict. A snapshot is derived from that dict in one go and never
mutated afterwards.
"""

import math
from dataclasses import dataclass

from groundstation.config import HOVER_SPEED_LIMIT, TEMPERATURE_HIGH_C
from groundstation.errors import TelemetryError

REQUIRED_KEYS = ("bat", "temph", "h", "vgx", "vgy", "vgz")


@dataclass(frozen=True)
class TelemetrySnapshot:
    battery_percentage: int
    temperature_high: bool
    pressure_abnormal: bool
    ground_speed: float  # m/s
    air_speed: float  # m/s
    height: int  # decimetres
    flying: bool
    on_ground: bool
    hovering: bool

    @classmethod
    def from_tello_state(cls, state):
        """Build a snapshot from the dict returned by ``Tello.get_current_state()``"""
        if not state:
            raise TelemetryError("empty state packet")

        missing = [key for key in REQUIRED_KEYS if key not in state]
        if missing:
            raise TelemetryError(f"state packet is missing {', '.join(missing)}")

        try:
            battery = int(state["bat"])
            temp_high = float(state["temph"])
            height_cm = float(state["h"])
            # SDK speeds are in dm/s
            vgx = float(state["vgx"]) / 10.0
            vgy = float(state["vgy"]) / 10.0
            vgz = float(state["vgz"]) / 10.0
        except (TypeError, ValueError) as e:
            raise TelemetryError(f"malformed state packet: {e}") from e

        try:
            baro = float(state.get("baro"))
        except (TypeError, ValueError):
            baro = math.nan

        ground_speed = math.hypot(vgx, vgy)
        air_speed = math.sqrt(vgx * vgx + vgy * vgy + vgz * vgz)
        flying = height_cm > 0

        return cls(
            battery_percentage=battery,
            temperature_high=temp_high >= TEMPERATURE_HIGH_C,
            pressure_abnormal=not math.isfinite(baro),
            ground_speed=ground_speed,
            air_speed=air_speed,
            height=int(height_cm // 10),
            flying=flying,
            on_ground=not flying,
            hovering=flying and air_speed < HOVER_SPEED_LIMIT,
        )
