"""
Telemetry overlay drawn on every frame
"""

from datetime import datetime

import cv2

from groundstation.config import (
    FRAME_HEIGHT, OVERLAY_FONT_SCALE, OVERLAY_LINE_SPACING, OVERLAY_TEXT_COLOR, OVERLAY_THICKNESS,
    OVERLAY_TIMESTAMP_COLOR, OVERLAY_TOP, OVERLAY_X, TIMESTAMP_MARGIN
)

FONT = cv2.FONT_HERSHEY_PLAIN
TIMESTAMP_FORMAT = "%a, %d %b %Y %H:%M:%S %Z"


def status(ok):
    return "OK" if ok else "HIGH"


def yes_no(flag):
    return "YES" if flag else "NOPE"


def telemetry_lines(snapshot):
    """Text and position of every telemetry line, empty before the first packet"""
    if snapshot is None:
        return []

    texts = [
        f"Battery: {snapshot.battery_percentage:3d}%",
        f"Temperature: {status(not snapshot.temperature_high)}",
        f"Pressure: {status(not snapshot.pressure_abnormal)}",
        f"Ground speed: {snapshot.ground_speed:.2f}m/s",
        f"Air speed: {snapshot.air_speed:.2f}m/s",
        f"Height: {snapshot.height / 10.0:.2f}",
        f"Flying: {yes_no(snapshot.flying)}",
        f"On ground: {yes_no(snapshot.on_ground)}",
        f"Hover: {yes_no(snapshot.hovering)}",
    ]
    return [
        (text, (OVERLAY_X, OVERLAY_TOP + index * OVERLAY_LINE_SPACING))
        for index, text in enumerate(texts)
    ]


def timestamp_text(now=None):
    now = now or datetime.now().astimezone()
    return now.strftime(TIMESTAMP_FORMAT)


class TelemetryOverlayRenderer:
    def __init__(self, frame_height=FRAME_HEIGHT, clock=None):
        self.timestamp_position = (OVERLAY_X, frame_height - TIMESTAMP_MARGIN)
        self.clock = clock

    def render(self, frame, snapshot):
        """Draw telemetry and the current time onto ``frame`` in place"""
        for text, position in telemetry_lines(snapshot):
            cv2.putText(frame, text, position, FONT, OVERLAY_FONT_SCALE,
                        OVERLAY_TEXT_COLOR, OVERLAY_THICKNESS)

        now = self.clock() if self.clock else None
        cv2.putText(frame, timestamp_text(now), self.timestamp_position, FONT,
                    OVERLAY_FONT_SCALE, OVERLAY_TIMESTAMP_COLOR, OVERLAY_THICKNESS)
        return frame
