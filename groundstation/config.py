"""
Configuration settings for the Tello ground station
All constants and runtime settings are defined here
"""

from dataclasses import dataclass
from typing import Optional

# Decoded frame geometry (bgr24, no padding)
FRAME_WIDTH = 960
FRAME_HEIGHT = 720
FRAME_CHANNELS = 3
FRAME_SIZE = FRAME_WIDTH * FRAME_HEIGHT * FRAME_CHANNELS

# Joystick axes report signed 16 bit values
AXIS_OFFSET = 32767

# Dead-zones (raw axis units)
TRANSLATION_DEADZONE = 10
THROTTLE_DEADZONE = 1000
YAW_DEADZONE = 20

# Normalized command magnitude expected by the link
COMMAND_MAX = 100
VALIDATE_MIN_RATIO = 0.1

# Thread timing (seconds)
CONTROL_TICK_INTERVAL = 0.05
KEEPALIVE_INTERVAL = 0.1
TELEMETRY_POLL_INTERVAL = 0.1
RECONNECT_INTERVAL = 2.0
LINK_TIMEOUT = 3.0
SHORT_READ_BACKOFF = 0.05
EVENT_QUEUE_TIMEOUT = 0.2

# Video link
VIDEO_PACKET_SIZE = 2048
VIDEO_BITRATE = 1  # Tello.BITRATE_1MBPS
EXPOSURE = 0

# Recording settings
RECORDING_FPS = 25
DEFAULT_OUTPUT_FILE = "flight.avi"
DEFAULT_OUTPUT_CODEC = "MPEG"

# Live stream settings
STREAM_INTERVAL = 0.05
JPEG_QUALITY = 80

# Telemetry interpretation
TEMPERATURE_HIGH_C = 85
HOVER_SPEED_LIMIT = 0.1

# Overlay layout
OVERLAY_X = 10
OVERLAY_TOP = 20
OVERLAY_LINE_SPACING = 20
OVERLAY_FONT_SCALE = 1.5
OVERLAY_THICKNESS = 2
OVERLAY_TEXT_COLOR = (0, 255, 0)
OVERLAY_TIMESTAMP_COLOR = (255, 0, 0)
TIMESTAMP_MARGIN = 20

# Controller profiles shipped with the package
DEFAULT_CONTROLLER = "dualshock3"


@dataclass
class Settings:
    """Startup parameters collected from the command line"""
    output_file: str = DEFAULT_OUTPUT_FILE
    output_codec: str = DEFAULT_OUTPUT_CODEC
    controller: str = DEFAULT_CONTROLLER
    video_port: int = 11111
    stream_port: int = 8080
    face_classifier: Optional[str] = None
    invert_y: bool = False
    open_browser: bool = False
    verbose: bool = False
