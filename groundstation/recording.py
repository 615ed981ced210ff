"""
Recording and broadcast sinks
Every annotated frame is appended to the flight recording and re-encoded
as JPEG for the live stream
"""

import logging
import os
from dataclasses import dataclass

import cv2

from groundstation.config import FRAME_HEIGHT, FRAME_WIDTH, JPEG_QUALITY, RECORDING_FPS
from groundstation.errors import StartupError

logger = logging.getLogger(__name__)


class RecordingSink:
    """Flight footage written with cv2.VideoWriter"""

    def __init__(self, path, codec, fps=RECORDING_FPS, width=FRAME_WIDTH, height=FRAME_HEIGHT):
        self.path = path
        self.codec = codec
        self.fps = fps
        self.size = (width, height)
        self.frames_written = 0
        self._writer = None

    def open(self):
        if len(self.codec) != 4:
            raise StartupError(f"Codec must be a four character code, got '{self.codec}'")

        directory = os.path.dirname(os.path.abspath(self.path))
        if not os.path.isdir(directory):
            raise StartupError(f"Could not open the output flight footage file: {directory} does not exist")

        fourcc = cv2.VideoWriter_fourcc(*self.codec)
        writer = cv2.VideoWriter(self.path, fourcc, float(self.fps), self.size, True)
        if not writer.isOpened():
            raise StartupError(f"Could not open the output flight footage file {self.path} ({self.codec})")

        self._writer = writer
        logger.info(f"🔴 Recording to {self.path} ({self.codec}, {self.fps} FPS)")
        return self

    @property
    def is_open(self):
        return self._writer is not None and self._writer.isOpened()

    def write(self, frame):
        if not self.is_open:
            raise IOError("recording sink is not open")
        if (frame.shape[1], frame.shape[0]) != self.size:
            raise ValueError(f"frame is {frame.shape[1]}x{frame.shape[0]}, recording is {self.size[0]}x{self.size[1]}")
        self._writer.write(frame)
        self.frames_written += 1

    def release(self):
        if self._writer is not None:
            self._writer.release()
            self._writer = None
            logger.info(f"⏹️ Recording stopped: {self.path} ({self.frames_written} frames)")


class BroadcastSink:
    """JPEG encodes frames for the live stream"""

    def __init__(self, broadcaster, quality=JPEG_QUALITY):
        self.broadcaster = broadcaster
        self.params = [int(cv2.IMWRITE_JPEG_QUALITY), quality]

    def write(self, frame):
        ok, buffer = cv2.imencode(".jpg", frame, self.params)
        if not ok:
            raise ValueError("Could not encode image to jpeg")
        self.broadcaster.update(buffer.tobytes())


@dataclass(frozen=True)
class FanoutResult:
    recorded: bool
    broadcast: bool


class FrameFanout:
    """Sends one frame to both sinks; a failing sink never blocks the other"""

    def __init__(self, recording, broadcast):
        self.recording = recording
        self.broadcast = broadcast
        self.recording_failures = 0
        self.broadcast_failures = 0

    def publish(self, frame):
        recorded = True
        try:
            self.recording.write(frame)
        except Exception as e:
            recorded = False
            self.recording_failures += 1
            logger.error(f"Could not write frame to recording: {e}")

        broadcast = True
        try:
            self.broadcast.write(frame)
        except Exception as e:
            broadcast = False
            self.broadcast_failures += 1
            logger.error(f"Could not update stream: {e}")

        return FanoutResult(recorded, broadcast)
