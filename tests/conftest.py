"""
Shared fixtures for the ground station tests.
"""

import sys
import threading
import time
from collections import deque
from pathlib import Path

import pytest

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from groundstation.telemetry import TelemetrySnapshot  # noqa: E402


class FakeLink:
    """Aircraft link that records every command it receives."""

    def __init__(self):
        self.calls = []
        self._lock = threading.Lock()

    def _record(self, name, *args):
        with self._lock:
            self.calls.append((name, args, time.monotonic()))

    def names(self):
        with self._lock:
            return [name for name, _, _ in self.calls]

    def count(self, name):
        return self.names().count(name)

    def times(self, name):
        with self._lock:
            return [at for call, _, at in self.calls if call == name]

    def moves(self):
        with self._lock:
            return [args for name, args, _ in self.calls if name == "move"]

    def start_video(self):
        self._record("start_video")

    def set_video_bitrate(self, level):
        self._record("set_video_bitrate", level)

    def set_exposure(self, value):
        self._record("set_exposure", value)

    def takeoff(self):
        self._record("takeoff")

    def land(self):
        self._record("land")

    def flip_left(self):
        self._record("flip_left")

    def flip_right(self):
        self._record("flip_right")

    def move(self, direction, magnitude):
        self._record("move", direction, magnitude)


class ScriptedStream:
    """File-like decoder output that replays chunks; an empty chunk reads as EOF once."""

    def __init__(self, chunks):
        self.chunks = deque(chunks)

    def read(self, size):
        if not self.chunks:
            return b""
        chunk = self.chunks.popleft()
        if len(chunk) > size:
            self.chunks.appendleft(chunk[size:])
            chunk = chunk[:size]
        return chunk


class FakeDecoder:
    def __init__(self, stream):
        self.stdout = stream
        self.recoveries = 0

    def recover(self):
        self.recoveries += 1


@pytest.fixture
def fake_link():
    return FakeLink()


@pytest.fixture
def shutdown():
    event = threading.Event()
    yield event
    event.set()


def make_snapshot(**overrides):
    values = dict(
        battery_percentage=87,
        temperature_high=False,
        pressure_abnormal=False,
        ground_speed=1.5,
        air_speed=1.75,
        height=123,
        flying=True,
        on_ground=False,
        hovering=False,
    )
    values.update(overrides)
    return TelemetrySnapshot(**values)


@pytest.fixture
def snapshot():
    return make_snapshot()
