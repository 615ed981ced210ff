"""Tests for the recording and broadcast sinks."""

import numpy as np
import pytest

from groundstation.errors import StartupError
from groundstation.recording import BroadcastSink, FanoutResult, FrameFanout, RecordingSink
from groundstation.stream_server import FrameBroadcaster

WIDTH, HEIGHT = 64, 48


def frame(value=0, width=WIDTH, height=HEIGHT):
    return np.full((height, width, 3), value, dtype=np.uint8)


class ListSink:
    def __init__(self):
        self.frames = []

    def write(self, frame):
        self.frames.append(frame)


class FailingSink:
    def __init__(self):
        self.attempts = 0

    def write(self, frame):
        self.attempts += 1
        raise IOError("disk full")


class TestRecordingSink:
    def test_writes_frames(self, tmp_path) -> None:
        path = tmp_path / "flight.avi"
        sink = RecordingSink(str(path), "MJPG", width=WIDTH, height=HEIGHT).open()
        for value in (0, 128, 255):
            sink.write(frame(value))
        sink.release()

        assert sink.frames_written == 3
        assert path.stat().st_size > 0
        assert not sink.is_open

    def test_rejects_bad_codec(self, tmp_path) -> None:
        with pytest.raises(StartupError):
            RecordingSink(str(tmp_path / "flight.avi"), "MPEG4").open()

    def test_missing_directory_is_fatal(self, tmp_path) -> None:
        with pytest.raises(StartupError):
            RecordingSink(str(tmp_path / "nope" / "flight.avi"), "MJPG").open()

    def test_write_before_open(self, tmp_path) -> None:
        sink = RecordingSink(str(tmp_path / "flight.avi"), "MJPG", width=WIDTH, height=HEIGHT)
        with pytest.raises(IOError):
            sink.write(frame())

    def test_wrong_frame_size(self, tmp_path) -> None:
        sink = RecordingSink(str(tmp_path / "flight.avi"), "MJPG", width=WIDTH, height=HEIGHT).open()
        try:
            with pytest.raises(ValueError):
                sink.write(frame(width=32, height=32))
        finally:
            sink.release()


def test_broadcast_sink_publishes_jpeg() -> None:
    broadcaster = FrameBroadcaster()
    BroadcastSink(broadcaster).write(frame(200))

    jpeg = broadcaster.latest()
    assert jpeg.startswith(b"\xff\xd8")
    assert jpeg.endswith(b"\xff\xd9")


class TestFanout:
    def test_both_sinks_receive_the_frame(self) -> None:
        recording, broadcast = ListSink(), ListSink()
        image = frame(7)

        result = FrameFanout(recording, broadcast).publish(image)

        assert result == FanoutResult(True, True)
        assert recording.frames == [image]
        assert broadcast.frames == [image]

    def test_recording_failure_does_not_block_broadcast(self, caplog) -> None:
        recording, broadcast = FailingSink(), ListSink()
        fanout = FrameFanout(recording, broadcast)

        results = [fanout.publish(frame()) for _ in range(3)]

        assert results == [FanoutResult(False, True)] * 3
        assert len(broadcast.frames) == 3
        assert fanout.recording_failures == 3
        assert "disk full" in caplog.text

    def test_broadcast_failure_does_not_block_recording(self) -> None:
        recording, broadcast = ListSink(), FailingSink()
        fanout = FrameFanout(recording, broadcast)

        assert fanout.publish(frame()) == FanoutResult(True, False)
        assert len(recording.frames) == 1
        assert fanout.broadcast_failures == 1
