"""
Video ingest pipeline
ffmpeg turns the raw H.264 feed into bgr24 frames; one frame at a time is
read, annotated and handed to the fanout
"""

import logging
import subprocess
import threading

import numpy as np

from groundstation.config import FRAME_CHANNELS, FRAME_HEIGHT, FRAME_SIZE, FRAME_WIDTH, SHORT_READ_BACKOFF
from groundstation.errors import FrameDecodeError, ShortReadError, StartupError

logger = logging.getLogger(__name__)

FFMPEG_COMMAND = [
    "ffmpeg", "-hide_banner", "-loglevel", "error",
    "-hwaccel", "auto",
    "-i", "pipe:0",
    "-pix_fmt", "bgr24",
    "-s", f"{FRAME_WIDTH}x{FRAME_HEIGHT}",
    "-f", "rawvideo",
    "pipe:1",
]


class FrameDecoder:
    """Owns the ffmpeg subprocess"""

    def __init__(self, command=None):
        self.command = list(command or FFMPEG_COMMAND)
        self._process = None
        self._write_lock = threading.Lock()
        self.restarts = 0
        self._stopped = False

    @property
    def stdout(self):
        if self._process is None:
            return None
        return self._process.stdout

    @property
    def alive(self):
        return self._process is not None and self._process.poll() is None

    def start(self):
        self._stopped = False
        try:
            self._process = subprocess.Popen(
                self.command,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
            )
        except OSError as e:
            raise StartupError(f"Could not start decoder {self.command[0]}: {e}") from e
        logger.info(f"Decoder started (pid {self._process.pid})")

    def write(self, packet):
        """Feed compressed bytes to the decoder"""
        with self._write_lock:
            process = self._process
            if process is None or process.poll() is not None:
                return
            try:
                process.stdin.write(packet)
                process.stdin.flush()
            except (BrokenPipeError, ValueError) as e:
                logger.error(f"Decoder input closed: {e}")

    def recover(self):
        """Relaunch ffmpeg if it died"""
        if self.alive or self._stopped:
            return
        code = self._process.returncode if self._process is not None else None
        logger.error(f"Decoder exited (code {code}), restarting")
        with self._write_lock:
            self._close()
            try:
                self.start()
            except StartupError as e:
                logger.error(str(e))
                return
        self.restarts += 1

    def stop(self):
        self._stopped = True
        with self._write_lock:
            self._close()
        logger.info("Decoder stopped")

    def _close(self):
        process = self._process
        if process is None:
            return
        self._process = None
        if process.stdin:
            try:
                process.stdin.close()
            except OSError:
                pass
        if process.poll() is None:
            process.terminate()
            try:
                process.wait(timeout=2)
            except subprocess.TimeoutExpired:
                process.kill()
                process.wait()
        if process.stdout:
            process.stdout.close()


def read_frame(stream, size=FRAME_SIZE):
    """Read exactly ``size`` bytes, blocking until they are all there"""
    buf = bytearray()
    while len(buf) < size:
        chunk = stream.read(size - len(buf))
        if not chunk:
            raise ShortReadError(size, len(buf))
        buf += chunk
    return bytes(buf)


def decode_frame(data, width=FRAME_WIDTH, height=FRAME_HEIGHT):
    """Interpret raw bgr24 bytes as a writable image"""
    expected = width * height * FRAME_CHANNELS
    if not data:
        raise FrameDecodeError("empty frame")
    if len(data) != expected:
        raise FrameDecodeError(f"frame has {len(data)} bytes, expected {expected}")
    return np.frombuffer(data, dtype=np.uint8).reshape((height, width, FRAME_CHANNELS)).copy()


class VideoIngestPipeline:
    """Single-threaded read -> annotate -> fanout loop.

    A frame is fully processed before the next one is read, so output order
    equals input order. Failures on one frame never end the loop.
    """

    def __init__(self, decoder, state, renderer, fanout, shutdown,
                 width=FRAME_WIDTH, height=FRAME_HEIGHT, backoff=SHORT_READ_BACKOFF):
        self.decoder = decoder
        self.state = state
        self.renderer = renderer
        self.fanout = fanout
        self.shutdown = shutdown
        self.width = width
        self.height = height
        self.frame_size = width * height * FRAME_CHANNELS
        self.backoff = backoff
        self.processed = 0
        self.short_reads = 0
        self.skipped = 0

    def run(self):
        logger.info("Video pipeline started")
        while not self.shutdown.is_set():
            try:
                stream = self.decoder.stdout
                if stream is None:
                    raise ShortReadError(self.frame_size, 0)
                data = read_frame(stream, self.frame_size)
            except (ShortReadError, OSError, ValueError) as e:
                if self.shutdown.is_set():
                    break
                self.short_reads += 1
                logger.warning(f"Frame read failed ({e}), retrying")
                self.decoder.recover()
                self.shutdown.wait(self.backoff)
                continue
            self.process_frame(data)

        logger.info(f"Video pipeline ended: {self.processed} frames, "
                    f"{self.skipped} skipped, {self.short_reads} short reads")
        return self.processed

    def process_frame(self, data):
        try:
            frame = decode_frame(data, self.width, self.height)
        except FrameDecodeError as e:
            self.skipped += 1
            logger.error(f"Could not decode image: {e}")
            return False

        try:
            self.renderer.render(frame, self.state.telemetry)
        except Exception as e:
            logger.error(f"Overlay failed, sending frame without it: {e}")

        self.fanout.publish(frame)
        self.processed += 1
        return True
