"""
Aircraft link backed by djitellopy
Connection loop, fire-and-forget commands, telemetry polling and the raw
H.264 packet receiver that feeds the decoder
"""

import logging
import socket
import threading
import time

from djitellopy import Tello

from groundstation.config import (
    LINK_TIMEOUT, RECONNECT_INTERVAL, TELEMETRY_POLL_INTERVAL, VIDEO_PACKET_SIZE
)
from groundstation.drone_threads import RepeatingTask, join_threads, start_thread
from groundstation.errors import StartupError, TelemetryError
from groundstation.events import LinkConnected, LinkDisconnected, TelemetryUpdated
from groundstation.flight_control import Direction
from groundstation.telemetry import TelemetrySnapshot

logger = logging.getLogger(__name__)

# Direction -> (rc channel, sign). Channels follow send_rc_control:
# left/right, forward/backward, up/down, yaw
RC_CHANNELS = {
    Direction.LEFT: (0, -1),
    Direction.RIGHT: (0, 1),
    Direction.BACKWARD: (1, -1),
    Direction.FORWARD: (1, 1),
    Direction.DOWN: (2, -1),
    Direction.UP: (2, 1),
    Direction.COUNTER_CLOCKWISE: (3, -1),
    Direction.CLOCKWISE: (3, 1),
}


class TelloLink:
    """Talks to the aircraft and turns what it hears into link events.

    ``post_event`` receives LinkConnected / LinkDisconnected /
    TelemetryUpdated. ``packet_sink`` receives every raw video datagram.
    """

    def __init__(self, post_event, packet_sink, shutdown, video_port=Tello.VS_UDP_PORT, tello=None):
        self.post_event = post_event
        self.packet_sink = packet_sink
        self.shutdown = shutdown
        self.video_port = video_port
        self.tello = tello if tello is not None else Tello()
        self.connected = False
        self.exposure = None
        self._rc = [0, 0, 0, 0]
        self._rc_lock = threading.Lock()
        self._last_state = None
        self._last_state_time = 0.0
        self._socket = None
        self._threads = []
        self._connecting = threading.Lock()
        self._poller = RepeatingTask("Telemetry", TELEMETRY_POLL_INTERVAL, self.poll_telemetry, shutdown)

    # Lifecycle

    def start(self):
        self._open_video_socket()
        self._threads.append(start_thread("Video Receiver", self._receive_video))
        self._start_connecting()
        self._poller.start()

    def stop(self):
        self._poller.cancel()
        join_threads(self._threads)
        self._threads = []
        if self._socket is not None:
            self._socket.close()
            self._socket = None
        if self.connected:
            try:
                self.send_rc(0, 0, 0, 0)
                self.tello.send_command_without_return("streamoff")
            except Exception as e:
                logger.warning(f"Could not stop the video stream: {e}")
        try:
            self.tello.end()
        except Exception as e:
            logger.warning(f"Error closing Tello connection: {e}")
        self.connected = False
        logger.info("Aircraft link stopped")

    def _start_connecting(self):
        if self._connecting.acquire(blocking=False):
            self._threads = [t for t in self._threads if t.is_alive()]
            self._threads.append(start_thread("Link Connect", self._connect_loop))

    def _connect_loop(self):
        try:
            while not self.shutdown.is_set() and not self.connected:
                try:
                    logger.info("Connecting to Tello...")
                    self.tello.connect()
                    if self.video_port != Tello.VS_UDP_PORT:
                        self.tello.set_network_ports(Tello.STATE_UDP_PORT, self.video_port)
                except Exception as e:
                    logger.warning(f"Failed to connect to Tello: {e}")
                    self.shutdown.wait(RECONNECT_INTERVAL)
                    continue

                self.connected = True
                self._last_state = None
                self._last_state_time = time.monotonic()
                logger.info("✅ Connected to Tello")
                self.post_event(LinkConnected())
        finally:
            self._connecting.release()

    # Telemetry

    def poll_telemetry(self):
        """Publish a snapshot whenever a new state packet has arrived"""
        if not self.connected:
            return

        state = self.tello.get_current_state()
        now = time.monotonic()
        if state is self._last_state or not state:
            if now - self._last_state_time > LINK_TIMEOUT:
                self._lost(f"no telemetry for {LINK_TIMEOUT:.0f}s")
            return

        self._last_state = state
        self._last_state_time = now
        try:
            snapshot = TelemetrySnapshot.from_tello_state(state)
        except TelemetryError as e:
            logger.warning(f"Ignoring telemetry: {e}")
            return
        self.post_event(TelemetryUpdated(snapshot))

    def _lost(self, reason):
        self.connected = False
        logger.warning(f"Tello link lost: {reason}")
        self.post_event(LinkDisconnected(reason))
        self._start_connecting()

    # Video

    def _open_video_socket(self):
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind(("0.0.0.0", self.video_port))
        except OSError as e:
            sock.close()
            raise StartupError(f"Could not listen for video on udp/{self.video_port}: {e}") from e
        sock.settimeout(0.5)
        self._socket = sock
        logger.info(f"Listening for video on udp/{self.video_port}")

    def _receive_video(self):
        while not self.shutdown.is_set():
            try:
                packet, _ = self._socket.recvfrom(VIDEO_PACKET_SIZE)
            except socket.timeout:
                continue
            except OSError as e:
                if self.shutdown.is_set():
                    break
                logger.error(f"Video socket error: {e}")
                self.shutdown.wait(0.1)
                continue
            try:
                self.packet_sink(packet)
            except Exception as e:
                logger.error(f"Could not forward video packet: {e}")

    # Commands

    def start_video(self):
        self.tello.send_command_without_return("streamon")

    def set_video_bitrate(self, level):
        self.tello.send_command_without_return(f"setbitrate {level}")

    def set_exposure(self, value):
        # Not part of the Tello SDK text protocol
        self.exposure = value
        logger.debug(f"Exposure compensation set to {value} (not sent)")

    def takeoff(self):
        self.tello.send_command_without_return("takeoff")

    def land(self):
        self.tello.send_command_without_return("land")

    def flip_left(self):
        self.tello.send_command_without_return("flip l")

    def flip_right(self):
        self.tello.send_command_without_return("flip r")

    def move(self, direction, magnitude):
        channel, sign = RC_CHANNELS[direction]
        with self._rc_lock:
            self._rc[channel] = sign * magnitude
            rc = tuple(self._rc)
        self.send_rc(*rc)

    def send_rc(self, left_right, forward_backward, up_down, yaw):
        self.tello.send_rc_control(left_right, forward_backward, up_down, yaw)
