"""
Input controller for joystick and aircraft link events
Routes typed events into the shared state and one-shot aircraft commands
"""

import logging
import os
import queue
import threading

import pygame

from groundstation.config import AXIS_OFFSET, EVENT_QUEUE_TIMEOUT, EXPOSURE, KEEPALIVE_INTERVAL, VIDEO_BITRATE
from groundstation.drone_threads import RepeatingTask
from groundstation.events import (
    Axis, AxisChanged, Button, ButtonPressed, LinkConnected, LinkDisconnected, TelemetryUpdated
)
from groundstation.shared_state import clamp_axis

logger = logging.getLogger(__name__)

# Button -> name of the aircraft link method it triggers, None for reserved buttons
BUTTON_ACTIONS = {
    Button.SQUARE: "flip_left",
    Button.CIRCLE: "flip_right",
    Button.TRIANGLE: "takeoff",
    Button.X: "land",
    Button.START: None,
    Button.SELECT: None,
}

JOYSTICK_POLL_INTERVAL = 1 / 120


class InputEventRouter:
    """Single consumer of device and link events.

    Producers call ``post()``, which never blocks. A worker thread takes
    events off the queue and hands them to ``dispatch()`` one at a time.
    """

    def __init__(self, state, link, shutdown=None, keepalive_interval=KEEPALIVE_INTERVAL):
        self.state = state
        self.link = link
        self.events = queue.Queue()
        self.keepalive_interval = keepalive_interval
        self._shutdown = shutdown
        self._stopped = threading.Event()
        self._keepalive = None
        self._thread = None
        self._handlers = {
            ButtonPressed: self._on_button,
            AxisChanged: self._on_axis,
            LinkConnected: self._on_connected,
            LinkDisconnected: self._on_disconnected,
            TelemetryUpdated: self._on_telemetry,
        }

    @property
    def keepalive(self):
        return self._keepalive

    def post(self, event):
        self.events.put_nowait(event)

    def dispatch(self, event):
        handler = self._handlers.get(type(event))
        if handler is None:
            logger.warning(f"Ignoring unknown event: {event!r}")
            return
        try:
            handler(event)
        except Exception as e:
            logger.error(f"Error handling {type(event).__name__}: {e}")

    def start(self):
        self._stopped.clear()
        self._thread = threading.Thread(target=self._loop, name="Event Router", daemon=True)
        self._thread.start()
        logger.info("Event router started")

    def stop(self):
        self._stopped.set()
        self._cancel_keepalive()
        if self._thread is not None:
            self._thread.join(timeout=2)
            self._thread = None
        logger.info("Event router stopped")

    def _running(self):
        if self._stopped.is_set():
            return False
        return self._shutdown is None or not self._shutdown.is_set()

    def _loop(self):
        while self._running():
            try:
                event = self.events.get(timeout=EVENT_QUEUE_TIMEOUT)
            except queue.Empty:
                continue
            self.dispatch(event)

    # Handlers

    def _on_button(self, event):
        action = BUTTON_ACTIONS.get(event.button)
        if action is None:
            logger.debug(f"Button {event.button.value} is reserved")
            return
        logger.info(f"🎮 {event.button.value} pressed -> {action}")
        getattr(self.link, action)()

    def _on_axis(self, event):
        self.state.set_axis(event.axis.value, event.value)

    def _on_connected(self, event):
        logger.info("Aircraft connected, starting video")
        self.link.start_video()
        self.link.set_video_bitrate(VIDEO_BITRATE)
        self.link.set_exposure(EXPOSURE)

        # The aircraft stops streaming unless start-video is repeated
        self._cancel_keepalive()
        self._keepalive = RepeatingTask(
            "Video Keep-Alive", self.keepalive_interval, self.link.start_video, self._shutdown,
            immediate=False,
        ).start()

    def _on_disconnected(self, event):
        logger.warning(f"Aircraft disconnected: {event.reason or 'no reason given'}")
        self._cancel_keepalive()

    def _on_telemetry(self, event):
        self.state.set_telemetry(event.snapshot)

    def _cancel_keepalive(self):
        if self._keepalive is not None:
            self._keepalive.cancel()
            self._keepalive = None


def translate_pygame_event(event, profile):
    """Turn a raw pygame joystick event into a typed device event, or None"""
    if event.type == pygame.JOYAXISMOTION:
        axis = profile.axis_for(event.axis)
        if axis is None:
            return None
        return AxisChanged(axis, clamp_axis(round(event.value * AXIS_OFFSET)))

    if event.type == pygame.JOYBUTTONDOWN:
        button = profile.button_for(event.button)
        if button is None:
            return None
        return ButtonPressed(button)

    return None


class JoystickEventSource:
    """Pumps pygame joystick events and posts them to the router"""

    def __init__(self, profile, router, shutdown):
        self.profile = profile
        self.router = router
        self.shutdown = shutdown
        self.joysticks = {}

    def initialize(self):
        # No window is opened, joystick events must still be delivered
        os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
        os.environ.setdefault("SDL_JOYSTICK_ALLOW_BACKGROUND_EVENTS", "1")

        pygame.display.init()
        pygame.joystick.init()
        # Connected devices are announced with JOYDEVICEADDED on the first pump
        if pygame.joystick.get_count() == 0:
            logger.warning("No joystick detected - waiting for one to be plugged in")

    def _open(self, index):
        joystick = pygame.joystick.Joystick(index)
        joystick.init()
        self.joysticks[joystick.get_instance_id()] = joystick
        logger.info(f"Joystick initialized: {joystick.get_name()}")

    def _center_sticks(self):
        for axis in Axis:
            self.router.post(AxisChanged(axis, 0))

    def run(self):
        """Main-thread loop, returns when shutdown is set or pygame quits"""
        try:
            while not self.shutdown.is_set():
                for event in pygame.event.get():
                    if event.type == pygame.QUIT:
                        self.shutdown.set()
                    elif event.type == pygame.JOYDEVICEADDED:
                        self._open(event.device_index)
                    elif event.type == pygame.JOYDEVICEREMOVED:
                        self.joysticks.pop(event.instance_id, None)
                        logger.warning("Joystick removed, centering sticks")
                        self._center_sticks()
                    else:
                        device_event = translate_pygame_event(event, self.profile)
                        if device_event is not None:
                            self.router.post(device_event)
                self.shutdown.wait(JOYSTICK_POLL_INTERVAL)
        finally:
            pygame.quit()
