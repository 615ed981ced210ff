"""
System initialization and teardown
Builds every component, owns the shutdown signal and stops things in order
"""

import logging
import os
import threading

import cv2

from groundstation.aircraft_link import TelloLink
from groundstation.controller_profile import load_controller_profile
from groundstation.drone_threads import join_threads, start_thread
from groundstation.errors import StartupError
from groundstation.flight_control import FlightControlLoop
from groundstation.input_controller import InputEventRouter, JoystickEventSource
from groundstation.overlay import TelemetryOverlayRenderer
from groundstation.recording import BroadcastSink, FrameFanout, RecordingSink
from groundstation.shared_state import SharedState
from groundstation.stream_server import FrameBroadcaster, StreamServer, create_app
from groundstation.video_ingest import FrameDecoder, VideoIngestPipeline

logger = logging.getLogger(__name__)


def check_face_classifier(path):
    """Make sure an optional Haar cascade loads. Detection itself is not run."""
    if not path:
        return None
    if not os.path.isfile(path):
        raise StartupError(f"Error reading cascade file: {path} does not exist")
    cascade_type = getattr(cv2, "CascadeClassifier", None)
    if cascade_type is None:
        raise StartupError("face classifier support is not available in this OpenCV build")
    try:
        classifier = cascade_type(path)
    except cv2.error as e:
        raise StartupError(f"Error reading cascade file: {path}: {e}") from e
    if classifier.empty():
        raise StartupError(f"Error reading cascade file: {path}")
    logger.info(f"Face classifier loaded from {path} (detection disabled)")
    return classifier


class GroundStation:
    def __init__(self, settings):
        self.settings = settings
        self.shutdown = threading.Event()
        self.state = SharedState()
        self.threads = []

        self.recording = None
        self.decoder = None
        self.server = None
        self.router = None
        self.link = None
        self.control = None
        self.pipeline = None
        self.joystick = None

    def initialize(self):
        """Acquire every resource. Raises StartupError when one is missing."""
        settings = self.settings
        logger.info("Initializing systems...")

        check_face_classifier(settings.face_classifier)
        profile = load_controller_profile(settings.controller)

        self.recording = RecordingSink(settings.output_file, settings.output_codec).open()

        broadcaster = FrameBroadcaster()
        fanout = FrameFanout(self.recording, BroadcastSink(broadcaster))
        self.server = StreamServer(create_app(broadcaster, self.shutdown), settings.stream_port)

        self.decoder = FrameDecoder()
        self.decoder.start()

        self.link = TelloLink(self._post_event, self.decoder.write, self.shutdown,
                              video_port=settings.video_port)
        self.router = InputEventRouter(self.state, self.link, self.shutdown)
        self.control = FlightControlLoop(self.state, self.link, self.shutdown, invert_y=settings.invert_y)
        self.pipeline = VideoIngestPipeline(
            self.decoder, self.state, TelemetryOverlayRenderer(), fanout, self.shutdown
        )

        self.joystick = JoystickEventSource(profile, self.router, self.shutdown)
        self.joystick.initialize()
        logger.info("All systems initialized successfully!")

    def _post_event(self, event):
        self.router.post(event)

    def start(self):
        logger.info("Starting all threads...")
        self.server.start(open_browser=self.settings.open_browser)
        self.router.start()
        self.link.start()
        self.control.start()
        self.threads.append(start_thread("Video Pipeline", self.pipeline.run))

    def run(self):
        """Start everything and pump joystick events until shutdown"""
        try:
            self.start()
            self.joystick.run()
        finally:
            self.stop()

    def stop(self):
        logger.info("Shutting down...")
        self.shutdown.set()

        steps = [
            ("flight control", self.control and self.control.stop),
            ("event router", self.router and self.router.stop),
            ("aircraft link", self.link and self.link.stop),
            ("decoder", self.decoder and self.decoder.stop),
            ("video pipeline", lambda: join_threads(self.threads)),
            ("recording", self.recording and self.recording.release),
            ("stream server", self.server and self.server.stop),
        ]
        for name, step in steps:
            if not step:
                continue
            try:
                step()
            except Exception as e:
                logger.error(f"Error stopping {name}: {e}")
        logger.info("All threads stopped")
