#!/usr/bin/env python3
"""
Main entry point for the Tello ground station

Run this file to start the application:
python main.py --controller dualshock3 --output flight.avi
"""

import argparse
import logging
import signal
import sys

from djitellopy import Tello

from groundstation.config import (
    DEFAULT_CONTROLLER, DEFAULT_OUTPUT_CODEC, DEFAULT_OUTPUT_FILE, Settings
)
from groundstation.errors import StartupError
from groundstation.initialization import GroundStation

logger = logging.getLogger("groundstation")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Tello ground station: joystick control, telemetry overlay, recording and live stream")
    parser.add_argument("--output", default=DEFAULT_OUTPUT_FILE, help="Where to write the recorded video of the flight")
    parser.add_argument("--codec", default=DEFAULT_OUTPUT_CODEC, help="Output codec (FourCC), you probably should not touch that")
    parser.add_argument("--controller", default=DEFAULT_CONTROLLER, help="Bundled controller profile name or path to a profile JSON file")
    parser.add_argument("--port", type=int, default=Tello.VS_UDP_PORT, help="UDP port the aircraft video arrives on")
    parser.add_argument("--stream-port", type=int, default=8080, help="Which port to listen on for the mjpeg stream")
    parser.add_argument("--face-classifier", default=None, help="Haar cascade file, checked at startup but not used")
    parser.add_argument("--invert-y", action="store_true", help="Negate the vertical stick axes")
    parser.add_argument("--open-browser", action="store_true", help="Open the live stream page on start")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    return Settings(
        output_file=args.output,
        output_codec=args.codec,
        controller=args.controller,
        video_port=args.port,
        stream_port=args.stream_port,
        face_classifier=args.face_classifier,
        invert_y=args.invert_y,
        open_browser=args.open_browser,
        verbose=args.verbose,
    )


def configure_logging(verbose=False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)-7s [%(threadName)s] %(name)s: %(message)s",
    )
    # djitellopy logs every command it sends, including the keep-alive
    Tello.LOGGER.setLevel(logging.WARNING)


def main(argv=None):
    """Main function - Entry point of the application"""
    settings = parse_args(argv)
    configure_logging(settings.verbose)

    station = GroundStation(settings)

    def handle_signal(signum, frame):
        logger.info(f"Signal {signum} received")
        station.shutdown.set()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    try:
        station.initialize()
    except StartupError as e:
        logger.critical(f"Failed to initialize systems: {e}")
        station.stop()
        return 1

    try:
        station.run()
    except StartupError as e:
        logger.critical(f"Failed to start: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
