"""
Live MJPEG stream
Flask serves the latest broadcast frame as multipart/x-mixed-replace
"""

import logging
import threading
import time
import webbrowser

from flask import Flask, Response
from werkzeug.serving import make_server

from groundstation.config import STREAM_INTERVAL
from groundstation.errors import StartupError

logger = logging.getLogger(__name__)

INDEX_HTML = '<img src="/mjpeg" />'
BOUNDARY = "frame"


class FrameBroadcaster:
    """Holds the most recent JPEG and wakes up stream clients when it changes"""

    def __init__(self):
        self._condition = threading.Condition()
        self._jpeg = None
        self._version = 0

    def update(self, jpeg):
        with self._condition:
            self._jpeg = jpeg
            self._version += 1
            self._condition.notify_all()

    def latest(self):
        with self._condition:
            return self._jpeg

    def frames(self, interval=STREAM_INTERVAL, stop=None):
        """Yield each new JPEG, at most one per ``interval``"""
        seen = 0
        while stop is None or not stop.is_set():
            with self._condition:
                if self._version == seen:
                    self._condition.wait(timeout=interval)
                jpeg, version = self._jpeg, self._version
            if jpeg is None or version == seen:
                continue
            seen = version
            yield jpeg
            if stop is not None:
                if stop.wait(interval):
                    break
            else:
                time.sleep(interval)

    def multipart(self, interval=STREAM_INTERVAL, stop=None):
        for jpeg in self.frames(interval, stop):
            yield (
                f"--{BOUNDARY}\r\n"
                f"Content-Type: image/jpeg\r\n"
                f"Content-Length: {len(jpeg)}\r\n\r\n"
            ).encode() + jpeg + b"\r\n"


def create_app(broadcaster, stop=None, interval=STREAM_INTERVAL):
    app = Flask(__name__)

    @app.route("/")
    def index():
        return Response(INDEX_HTML, mimetype="text/html")

    @app.route("/mjpeg")
    def mjpeg():
        return Response(broadcaster.multipart(interval, stop),
                        mimetype=f"multipart/x-mixed-replace; boundary={BOUNDARY}")

    return app


class StreamServer:
    """Runs the Flask app on a background thread"""

    def __init__(self, app, port, host="0.0.0.0"):
        self.app = app
        self.host = host
        self.port = port
        self._server = None
        self._thread = None

    @property
    def url(self):
        return f"http://localhost:{self.port}"

    def start(self, open_browser=False):
        try:
            self._server = make_server(self.host, self.port, self.app, threaded=True)
        except (OSError, SystemExit) as e:
            # werkzeug exits instead of raising when the port is taken
            raise StartupError(f"Could not listen on port {self.port} for the mjpeg stream") from e

        self._thread = threading.Thread(target=self._server.serve_forever, name="Stream Server", daemon=True)
        self._thread.start()
        logger.info(f"📺 Live stream on {self.url}")

        if open_browser:
            webbrowser.open(self.url)

    def stop(self):
        if self._server is not None:
            self._server.shutdown()
            self._server.server_close()
            self._server = None
        if self._thread is not None:
            self._thread.join(timeout=2)
            self._thread = None
        logger.info("Stream server stopped")
