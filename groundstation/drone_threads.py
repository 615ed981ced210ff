"""
Thread management for background tasks
Fixed-cadence repeating tasks and helpers to start/stop groups of threads
"""

import logging
import threading
import time

logger = logging.getLogger(__name__)


class RepeatingTask:
    """Run ``func`` every ``interval`` seconds on its own daemon thread.

    The first run happens right away unless ``immediate`` is False, in which
    case it waits one interval. Runs never overlap: the next run is scheduled
    only after the previous one returned. The task stops when ``cancel()`` is
    called or when the optional shutdown event is set. Exceptions raised by
    ``func`` are logged and the task keeps running.
    """

    def __init__(self, name, interval, func, shutdown=None, immediate=True):
        self.name = name
        self.interval = interval
        self.func = func
        self._shutdown = shutdown
        self.immediate = immediate
        self._cancelled = threading.Event()
        self._thread = None
        self.runs = 0

    @property
    def running(self):
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        if self.running:
            return self
        self._cancelled.clear()
        self._thread = threading.Thread(target=self._loop, name=self.name, daemon=True)
        self._thread.start()
        logger.debug(f"{self.name} task started ({self.interval * 1000:.0f}ms)")
        return self

    def cancel(self, timeout=1.0):
        self._cancelled.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.warning(f"{self.name} task did not stop within {timeout}s")
                return
        self._thread = None

    def _stopped(self):
        return self._cancelled.is_set() or (self._shutdown is not None and self._shutdown.is_set())

    def _loop(self):
        next_run = time.monotonic()
        if not self.immediate:
            next_run += self.interval
            if self._cancelled.wait(self.interval):
                return
        while not self._stopped():
            try:
                self.func()
            except Exception as e:
                logger.error(f"{self.name} task error: {e}")
            self.runs += 1

            next_run += self.interval
            delay = next_run - time.monotonic()
            if delay < 0:
                # Fell behind, do not try to catch up with a burst
                next_run = time.monotonic()
                delay = 0
            if self._cancelled.wait(delay):
                break
        logger.debug(f"{self.name} task ended")


def start_thread(name, target, *args):
    """Start a daemon worker thread"""
    thread = threading.Thread(target=target, args=args, daemon=True, name=name)
    thread.start()
    logger.debug(f"{name} thread started")
    return thread


def join_threads(threads, timeout=2.0):
    """Wait for worker threads to finish"""
    for thread in threads:
        if thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.warning(f"{thread.name} thread did not stop in {timeout}s")
