"""
Background periodic task runner
"""
import logging
from threading import Thread, Event, Lock, get_ident
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class PeriodicTask:
    """Run a callback immediately and then every `interval` seconds on a daemon thread"""

    def __init__(self, name: str, interval: float, callback: Callable[[], object]):
        self.name = name
        self.interval = interval
        self.callback = callback
        self._thread: Optional[Thread] = None
        self._stop_event: Optional[Event] = None
        self._lock = Lock()

    @property
    def running(self) -> bool:
        with self._lock:
            return self._thread is not None and not self._stop_event.is_set()

    def start(self, interval: float = None):
        """Start the task, replacing any previous run"""
        self.stop()
        if interval is not None:
            self.interval = interval

        stop_event = Event()

        def loop():
            logger.info(f"{self.name} thread started")
            while not stop_event.is_set():
                try:
                    self.callback()
                except Exception as e:
                    logger.error(f"Error in {self.name}: {e}")

                # Returns early when stop() is called
                stop_event.wait(self.interval)

            logger.info(f"{self.name} thread stopped")

        with self._lock:
            self._stop_event = stop_event
            self._thread = Thread(target=loop, name=self.name, daemon=True)
            self._thread.start()

    def stop(self, timeout: float = 5):
        """Stop the task; safe to call when not running"""
        with self._lock:
            thread, stop_event = self._thread, self._stop_event
            self._thread = None
            self._stop_event = None

        if stop_event is None:
            return

        stop_event.set()
        # A callback may stop its own task
        if thread is not None and thread.is_alive() and thread.ident != get_ident():
            thread.join(timeout=timeout)
