"""One-second interval timer driving the elapsed-time counter."""

import logging
from threading import Event, Thread
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class IntervalTimer:
    """Calls ``callback`` every ``interval`` seconds on a daemon thread until cancelled."""

    def __init__(self, callback: Callable[[], None], interval: float = 1.0):
        self.callback = callback
        self.interval = interval
        self.stop_event = Event()
        self.thread: Optional[Thread] = None

    @property
    def is_running(self) -> bool:
        return self.thread is not None and self.thread.is_alive() and not self.stop_event.is_set()

    def start(self) -> None:
        if self.thread is not None:
            return
        self.thread = Thread(target=self._run, daemon=True)
        self.thread.name = "CaptureTimerThread"
        self.thread.start()

    def cancel(self) -> None:
        self.stop_event.set()

    def _run(self) -> None:
        while not self.stop_event.wait(self.interval):
            try:
                self.callback()
            except Exception as e:
                logger.error(f"Timer callback failed: {e}", exc_info=True)
                break
