"""Keyboard input handling for the terminal UI."""

import sys
import threading
import time
from typing import Optional, Callable
import logging

logger = logging.getLogger(__name__)

KeyCallback = Callable[[str], bool]


class KeyboardInputHandler:
    """Single-keypress input on a background thread (Unix terminals and Windows consoles)."""

    def __init__(self, callback: KeyCallback):
        """Initialize keyboard handler.

        Args:
            callback: Function that takes a key and returns True to continue, False to quit
        """
        self.callback = callback
        self.running = False
        self.finished = threading.Event()
        self.thread: Optional[threading.Thread] = None

    def start(self) -> None:
        """Start the keyboard input handler."""
        if self.running:
            return

        self.running = True
        self.finished.clear()
        self.thread = threading.Thread(target=self._input_loop, daemon=True)
        self.thread.name = "KeyboardInputThread"
        self.thread.start()
        logger.info("Keyboard input handler started")

    def stop(self) -> None:
        """Stop the keyboard input handler."""
        self.running = False
        if self.thread and self.thread is not threading.current_thread():
            self.thread.join(timeout=1.0)
        logger.info("Keyboard input handler stopped")

    def _input_loop(self) -> None:
        try:
            while self.running:
                key = self._get_key()
                if key:
                    logger.debug(f"Key detected: '{key}'")
                    if not self.callback(key):
                        break
                time.sleep(0.05)
        except Exception as e:
            logger.error(f"Input loop error: {e}", exc_info=True)
        finally:
            self.running = False
            self.finished.set()

    def _get_key(self) -> Optional[str]:
        if sys.platform == "win32":
            return self._get_key_windows()
        return self._get_key_unix()

    def _get_key_windows(self) -> Optional[str]:
        import msvcrt
        if msvcrt.kbhit():
            return msvcrt.getch().decode('utf-8', errors='ignore').lower()
        return None

    def _get_key_unix(self) -> Optional[str]:
        import select
        import termios
        import tty

        if not select.select([sys.stdin], [], [], 0.1)[0]:
            return None
        old_settings = termios.tcgetattr(sys.stdin)
        try:
            tty.setcbreak(sys.stdin.fileno())
            return sys.stdin.read(1).lower()
        finally:
            termios.tcsetattr(sys.stdin, termios.TCSADRAIN, old_settings)


class LineInputHandler(KeyboardInputHandler):
    """Line-based fallback for non-interactive stdin (pipes, IDE consoles)."""

    def _get_key(self) -> Optional[str]:
        try:
            line = input().strip().lower()
        except EOFError:
            return "q"
        return line[0] if line else None


def create_input_handler(callback: KeyCallback) -> KeyboardInputHandler:
    """Create the best available input handler for the current stdin."""
    if sys.stdin.isatty():
        return KeyboardInputHandler(callback)
    logger.info("stdin is not a terminal, using line input")
    return LineInputHandler(callback)
