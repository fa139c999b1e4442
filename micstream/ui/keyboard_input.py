"""Single-key terminal commands for interactive recording."""

import logging
import sys
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)

KEY_START = "1"
KEY_STOP = "2"
KEY_QUIT = "q"


class KeyboardInputHandler:
    """Reads single key presses on a background thread.

    The callback receives each lower-cased key and returns False to end
    the loop.
    """

    def __init__(self, callback: Callable[[str], bool], poll_seconds: float = 0.1):
        self.callback = callback
        self.poll_seconds = poll_seconds
        self.running = False
        self.thread: Optional[threading.Thread] = None
        self.finished = threading.Event()

    def start(self) -> None:
        if self.running:
            return

        self.running = True
        self.finished.clear()
        self.thread = threading.Thread(target=self._input_loop, daemon=True)
        self.thread.name = "KeyboardInput"
        self.thread.start()
        logger.info("Keyboard input handler started")

    def stop(self) -> None:
        self.running = False
        if self.thread and self.thread is not threading.current_thread():
            self.thread.join(timeout=1.0)
        logger.info("Keyboard input handler stopped")

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the loop ends (quit key or end of input)."""
        return self.finished.wait(timeout)

    def _input_loop(self) -> None:
        try:
            while self.running:
                key = self._get_key()
                if key is None:
                    continue
                if key == "":
                    logger.info("Input closed")
                    break
                logger.debug(f"Key pressed: '{key}'")
                if not self.callback(key):
                    break
        except (OSError, ValueError) as e:
            logger.error(f"Keyboard input failed: {e}")
        finally:
            self.running = False
            self.finished.set()

    def _get_key(self) -> Optional[str]:
        if sys.platform == "win32":
            return self._get_key_windows()
        return self._get_key_unix()

    def _get_key_windows(self) -> Optional[str]:
        import msvcrt
        import time

        if msvcrt.kbhit():
            return msvcrt.getwch().lower()
        time.sleep(self.poll_seconds)
        return None

    def _get_key_unix(self) -> Optional[str]:
        import select
        import termios
        import tty

        fd = sys.stdin.fileno()
        old_settings = termios.tcgetattr(fd)
        try:
            tty.setcbreak(fd)
            if not select.select([sys.stdin], [], [], self.poll_seconds)[0]:
                return None
            return sys.stdin.read(1).lower()
        finally:
            termios.tcsetattr(fd, termios.TCSADRAIN, old_settings)


class LineInputHandler(KeyboardInputHandler):
    """Line-based fallback for non-terminal stdin (pipes, IDEs)."""

    def _get_key(self) -> Optional[str]:
        line = sys.stdin.readline()
        if not line:
            return ""
        line = line.strip().lower()
        return line[0] if line else None


def create_input_handler(callback: Callable[[str], bool]) -> KeyboardInputHandler:
    """Pick the key handler that fits the current stdin."""
    if sys.stdin is not None and sys.stdin.isatty():
        return KeyboardInputHandler(callback)
    logger.info("stdin is not a terminal, using line input")
    return LineInputHandler(callback)
