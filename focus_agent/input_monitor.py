"""
Feeds OS-level mouse and keyboard activity into an IdleDetector.
"""
import logging
from typing import Callable

from .idle import POINTER_MOVE

log = logging.getLogger(__name__)


class InputMonitor:
    """Starts pynput listeners and forwards every event as a qualifying input."""

    def __init__(self, on_input: Callable[[str], object]):
        self.on_input = on_input
        self._mouse_listener = None
        self._keyboard_listener = None

    @property
    def running(self) -> bool:
        return self._mouse_listener is not None

    def _forward(self, kind: str):
        try:
            self.on_input(kind)
        except Exception as e:
            log.error(f"Error handling {kind} input: {e}", exc_info=True)

    def _on_move(self, x, y):
        self._forward(POINTER_MOVE)

    def _on_click(self, x, y, button, pressed):
        if pressed:
            self._forward("click")

    def _on_scroll(self, x, y, dx, dy):
        self._forward("scroll")

    def _on_press(self, key):
        self._forward("keypress")

    def start(self) -> bool:
        if self.running:
            return True
        # pynput needs a display server at import time on Linux, so it is imported on demand.
        from pynput import keyboard, mouse

        try:
            self._mouse_listener = mouse.Listener(
                on_move=self._on_move, on_click=self._on_click, on_scroll=self._on_scroll
            )
            self._keyboard_listener = keyboard.Listener(on_press=self._on_press)
            self._mouse_listener.start()
            self._keyboard_listener.start()
        except Exception as e:
            log.error(f"Failed to start input listeners: {e}", exc_info=True)
            self.stop()
            return False
        log.info("Input listeners started.")
        return True

    def stop(self):
        for listener in (self._mouse_listener, self._keyboard_listener):
            if listener is not None:
                listener.stop()
        self._mouse_listener = None
        self._keyboard_listener = None
