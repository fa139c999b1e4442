"""Terminal interaction."""

from .keyboard_input import (
    KEY_QUIT,
    KEY_START,
    KEY_STOP,
    KeyboardInputHandler,
    LineInputHandler,
    create_input_handler,
)

__all__ = [
    "KeyboardInputHandler",
    "LineInputHandler",
    "create_input_handler",
    "KEY_START",
    "KEY_STOP",
    "KEY_QUIT",
]
