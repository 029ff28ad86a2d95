"""Keyboard input: decoding key presses and reading them from the TTY."""
from typing import Callable, List, Optional
import asyncio
import logging
import os
import sys

from metview.view import NavAction

logger = logging.getLogger(__name__)

# Escape sequences first so their prefixes are not read as plain keys
KEY_BINDINGS = [
    ("\x1b[A", NavAction.UP),
    ("\x1bOA", NavAction.UP),
    ("\x1b[B", NavAction.DOWN),
    ("\x1bOB", NavAction.DOWN),
    ("\x1b[5~", NavAction.PAGE_UP),
    ("\x1b[6~", NavAction.PAGE_DOWN),
    ("k", NavAction.UP),
    ("j", NavAction.DOWN),
    ("p", NavAction.PAGE_UP),
    ("n", NavAction.PAGE_DOWN),
    ("q", NavAction.QUIT),
    ("\x03", NavAction.QUIT),
]


def decode_keys(data: str) -> List[NavAction]:
    """Translate raw terminal input into navigation actions, ignoring unknown keys."""
    actions: List[NavAction] = []
    pos = 0
    while pos < len(data):
        for sequence, action in KEY_BINDINGS:
            if data.startswith(sequence, pos):
                actions.append(action)
                pos += len(sequence)
                break
        else:
            pos += 1
    return actions


class TerminalKeys:
    """Reads key presses from stdin in cbreak mode and hands them to a callback."""

    def __init__(self, loop: asyncio.AbstractEventLoop, on_action: Callable[[NavAction], None]):
        self.loop = loop
        self.on_action = on_action
        self.fd: Optional[int] = None
        self._old_termios = None

    def enable(self) -> bool:
        """Switch the terminal to cbreak mode; False when stdin is not a TTY."""
        if not sys.stdin.isatty():
            logger.info("stdin is not a terminal, keyboard navigation disabled")
            return False

        import termios
        import tty

        fd = sys.stdin.fileno()
        self._old_termios = termios.tcgetattr(fd)
        tty.setcbreak(fd)
        self.loop.add_reader(fd, self._on_stdin)
        self.fd = fd
        return True

    def disable(self):
        """Restore the terminal."""
        if self.fd is None:
            return

        import termios

        try:
            self.loop.remove_reader(self.fd)
            if self._old_termios is not None:
                termios.tcsetattr(self.fd, termios.TCSADRAIN, self._old_termios)
        finally:
            self.fd = None
            self._old_termios = None

    def _on_stdin(self):
        try:
            data = os.read(self.fd, 64)
        except OSError as e:
            logger.warning(f"Failed to read keyboard input: {e}")
            return
        for action in decode_keys(data.decode("utf-8", errors="ignore")):
            self.on_action(action)
