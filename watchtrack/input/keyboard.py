from __future__ import annotations

import os
import sys
from typing import Any

from .keys import InputEvent, event_for_key


class KeyboardInput:
    """Non-blocking single-key input for the play loop (no threads).

    - Windows: msvcrt polling.
    - POSIX: stdin switched to cbreak mode and polled with select().
      Disabled when stdin is not a terminal.
    """

    def __init__(self) -> None:
        self._posix_fd: int | None = None
        self._saved_attrs: Any = None
        if os.name == "nt":
            import msvcrt  # noqa: F401
            return
        if not sys.stdin.isatty():
            return
        import termios
        import tty

        fd = sys.stdin.fileno()
        self._saved_attrs = termios.tcgetattr(fd)
        tty.setcbreak(fd)
        self._posix_fd = fd

    @property
    def enabled(self) -> bool:
        return os.name == "nt" or self._posix_fd is not None

    def poll(self) -> InputEvent | None:
        if os.name == "nt":
            return self._poll_windows()
        return self._poll_posix()

    def _poll_windows(self) -> InputEvent | None:
        import msvcrt

        if not msvcrt.kbhit():
            return None
        ch = msvcrt.getwch()
        if ch in ("\x00", "\xe0"):
            # Special key prefix; swallow the second code.
            msvcrt.getwch()
            return None
        return event_for_key(ch)

    def _poll_posix(self) -> InputEvent | None:
        if self._posix_fd is None:
            return None
        import select

        ready, _, _ = select.select([self._posix_fd], [], [], 0)
        if not ready:
            return None
        data = os.read(self._posix_fd, 32)
        for b in data:
            evt = event_for_key(chr(b))
            if evt is not None:
                return evt
        return None

    def close(self) -> None:
        if self._posix_fd is None or self._saved_attrs is None:
            return
        import termios

        termios.tcsetattr(self._posix_fd, termios.TCSADRAIN, self._saved_attrs)
        self._posix_fd = None
        self._saved_attrs = None
