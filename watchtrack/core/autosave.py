from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable

DEFAULT_AUTOSAVE_INTERVAL_SEC = 10.0


@dataclass
class AutosaveTimer:
    """Fixed-period timer polled from the main loop.

    No threads: `due()` is checked on every loop iteration, so the save runs on
    the same thread as every other engine mutation.
    """

    interval_sec: float = DEFAULT_AUTOSAVE_INTERVAL_SEC
    time_fn: Callable[[], float] = time.monotonic

    _next_at: float | None = None
    _cancelled: bool = False

    @property
    def active(self) -> bool:
        return self._next_at is not None and not self._cancelled

    def start(self) -> None:
        self._cancelled = False
        self._next_at = float(self.time_fn()) + max(0.0, float(self.interval_sec))

    def due(self) -> bool:
        """Return True once per elapsed period, then re-arm."""

        if not self.active:
            return False
        now = float(self.time_fn())
        assert self._next_at is not None
        if now < self._next_at:
            return False
        # Re-arm from now; missed periods are not replayed.
        self._next_at = now + max(0.0, float(self.interval_sec))
        return True

    def cancel(self) -> None:
        self._cancelled = True
        self._next_at = None
