from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .coverage import CoverageStore
from .intervals import Interval

# Segments shorter than this are dropped: rapid pause/play and tiny seeks
# would otherwise leave spurious spans behind.
DEFAULT_MIN_SEGMENT_SEC = 0.5


class RecorderState(Enum):
    IDLE = "idle"
    WATCHING = "watching"


@dataclass
class SegmentRecorder:
    """Tracks the currently open watch segment.

    IDLE -> WATCHING on `open()`; WATCHING -> IDLE on `close()`. A closed
    segment long enough to count is merged into `coverage`.
    """

    coverage: CoverageStore
    min_segment_sec: float = DEFAULT_MIN_SEGMENT_SEC
    debug: bool = False

    open_segment_start: float | None = None

    @property
    def state(self) -> RecorderState:
        return RecorderState.IDLE if self.open_segment_start is None else RecorderState.WATCHING

    def open(self, position: float) -> None:
        self.open_segment_start = max(0.0, float(position))

    def close(self, position: float) -> Interval | None:
        """Close the open segment at `position`.

        Returns the admitted interval, or None when idle or when the segment
        was too short (or backwards) to count.
        """

        start = self.open_segment_start
        self.open_segment_start = None
        if start is None:
            return None

        end = float(position)
        if not (end > start) or (end - start) < float(self.min_segment_sec):
            if self.debug:
                print(f"[debug] recorder: discard segment [{start:.2f}, {end:.2f})")
            return None

        segment = Interval(start, end)
        self.coverage.add_segment(segment)
        return segment

    def reanchor(self, close_at: float, open_at: float, *, playing: bool) -> Interval | None:
        """Seek transition: close at the old playhead, reopen at the new one if playing."""

        segment = self.close(close_at)
        if playing:
            self.open(open_at)
        return segment

    def reset(self) -> None:
        self.open_segment_start = None
