from __future__ import annotations

import math
from dataclasses import dataclass

from .intervals import DEFAULT_MERGE_TOLERANCE_SEC, Interval, covered_duration, merge_interval


@dataclass(frozen=True)
class CoverageSnapshot:
    """Read-only view handed to presentation code."""

    progress_percent: float
    unique_covered_duration: float
    total_duration: float
    session_raw_watched_duration: float
    intervals: tuple[Interval, ...]
    position: float = 0.0

    @property
    def segment_count(self) -> int:
        return len(self.intervals)


@dataclass
class CoverageStore:
    """Authoritative in-memory coverage: merged spans plus counters.

    Invariants:
    - `intervals` is sorted and every neighbour pair is more than
      `merge_tolerance` apart.
    - `unique_covered_duration` always equals the summed span lengths.
    - `session_raw_watched_duration` only grows (until `clear()`).
    - `total_duration` is set once.
    """

    merge_tolerance: float = DEFAULT_MERGE_TOLERANCE_SEC
    debug: bool = False

    intervals: tuple[Interval, ...] = ()
    unique_covered_duration: float = 0.0
    session_raw_watched_duration: float = 0.0
    total_duration: float = 0.0

    def add_segment(self, segment: Interval) -> None:
        """Merge a closed segment and count its raw length.

        Callers are responsible for the minimum-length policy.
        """

        if segment.is_degenerate:
            return
        self.intervals = merge_interval(self.intervals, segment, tolerance=self.merge_tolerance)
        self.unique_covered_duration = covered_duration(self.intervals)
        self.session_raw_watched_duration += segment.length
        if self.debug:
            print(
                f"[debug] coverage: merged [{segment.start:.2f}, {segment.end:.2f}) "
                f"segments={len(self.intervals)} unique={self.unique_covered_duration:.2f}s "
                f"raw={self.session_raw_watched_duration:.2f}s"
            )

    def restore(
        self,
        *,
        intervals: tuple[Interval, ...],
        session_raw_watched_duration: float,
        total_duration: float,
    ) -> None:
        """Replace state with previously persisted values."""

        self.intervals = tuple(intervals)
        self.unique_covered_duration = covered_duration(self.intervals)
        self.session_raw_watched_duration = max(0.0, float(session_raw_watched_duration))
        if total_duration > 0:
            self.total_duration = float(total_duration)

    def record_metadata(self, duration: float) -> bool:
        """Set the media duration once.

        Returns False (and keeps the current value) for non-positive durations
        or for a duration that conflicts with one already recorded.
        """

        try:
            duration = float(duration)
        except (TypeError, ValueError):
            return False
        if not (duration > 0) or math.isinf(duration):
            return False
        if self.total_duration > 0:
            if math.isclose(self.total_duration, duration, rel_tol=1e-9, abs_tol=1e-3):
                return True
            if self.debug:
                print(
                    f"[debug] coverage: duration conflict; keeping {self.total_duration:.3f}s, ignoring {duration:.3f}s"
                )
            return False
        self.total_duration = duration
        return True

    def progress_percent(self) -> float:
        if self.total_duration <= 0:
            return 0.0
        pct = self.unique_covered_duration * 100.0 / self.total_duration
        return min(100.0, max(0.0, pct))

    def clear(self) -> None:
        self.intervals = ()
        self.unique_covered_duration = 0.0
        self.session_raw_watched_duration = 0.0

    def snapshot(self, *, position: float = 0.0) -> CoverageSnapshot:
        return CoverageSnapshot(
            progress_percent=self.progress_percent(),
            unique_covered_duration=self.unique_covered_duration,
            total_duration=self.total_duration,
            session_raw_watched_duration=self.session_raw_watched_duration,
            intervals=self.intervals,
            position=float(position),
        )
