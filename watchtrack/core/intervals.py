from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Iterable

# Gap (seconds) bridged when merging neighbouring spans. Absorbs sub-second
# playback jitter between a pause position and the following play position.
DEFAULT_MERGE_TOLERANCE_SEC = 1.0


@dataclass(frozen=True, order=True)
class Interval:
    """Half-open span `[start, end)` of timeline seconds that was watched."""

    start: float
    end: float

    def __post_init__(self) -> None:
        if not (math.isfinite(self.start) and math.isfinite(self.end)):
            raise ValueError(f"interval bounds must be finite, got [{self.start!r}, {self.end!r})")
        if self.start < 0:
            raise ValueError(f"interval start must be >= 0, got {self.start!r}")
        if self.end < self.start:
            raise ValueError(f"interval end must be >= start, got [{self.start!r}, {self.end!r})")

    @property
    def length(self) -> float:
        return self.end - self.start

    @property
    def is_degenerate(self) -> bool:
        return not (self.end > self.start)

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "Interval":
        return Interval(start=float(d["start"]), end=float(d["end"]))

    def to_dict(self) -> dict[str, float]:
        return {"start": float(self.start), "end": float(self.end)}


def merge_intervals(
    intervals: Iterable[Interval], *, tolerance: float = DEFAULT_MERGE_TOLERANCE_SEC
) -> tuple[Interval, ...]:
    """Return the minimal sorted set of spans covering `intervals`.

    Spans that overlap, touch, or sit within `tolerance` seconds of each other
    collapse into one. The gap bridged this way counts as covered.
    Degenerate (zero-length) spans are dropped.

    Inputs are never mutated; the result is a fresh tuple.
    """

    tol = max(0.0, float(tolerance))
    ordered = sorted(iv for iv in intervals if not iv.is_degenerate)
    if not ordered:
        return ()

    merged: list[Interval] = []
    cur_start, cur_end = ordered[0].start, ordered[0].end
    for iv in ordered[1:]:
        if iv.start <= cur_end + tol:
            cur_end = max(cur_end, iv.end)
        else:
            merged.append(Interval(cur_start, cur_end))
            cur_start, cur_end = iv.start, iv.end
    merged.append(Interval(cur_start, cur_end))
    return tuple(merged)


def merge_interval(
    existing: Iterable[Interval], new: Interval, *, tolerance: float = DEFAULT_MERGE_TOLERANCE_SEC
) -> tuple[Interval, ...]:
    """Fold one newly watched span into an existing coverage set."""

    return merge_intervals([*existing, new], tolerance=tolerance)


def covered_duration(intervals: Iterable[Interval]) -> float:
    return sum(iv.length for iv in intervals)


def is_normalized(intervals: Iterable[Interval], *, tolerance: float = DEFAULT_MERGE_TOLERANCE_SEC) -> bool:
    """True when spans are sorted, non-degenerate, and further apart than `tolerance`."""

    prev: Interval | None = None
    for iv in intervals:
        if iv.is_degenerate:
            return False
        if prev is not None and not (prev.end + max(0.0, float(tolerance)) < iv.start):
            return False
        prev = iv
    return True
