from __future__ import annotations

import math

from .coverage import CoverageSnapshot


def format_time(seconds: float) -> str:
    """Format seconds as `m:ss` (minutes are not wrapped into hours)."""

    total = max(0, int(round(float(seconds))))
    mins, secs = divmod(total, 60)
    return f"{mins}:{secs:02d}"


def format_details(snap: CoverageSnapshot) -> str:
    lines = ["Watched Intervals:", ""]
    for i, iv in enumerate(snap.intervals, start=1):
        lines.append(
            f"Segment {i}: {format_time(iv.start)} - {format_time(iv.end)} ({format_time(iv.length)})"
        )
    lines.append("")
    lines.append(f"Total Unique Time: {format_time(snap.unique_covered_duration)}")
    lines.append(f"Progress: {round(snap.progress_percent)}%")
    lines.append(f"Total Duration: {format_time(snap.total_duration)}")
    lines.append(f"This Session: {format_time(snap.session_raw_watched_duration)}")
    return "\n".join(lines)


def format_status_line(snap: CoverageSnapshot) -> str:
    n = snap.segment_count
    return (
        f"{round(snap.progress_percent)}% "
        f"unique={format_time(snap.unique_covered_duration)}/{format_time(snap.total_duration)} "
        f"session={format_time(snap.session_raw_watched_duration)} "
        f"{n} segment{'' if n == 1 else 's'}"
    )


def render_timeline(snap: CoverageSnapshot, *, width: int = 50, filled: str = "#", empty: str = "-") -> str:
    """ASCII bar of the timeline; covered cells are `filled`.

    Every interval marks at least one cell so short spans stay visible.
    """

    width = max(1, int(width))
    total = float(snap.total_duration)
    if total <= 0:
        return "[" + empty * width + "]"

    cells = [empty] * width
    for iv in snap.intervals:
        first = int(math.floor(iv.start / total * width))
        last = int(math.ceil(iv.end / total * width)) - 1
        first = min(max(first, 0), width - 1)
        last = min(max(last, first), width - 1)
        for i in range(first, last + 1):
            cells[i] = filled
    return "[" + "".join(cells) + "]"
