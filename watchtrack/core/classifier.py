from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

# Position callbacks fire several times per second, so normal playback moves
# well under this between samples.
DEFAULT_SEEK_THRESHOLD_SEC = 2.0


class SampleKind(Enum):
    NORMAL = "normal"
    SEEK = "seek"


def classify(previous: float, current: float, *, threshold: float = DEFAULT_SEEK_THRESHOLD_SEC) -> SampleKind:
    """Classify a playhead move between two consecutive samples."""

    if abs(float(current) - float(previous)) > float(threshold):
        return SampleKind.SEEK
    return SampleKind.NORMAL


@dataclass
class SeekClassifier:
    """Remembers the previous position sample and classifies each new one.

    `previous` is the close boundary for a detected seek; callers read it
    before calling `observe()`.
    """

    threshold: float = DEFAULT_SEEK_THRESHOLD_SEC
    previous: float = 0.0

    def observe(self, position: float) -> SampleKind:
        kind = classify(self.previous, position, threshold=self.threshold)
        self.previous = float(position)
        return kind

    def rebase(self, position: float) -> None:
        """Move the reference sample without classifying (play, seeked, resume)."""

        self.previous = float(position)
