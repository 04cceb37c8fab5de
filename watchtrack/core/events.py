from __future__ import annotations

from dataclasses import dataclass

PLAY = "play"
PAUSE = "pause"
SEEKED = "seeked"
TIME_UPDATE = "time_update"
ENDED = "ended"
METADATA = "metadata"

EVENT_KINDS = (PLAY, PAUSE, SEEKED, TIME_UPDATE, ENDED, METADATA)


@dataclass(frozen=True)
class PlaybackEvent:
    kind: str  # one of EVENT_KINDS
    value: float  # playhead seconds; media duration for "metadata"
