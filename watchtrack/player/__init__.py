"""Player adapters.

Playback uses mpv controlled via JSON IPC.
"""

from .mpv_player import MpvPlayer, PlaybackProbe

__all__ = ["MpvPlayer", "PlaybackProbe"]
