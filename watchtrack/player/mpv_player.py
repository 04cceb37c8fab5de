from __future__ import annotations

import os
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from watchtrack.core import events
from watchtrack.core.events import PlaybackEvent

from .mpv_ipc import MpvIpcClient, MpvIpcError, default_ipc_path


@dataclass
class PlaybackProbe:
    """Turns successive mpv property polls into playback events.

    mpv is polled, not subscribed to, so every transition is edge-detected
    against the previous poll. Kept separate from the process handling so it
    can be fed plain dicts in tests.
    """

    _duration_reported: bool = False
    _last_paused: bool | None = None
    _last_eof: bool = False
    _seeking: bool = False

    def reset(self) -> None:
        self._duration_reported = False
        self._last_paused = None
        self._last_eof = False
        self._seeking = False

    def feed(self, props: dict[str, Any]) -> list[PlaybackEvent]:
        out = self._transitions(props)
        # Metadata goes last so a resume seek it triggers is not followed by a
        # stale play/time sample from the same poll.
        duration = props.get("duration")
        if not self._duration_reported and isinstance(duration, (int, float)) and duration > 0:
            self._duration_reported = True
            out.append(PlaybackEvent(events.METADATA, float(duration)))
        return out

    def _transitions(self, props: dict[str, Any]) -> list[PlaybackEvent]:
        time_pos = props.get("time-pos")
        if not isinstance(time_pos, (int, float)):
            # Nothing loaded yet (or between files).
            return []
        pos = max(0.0, float(time_pos))

        if bool(props.get("seeking")):
            self._seeking = True
            return []
        out: list[PlaybackEvent] = []
        if self._seeking:
            self._seeking = False
            out.append(PlaybackEvent(events.SEEKED, pos))

        eof = bool(props.get("eof-reached"))
        if eof and not self._last_eof:
            self._last_eof = True
            self._last_paused = True
            out.append(PlaybackEvent(events.ENDED, pos))
            return out
        self._last_eof = eof

        paused = bool(props.get("pause"))
        if paused and self._last_paused is False:
            out.append(PlaybackEvent(events.PAUSE, pos))
        elif not paused and self._last_paused is not False:
            out.append(PlaybackEvent(events.PLAY, pos))
        elif not paused:
            out.append(PlaybackEvent(events.TIME_UPDATE, pos))
        self._last_paused = paused
        return out


_POLLED_PROPERTIES = ("duration", "time-pos", "seeking", "eof-reached", "pause")


@dataclass
class MpvPlayer:
    """Starts one mpv process for a single file and reports its playback."""

    debug: bool = False
    ipc_trace: bool = False
    ipc_name: str = "watchtrack-mpv"
    mpv_exe: str = "mpv"

    _proc: subprocess.Popen[str] | None = None
    _ipc: MpvIpcClient | None = None
    _probe: PlaybackProbe | None = None

    @property
    def ipc_path(self) -> str:
        return default_ipc_path(self.ipc_name)

    def _cleanup_stale_ipc_path(self) -> None:
        if os.name == "nt":
            return
        try:
            Path(self.ipc_path).unlink(missing_ok=True)
        except OSError as e:
            if self.debug:
                print(f"[debug] mpv: could not remove stale socket {self.ipc_path}: {e}")

    def start(self) -> None:
        if self._proc is not None:
            return
        self._cleanup_stale_ipc_path()

        args = [
            self.mpv_exe,
            "--idle=yes",
            "--force-window=yes",
            "--no-terminal",
            # Stay on the last frame at EOF so eof-reached is observable.
            "--keep-open=yes",
            f"--input-ipc-server={self.ipc_path}",
        ]
        if self.debug:
            print(f"[debug] mpv: launch args: {subprocess.list2cmdline(args)}")

        self._proc = subprocess.Popen(
            args,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            text=True,
        )
        self._ipc = MpvIpcClient(path=self.ipc_path, debug=self.debug, trace=self.ipc_trace)
        self._ipc.connect(timeout_sec=3.0)
        self._probe = PlaybackProbe()

    def load(self, file_path: str) -> None:
        if self._proc is None or self._ipc is None:
            self.start()
        assert self._ipc is not None and self._probe is not None

        resp = self._ipc.command("loadfile", str(file_path), "replace", timeout_sec=10.0)
        if resp.get("error") not in (None, "success"):
            raise MpvIpcError(f"mpv loadfile failed: {resp}")
        self._probe.reset()

    def alive(self) -> bool:
        return self._proc is not None and self._proc.poll() is None and self._ipc is not None

    def poll_events(self) -> list[PlaybackEvent]:
        """Poll mpv once. Returns [] when mpv is gone or not answering."""

        if self._ipc is None or self._probe is None:
            return []
        props: dict[str, Any] = {}
        try:
            for name in _POLLED_PROPERTIES:
                props[name] = self._ipc.get_property(name)
        except MpvIpcError as e:
            if self.debug:
                print(f"[debug] mpv: poll failed: {e}")
            return []
        return self._probe.feed(props)

    def seek_to(self, position: float, *, retries: int = 10, delay_sec: float = 0.05) -> bool:
        """Absolute seek; retried briefly because mpv may not be seekable right after load."""

        if self._ipc is None:
            return False
        position = max(0.0, float(position))
        for _ in range(max(1, int(retries))):
            try:
                resp = self._ipc.command("seek", position, "absolute", "exact", timeout_sec=10.0)
            except MpvIpcError as e:
                if self.debug:
                    print(f"[debug] mpv: seek error: {e}")
                return False
            if resp.get("error") in (None, "success"):
                return True
            time.sleep(max(0.0, float(delay_sec)))
        if self.debug:
            print(f"[debug] mpv: seek to {position:.2f}s failed after retries")
        return False

    def close(self) -> None:
        try:
            if self._ipc is not None and self._ipc.connected:
                try:
                    self._ipc.command("quit", timeout_sec=1.0)
                except MpvIpcError:
                    pass
        finally:
            if self._ipc is not None:
                self._ipc.close()
                self._ipc = None
            if self._proc is not None:
                try:
                    self._proc.wait(timeout=2)
                except subprocess.TimeoutExpired:
                    self._proc.kill()
                finally:
                    self._proc = None
            self._probe = None
