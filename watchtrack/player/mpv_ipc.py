from __future__ import annotations

import json
import os
import socket
import time
from dataclasses import dataclass, field
from typing import Any, BinaryIO

from watchtrack.core.errors import WatchtrackError


class MpvIpcError(WatchtrackError):
    pass


def default_ipc_path(name: str) -> str:
    if os.name == "nt":
        return rf"\\.\pipe\{name}"
    return f"/tmp/{name}.sock"


@dataclass
class MpvIpcClient:
    """Line-delimited JSON client for mpv's --input-ipc-server.

    Windows uses a named pipe opened as a file, everything else a Unix domain
    socket. Requests are synchronous; async mpv events in the stream are
    skipped while waiting for the matching `request_id`.
    """

    path: str
    debug: bool = False
    trace: bool = False

    _fh: BinaryIO | None = None
    _sock: socket.socket | None = None
    _buf: bytearray = field(default_factory=bytearray, init=False, repr=False)
    _next_request_id: int = field(default=1, init=False, repr=False)

    @property
    def connected(self) -> bool:
        return self._fh is not None or self._sock is not None

    def connect(self, *, timeout_sec: float = 3.0) -> None:
        deadline = time.monotonic() + float(timeout_sec)
        last_err: OSError | None = None
        while time.monotonic() < deadline:
            try:
                self._open_transport()
                return
            except OSError as e:
                # mpv may not have created the socket yet.
                last_err = e
                time.sleep(0.05)
        raise MpvIpcError(f"Failed to connect to mpv IPC at {self.path!r}: {last_err}")

    def _open_transport(self) -> None:
        if os.name == "nt":
            self._fh = open(self.path, "r+b", buffering=0)
            return
        s = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            s.connect(self.path)
        except OSError:
            s.close()
            raise
        self._sock = s

    def close(self) -> None:
        fh, sock = self._fh, self._sock
        self._fh = None
        self._sock = None
        self._buf.clear()
        try:
            if fh is not None:
                fh.close()
        finally:
            if sock is not None:
                sock.close()

    def _send(self, raw: bytes) -> None:
        try:
            if self._fh is not None:
                self._fh.write(raw)
            elif self._sock is not None:
                self._sock.sendall(raw)
            else:
                raise MpvIpcError("Not connected")
        except OSError as e:
            raise MpvIpcError(f"Failed to write to mpv IPC: {e}") from e

    def _read_line(self, deadline: float) -> bytes | None:
        while b"\n" not in self._buf:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return None
            try:
                if self._sock is not None:
                    self._sock.settimeout(remaining)
                    chunk = self._sock.recv(4096)
                elif self._fh is not None:
                    chunk = self._fh.read(1)
                else:
                    raise MpvIpcError("Not connected")
            except socket.timeout:
                return None
            except OSError as e:
                raise MpvIpcError(f"Failed to read from mpv IPC: {e}") from e
            if not chunk:
                raise MpvIpcError("mpv IPC connection closed")
            self._buf += chunk
        line, _, rest = bytes(self._buf).partition(b"\n")
        self._buf = bytearray(rest)
        return line

    def command(self, *cmd: Any, timeout_sec: float = 2.0, trace: bool | None = None) -> dict[str, Any]:
        """Send one command and return mpv's reply for it."""

        req_id = self._next_request_id
        self._next_request_id += 1
        payload = {"command": list(cmd), "request_id": req_id}
        do_trace = self.debug and (self.trace if trace is None else trace)
        if do_trace:
            print(f"[debug] mpv >>> {payload}")

        self._send((json.dumps(payload, separators=(",", ":")) + "\n").encode("utf-8"))

        deadline = time.monotonic() + float(timeout_sec)
        while True:
            line = self._read_line(deadline)
            if line is None:
                raise MpvIpcError(f"Timed out waiting for mpv reply to request_id={req_id}")
            line = line.strip()
            if not line:
                continue
            try:
                msg = json.loads(line.decode("utf-8"))
            except (UnicodeDecodeError, json.JSONDecodeError):
                continue
            if isinstance(msg, dict) and msg.get("request_id") == req_id:
                if do_trace:
                    print(f"[debug] mpv <<< {msg}")
                return msg

    def get_property(self, name: str, *, timeout_sec: float = 1.0) -> Any:
        """Return the property value, or None when mpv reports an error (e.g. unavailable)."""

        resp = self.command("get_property", name, timeout_sec=timeout_sec, trace=False)
        if resp.get("error") in (None, "success"):
            return resp.get("data")
        return None
