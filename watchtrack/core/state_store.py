from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol

from .errors import MalformedPersistedData, PersistenceWriteFailure
from .intervals import Interval, is_normalized, merge_intervals

SCHEMA_VERSION = 1
DEFAULT_STORE_KEY = "watch_progress"


@dataclass
class PersistedRecord:
    intervals: tuple[Interval, ...] = ()
    last_position: float = 0.0
    total_duration: float = 0.0
    session_raw_watched_duration: float = 0.0
    saved_at: datetime | None = None
    progress_percent: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        saved_at = self.saved_at or datetime.now(tz=timezone.utc)
        return {
            "version": SCHEMA_VERSION,
            "intervals": [iv.to_dict() for iv in self.intervals],
            "lastPosition": float(self.last_position),
            "totalDuration": float(self.total_duration),
            "sessionRawWatchedDuration": float(self.session_raw_watched_duration),
            "savedAt": saved_at.astimezone(timezone.utc).isoformat(),
            "progressPercent": float(self.progress_percent),
        }

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "PersistedRecord":
        """Build a record from a decoded payload.

        Fields added after a record was written fall back to defaults.
        Anything present but unusable raises `MalformedPersistedData`.
        """

        try:
            version = int(d.get("version", SCHEMA_VERSION))
            if version > SCHEMA_VERSION:
                raise MalformedPersistedData(f"record schema v{version} is newer than supported v{SCHEMA_VERSION}")

            raw_intervals = d.get("intervals") or []
            if not isinstance(raw_intervals, list):
                raise MalformedPersistedData("intervals must be a list")
            intervals = tuple(Interval.from_dict(v) for v in raw_intervals)
            if any(iv.is_degenerate for iv in intervals):
                raise MalformedPersistedData("degenerate interval in stored coverage")

            saved_at_raw = d.get("savedAt")
            saved_at = _parse_saved_at(str(saved_at_raw)) if saved_at_raw else None

            return PersistedRecord(
                intervals=intervals,
                last_position=max(0.0, _finite(d, "lastPosition")),
                total_duration=max(0.0, _finite(d, "totalDuration")),
                session_raw_watched_duration=max(0.0, _finite(d, "sessionRawWatchedDuration")),
                saved_at=saved_at,
                progress_percent=_finite(d, "progressPercent"),
            )
        except MalformedPersistedData:
            raise
        except (KeyError, TypeError, ValueError, AttributeError, OverflowError) as e:
            raise MalformedPersistedData(str(e)) from e


def _finite(d: dict[str, Any], key: str) -> float:
    v = float(d.get(key, 0) or 0)
    if not math.isfinite(v):
        raise MalformedPersistedData(f"{key} must be a finite number, got {v!r}")
    return v


def _parse_saved_at(value: str) -> datetime:
    # Accept the trailing "Z" some writers emit.
    dt = datetime.fromisoformat(re.sub(r"Z$", "+00:00", value))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def encode_record(record: PersistedRecord) -> bytes:
    return json.dumps(record.to_dict(), indent=2, sort_keys=True).encode("utf-8")


def decode_record(payload: bytes, *, merge_tolerance: float | None = None) -> PersistedRecord:
    # JSONDecodeError and UnicodeDecodeError are ValueErrors; deeply nested
    # arrays exhaust the decoder's recursion limit.
    try:
        data = json.loads(payload.decode("utf-8"))
    except (ValueError, RecursionError) as e:
        raise MalformedPersistedData(f"not a JSON document: {e}") from e
    if not isinstance(data, dict):
        raise MalformedPersistedData("payload is not a JSON object")

    record = PersistedRecord.from_dict(data)
    # Hand-edited or older payloads may not respect the coverage invariant.
    if merge_tolerance is not None and not is_normalized(record.intervals, tolerance=merge_tolerance):
        record.intervals = merge_intervals(record.intervals, tolerance=merge_tolerance)
    return record


class KeyValueStore(Protocol):
    def get(self, key: str) -> bytes | None: ...

    def set(self, key: str, value: bytes) -> None: ...

    def delete(self, key: str) -> None: ...


@dataclass
class MemoryKeyValueStore:
    """Process-local store; progress lives only as long as the object."""

    data: dict[str, bytes] = field(default_factory=dict)

    def get(self, key: str) -> bytes | None:
        return self.data.get(key)

    def set(self, key: str, value: bytes) -> None:
        self.data[key] = bytes(value)

    def delete(self, key: str) -> None:
        self.data.pop(key, None)


_SAFE_KEY = re.compile(r"[^A-Za-z0-9_.-]")


@dataclass
class FileKeyValueStore:
    """One file per key under `root`, written atomically."""

    root: Path
    suffix: str = ".json"

    def _path(self, key: str) -> Path:
        name = _SAFE_KEY.sub("_", str(key)).strip(".") or "_"
        return self.root / f"{name}{self.suffix}"

    def get(self, key: str) -> bytes | None:
        p = self._path(key)
        try:
            return p.read_bytes()
        except FileNotFoundError:
            return None

    def set(self, key: str, value: bytes) -> None:
        p = self._path(key)
        try:
            p.parent.mkdir(parents=True, exist_ok=True)
            # Atomic-ish write
            tmp = p.with_suffix(p.suffix + ".tmp")
            tmp.write_bytes(value)
            tmp.replace(p)
        except OSError as e:
            raise PersistenceWriteFailure(f"failed to write {p}: {e}") from e

    def delete(self, key: str) -> None:
        p = self._path(key)
        try:
            p.unlink(missing_ok=True)
        except OSError as e:
            raise PersistenceWriteFailure(f"failed to delete {p}: {e}") from e


class ProgressStore:
    """Best-effort save/load of a single `PersistedRecord` under a fixed key.

    Nothing here raises to the caller: a failed write is logged and retried by
    the next scheduled save, and an unreadable record reads as "no progress".
    """

    def __init__(
        self,
        *,
        kv: KeyValueStore,
        key: str = DEFAULT_STORE_KEY,
        merge_tolerance: float | None = None,
        debug: bool = False,
    ) -> None:
        self.kv = kv
        self.key = key
        self.merge_tolerance = merge_tolerance
        self.debug = debug

    def save(self, record: PersistedRecord) -> bool:
        try:
            self.kv.set(self.key, encode_record(record))
        except Exception as e:
            # Includes PersistenceWriteFailure and whatever a custom backend throws.
            print(f"[warn] progress: save failed key={self.key}: {e}")
            return False
        if self.debug:
            print(
                f"[debug] progress: saved key={self.key} segments={len(record.intervals)} "
                f"position={record.last_position:.2f}s progress={record.progress_percent:.1f}%"
            )
        return True

    def load(self) -> PersistedRecord | None:
        try:
            payload = self.kv.get(self.key)
        except Exception as e:
            print(f"[warn] progress: load failed key={self.key}: {e}")
            return None
        if payload is None:
            return None
        try:
            return decode_record(payload, merge_tolerance=self.merge_tolerance)
        except MalformedPersistedData as e:
            # Corrupt progress should not crash the app.
            if self.debug:
                print(f"[debug] progress: ignoring malformed record key={self.key}: {e}")
            return None

    def delete(self) -> bool:
        try:
            self.kv.delete(self.key)
        except Exception as e:
            print(f"[warn] progress: delete failed key={self.key}: {e}")
            return False
        return True
