from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable, Protocol

from . import events
from .autosave import DEFAULT_AUTOSAVE_INTERVAL_SEC, AutosaveTimer
from .classifier import DEFAULT_SEEK_THRESHOLD_SEC, SampleKind, SeekClassifier
from .coverage import CoverageSnapshot, CoverageStore
from .intervals import DEFAULT_MERGE_TOLERANCE_SEC, Interval
from .recorder import DEFAULT_MIN_SEGMENT_SEC, SegmentRecorder
from .report import format_time
from .state_store import PersistedRecord, ProgressStore

if TYPE_CHECKING:
    from .config import Settings


class SeekablePlayer(Protocol):
    def seek_to(self, position: float) -> None: ...


class CoverageEngine:
    """Event-driven coverage tracker for one media session.

    Player events go in through the `on_*` methods (or `dispatch()`); the only
    command sent back to the player is `seek_to`, used for resume and reset.
    All mutation happens inside these calls, one event at a time.
    """

    def __init__(
        self,
        *,
        store: ProgressStore | None = None,
        player: SeekablePlayer | None = None,
        merge_tolerance: float = DEFAULT_MERGE_TOLERANCE_SEC,
        seek_threshold: float = DEFAULT_SEEK_THRESHOLD_SEC,
        min_segment_sec: float = DEFAULT_MIN_SEGMENT_SEC,
        autosave_interval_sec: float = DEFAULT_AUTOSAVE_INTERVAL_SEC,
        time_fn: Callable[[], float] = time.monotonic,
        now_fn: Callable[[], datetime] | None = None,
        on_status: Callable[[str], None] | None = None,
        debug: bool = False,
    ) -> None:
        self.store = store
        self.player = player
        self.debug = debug
        self.on_status = on_status
        self._now_fn = now_fn or (lambda: datetime.now(tz=timezone.utc))

        self.coverage = CoverageStore(merge_tolerance=merge_tolerance, debug=debug)
        self.recorder = SegmentRecorder(coverage=self.coverage, min_segment_sec=min_segment_sec, debug=debug)
        self.classifier = SeekClassifier(threshold=seek_threshold)
        self.autosave = AutosaveTimer(interval_sec=autosave_interval_sec, time_fn=time_fn)

        self.playing = False
        self.position = 0.0
        # One-shot resume guard; cleared only by reset().
        self.has_resumed = False
        self._pending_record: PersistedRecord | None = None
        # Set when the player reports metadata; seeking before that is undefined.
        self.metadata_loaded = False
        self._closed = False

    @classmethod
    def from_settings(
        cls,
        settings: "Settings",
        *,
        store: ProgressStore | None = None,
        player: SeekablePlayer | None = None,
        on_status: Callable[[str], None] | None = None,
    ) -> "CoverageEngine":
        return cls(
            store=store,
            player=player,
            merge_tolerance=settings.merge_tolerance_sec,
            seek_threshold=settings.seek_threshold_sec,
            min_segment_sec=settings.min_segment_sec,
            autosave_interval_sec=settings.autosave_interval_sec,
            on_status=on_status,
            debug=settings.debug,
        )

    # --- lifecycle ---

    def start(self) -> PersistedRecord | None:
        """Load stored progress and arm the autosave timer."""

        record = self.load()
        self._closed = False
        self.autosave.start()
        return record

    def load(self) -> PersistedRecord | None:
        if self.store is None:
            return None
        record = self.store.load()
        if record is None:
            return None
        self.coverage.restore(
            intervals=record.intervals,
            session_raw_watched_duration=record.session_raw_watched_duration,
            total_duration=record.total_duration,
        )
        self._pending_record = record
        if self.debug:
            print(
                f"[debug] engine: loaded segments={len(record.intervals)} "
                f"last_position={record.last_position:.2f}s"
            )
        return record

    def tick(self) -> bool:
        """Run the periodic save if it is due. Call from the main loop."""

        if self._closed or not self.autosave.due():
            return False
        return self.save()

    def close(self) -> None:
        """Teardown: close the open segment, save synchronously, stop the timer."""

        if self._closed:
            return
        self.recorder.close(self.position)
        self.save()
        self.autosave.cancel()
        self._closed = True

    # --- player events ---

    def dispatch(self, event: events.PlaybackEvent) -> None:
        if event.kind not in events.EVENT_KINDS:
            raise ValueError(f"unknown playback event kind {event.kind!r}")
        handlers: dict[str, Callable[[float], object]] = {
            events.PLAY: self.on_play,
            events.PAUSE: self.on_pause,
            events.SEEKED: self.on_seeked,
            events.TIME_UPDATE: self.on_time_update,
            events.ENDED: self.on_ended,
            events.METADATA: self.on_metadata_loaded,
        }
        handlers[event.kind](event.value)

    def on_play(self, position: float) -> None:
        self.playing = True
        self.position = float(position)
        self.classifier.rebase(position)
        # A repeated play while already watching keeps the original anchor.
        if self.recorder.open_segment_start is None:
            self.recorder.open(position)

    def on_pause(self, position: float) -> None:
        self.playing = False
        self.position = float(position)
        self.classifier.rebase(position)
        self._closed_segment(self.recorder.close(position))

    def on_ended(self, position: float) -> None:
        self.on_pause(position)

    def on_seeked(self, position: float) -> None:
        # The last sample before the jump is where the old segment stopped.
        close_at = self.classifier.previous
        self.position = float(position)
        self.classifier.rebase(position)
        self._closed_segment(self.recorder.reanchor(close_at, position, playing=self.playing))

    def on_time_update(self, position: float) -> None:
        previous = self.classifier.previous
        kind = self.classifier.observe(position)
        self.position = float(position)
        if kind is SampleKind.SEEK:
            if self.debug:
                print(f"[debug] engine: seek detected {previous:.2f}s -> {float(position):.2f}s")
            self._closed_segment(self.recorder.reanchor(previous, position, playing=self.playing))
        elif self.playing and self.recorder.open_segment_start is None:
            self.recorder.open(position)

    def on_metadata_loaded(self, duration: float) -> None:
        self.metadata_loaded = True
        self.record_metadata(duration)
        if self._pending_record is not None:
            self.restore_position(self._pending_record)

    def _closed_segment(self, segment: Interval | None) -> None:
        if segment is not None:
            self.save()

    # --- coverage operations ---

    def record_metadata(self, duration: float) -> bool:
        return self.coverage.record_metadata(duration)

    def progress_percent(self) -> float:
        return self.coverage.progress_percent()

    def list_intervals(self) -> tuple[Interval, ...]:
        return self.coverage.intervals

    def snapshot(self) -> CoverageSnapshot:
        return self.coverage.snapshot(position=self.position)

    def reset(self) -> None:
        """Forget all coverage and delete the stored record. Irreversible."""

        self.coverage.clear()
        self.recorder.reset()
        self.position = 0.0
        self.classifier.rebase(0.0)
        self.has_resumed = False
        self._pending_record = None
        if self.store is not None:
            self.store.delete()
        if self.player is not None:
            self.player.seek_to(0.0)
        if self.playing:
            self.recorder.open(0.0)
        self._status("Progress reset successfully!")

    # --- persistence ---

    def build_record(self) -> PersistedRecord:
        return PersistedRecord(
            intervals=self.coverage.intervals,
            last_position=self.position,
            total_duration=self.coverage.total_duration,
            session_raw_watched_duration=self.coverage.session_raw_watched_duration,
            saved_at=self._now_fn(),
            progress_percent=self.coverage.progress_percent(),
        )

    def save(self) -> bool:
        if self.store is None:
            return False
        return self.store.save(self.build_record())

    def save_now(self) -> bool:
        ok = self.save()
        self._status("Progress saved successfully!" if ok else "Progress could not be saved")
        return ok

    def restore_position(self, record: PersistedRecord) -> bool:
        """Seek to the stored playhead, at most once per media load.

        Only meaningful once the media duration is known; earlier calls are
        ignored and can be retried.
        """

        if self.has_resumed or self.player is None:
            return False
        if not self.metadata_loaded or self.coverage.total_duration <= 0:
            return False

        self.has_resumed = True
        self._pending_record = None
        target = min(float(record.last_position), self.coverage.total_duration)
        if target <= 0:
            return False

        previous = self.position
        self.player.seek_to(target)
        self.position = target
        self.classifier.rebase(target)
        if self.recorder.open_segment_start is not None:
            self._closed_segment(self.recorder.reanchor(previous, target, playing=self.playing))
        self._status(f"Resumed from {format_time(target)}")
        return True

    def _status(self, message: str) -> None:
        if self.debug:
            print(f"[debug] engine: status {message!r}")
        if self.on_status is not None:
            self.on_status(message)
