from __future__ import annotations

import unittest

from watchtrack.core.coverage import CoverageStore
from watchtrack.core.intervals import Interval
from watchtrack.core.recorder import RecorderState, SegmentRecorder


def _recorder() -> SegmentRecorder:
    return SegmentRecorder(coverage=CoverageStore(merge_tolerance=1.0), min_segment_sec=0.5)


class SegmentRecorderTests(unittest.TestCase):
    def test_starts_idle(self) -> None:
        rec = _recorder()
        self.assertIs(rec.state, RecorderState.IDLE)
        self.assertIsNone(rec.open_segment_start)

    def test_open_then_close_admits_segment(self) -> None:
        rec = _recorder()
        rec.open(0.0)
        self.assertIs(rec.state, RecorderState.WATCHING)
        seg = rec.close(10.0)
        self.assertEqual(seg, Interval(0.0, 10.0))
        self.assertIs(rec.state, RecorderState.IDLE)
        self.assertEqual(rec.coverage.intervals, (Interval(0.0, 10.0),))
        self.assertEqual(rec.coverage.session_raw_watched_duration, 10.0)

    def test_rewatch_counts_raw_but_not_unique(self) -> None:
        """Play 0->10, pause, seek to 5, play to 8."""
        rec = _recorder()
        rec.open(0.0)
        rec.close(10.0)
        rec.open(5.0)
        seg = rec.close(8.0)

        self.assertEqual(seg, Interval(5.0, 8.0))
        self.assertEqual(rec.coverage.intervals, (Interval(0.0, 10.0),))
        self.assertEqual(rec.coverage.unique_covered_duration, 10.0)
        self.assertEqual(rec.coverage.session_raw_watched_duration, 13.0)

    def test_short_segment_is_discarded(self) -> None:
        rec = _recorder()
        rec.open(42.0)
        self.assertIsNone(rec.close(42.3))
        self.assertEqual(rec.coverage.intervals, ())
        self.assertEqual(rec.coverage.session_raw_watched_duration, 0.0)
        self.assertIs(rec.state, RecorderState.IDLE)

    def test_segment_at_exact_minimum_counts(self) -> None:
        rec = _recorder()
        rec.open(1.0)
        self.assertEqual(rec.close(1.5), Interval(1.0, 1.5))

    def test_backwards_close_is_discarded(self) -> None:
        rec = _recorder()
        rec.open(30.0)
        self.assertIsNone(rec.close(12.0))
        self.assertEqual(rec.coverage.intervals, ())

    def test_close_while_idle_is_noop(self) -> None:
        rec = _recorder()
        self.assertIsNone(rec.close(99.0))
        self.assertEqual(rec.coverage.session_raw_watched_duration, 0.0)

    def test_reanchor_while_playing_reopens(self) -> None:
        rec = _recorder()
        rec.open(0.0)
        seg = rec.reanchor(20.0, 120.0, playing=True)
        self.assertEqual(seg, Interval(0.0, 20.0))
        self.assertEqual(rec.open_segment_start, 120.0)

    def test_reanchor_while_paused_stays_idle(self) -> None:
        rec = _recorder()
        rec.open(0.0)
        rec.reanchor(20.0, 120.0, playing=False)
        self.assertIs(rec.state, RecorderState.IDLE)

    def test_reset_drops_open_segment(self) -> None:
        rec = _recorder()
        rec.open(3.0)
        rec.reset()
        self.assertIsNone(rec.close(50.0))
        self.assertEqual(rec.coverage.intervals, ())


if __name__ == "__main__":
    unittest.main()
