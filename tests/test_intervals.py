from __future__ import annotations

import math
import unittest

import pytest
from hypothesis import given, settings, strategies as st

from watchtrack.core.intervals import (
    Interval,
    covered_duration,
    is_normalized,
    merge_interval,
    merge_intervals,
)


@st.composite
def intervals(draw, max_start: float = 600.0) -> Interval:
    start = draw(st.floats(min_value=0.0, max_value=max_start, allow_nan=False, allow_infinity=False))
    length = draw(st.floats(min_value=0.5, max_value=120.0, allow_nan=False, allow_infinity=False))
    return Interval(start, start + length)


tolerances = st.sampled_from([0.0, 0.25, 1.0, 3.0])


class MergeScenarioTests(unittest.TestCase):
    def test_overlapping_spans_merge(self) -> None:
        """[0,10) then [9,20) collapse into [0,20)."""
        cov = merge_interval((), Interval(0, 10))
        cov = merge_interval(cov, Interval(9, 20))
        self.assertEqual(cov, (Interval(0, 20),))
        self.assertEqual(covered_duration(cov), 20)

    def test_distant_spans_stay_apart(self) -> None:
        """[0,10) then [15,25) stay two spans."""
        cov = merge_interval((), Interval(0, 10))
        cov = merge_interval(cov, Interval(15, 25))
        self.assertEqual(cov, (Interval(0, 10), Interval(15, 25)))
        self.assertEqual(covered_duration(cov), 20)

    def test_gap_within_tolerance_is_bridged(self) -> None:
        cov = merge_interval((Interval(0, 10),), Interval(10.8, 12), tolerance=1.0)
        self.assertEqual(cov, (Interval(0, 12),))

    def test_gap_just_beyond_tolerance_is_kept(self) -> None:
        cov = merge_interval((Interval(0, 10),), Interval(11.5, 12), tolerance=1.0)
        self.assertEqual(cov, (Interval(0, 10), Interval(11.5, 12)))

    def test_contained_span_leaves_set_unchanged(self) -> None:
        base = (Interval(0, 10), Interval(30, 40))
        self.assertEqual(merge_interval(base, Interval(5, 8)), base)

    def test_new_span_swallows_several(self) -> None:
        base = (Interval(0, 5), Interval(10, 15), Interval(20, 25), Interval(60, 70))
        cov = merge_interval(base, Interval(4, 22))
        self.assertEqual(cov, (Interval(0, 25), Interval(60, 70)))

    def test_unsorted_input_is_sorted(self) -> None:
        cov = merge_intervals([Interval(50, 60), Interval(0, 5), Interval(20, 30)])
        self.assertEqual(cov, (Interval(0, 5), Interval(20, 30), Interval(50, 60)))

    def test_degenerate_spans_are_dropped(self) -> None:
        self.assertEqual(merge_intervals([Interval(3, 3)]), ())

    def test_inputs_not_mutated(self) -> None:
        base = [Interval(0, 10)]
        merge_interval(base, Interval(5, 20))
        self.assertEqual(base, [Interval(0, 10)])

    def test_empty(self) -> None:
        self.assertEqual(merge_intervals([]), ())
        self.assertEqual(covered_duration(()), 0)


def test_interval_rejects_negative_start():
    with pytest.raises(ValueError):
        Interval(-1.0, 2.0)


def test_interval_rejects_end_before_start():
    with pytest.raises(ValueError):
        Interval(5.0, 2.0)


@pytest.mark.parametrize("start,end", [(0.0, math.inf), (math.nan, 4.0), (1.0, math.nan)])
def test_interval_rejects_non_finite_bounds(start, end):
    with pytest.raises(ValueError):
        Interval(start, end)


def test_interval_dict_shape():
    iv = Interval(1.5, 4.0)
    assert iv.to_dict() == {"start": 1.5, "end": 4.0}
    assert Interval.from_dict({"start": 1.5, "end": 4}) == iv
    assert iv.length == 2.5


def test_is_normalized():
    assert is_normalized((Interval(0, 1), Interval(3, 4)), tolerance=1.0)
    assert not is_normalized((Interval(0, 1), Interval(2, 4)), tolerance=1.0)
    assert not is_normalized((Interval(3, 4), Interval(0, 1)), tolerance=0.0)


@settings(max_examples=200)
@given(st.lists(intervals(), min_size=1, max_size=50), tolerances)
def test_merge_output_is_sorted_and_apart(spans, tol):
    cov = ()
    for iv in spans:
        cov = merge_interval(cov, iv, tolerance=tol)
        assert is_normalized(cov, tolerance=tol)


@given(st.lists(intervals(), max_size=20), intervals(), tolerances)
def test_merge_is_idempotent(spans, new, tol):
    s = merge_intervals(spans, tolerance=tol)
    once = merge_interval(s, new, tolerance=tol)
    assert merge_interval(once, new, tolerance=tol) == once


@given(st.lists(intervals(), max_size=20), intervals(), intervals(), tolerances)
def test_merge_order_does_not_matter(spans, a, b, tol):
    s = merge_intervals(spans, tolerance=tol)
    ab = merge_interval(merge_interval(s, a, tolerance=tol), b, tolerance=tol)
    ba = merge_interval(merge_interval(s, b, tolerance=tol), a, tolerance=tol)
    assert ab == ba


@given(st.lists(intervals(), max_size=20), intervals())
def test_coverage_grows_by_at_most_new_length_without_tolerance(spans, new):
    s = merge_intervals(spans, tolerance=0.0)
    after = covered_duration(merge_interval(s, new, tolerance=0.0))
    assert after <= covered_duration(s) + new.length + 1e-6


@given(st.lists(intervals(), max_size=20), intervals(), tolerances)
def test_bridged_gaps_bound_the_growth(spans, new, tol):
    # A new span can bridge at most one gap on each side.
    s = merge_intervals(spans, tolerance=tol)
    after = covered_duration(merge_interval(s, new, tolerance=tol))
    assert after <= covered_duration(s) + new.length + 2 * tol + 1e-6


@given(st.lists(intervals(), max_size=20), intervals(), tolerances)
def test_disjoint_span_adds_exactly_its_length(spans, new, tol):
    s = merge_intervals(spans, tolerance=tol)
    disjoint = all(iv.end + tol < new.start or new.end + tol < iv.start for iv in s)
    after = covered_duration(merge_interval(s, new, tolerance=tol))
    if disjoint:
        assert math.isclose(after, covered_duration(s) + new.length, abs_tol=1e-6)


if __name__ == "__main__":
    unittest.main()
