from __future__ import annotations

from watchtrack.core.classifier import SampleKind, SeekClassifier, classify


def test_small_forward_step_is_normal():
    assert classify(10.0, 10.25) is SampleKind.NORMAL


def test_exact_threshold_is_normal():
    assert classify(10.0, 12.0, threshold=2.0) is SampleKind.NORMAL


def test_jump_forward_is_seek():
    assert classify(10.0, 12.5) is SampleKind.SEEK


def test_jump_backward_is_seek():
    assert classify(60.0, 5.0) is SampleKind.SEEK


def test_threshold_is_configurable():
    assert classify(0.0, 3.0, threshold=5.0) is SampleKind.NORMAL


def test_classifier_tracks_previous_sample():
    c = SeekClassifier(threshold=2.0)
    assert c.observe(0.25) is SampleKind.NORMAL
    assert c.observe(0.5) is SampleKind.NORMAL
    assert c.observe(90.0) is SampleKind.SEEK
    assert c.previous == 90.0
    assert c.observe(90.25) is SampleKind.NORMAL


def test_rebase_moves_reference_without_classifying():
    c = SeekClassifier(threshold=2.0)
    c.rebase(300.0)
    assert c.observe(300.2) is SampleKind.NORMAL
