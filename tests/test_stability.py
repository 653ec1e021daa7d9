"""
Tests for the StabilityTracker debounce.

Usage:
    pytest tests/test_stability.py
"""

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from segreader.stability import Notification, NotificationKind, StabilityTracker


CHANGED = NotificationKind.CHANGED
STABLE = NotificationKind.STABLE_OUTPUT


def feed(tracker, values):
    """Return per-tick notification lists."""
    return [tracker.update(v) for v in values]


def test_stable_output_after_four_ticks():
    tracker = StabilityTracker()
    ticks = feed(tracker, ["A", "A", "A", "A", "B"])

    assert ticks == [
        [Notification(CHANGED, "A")],
        [],
        [],
        [Notification(STABLE, "A")],
        [Notification(CHANGED, "B")],
    ]


def test_stable_output_fires_once():
    tracker = StabilityTracker()
    notes = [n for tick in feed(tracker, ["7"] * 20) for n in tick]
    assert [n.kind for n in notes] == [CHANGED, STABLE]
    assert tracker.match_count == 19


def test_value_can_fire_again_after_change():
    tracker = StabilityTracker()
    notes = [n for tick in feed(tracker, ["1"] * 4 + ["2"] + ["1"] * 4) for n in tick]
    assert [(n.kind, n.value) for n in notes] == [
        (CHANGED, "1"), (STABLE, "1"),
        (CHANGED, "2"),
        (CHANGED, "1"), (STABLE, "1"),
    ]


def test_flicker_never_stabilizes():
    tracker = StabilityTracker()
    notes = [n for tick in feed(tracker, ["1", "1", "1", "2"] * 3) for n in tick]
    assert all(n.kind is CHANGED for n in notes)


def test_state_and_reset():
    tracker = StabilityTracker()
    assert tracker.last_value is None
    assert tracker.get_state_string() == "Waiting"

    feed(tracker, ["X", "X"])
    assert tracker.last_value == "X"
    assert not tracker.is_stable
    assert tracker.get_state_string() == "Stabilizing (1/3)"

    feed(tracker, ["X", "X"])
    assert tracker.is_stable
    assert tracker.get_state_string() == "Stable"

    tracker.reset()
    assert tracker.last_value is None
    assert tracker.match_count == 0
    # Same value after reset counts as a change
    assert tracker.update("X") == [Notification(CHANGED, "X")]


def test_custom_repeats():
    tracker = StabilityTracker(repeats=1)
    ticks = feed(tracker, ["Q", "Q", "Q"])
    assert ticks == [[Notification(CHANGED, "Q")], [Notification(STABLE, "Q")], []]
