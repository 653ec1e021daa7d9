"""
Tests for the calibration engine.

Uses the synthetic display from conftest.py:
1. Successful calibration and digit ordering
2. Hole count failures (11 / 13) and noise rejection
3. Order independence of the reference frames
4. k-means grouping of hole centroids

Usage:
    pytest tests/test_calibration.py
"""

import sys
from pathlib import Path

import numpy as np
import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from segreader.config import ReaderConfiguration
from segreader.decoder import (
    CalibrationError,
    Frame,
    HoleComponent,
    PixelClassifier,
    calibrate,
    cluster_holes,
    decode_frame,
    find_decimal_point,
    find_hole_components,
    grow_region,
    order_frames,
)
from segreader.decoder.calibration import SEG_A, SEG_B, SEG_D, SEG_G


def with_patch(frame: Frame, x0: int, y0: int, x1: int, y1: int, value: int) -> Frame:
    pixels = np.array(frame.pixels)
    pixels[y0:y1 + 1, x0:x1 + 1, :3] = value
    return Frame(pixels)


def with_ring(frame: Frame, x0: int, y0: int, size: int) -> Frame:
    """Draw a 1 pixel lit square outline of the given outer size."""
    x1 = x0 + size - 1
    y1 = y0 + size - 1
    frame = with_patch(frame, x0, y0, x1, y0, 255)
    frame = with_patch(frame, x0, y1, x1, y1, 255)
    frame = with_patch(frame, x0, y0, x0, y1, 255)
    return with_patch(frame, x1, y0, x1, y1, 255)


def test_calibration_finds_six_digits(display):
    state = calibrate(display.lit(), display.dark())

    assert (state.width, state.height) == (display.width, display.height)
    assert len(state.holes) == 12
    assert len(state.groups) == 6
    assert all(group.is_complete for group in state.groups)
    assert state.processing_time_ms >= 0

    centers = [group.center_x for group in state.groups]
    assert centers == sorted(centers)
    for position, group in enumerate(state.groups):
        ox, _ = display.origin(position)
        assert group.position == position
        assert group.center_x == pytest.approx(ox + 6.5)
        upper, lower = group.holes
        assert upper.center_y < lower.center_y
        assert len(upper.pixels) == 30


def test_segment_samples_have_expected_sizes(display):
    state = calibrate(display.lit(), display.dark())
    for digit in state.segment_samples:
        # A, B, C, D, E, F, G, DP
        assert [len(s) for s in digit] == [18, 15, 15, 18, 15, 15, 18, 9]


def test_segment_samples_land_on_their_segment(display):
    state = calibrate(display.lit(), display.dark())
    ox, oy = display.origin(2)
    digit = state.segment_samples[2]

    assert all(oy <= y <= oy + 3 for _, y in digit[SEG_A])
    assert all(ox + 10 <= x <= ox + 13 for x, _ in digit[SEG_B])
    assert all(oy + 9 <= y <= oy + 12 for _, y in digit[SEG_G])
    assert all(oy + 18 <= y <= oy + 21 for _, y in digit[SEG_D])
    assert sorted(digit[7]) == sorted(
        (ox + x, oy + y) for x in range(15, 18) for y in range(22, 25)
    )


def test_reference_grids(display):
    state = calibrate(display.lit(), display.dark())
    ox, oy = display.origin(0)

    assert state.lit_reference[oy, ox] == 255
    assert state.unlit_reference[oy, ox] == 0
    assert state.difference[oy, ox] == 255
    assert state.detectable[oy, ox] == 1
    assert state.background[0, 0] == 1
    # Hole pixels are neither detectable nor background
    assert state.detectable[oy + 5, ox + 5] == 0
    assert state.background[oy + 5, ox + 5] == 0


def test_calibration_is_order_independent(display):
    forward = calibrate(display.lit(), display.dark())
    backward = calibrate(display.dark(), display.lit())

    assert forward.segment_samples == backward.segment_samples
    assert np.array_equal(forward.lit_reference, backward.lit_reference)
    assert np.array_equal(forward.unlit_reference, backward.unlit_reference)
    assert np.array_equal(forward.difference, backward.difference)
    assert np.array_equal(forward.detectable, backward.detectable)
    assert np.array_equal(forward.background, backward.background)


def test_order_frames_brighter_is_lit(display):
    lit, dark = display.lit(), display.dark()
    assert order_frames(dark, lit) == (lit, dark)
    assert order_frames(lit, dark) == (lit, dark)


def test_eleven_holes_fail(display):
    ox, oy = display.origin(5)
    lit = with_patch(display.lit(), ox + 4, oy + 13, ox + 9, oy + 17, 255)

    with pytest.raises(CalibrationError) as info:
        calibrate(lit, display.dark())
    assert info.value.hole_count == 11
    assert "expected 12" in str(info.value)


def test_thirteen_holes_fail(display):
    lit = with_ring(display.lit(), 60, 32, 6)

    with pytest.raises(CalibrationError) as info:
        calibrate(lit, display.dark())
    assert info.value.hole_count == 13


def test_small_components_are_noise(display):
    # 3x3 interior = 9 pixels, at or below the 10 pixel limit
    lit = with_ring(display.lit(), 60, 32, 5)
    state = calibrate(lit, display.dark())
    assert len(state.holes) == 12


def widened(frame: Frame, width: int) -> Frame:
    pixels = np.zeros((frame.pixels.shape[0], width, 3), dtype=np.uint8)
    pixels[:, :frame.pixels.shape[1]] = frame.pixels[..., :3]
    return Frame(pixels)


def test_uneven_digit_groups_are_skipped(display, caplog):
    # Four real digits, then three stacked rings and one lone ring: 12 holes
    # that k-means splits 3/1 over the last two positions
    lit = widened(display.render([127] * 4, [True] * 4), 220)
    for y in (5, 15, 25):
        lit = with_ring(lit, 128, y, 6)
    lit = with_ring(lit, 200, 5, 6)
    dark = Frame(np.zeros((display.height, 220, 3), dtype=np.uint8))

    with caplog.at_level("WARNING"):
        state = calibrate(lit, dark)

    assert len(state.holes) == 12
    assert [len(group.holes) for group in state.groups] == [2, 2, 2, 2, 3, 1]
    for position in range(4):
        assert all(state.segment_samples[position])
    assert state.segment_samples[4] == [[] for _ in range(8)]
    assert state.segment_samples[5] == [[] for _ in range(8)]
    assert "Digit 4 has 3 holes" in caplog.text
    assert "Digit 5 has 1 holes" in caplog.text

    # The skipped positions read as blanks
    frame = widened(display.text("12.34"), 220)
    assert decode_frame(frame.gray, state, PixelClassifier(state)).text == "12.34  "


def test_hole_pixels_are_row_major(display):
    state = calibrate(display.lit(), display.dark())
    for hole in state.holes:
        assert hole.pixels == sorted(hole.pixels, key=lambda coord: (coord[1], coord[0]))
        assert len(hole.pixels) == 30


def test_many_specks_are_all_noise():
    # A fully detectable frame peppered with single dark pixels
    detectable = np.ones((240, 320), dtype=np.uint8)
    detectable[2::4, 2::4] = 0
    background = grow_region(detectable, lambda value, _coord, _grid: value == 0)

    assert background.sum() == 0
    assert find_hole_components(detectable, background) == []

    # A 4x4 dark patch is big enough to be a hole
    detectable[100:104, 100:104] = 0
    holes = find_hole_components(detectable, background)
    assert len(holes) == 1
    assert len(holes[0].pixels) == 16


def test_size_mismatch_fails(display):
    small = Frame(np.zeros((10, 10, 3), dtype=np.uint8))
    with pytest.raises(CalibrationError):
        calibrate(display.lit(), small)


def test_threshold_above_contrast_finds_no_holes(display):
    config = ReaderConfiguration(gray_threshold=200)
    with pytest.raises(CalibrationError) as info:
        calibrate(display.lit(on=150), display.dark(), config)
    assert info.value.hole_count == 0


def hole_at(x: float, y: float) -> HoleComponent:
    hole = HoleComponent(pixels=[(int(x), int(y))])
    hole.center_x = x
    hole.center_y = y
    return hole


def test_cluster_holes_groups_pairs_left_to_right():
    holes = []
    for i in reversed(range(6)):
        holes.append(hole_at(100 + i * 30, 40))
        holes.append(hole_at(100 + i * 30 + 1, 10))

    groups = cluster_holes(holes, 6)

    assert [g.position for g in groups] == list(range(6))
    assert all(g.is_complete for g in groups)
    assert [g.center_x for g in groups] == [100.5 + i * 30 for i in range(6)]
    for group in groups:
        assert [h.center_y for h in group.holes] == [10, 40]


def test_cluster_holes_uneven_groups():
    holes = [hole_at(x, 0) for x in (0, 1, 2, 50, 100, 150, 200, 250)]
    groups = cluster_holes(holes, 6)
    assert len(groups) == 6
    assert sum(len(g.holes) for g in groups) == 8
    assert not all(g.is_complete for g in groups)


def test_cluster_holes_empty():
    assert cluster_holes([], 6) == []


def test_decimal_point_window_is_strict():
    difference = np.zeros((30, 30))
    difference[10:20, 10:20] = 255
    segments = [[(3, 3), (8, 8)]] + [[] for _ in range(6)]
    # Seed at (10, 10), kept window is 4 < x < 16 and 4 < y < 16
    point = find_decimal_point(difference, segments, threshold=40, radius=6)
    xs = {x for x, _ in point}
    ys = {y for _, y in point}
    assert xs == set(range(10, 16))
    assert ys == set(range(10, 16))


def test_decimal_point_without_segments():
    assert find_decimal_point(np.zeros((5, 5)), [[] for _ in range(7)]) == []
