"""
Tests for capture sources that do not need hardware.

Usage:
    pytest tests/test_frame_capture.py
"""

import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from segreader.frame_capture import ImageSequenceCapture, parse_region
from segreader.reader import SegmentDisplayReader


def test_parse_region():
    assert parse_region("10, 20,320,80") == (10, 20, 320, 80)
    with pytest.raises(ValueError):
        parse_region("1,2,3")
    with pytest.raises(ValueError):
        parse_region("0,0,0,10")
    with pytest.raises(ValueError):
        parse_region("a,b,c,d")


def test_image_sequence_requires_paths():
    with pytest.raises(ValueError):
        ImageSequenceCapture([])


def test_image_sequence_loops(tmp_path, display):
    paths = []
    for name, frame in [("lit.png", display.lit()), ("dark.png", display.dark())]:
        path = tmp_path / name
        frame.to_image().save(path)
        paths.append(path)

    capture = ImageSequenceCapture(paths)
    assert capture.get_status_string() == "2 images"

    first = capture()
    second = capture()
    third = capture()
    assert first.size == (display.width, display.height)
    assert first.gray.sum() > second.gray.sum()
    assert third is first
    assert capture.get_status_string() == "lit.png (1/2)"


def test_image_sequence_without_loop(tmp_path, display):
    path = tmp_path / "frame.png"
    display.lit().to_image().save(path)

    capture = ImageSequenceCapture([path], loop=False)
    assert capture.grab_frame() is not None
    assert capture.grab_frame() is None


def test_reader_calibrates_from_image_files(tmp_path, display):
    paths = []
    for name, frame in [("a.png", display.lit()), ("b.png", display.dark()), ("c.png", display.text("5.55555"))]:
        path = tmp_path / name
        frame.to_image().save(path)
        paths.append(path)

    reader = SegmentDisplayReader(ImageSequenceCapture(paths, loop=False))
    reader.capture_calibration_image()
    reader.capture_calibration_image()
    assert reader.calibrated
    assert reader.read_displays() == "5.55555"
