#!/usr/bin/env python3
"""
Diagnostic script for calibration on saved frames.

Calibrates from two image files (all segments lit / all segments dark, in
any order), reports the detected holes, digit groups and per-segment
sample counts, then optionally decodes further images.

Usage:
    python tools/inspect_calibration.py lit.png dark.png [frame.png ...] [--overlay out.png]

Examples:
    python tools/inspect_calibration.py debug/lit.png debug/dark.png
    python tools/inspect_calibration.py lit.png dark.png live_*.png --overlay debug/overlay.png
"""

import argparse
import sys
from pathlib import Path

from PIL import Image

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from segreader.config import ReaderConfiguration
from segreader.decoder import (
    SEGMENT_NAMES,
    CalibrationError,
    Frame,
    PixelClassifier,
    calibrate,
    decode_frame,
    estimate_ambient_offset,
    render_debug_mask,
    save_debug_image,
)


def load_frame(path: str, rotate180: bool) -> Frame:
    with Image.open(path) as img:
        frame = Frame.from_image(img)
    return frame.rotated_180() if rotate180 else frame


def report_calibration(state) -> None:
    """Print holes, groups and sample counts of a calibration."""
    print(f"Canvas: {state.width}x{state.height}")
    print(f"Detectable pixels: {int(state.detectable.sum())}")
    print(f"Background pixels: {int(state.background.sum())}")
    print(f"Calibration time: {state.processing_time_ms:.1f}ms")

    print(f"\n--- Holes ({len(state.holes)}) ---")
    print(f"{'#':>3} {'Pixels':>7} {'CenterX':>8} {'CenterY':>8} {'Rect':>20}")
    print("-" * 50)
    for i, hole in enumerate(state.holes):
        rect = hole.rect
        rect_text = f"{rect.x},{rect.y} {rect.width}x{rect.height}"
        print(f"{i:>3} {len(hole.pixels):>7} {hole.center_x:>8.1f} {hole.center_y:>8.1f} {rect_text:>20}")

    print(f"\n--- Digits ---")
    header = " ".join(f"{name:>4}" for name in SEGMENT_NAMES)
    print(f"{'Pos':>3} {'CenterX':>8} {header}")
    print("-" * (13 + 5 * len(SEGMENT_NAMES)))
    for group in state.groups:
        counts = " ".join(f"{len(s):>4}" for s in state.segment_samples[group.position])
        print(f"{group.position:>3} {group.center_x:>8.1f} {counts}")


def main():
    parser = argparse.ArgumentParser(description="Inspect calibration on saved frames")
    parser.add_argument("first", help="First calibration image")
    parser.add_argument("second", help="Second calibration image")
    parser.add_argument("frames", nargs="*", help="Images to decode after calibration")
    parser.add_argument("--overlay", help="Save sample overlay of the last decoded image here")
    parser.add_argument("--rotate180", action="store_true", help="Rotate every image 180 degrees")
    parser.add_argument("--gray-threshold", type=float, help="Override detectable threshold")
    args = parser.parse_args()

    config = ReaderConfiguration(rotate180=args.rotate180)
    if args.gray_threshold is not None:
        config.gray_threshold = args.gray_threshold

    print(f"{'='*60}")
    print(f"Calibrating: {args.first} + {args.second}")
    print(f"Configuration: {config}")
    print(f"{'='*60}")

    try:
        state = calibrate(
            load_frame(args.first, args.rotate180),
            load_frame(args.second, args.rotate180),
            config,
        )
    except CalibrationError as e:
        print(f"ERROR: {e}")
        return 1

    report_calibration(state)

    classifier = PixelClassifier(state)
    last_frame = None
    last_decoded = None

    if args.frames:
        print(f"\n--- Decoding ---")
    for path in args.frames:
        frame = load_frame(path, args.rotate180)
        if frame.size != (state.width, state.height):
            print(f"{path}: size {frame.size} differs from calibration, skipped")
            continue
        offset = estimate_ambient_offset(frame.gray, state)
        decoded = decode_frame(frame.gray, state, classifier, offset)
        print(f"{path}: {decoded.text!r}  masks={decoded.bitmasks}  offset={offset:+.1f}")
        last_frame, last_decoded = frame, decoded

    if args.overlay:
        if last_frame is None:
            last_frame = load_frame(args.first, args.rotate180)
        offset = estimate_ambient_offset(last_frame.gray, state)
        image = render_debug_mask(
            last_frame, state, classifier, offset, config.debug_mask_colors, last_decoded
        )
        save_debug_image(image, args.overlay)
        print(f"\nOverlay saved: {args.overlay}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
