"""
Decoder Module for Segment Display Reader

Label-free calibration and per-frame decoding of six seven-segment digits.

Usage:
    from segreader.decoder import Frame, calibrate, PixelClassifier, decode_frame

    # Calibrate from an all-lit and an all-dark frame (any order)
    state = calibrate(lit_frame, unlit_frame)

    # Decode a live frame
    classifier = PixelClassifier(state)
    offset = estimate_ambient_offset(frame.gray, state)
    decoded = decode_frame(frame.gray, state, classifier, offset)
    print(decoded.text)
"""

# Public API - Result types
from .result import (
    Frame,
    BoundingRect,
    HoleComponent,
    DigitGroup,
    DecodedFrame,
    SEGMENT_NAMES,
    DIGIT_COUNT,
    DECIMAL_POINT,
)

# Public API - Building blocks
from .grayscale import to_gray, pixel_gray, total_brightness
from .region import flood_fill, grow_region, mask_to_coordinates

# Public API - Calibration
from .calibration import (
    CalibrationError,
    CalibrationState,
    EXPECTED_HOLES,
    calibrate,
    cluster_holes,
    find_decimal_point,
    find_hole_components,
    order_frames,
    sample_segments,
)

# Public API - Per-frame decoding
from .classifier import PixelClassifier, estimate_ambient_offset
from .digits import (
    CHAR_MAP,
    UNKNOWN_GLYPH,
    apply_corrections,
    bitmask_to_char,
    decode_frame,
    segment_is_on,
)
from .refiner import refine_samples

# Debug utilities
from .debug import DEBUG_DIR, render_debug_mask, save_debug_image

__all__ = [
    # Result types
    "Frame",
    "BoundingRect",
    "HoleComponent",
    "DigitGroup",
    "DecodedFrame",
    # Constants
    "SEGMENT_NAMES",
    "DIGIT_COUNT",
    "DECIMAL_POINT",
    "EXPECTED_HOLES",
    "CHAR_MAP",
    "UNKNOWN_GLYPH",
    # Functions
    "to_gray",
    "pixel_gray",
    "total_brightness",
    "flood_fill",
    "grow_region",
    "mask_to_coordinates",
    "calibrate",
    "cluster_holes",
    "find_decimal_point",
    "find_hole_components",
    "order_frames",
    "sample_segments",
    "estimate_ambient_offset",
    "apply_corrections",
    "bitmask_to_char",
    "decode_frame",
    "segment_is_on",
    "refine_samples",
    "render_debug_mask",
    "save_debug_image",
    # Classes
    "CalibrationError",
    "CalibrationState",
    "PixelClassifier",
    # Debug
    "DEBUG_DIR",
]
