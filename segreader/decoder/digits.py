"""
Digit Decoding

Turns per-segment lit votes into a 7-bit mask per digit and maps masks to
characters of the display's vocabulary.

Bit i of a mask is segment i, in A, B, C, D, E, F, G order:

     AAA
    F   B
     GGG
    E   C
     DDD  .
"""

import logging
import time
from types import MappingProxyType
from typing import Iterable, Mapping

import numpy as np

from .calibration import CalibrationState
from .classifier import PixelClassifier
from .result import DecodedFrame, DECIMAL_POINT, SEGMENT_COUNT

logger = logging.getLogger(__name__)


CHAR_MAP: Mapping[int, str] = MappingProxyType({
    0: " ",
    2: "'",
    4: "i",
    6: "1",
    7: "7",
    8: "_",
    16: ",",
    28: "u",
    30: "J",
    32: "`",
    34: '"',
    48: "I",
    56: "L",
    57: "C",
    61: "G",
    62: "U",
    63: "0",
    64: "-",
    79: "3",
    80: "r",
    83: "?",
    84: "n",
    88: "c",
    91: "2",
    92: "o",
    94: "d",
    95: "a",
    102: "4",
    103: "q",
    109: "5",
    110: "Y",
    111: "9",
    113: "F",
    115: "P",
    116: "h",
    118: "H",
    119: "A",
    120: "t",
    121: "E",
    123: "e",
    124: "b",
    125: "6",
    127: "8",
})

UNKNOWN_GLYPH = "¿"

# Register names that collide with digits: stack pointer and index register
PREFIX_CORRECTIONS = (
    ("5P", "SP"),
    ("1n", "In"),
)


def bitmask_to_char(bitmask: int) -> str:
    """Character for a segment mask, UNKNOWN_GLYPH when unmapped."""
    return CHAR_MAP.get(bitmask, UNKNOWN_GLYPH)


def segment_is_on(flags: Iterable[bool]) -> bool:
    """
    Majority vote over a segment's sample pixels.

    Counts down from half the sample count (rounded down) on every lit
    pixel; the segment is on as soon as the countdown reaches exactly
    zero. Sets of fewer than two pixels therefore never vote on.
    """
    flags = list(flags)
    to_light = len(flags) // 2
    for lit in flags:
        if lit:
            to_light -= 1
            if to_light == 0:
                return True
    return False


def apply_corrections(text: str) -> str:
    """
    Fix register mnemonics that decode as digits.

    Only applies when the third character is a decimal point, as in
    "5P." and "1n." readouts.
    """
    if len(text) > 2 and text[2] == ".":
        for wrong, right in PREFIX_CORRECTIONS:
            if text.startswith(wrong):
                return right + text[len(wrong):]
    return text


def decode_frame(
    gray: np.ndarray,
    state: CalibrationState,
    classifier: PixelClassifier,
    ambient_offset: float = 0.0,
) -> DecodedFrame:
    """
    Decode all six digits of one frame.

    Args:
        gray: (h, w) gray grid of the current frame
        state: Calibration state with segment samples
        classifier: Pixel classifier bound to the same state
        ambient_offset: Brightness drift for this frame

    Returns:
        DecodedFrame with the corrected text, masks and decimal points
    """
    start_time = time.perf_counter()
    characters = []
    bitmasks = []
    decimal_points = []

    for digit_segments in state.segment_samples:
        bitmask = 0
        point_lit = False

        for segment, pixels in enumerate(digit_segments):
            if len(pixels) < 2:
                continue
            flags = classifier.lit_flags(gray, pixels, ambient_offset)
            if not segment_is_on(flags):
                continue
            if segment == DECIMAL_POINT:
                point_lit = True
            elif segment < SEGMENT_COUNT:
                bitmask |= 1 << segment

        character = bitmask_to_char(bitmask)
        characters.append(character + "." if point_lit else character)
        bitmasks.append(bitmask)
        decimal_points.append(point_lit)

    text = apply_corrections("".join(characters))
    if UNKNOWN_GLYPH in text:
        logger.debug(f"Unmapped segment masks in frame: {bitmasks}")

    return DecodedFrame(
        text=text,
        bitmasks=bitmasks,
        decimal_points=decimal_points,
        ambient_offset=ambient_offset,
        processing_time_ms=(time.perf_counter() - start_time) * 1000,
    )
