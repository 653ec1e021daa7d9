"""
Sample Refinement

Narrows segment sample sets toward pixels that agree with the segment's
observed state, compensating for imperfect initial calibration.
"""

import logging
import math

import numpy as np

from .calibration import CalibrationState
from .classifier import PixelClassifier

logger = logging.getLogger(__name__)


def refine_samples(
    gray: np.ndarray,
    state: CalibrationState,
    classifier: PixelClassifier,
    ambient_offset: float = 0.0,
    ratio: float = 0.7,
) -> int:
    """
    Replace each sample set with its lit or unlit subset when one dominates.

    A subset dominates when it holds strictly more than floor(count * ratio)
    pixels. Mixed sets are left unchanged, so a set is never emptied.

    Args:
        gray: (h, w) gray grid of the current frame
        state: Calibration state whose segment samples are updated in place
        classifier: Pixel classifier bound to the same state
        ambient_offset: Brightness drift for this frame
        ratio: Dominance fraction

    Returns:
        Number of sample sets that were narrowed
    """
    narrowed = 0

    for digit, digit_segments in enumerate(state.segment_samples):
        for segment, pixels in enumerate(digit_segments):
            count = len(pixels)
            if count == 0:
                continue

            flags = classifier.lit_flags(gray, pixels, ambient_offset)
            lit_pixels = [p for p, lit in zip(pixels, flags) if lit]
            off_pixels = [p for p, lit in zip(pixels, flags) if not lit]
            high_limit = math.floor(count * ratio)

            if len(lit_pixels) > high_limit:
                replacement = lit_pixels
            elif len(off_pixels) > high_limit:
                replacement = off_pixels
            else:
                continue

            if len(replacement) != count:
                narrowed += 1
                logger.debug(f"Refined digit {digit} segment {segment}: {count} -> {len(replacement)} pixels")
            digit_segments[segment] = replacement

    return narrowed
