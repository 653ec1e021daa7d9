"""
Pixel Classification

Lit/unlit decision for sampled pixels, normalized for ambient light drift
between calibration time and the current frame.
"""

import logging
from typing import Optional

import numpy as np

from .calibration import CalibrationState
from .region import split_coordinates
from .result import CoordinateList

logger = logging.getLogger(__name__)


AMBIENT_SAMPLES_PER_AXIS = 40


def estimate_ambient_offset(gray: np.ndarray, state: Optional[CalibrationState]) -> float:
    """
    Mean brightness drift of background pixels since calibration.

    Samples the background mask on a coarse grid (about 40 samples per
    axis) and averages current gray minus unlit reference gray.

    Args:
        gray: (h, w) gray grid of the current frame
        state: Calibration state holding background mask and unlit reference

    Returns:
        Mean offset, or 0.0 when no background pixel was sampled
    """
    if state is None or state.background.size == 0:
        return 0.0

    height, width = state.background.shape
    if gray.shape != (height, width):
        return 0.0

    step_y = max(1, height // AMBIENT_SAMPLES_PER_AXIS)
    step_x = max(1, width // AMBIENT_SAMPLES_PER_AXIS)

    mask = state.background[::step_y, ::step_x].astype(bool)
    count = int(mask.sum())
    if count == 0:
        return 0.0

    delta = gray[::step_y, ::step_x] - state.unlit_reference[::step_y, ::step_x]
    return float(delta[mask].sum() / count)


class PixelClassifier:
    """
    Classifies pixels as lit or unlit against calibrated references.

    A pixel is lit when its ambient-corrected gray value is at least as
    close to the lit reference as to the unlit reference. Without reference
    data for a coordinate it falls back to comparing raw gray against the
    difference grid.
    """

    def __init__(self, state: CalibrationState):
        self._state = state

    @property
    def state(self) -> CalibrationState:
        return self._state

    def _has_reference(self, x: int, y: int) -> bool:
        height, width = self._state.lit_reference.shape
        return 0 <= x < width and 0 <= y < height

    def is_pixel_lit(self, gray: float, x: int, y: int, ambient_offset: float = 0.0) -> bool:
        """
        Decide whether one pixel is lit.

        Args:
            gray: Current gray value of the pixel
            x: X coordinate
            y: Y coordinate
            ambient_offset: Brightness drift subtracted before comparison

        Returns:
            True if lit (ties favor lit)
        """
        if not self._has_reference(x, y):
            difference = self._state.difference
            in_range = 0 <= y < difference.shape[0] and 0 <= x < difference.shape[1]
            return bool(gray > (difference[y, x] if in_range else 0))

        lit = self._state.lit_reference[y, x]
        unlit = self._state.unlit_reference[y, x]
        adjusted = gray - ambient_offset

        value_range = max(abs(lit - unlit), 1)
        distance_to_lit = abs(adjusted - lit) / value_range
        distance_to_unlit = abs(adjusted - unlit) / value_range
        return bool(distance_to_lit <= distance_to_unlit)

    def lit_flags(
        self,
        gray: np.ndarray,
        coords: CoordinateList,
        ambient_offset: float = 0.0,
    ) -> np.ndarray:
        """
        Vectorized is_pixel_lit for a list of sample coordinates.

        Args:
            gray: (h, w) gray grid of the current frame
            coords: Sample (x, y) coordinates
            ambient_offset: Brightness drift subtracted before comparison

        Returns:
            Boolean array aligned with coords
        """
        xs, ys = split_coordinates(coords)
        if xs.size == 0:
            return np.zeros(0, dtype=bool)

        height, width = self._state.lit_reference.shape
        if xs.max() >= width or ys.max() >= height or xs.min() < 0 or ys.min() < 0:
            # Degraded path, coordinates outside the reference grids
            return np.array(
                [self.is_pixel_lit(float(gray[y, x]), x, y, ambient_offset) for x, y in coords],
                dtype=bool,
            )

        lit = self._state.lit_reference[ys, xs]
        unlit = self._state.unlit_reference[ys, xs]
        adjusted = gray[ys, xs] - ambient_offset

        value_range = np.maximum(np.abs(lit - unlit), 1)
        distance_to_lit = np.abs(adjusted - lit) / value_range
        distance_to_unlit = np.abs(adjusted - unlit) / value_range
        return distance_to_lit <= distance_to_unlit
