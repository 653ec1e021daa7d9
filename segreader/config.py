"""
Reader Configuration

Tunable thresholds and geometry for calibration and decoding.
Every property validates on write; invalid values are ignored and the
previous value is kept.
"""

import copy
import logging
import math
from typing import Any, Dict, List, Tuple

logger = logging.getLogger(__name__)


RGB = Tuple[int, int, int]

# Per-digit (unlit, lit) colors for the debug overlay
DEFAULT_DEBUG_MASK_COLORS: List[Tuple[RGB, RGB]] = [
    ((82, 4, 10), (233, 26, 33)),
    ((91, 38, 18), (255, 136, 42)),
    ((82, 67, 0), (255, 242, 0)),
    ((12, 71, 30), (32, 200, 72)),
    ((0, 42, 79), (0, 162, 232)),
    ((61, 12, 61), (143, 56, 144)),
]

DEFAULT_GRAY_THRESHOLD = 90
DEFAULT_DECIMAL_POINT_FLOOD_FILL_THRESHOLD = 40

# Sampling geometry tuned for one physical display; exposed for other sizes
DEFAULT_REACH = 7               # Horizontal offset from hole to vertical segments
DEFAULT_HORIZONTAL_REACH = 6    # Vertical offset from hole to horizontal segments
DEFAULT_DECIMAL_POINT_RADIUS = 6
DEFAULT_MIN_HOLE_PIXELS = 10    # Components must be strictly larger
DEFAULT_REFINE_RATIO = 0.7


def _is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if not isinstance(value, (int, float)):
        return False
    return not math.isnan(value)


class ReaderConfiguration:
    """
    Configuration surface for SegmentDisplayReader.

    Attributes:
        gray_threshold: Minimum lit/unlit gray difference for a detectable pixel
        decimal_point_flood_fill_threshold: Minimum difference to grow the decimal point
        rotate180: Rotate captured frames by 180 degrees
        debug_mask_colors: Per-digit (unlit, lit) RGB colors for the debug overlay
        reach: Horizontal probe distance from hole pixels
        horizontal_reach: Vertical probe distance from hole pixels
        decimal_point_radius: Half-size of the window kept around the decimal point seed
        min_hole_pixels: Hole components at or below this size are noise
        refine_ratio: Fraction of agreeing pixels required to narrow a sample set
    """

    def __init__(self, **overrides: Any):
        self._gray_threshold = DEFAULT_GRAY_THRESHOLD
        self._decimal_point_flood_fill_threshold = DEFAULT_DECIMAL_POINT_FLOOD_FILL_THRESHOLD
        self._rotate180 = False
        self._debug_mask_colors = copy.deepcopy(DEFAULT_DEBUG_MASK_COLORS)
        self._reach = DEFAULT_REACH
        self._horizontal_reach = DEFAULT_HORIZONTAL_REACH
        self._decimal_point_radius = DEFAULT_DECIMAL_POINT_RADIUS
        self._min_hole_pixels = DEFAULT_MIN_HOLE_PIXELS
        self._refine_ratio = DEFAULT_REFINE_RATIO

        for key, value in overrides.items():
            if not isinstance(getattr(type(self), key, None), property):
                raise TypeError(f"Unknown configuration option: {key}")
            setattr(self, key, value)

    # ---------- thresholds ----------
    @property
    def gray_threshold(self) -> float:
        return self._gray_threshold

    @gray_threshold.setter
    def gray_threshold(self, value: Any) -> None:
        if _is_number(value) and 0 < value < 255:
            self._gray_threshold = value
        else:
            logger.debug(f"Ignoring invalid gray_threshold: {value!r}")

    @property
    def decimal_point_flood_fill_threshold(self) -> float:
        return self._decimal_point_flood_fill_threshold

    @decimal_point_flood_fill_threshold.setter
    def decimal_point_flood_fill_threshold(self, value: Any) -> None:
        if _is_number(value) and 0 < value < 255:
            self._decimal_point_flood_fill_threshold = value
        else:
            logger.debug(f"Ignoring invalid decimal_point_flood_fill_threshold: {value!r}")

    @property
    def rotate180(self) -> bool:
        return self._rotate180

    @rotate180.setter
    def rotate180(self, value: Any) -> None:
        if isinstance(value, bool):
            self._rotate180 = value
        else:
            logger.debug(f"Ignoring invalid rotate180: {value!r}")

    @property
    def debug_mask_colors(self) -> List[Tuple[RGB, RGB]]:
        return self._debug_mask_colors

    @debug_mask_colors.setter
    def debug_mask_colors(self, value: Any) -> None:
        try:
            colors = [(tuple(int(c) for c in off), tuple(int(c) for c in on)) for off, on in value]
        except (TypeError, ValueError):
            logger.debug(f"Ignoring invalid debug_mask_colors: {value!r}")
            return
        if len(colors) < len(DEFAULT_DEBUG_MASK_COLORS) or any(
            len(rgb) != 3 for pair in colors for rgb in pair
        ):
            logger.debug(f"Ignoring invalid debug_mask_colors: {value!r}")
            return
        self._debug_mask_colors = colors

    # ---------- geometry ----------
    def _set_positive_int(self, name: str, value: Any) -> None:
        if isinstance(value, int) and not isinstance(value, bool) and value > 0:
            setattr(self, f"_{name}", value)
        else:
            logger.debug(f"Ignoring invalid {name}: {value!r}")

    @property
    def reach(self) -> int:
        return self._reach

    @reach.setter
    def reach(self, value: Any) -> None:
        self._set_positive_int("reach", value)

    @property
    def horizontal_reach(self) -> int:
        return self._horizontal_reach

    @horizontal_reach.setter
    def horizontal_reach(self, value: Any) -> None:
        self._set_positive_int("horizontal_reach", value)

    @property
    def decimal_point_radius(self) -> int:
        return self._decimal_point_radius

    @decimal_point_radius.setter
    def decimal_point_radius(self, value: Any) -> None:
        self._set_positive_int("decimal_point_radius", value)

    @property
    def min_hole_pixels(self) -> int:
        return self._min_hole_pixels

    @min_hole_pixels.setter
    def min_hole_pixels(self, value: Any) -> None:
        self._set_positive_int("min_hole_pixels", value)

    @property
    def refine_ratio(self) -> float:
        return self._refine_ratio

    @refine_ratio.setter
    def refine_ratio(self, value: Any) -> None:
        if _is_number(value) and 0 < value < 1:
            self._refine_ratio = float(value)
        else:
            logger.debug(f"Ignoring invalid refine_ratio: {value!r}")

    # ---------- persistence ----------
    def to_dict(self) -> Dict[str, Any]:
        """Serializable snapshot of all options."""
        return {
            "gray_threshold": self.gray_threshold,
            "decimal_point_flood_fill_threshold": self.decimal_point_flood_fill_threshold,
            "rotate180": self.rotate180,
            "debug_mask_colors": [[list(off), list(on)] for off, on in self.debug_mask_colors],
            "reach": self.reach,
            "horizontal_reach": self.horizontal_reach,
            "decimal_point_radius": self.decimal_point_radius,
            "min_hole_pixels": self.min_hole_pixels,
            "refine_ratio": self.refine_ratio,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReaderConfiguration":
        """
        Build a configuration from a settings dictionary.

        Unknown keys are skipped and invalid values fall back to defaults.
        """
        config = cls()
        for key, value in data.items():
            if isinstance(getattr(cls, key, None), property):
                setattr(config, key, value)
        return config

    def __repr__(self) -> str:
        return (
            f"ReaderConfiguration(gray_threshold={self.gray_threshold}, "
            f"decimal_point_flood_fill_threshold={self.decimal_point_flood_fill_threshold}, "
            f"rotate180={self.rotate180})"
        )
