"""
Decoder Result Dataclasses

Shared data structures for frames, calibration geometry and decode results.
"""

from dataclasses import dataclass, field
from functools import cached_property
from typing import List, Optional, Tuple

import numpy as np
from PIL import Image

from .grayscale import to_gray


Coordinate = Tuple[int, int]  # (x, y)
CoordinateList = List[Coordinate]

# Segment indices: A-G then the decimal point
SEGMENT_NAMES = ("A", "B", "C", "D", "E", "F", "G", "DP")
SEGMENT_COUNT = 7
DECIMAL_POINT = 7
DIGIT_COUNT = 6
HOLES_PER_DIGIT = 2


@dataclass(frozen=True, eq=False)
class Frame:
    """
    Immutable snapshot of a captured frame.

    Pixels are a uint8 array of shape (height, width, 4) in RGBA order.
    RGB input is accepted and padded with an opaque alpha channel.
    """
    pixels: np.ndarray

    def __post_init__(self):
        pixels = np.asarray(self.pixels, dtype=np.uint8)
        if pixels.ndim != 3 or pixels.shape[2] not in (3, 4):
            raise ValueError(f"Frame pixels must be (h, w, 3|4), got {pixels.shape}")
        if pixels.shape[2] == 3:
            alpha = np.full(pixels.shape[:2] + (1,), 255, dtype=np.uint8)
            pixels = np.concatenate([pixels, alpha], axis=2)
        pixels = np.ascontiguousarray(pixels)
        pixels.setflags(write=False)
        object.__setattr__(self, "pixels", pixels)

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> Tuple[int, int]:
        """(width, height) of the frame."""
        return self.width, self.height

    @cached_property
    def gray(self) -> np.ndarray:
        """(height, width) float64 grid of gray values."""
        return to_gray(self.pixels)

    @classmethod
    def from_image(cls, image: Image.Image) -> "Frame":
        """Create a Frame from a PIL Image of any mode."""
        return cls(np.array(image.convert("RGBA")))

    def to_image(self) -> Image.Image:
        return Image.fromarray(np.array(self.pixels), "RGBA")

    def rotated_180(self) -> "Frame":
        return Frame(self.pixels[::-1, ::-1])


@dataclass
class BoundingRect:
    """Axis-aligned pixel rectangle."""
    x: int
    y: int
    width: int
    height: int


@dataclass
class HoleComponent:
    """
    Enclosed dark region inside a digit outline.

    Each calibrated digit owns two of these (upper and lower hole),
    which anchor the segment sampling offsets.
    """
    pixels: CoordinateList
    center_x: Optional[float] = None
    center_y: Optional[float] = None
    rect: Optional[BoundingRect] = None

    def compute_geometry(self) -> None:
        """Fill in centroid and bounding rectangle from the pixel list."""
        xs = [x for x, _ in self.pixels]
        ys = [y for _, y in self.pixels]
        count = len(self.pixels)
        self.center_x = sum(xs) / count
        self.center_y = sum(ys) / count
        left, top = min(xs), min(ys)
        self.rect = BoundingRect(
            x=left,
            y=top,
            width=max(xs) - left + 1,
            height=max(ys) - top + 1,
        )


@dataclass
class DigitGroup:
    """Holes clustered to one digit position, ordered upper then lower."""
    position: int
    center_x: float
    holes: List[HoleComponent] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return len(self.holes) == HOLES_PER_DIGIT


@dataclass
class DecodedFrame:
    """Result of one decode tick."""
    text: str                                               # Corrected output string
    bitmasks: List[int] = field(default_factory=list)       # Per-digit segment mask
    decimal_points: List[bool] = field(default_factory=list)
    ambient_offset: float = 0.0
    processing_time_ms: float = 0.0
