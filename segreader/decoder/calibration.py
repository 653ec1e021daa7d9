"""
Calibration Engine

Locates the segments of six seven-segment digits from two reference frames,
one with every segment lit and one with every segment dark.

Pipeline:
    1. Order the frames by brightness (lit vs unlit)
    2. Per-pixel difference -> detectable mask
    3. Flood fill the background from the corner through non-detectable pixels
    4. Remaining enclosed non-detectable regions are digit "holes"
    5. k-means on hole centroid X groups the 12 holes into 6 digits
    6. Probe fixed offsets around each hole to collect segment sample pixels
    7. Flood fill the decimal point below-right of each digit
"""

import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np

from ..config import ReaderConfiguration
from .grayscale import total_brightness
from .region import flood_fill, grow_region, mask_to_coordinates
from .result import (
    CoordinateList,
    DigitGroup,
    Frame,
    HoleComponent,
    DECIMAL_POINT,
    DIGIT_COUNT,
    HOLES_PER_DIGIT,
    SEGMENT_COUNT,
)

logger = logging.getLogger(__name__)


EXPECTED_HOLES = DIGIT_COUNT * HOLES_PER_DIGIT  # 12 holes
KMEANS_MAX_ITERATIONS = 10

# Segment indices
SEG_A, SEG_B, SEG_C, SEG_D, SEG_E, SEG_F, SEG_G = range(SEGMENT_COUNT)

SegmentSamples = List[List[CoordinateList]]  # [digit][segment] -> [(x, y), ...]


class CalibrationError(Exception):
    """Raised when the reference frames do not yield a usable digit layout."""

    def __init__(self, message: str, hole_count: Optional[int] = None):
        super().__init__(message)
        self.hole_count = hole_count


def empty_segment_samples() -> SegmentSamples:
    """Six digits of eight empty sample lists."""
    return [[[] for _ in range(SEGMENT_COUNT + 1)] for _ in range(DIGIT_COUNT)]


@dataclass
class CalibrationState:
    """
    All geometry and reference data derived from a calibration.

    Grids are (height, width) arrays sized to the calibration frames.
    Reset state is zero-filled grids and empty sample lists.
    """
    width: int
    height: int
    lit_reference: np.ndarray
    unlit_reference: np.ndarray
    difference: np.ndarray
    detectable: np.ndarray
    background: np.ndarray
    holes: List[HoleComponent] = field(default_factory=list)
    groups: List[DigitGroup] = field(default_factory=list)
    segment_samples: SegmentSamples = field(default_factory=empty_segment_samples)
    processing_time_ms: float = 0.0

    @classmethod
    def empty(cls, width: int = 0, height: int = 0) -> "CalibrationState":
        """Zero/empty state for the given canvas size."""
        shape = (height, width)
        return cls(
            width=width,
            height=height,
            lit_reference=np.zeros(shape, dtype=np.float64),
            unlit_reference=np.zeros(shape, dtype=np.float64),
            difference=np.zeros(shape, dtype=np.float64),
            detectable=np.zeros(shape, dtype=np.uint8),
            background=np.zeros(shape, dtype=np.uint8),
        )

    @property
    def sample_count(self) -> int:
        """Total number of sampled pixels across all digits and segments."""
        return sum(len(pixels) for digit in self.segment_samples for pixels in digit)


def order_frames(frame_a: Frame, frame_b: Frame) -> Tuple[Frame, Frame]:
    """
    Return (lit, unlit) by comparing total summed brightness.

    The brighter frame is the lit one, so calibration does not depend on
    the order the frames were captured in.
    """
    if total_brightness(frame_a.pixels) > total_brightness(frame_b.pixels):
        return frame_a, frame_b
    return frame_b, frame_a


def find_hole_components(
    detectable: np.ndarray,
    background: np.ndarray,
    min_pixels: int = 10,
) -> List[HoleComponent]:
    """
    Extract connected non-detectable, non-background regions.

    Args:
        detectable: (h, w) detectable bitmap
        background: (h, w) background bitmap
        min_pixels: Components with this many pixels or fewer are discarded

    Returns:
        Hole components in scan order (top-to-bottom, left-to-right by seed)
    """
    height, width = detectable.shape
    values = detectable.tolist()
    background_rows = background.tolist()
    visited = bytearray(width * height)
    holes: List[HoleComponent] = []

    def include(value, coord, _grid) -> bool:
        x, y = coord
        return value == 0 and not background_rows[y][x]

    candidates = np.argwhere((detectable == 0) & (background == 0))
    for y, x in candidates:
        x = int(x)
        y = int(y)
        if visited[y * width + x]:
            continue
        pixels = flood_fill(values, include, [(x, y)], visited, detectable)
        if len(pixels) > min_pixels:
            pixels.sort(key=lambda coord: (coord[1], coord[0]))
            holes.append(HoleComponent(pixels=pixels))
        elif pixels:
            logger.debug(f"Discarding noise component at ({x},{y}) with {len(pixels)} pixels")

    return holes


def cluster_holes(holes: List[HoleComponent], k: int = DIGIT_COUNT) -> List[DigitGroup]:
    """
    Group holes into k digit positions with 1-D k-means on centroid X.

    Centers are seeded from evenly spaced holes in X order. Ties in distance
    go to the lowest center index. Groups are returned ordered left to
    right by final center, each with holes sorted upper to lower.

    Args:
        holes: Components with computed geometry
        k: Number of clusters

    Returns:
        k DigitGroups (some may hold other than 2 holes)
    """
    if not holes:
        return []

    ordered = sorted(holes, key=lambda h: h.center_x)
    count = len(ordered)
    centers = [ordered[(i * count) // k].center_x for i in range(k)]
    assignments = [0] * count

    changed = True
    iteration = 0
    while changed and iteration < KMEANS_MAX_ITERATIONS:
        changed = False
        iteration += 1

        for j, hole in enumerate(ordered):
            best_k = 0
            best_distance = float("inf")
            for ki, center in enumerate(centers):
                distance = abs(hole.center_x - center)
                if distance < best_distance:
                    best_distance = distance
                    best_k = ki
            if assignments[j] != best_k:
                assignments[j] = best_k
                changed = True

        sums = [0.0] * k
        counts = [0] * k
        for j, hole in enumerate(ordered):
            sums[assignments[j]] += hole.center_x
            counts[assignments[j]] += 1
        for ki in range(k):
            if counts[ki] > 0:
                centers[ki] = sums[ki] / counts[ki]

    logger.debug(f"k-means converged after {iteration} iterations, centers={[round(c, 1) for c in centers]}")

    members: List[List[HoleComponent]] = [[] for _ in range(k)]
    for j, hole in enumerate(ordered):
        members[assignments[j]].append(hole)

    by_center = sorted(zip(centers, members), key=lambda pair: pair[0])
    return [
        DigitGroup(
            position=position,
            center_x=center,
            holes=sorted(group, key=lambda h: h.center_y),
        )
        for position, (center, group) in enumerate(by_center)
    ]


def sample_segments(
    group: DigitGroup,
    detectable: np.ndarray,
    reach: int = 7,
    horizontal_reach: int = 6,
) -> List[CoordinateList]:
    """
    Collect segment sample pixels around a digit's two holes.

    Every hole pixel probes fixed offsets; a probe is kept only if it lands
    on a detectable pixel. The upper hole yields A, F, B and G, the lower
    hole yields E, C and D.

    Args:
        group: Complete digit group (upper hole, lower hole)
        detectable: (h, w) detectable bitmap
        reach: Horizontal probe distance for vertical segments
        horizontal_reach: Vertical probe distance for horizontal segments

    Returns:
        Eight coordinate lists (A-G, decimal point left empty)
    """
    height, width = detectable.shape
    rows = detectable.tolist()
    segments: List[CoordinateList] = [[] for _ in range(SEGMENT_COUNT + 1)]

    def add(index: int, x: int, y: int) -> None:
        if 0 <= x < width and 0 <= y < height and rows[y][x] == 1:
            segments[index].append((x, y))

    upper, lower = group.holes
    for x, y in upper.pixels:
        add(SEG_A, x, y - horizontal_reach)
        add(SEG_F, x - reach, y)
        add(SEG_B, x + reach, y)
        add(SEG_G, x, y + horizontal_reach)

    for x, y in lower.pixels:
        add(SEG_E, x - reach, y)
        add(SEG_C, x + reach, y)
        add(SEG_D, x, y + horizontal_reach)

    return segments


def find_decimal_point(
    difference: np.ndarray,
    segments: List[CoordinateList],
    threshold: float = 40,
    radius: int = 6,
) -> CoordinateList:
    """
    Locate decimal point pixels below and right of a digit.

    Seeds a flood fill over the difference grid two pixels past the
    rightmost and bottommost segment samples, then keeps only pixels
    strictly within `radius` of the seed so blur bleeding into neighbouring
    segments is dropped.

    Args:
        difference: (h, w) lit/unlit difference grid
        segments: Sample lists for segments A-G
        threshold: Minimum difference to grow into
        radius: Half-size of the kept window

    Returns:
        Decimal point coordinates (possibly empty)
    """
    xs = [x for pixels in segments[:SEGMENT_COUNT] for x, _ in pixels]
    ys = [y for pixels in segments[:SEGMENT_COUNT] for _, y in pixels]
    if not xs:
        return []

    seed_x = max(xs) + 2
    seed_y = max(ys) + 2
    mask = grow_region(
        difference,
        lambda value, _coord, _grid: value > threshold,
        seeds=[(seed_x, seed_y)],
    )
    return [
        (x, y) for x, y in mask_to_coordinates(mask)
        if seed_x - radius < x < seed_x + radius and seed_y - radius < y < seed_y + radius
    ]


def calibrate(
    frame_a: Frame,
    frame_b: Frame,
    config: Optional[ReaderConfiguration] = None,
) -> CalibrationState:
    """
    Run the full calibration on two reference frames.

    Args:
        frame_a: One reference frame (lit or unlit)
        frame_b: The other reference frame
        config: Thresholds and sampling geometry

    Returns:
        Populated CalibrationState

    Raises:
        CalibrationError: On size mismatch or wrong hole count
    """
    config = config or ReaderConfiguration()
    start_time = time.perf_counter()

    if frame_a.size != frame_b.size:
        raise CalibrationError(
            f"Calibration frames differ in size: {frame_a.size} vs {frame_b.size}"
        )

    width, height = frame_a.size
    lit, unlit = order_frames(frame_a, frame_b)

    lit_reference = lit.gray.copy()
    unlit_reference = unlit.gray.copy()
    difference = np.abs(lit_reference - unlit_reference)
    detectable = (difference > config.gray_threshold).astype(np.uint8)

    background = grow_region(detectable, lambda value, _coord, _grid: value == 0)

    holes = find_hole_components(detectable, background, config.min_hole_pixels)
    logger.info(
        f"Calibration: {int(detectable.sum())} detectable pixels, "
        f"{int(background.sum())} background pixels, {len(holes)} holes"
    )

    if len(holes) != EXPECTED_HOLES:
        raise CalibrationError(
            f"Found {len(holes)} holes, expected {EXPECTED_HOLES}. "
            "Ensure all segments are visible and in focus, then calibrate again.",
            hole_count=len(holes),
        )

    for hole in holes:
        hole.compute_geometry()

    groups = cluster_holes(holes, DIGIT_COUNT)
    samples = empty_segment_samples()

    for group in groups:
        if not group.is_complete:
            logger.warning(f"Digit {group.position} has {len(group.holes)} holes, expected {HOLES_PER_DIGIT}")
            continue

        segments = sample_segments(group, detectable, config.reach, config.horizontal_reach)
        segments[DECIMAL_POINT] = find_decimal_point(
            difference,
            segments,
            config.decimal_point_flood_fill_threshold,
            config.decimal_point_radius,
        )
        samples[group.position] = segments
        logger.debug(
            f"Digit {group.position}: center_x={group.center_x:.1f}, "
            f"samples={[len(s) for s in segments]}"
        )

    elapsed_ms = (time.perf_counter() - start_time) * 1000
    logger.info(f"Calibration succeeded ({width}x{height}, {elapsed_ms:.1f}ms)")

    return CalibrationState(
        width=width,
        height=height,
        lit_reference=lit_reference,
        unlit_reference=unlit_reference,
        difference=difference,
        detectable=detectable,
        background=background,
        holes=holes,
        groups=groups,
        segment_samples=samples,
        processing_time_ms=elapsed_ms,
    )
