"""
Region Growing

Breadth-first, 8-connected flood fill over a 2D grid with a caller-supplied
inclusion predicate. Used for background, hole and decimal point detection.
"""

from collections import deque
from typing import Any, Callable, Iterable, List, Optional

import numpy as np

from .result import Coordinate, CoordinateList


# include(value, (x, y), grid) -> bool
IncludeFunction = Callable[[Any, Coordinate, np.ndarray], bool]

NEIGHBOR_OFFSETS = (
    (-1, -1), (0, -1), (1, -1),
    (-1, 0),           (1, 0),
    (-1, 1),  (0, 1),  (1, 1),
)


def grow_region(
    grid: np.ndarray,
    include: Optional[IncludeFunction] = None,
    out: Optional[np.ndarray] = None,
    seeds: Optional[Iterable[Coordinate]] = None,
) -> np.ndarray:
    """
    Flood fill outward from the seed coordinates.

    Every in-bounds, not yet examined neighbor of a dequeued coordinate is
    tested once with `include`; matches are marked 1 in the output bitmap
    and queued. Seeds themselves are only marked if reached as a neighbor.

    Args:
        grid: (h, w) array of values handed to the predicate
        include: Predicate deciding membership. None converts the grid to
                 a 0/1 bitmap by truthiness without traversal.
        out: Optional existing (h, w) bitmap to mark into
        seeds: Initial frontier of (x, y) coordinates, default [(0, 0)]

    Returns:
        (h, w) uint8 bitmap of included pixels
    """
    grid = np.asarray(grid)
    if include is None:
        return grid.astype(bool).astype(np.uint8)

    height, width = grid.shape[:2]
    if out is None:
        out = np.zeros((height, width), dtype=np.uint8)

    seeds = list(seeds or [])
    if not seeds:
        seeds.append((0, 0))

    # Python-level lookups are much faster on nested lists than on ndarray scalars
    values = grid.tolist()
    visited = bytearray(width * height)

    for x, y in flood_fill(values, include, seeds, visited, grid):
        out[y, x] = 1

    return out


def flood_fill(
    values: List[List[Any]],
    include: IncludeFunction,
    seeds: Iterable[Coordinate],
    visited: bytearray,
    grid: Optional[np.ndarray] = None,
) -> CoordinateList:
    """
    Breadth-first fill over a nested-list grid, returning the included coordinates.

    `visited` is a row-major width*height flag buffer. Callers that grow many
    regions over one grid pass the same buffer and `values` list to every
    call, so each fill only touches the pixels it examines.

    Args:
        values: Grid as nested lists, indexed values[y][x]
        include: Predicate deciding membership
        seeds: Initial frontier of (x, y) coordinates
        visited: Examined-pixel flags, updated in place
        grid: Grid handed to the predicate as its third argument

    Returns:
        Included coordinates in discovery order
    """
    height = len(values)
    width = len(values[0]) if height else 0
    queue = deque(seeds)
    included: CoordinateList = []

    while queue:
        x, y = queue.popleft()
        for dx, dy in NEIGHBOR_OFFSETS:
            nx = x + dx
            ny = y + dy
            if nx < 0 or ny < 0 or nx >= width or ny >= height:
                continue
            index = ny * width + nx
            if visited[index]:
                continue
            visited[index] = 1
            if include(values[ny][nx], (nx, ny), grid):
                included.append((nx, ny))
                queue.append((nx, ny))

    return included


def mask_to_coordinates(mask: np.ndarray) -> CoordinateList:
    """
    List the (x, y) coordinates of all set pixels in row-major order.

    Args:
        mask: (h, w) bitmap

    Returns:
        Coordinates ordered top-to-bottom, then left-to-right
    """
    ys, xs = np.nonzero(mask)
    return [(int(x), int(y)) for y, x in zip(ys, xs)]


def split_coordinates(coords: CoordinateList) -> List[np.ndarray]:
    """Split a coordinate list into (xs, ys) index arrays for fancy indexing."""
    if not coords:
        empty = np.zeros(0, dtype=np.intp)
        return [empty, empty]
    array = np.asarray(coords, dtype=np.intp)
    return [array[:, 0], array[:, 1]]
