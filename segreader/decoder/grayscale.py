"""
Grayscale Sampling

Converts RGBA frame buffers to per-pixel gray values (mean of R, G, B).
"""

import numpy as np


def to_gray(pixels: np.ndarray) -> np.ndarray:
    """
    Convert an (h, w, 3|4) pixel array to a float64 gray grid.

    Args:
        pixels: uint8 RGB or RGBA array

    Returns:
        (h, w) array of gray values in [0, 255]
    """
    rgb = pixels[..., :3].astype(np.float64)
    return rgb.sum(axis=2) / 3.0


def pixel_gray(pixels: np.ndarray, x: int, y: int) -> float:
    """Gray value of a single pixel."""
    r, g, b = pixels[y, x, :3]
    return (int(r) + int(g) + int(b)) / 3.0


def total_brightness(pixels: np.ndarray) -> int:
    """Non-normalized sum of R+G+B over the whole frame."""
    return int(pixels[..., :3].sum(dtype=np.int64))
