"""
Decoder Debug Utilities

Renders the sampled segment pixels over a frame and manages saved
debug images.
"""

from pathlib import Path
from typing import List, Optional, Tuple

import numpy as np
from PIL import Image, ImageDraw, ImageFont

from .calibration import CalibrationState
from .classifier import PixelClassifier
from .region import split_coordinates
from .result import DecodedFrame, Frame


# Debug settings
DEBUG_DIR = Path("./debug")
MAX_DEBUG_IMAGES = 10

RGB = Tuple[int, int, int]


def render_debug_mask(
    frame: Frame,
    state: CalibrationState,
    classifier: PixelClassifier,
    ambient_offset: float,
    colors: List[Tuple[RGB, RGB]],
    decoded: Optional[DecodedFrame] = None,
) -> Image.Image:
    """
    Paint every sampled pixel with its digit's lit or unlit color.

    Annotations include:
    - Sample pixels colored per digit (bright = lit, dark = unlit)
    - Hole bounding boxes of each calibrated digit
    - Decoded text and ambient offset

    Args:
        frame: Current frame
        state: Calibration state with segment samples
        classifier: Pixel classifier bound to the same state
        ambient_offset: Brightness drift for this frame
        colors: Per-digit (unlit, lit) RGB pairs
        decoded: Optional decode result to print

    Returns:
        RGB PIL Image
    """
    pixels = np.array(frame.pixels[..., :3])
    gray = frame.gray

    for digit, digit_segments in enumerate(state.segment_samples):
        unlit_color, lit_color = colors[digit % len(colors)]
        for samples in digit_segments:
            if not samples:
                continue
            flags = classifier.lit_flags(gray, samples, ambient_offset)
            xs, ys = split_coordinates(samples)
            pixels[ys[flags], xs[flags]] = lit_color
            pixels[ys[~flags], xs[~flags]] = unlit_color

    debug_img = Image.fromarray(pixels, "RGB")
    draw = ImageDraw.Draw(debug_img)

    try:
        font = ImageFont.truetype("arial.ttf", 12)
    except OSError:
        font = ImageFont.load_default()

    for group in state.groups:
        for hole in group.holes:
            if hole.rect is None:
                continue
            r = hole.rect
            draw.rectangle([r.x, r.y, r.x + r.width - 1, r.y + r.height - 1], outline="blue")

    if decoded is not None:
        summary = f"'{decoded.text}'  ambient: {decoded.ambient_offset:+.1f}"
        draw.text((4, 4), summary, fill="blue", font=font)

    return debug_img


def save_debug_image(image: Image.Image, path: str) -> None:
    """
    Save a rendered debug image and prune old ones.

    Args:
        image: Rendered PIL Image
        path: Output file path
    """
    # Ensure output directory exists
    Path(path).parent.mkdir(parents=True, exist_ok=True)

    image.save(path, "PNG")

    # Cleanup old debug images
    _cleanup_debug_images()


def _cleanup_debug_images() -> None:
    """Remove old debug images, keeping only the most recent MAX_DEBUG_IMAGES."""
    if not DEBUG_DIR.exists():
        return

    # Get all debug images sorted by modification time
    debug_files = sorted(
        DEBUG_DIR.glob("debug_*.png"),
        key=lambda p: p.stat().st_mtime,
        reverse=True
    )

    # Remove old files
    for old_file in debug_files[MAX_DEBUG_IMAGES:]:
        try:
            old_file.unlink()
        except OSError:
            pass
