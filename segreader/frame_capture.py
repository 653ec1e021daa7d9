"""
Frame Capture Module for Segment Display Reader

Capture sources that feed frames to the reader:
  - ScreenRegionCapture: a fixed screen rectangle via mss
  - CameraCapture: a local camera via OpenCV
  - ImageSequenceCapture: image files via Pillow (offline runs, tests)

Every source is callable, so an instance can be passed directly as the
reader's capture function.
"""

import itertools
import logging
from pathlib import Path
from typing import Iterable, Optional, Tuple

import cv2
import mss
from mss.exception import ScreenShotError
import numpy as np
from PIL import Image

from segreader.decoder import Frame

logger = logging.getLogger(__name__)


Region = Tuple[int, int, int, int]  # (x, y, width, height)


class FrameSource:
    """Base class for capture sources."""

    name = "source"

    def grab_frame(self) -> Optional[Frame]:
        """
        Capture the current frame.

        Returns:
            Frame, or None if capture failed
        """
        raise NotImplementedError

    def release(self) -> None:
        """Release any held device or handle."""

    def get_status_string(self) -> str:
        """Human-readable status for UI display."""
        return self.name

    def __call__(self) -> Optional[Frame]:
        return self.grab_frame()


def parse_region(text: str) -> Region:
    """
    Parse "x,y,width,height" into a region tuple.

    Raises:
        ValueError: If the text is malformed or the size is not positive
    """
    parts = [int(p.strip()) for p in text.split(",")]
    if len(parts) != 4:
        raise ValueError(f"Region must be x,y,width,height, got {text!r}")
    x, y, width, height = parts
    if width <= 0 or height <= 0:
        raise ValueError(f"Region size must be positive, got {width}x{height}")
    return x, y, width, height


def _capture_with_mss(sct, x: int, y: int, width: int, height: int) -> Optional[Image.Image]:
    """
    Capture screen region using mss.

    Args:
        sct: Open mss instance
        x: Left position
        y: Top position
        width: Width
        height: Height

    Returns:
        PIL Image or None if failed
    """
    try:
        monitor = {
            "left": x,
            "top": y,
            "width": width,
            "height": height
        }
        screenshot = sct.grab(monitor)
        return Image.frombytes(
            "RGB",
            (screenshot.width, screenshot.height),
            screenshot.rgb
        )
    except ScreenShotError as e:
        logger.warning(f"Screen capture failed: {e}")
        return None


class ScreenRegionCapture(FrameSource):
    """
    Captures a fixed rectangle of the screen.

    Example:
        >>> capture = ScreenRegionCapture((100, 200, 320, 80))
        >>> frame = capture.grab_frame()
    """

    name = "screen"

    def __init__(self, region: Region):
        """
        Initialize ScreenRegionCapture.

        Args:
            region: (x, y, width, height) in screen pixels
        """
        self.region = region
        self._sct = None

    def grab_frame(self) -> Optional[Frame]:
        # mss handles are thread-bound, so open lazily on the capturing thread
        if self._sct is None:
            self._sct = mss.mss()
        img = _capture_with_mss(self._sct, *self.region)
        return Frame.from_image(img) if img is not None else None

    def release(self) -> None:
        if self._sct is not None:
            self._sct.close()
            self._sct = None

    def get_status_string(self) -> str:
        x, y, width, height = self.region
        return f"Screen {width}x{height} @ ({x},{y})"


class CameraCapture(FrameSource):
    """
    Captures frames from a local camera with OpenCV.

    Raises:
        RuntimeError: If the camera cannot be opened
    """

    name = "camera"

    def __init__(self, index: int = 0, width: Optional[int] = None, height: Optional[int] = None):
        """
        Initialize CameraCapture.

        Args:
            index: OpenCV camera index
            width: Optional requested frame width
            height: Optional requested frame height
        """
        self.index = index
        self._cap = cv2.VideoCapture(index)
        if width:
            self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, width)
        if height:
            self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
        # Keep buffer small so ticks see the latest frame
        self._cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)

        if not self._cap.isOpened():
            raise RuntimeError(f"Cannot open camera {index}. Is it attached and not in use?")

    def grab_frame(self) -> Optional[Frame]:
        if self._cap is None:
            return None
        ok, bgr = self._cap.read()
        if not ok or bgr is None:
            logger.warning(f"Camera {self.index} read failed")
            return None
        return Frame(cv2.cvtColor(bgr, cv2.COLOR_BGR2RGBA))

    def release(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None

    def get_status_string(self) -> str:
        if self._cap is None:
            return f"Camera {self.index} (released)"
        width = int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        height = int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        return f"Camera {self.index} ({width}x{height})"


class ImageSequenceCapture(FrameSource):
    """
    Serves frames from image files, cycling endlessly.

    Each file is decoded once. Useful for calibrating from saved photos
    and for replaying recorded sessions.
    """

    name = "images"

    def __init__(self, paths: Iterable[Path], loop: bool = True):
        """
        Initialize ImageSequenceCapture.

        Args:
            paths: Image files in playback order
            loop: Restart from the first image after the last one

        Raises:
            ValueError: If no paths are given
        """
        self.paths = [Path(p) for p in paths]
        if not self.paths:
            raise ValueError("ImageSequenceCapture requires at least one image")
        self._frames = [self._load(p) for p in self.paths]
        self._order = itertools.cycle(range(len(self._frames))) if loop else iter(range(len(self._frames)))
        self._position = -1

    @staticmethod
    def _load(path: Path) -> Frame:
        with Image.open(path) as img:
            return Frame(np.array(img.convert("RGBA")))

    def grab_frame(self) -> Optional[Frame]:
        self._position = next(self._order, None)
        if self._position is None:
            return None
        return self._frames[self._position]

    def get_status_string(self) -> str:
        if self._position is None or self._position < 0:
            return f"{len(self.paths)} images"
        return f"{self.paths[self._position].name} ({self._position + 1}/{len(self.paths)})"
