"""
Shared fixtures: a synthetic six digit seven-segment display.

Each digit is a 14x22 "8" outline with 4 pixel thick segments and two
6x5 holes, plus a 3x3 decimal point below-right. Digits sit 24 pixels
apart, so the default sampling reach (7 / 6) lands every probe on a
single segment of its own digit.
"""

import sys
from pathlib import Path
from typing import Optional, Sequence

import numpy as np
import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from segreader.decoder import Frame


MARGIN = 5
PITCH = 24
WIDTH = 2 * MARGIN + 6 * PITCH   # 154
HEIGHT = 45

# Inclusive (x0, y0, x1, y1) relative to the digit origin, in A-G order
SEGMENT_RECTS = (
    (0, 0, 13, 3),     # A
    (10, 0, 13, 12),   # B
    (10, 9, 13, 21),   # C
    (0, 18, 13, 21),   # D
    (0, 9, 3, 21),     # E
    (0, 0, 3, 12),     # F
    (0, 9, 13, 12),    # G
)
DECIMAL_POINT_RECT = (15, 22, 17, 24)

# Bitmasks for "0".."9"
DIGIT_MASKS = {
    "0": 63, "1": 6, "2": 91, "3": 79, "4": 102,
    "5": 109, "6": 125, "7": 7, "8": 127, "9": 111,
}
ALL_ON = 127


class SyntheticDisplay:
    """Renders frames of the synthetic display."""

    width = WIDTH
    height = HEIGHT

    @staticmethod
    def origin(position: int):
        return MARGIN + position * PITCH, MARGIN

    def render(
        self,
        masks: Sequence[int],
        points: Optional[Sequence[bool]] = None,
        on: int = 255,
        off: int = 0,
        background: int = 0,
    ) -> Frame:
        """
        Render one frame.

        Args:
            masks: Six segment bitmasks (bit i = segment i)
            points: Six decimal point flags
            on: Gray value of lit segments
            off: Gray value of unlit segments
            background: Gray value everywhere else
        """
        points = points or [False] * 6
        gray = np.full((HEIGHT, WIDTH), background, dtype=np.uint8)
        for position, (mask, point) in enumerate(zip(masks, points)):
            ox, oy = self.origin(position)
            for segment, (x0, y0, x1, y1) in enumerate(SEGMENT_RECTS):
                value = on if mask & (1 << segment) else off
                gray[oy + y0:oy + y1 + 1, ox + x0:ox + x1 + 1] = value
            x0, y0, x1, y1 = DECIMAL_POINT_RECT
            gray[oy + y0:oy + y1 + 1, ox + x0:ox + x1 + 1] = on if point else off
        return Frame(np.repeat(gray[:, :, None], 3, axis=2))

    def text(self, text: str, **kwargs) -> Frame:
        """Render six digit characters, a "." after a digit lights its point."""
        masks = []
        points = []
        for char in text:
            if char == ".":
                points[-1] = True
                continue
            masks.append(DIGIT_MASKS[char])
            points.append(False)
        return self.render(masks, points, **kwargs)

    def lit(self, **kwargs) -> Frame:
        return self.render([ALL_ON] * 6, [True] * 6, **kwargs)

    def dark(self, background: int = 0) -> Frame:
        return self.render([0] * 6, [False] * 6, on=background, off=background, background=background)


@pytest.fixture
def display() -> SyntheticDisplay:
    return SyntheticDisplay()


class FrameFeed:
    """Capture callable serving queued frames, repeating the last one."""

    def __init__(self):
        self.frames = []
        self.last = None
        self.calls = 0

    def push(self, *frames: Frame) -> None:
        self.frames.extend(frames)

    def __call__(self) -> Optional[Frame]:
        self.calls += 1
        if self.frames:
            self.last = self.frames.pop(0)
        return self.last


@pytest.fixture
def feed() -> FrameFeed:
    return FrameFeed()
