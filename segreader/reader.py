"""
Segment Display Reader

Owns the reader state (calibration frames, calibration geometry, debounce)
and exposes the calibrate / read / refine operations. Notifications go to
listeners registered per event name:

    "change"      {"value": str}    decoded text differs from the previous tick
    "output"      {"value": str}    decoded text persisted over 4 ticks
    "status"      {"message": str}  user-facing status (calibration failures etc.)
    "calibrated"  {"width": int, "height": int}
    "reset"       {}

Example:
    reader = SegmentDisplayReader(capture.grab_frame)
    reader.add_listener("output", lambda event: print(event["value"]))
    reader.capture_calibration_image()   # all segments lit
    reader.capture_calibration_image()   # all segments dark -> calibrates
    reader.read_displays()
"""

import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional, Union

import numpy as np
from PIL import Image

from segreader.config import ReaderConfiguration
from segreader.decoder import (
    CalibrationError,
    CalibrationState,
    DecodedFrame,
    Frame,
    PixelClassifier,
    calibrate,
    decode_frame,
    estimate_ambient_offset,
    refine_samples,
    render_debug_mask,
)
from segreader.stability import NotificationKind, StabilityTracker

logger = logging.getLogger(__name__)


CaptureResult = Union[Frame, Image.Image, np.ndarray, None]
Listener = Callable[[Dict[str, Any]], None]

EVENTS = ("change", "output", "status", "calibrated", "reset")


class SegmentDisplayReader:
    """
    Reads six seven-segment digits from a stream of frames.

    Calibration needs two frames: one with every segment lit and one with
    every segment dark, in either order. After calibration every
    read_displays() call decodes one frame.
    """

    def __init__(
        self,
        capture_frame: Callable[[], CaptureResult],
        configuration: Optional[ReaderConfiguration] = None,
    ):
        """
        Initialize the reader.

        Args:
            capture_frame: Callable returning the current frame (Frame, PIL Image
                           or (h, w, 3|4) uint8 array), or None on capture failure
            configuration: Reader configuration (default configuration if omitted)

        Raises:
            TypeError: If capture_frame is not callable
        """
        if capture_frame is None:
            raise TypeError("SegmentDisplayReader requires a frame capture callable")
        if not callable(capture_frame):
            raise TypeError(f"capture_frame must be callable, got {type(capture_frame).__name__}")

        if configuration is None:
            configuration = ReaderConfiguration()
        elif not isinstance(configuration, ReaderConfiguration):
            logger.warning("Invalid configuration object provided, using default configuration")
            configuration = ReaderConfiguration()

        self._capture_frame = capture_frame
        self.configuration = configuration

        self.calibration_images: List[Frame] = []
        self._calibrated = False
        self._state = CalibrationState.empty()
        self._classifier = PixelClassifier(self._state)
        self._tracker = StabilityTracker()
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)

        # Last tick, kept for debug export
        self._last_frame: Optional[Frame] = None
        self._last_decoded: Optional[DecodedFrame] = None

    # ---------- listeners ----------
    def add_listener(self, event: str, callback: Listener) -> None:
        """Register a callback for one of EVENTS."""
        if event not in EVENTS:
            raise ValueError(f"Unknown event: {event}. Available: {', '.join(EVENTS)}")
        self._listeners[event].append(callback)

    def remove_listener(self, event: str, callback: Listener) -> None:
        """Unregister a callback; unknown callbacks are ignored."""
        if callback in self._listeners.get(event, []):
            self._listeners[event].remove(callback)

    def _emit(self, event: str, **payload: Any) -> None:
        for callback in list(self._listeners.get(event, [])):
            try:
                callback(payload)
            except Exception:
                logger.exception(f"Listener for '{event}' failed")

    def _status(self, message: str) -> None:
        self._emit("status", message=message)

    # ---------- state ----------
    @property
    def calibrated(self) -> bool:
        return self._calibrated

    @property
    def state(self) -> CalibrationState:
        """Current calibration state (empty when uncalibrated)."""
        return self._state

    @property
    def classifier(self) -> PixelClassifier:
        return self._classifier

    @property
    def tracker(self) -> StabilityTracker:
        return self._tracker

    @property
    def last_display(self) -> Optional[str]:
        """Decoded text of the most recent tick."""
        return self._tracker.last_value

    @property
    def last_decoded(self) -> Optional[DecodedFrame]:
        return self._last_decoded

    # ---------- capture ----------
    def capture_image(self) -> Optional[Frame]:
        """
        Grab one frame from the capture source.

        Applies the configured 180 degree rotation.

        Returns:
            Frame, or None if the source returned nothing
        """
        raw = self._capture_frame()
        if raw is None:
            return None

        if isinstance(raw, Frame):
            frame = raw
        elif isinstance(raw, Image.Image):
            frame = Frame.from_image(raw)
        else:
            frame = Frame(np.asarray(raw))

        if self.configuration.rotate180:
            frame = frame.rotated_180()
        return frame

    def capture_calibration_image(self, auto_attempt_calibration: bool = True) -> None:
        """
        Capture the next calibration frame.

        A third capture starts over with a fresh pair. After the second
        frame calibration runs automatically unless disabled.

        Args:
            auto_attempt_calibration: Calibrate as soon as two frames are held
        """
        if len(self.calibration_images) >= 2:
            self.reset_calibration()

        try:
            frame = self.capture_image()
        except Exception as e:
            logger.exception("Calibration capture failed")
            self._status(f"Capture error: {e}")
            return
        if frame is None:
            logger.warning("Calibration capture failed")
            self._status("Capture failed, calibration frame not stored")
            return

        self.calibration_images.append(frame)
        count = len(self.calibration_images)
        logger.info(f"Captured calibration image {count}/2 ({frame.width}x{frame.height})")
        self._status(f"Calibration image {count}/2 captured")

        if count == 2 and auto_attempt_calibration:
            self.attempt_calibration()

    def attempt_calibration(self) -> bool:
        """
        Run calibration on the two held frames.

        On failure all derived state is reset and a status message explains
        why; the reader stays usable for a new pair of frames.

        Returns:
            True if calibration succeeded
        """
        if len(self.calibration_images) != 2:
            logger.warning(f"Calibration needs 2 frames, have {len(self.calibration_images)}")
            self._status("Capture two calibration images first")
            return False

        frame_a, frame_b = self.calibration_images
        try:
            state = calibrate(frame_a, frame_b, self.configuration)
        except CalibrationError as e:
            logger.warning(f"Calibration failed: {e}")
            self.reset_calibration()
            self._status(str(e))
            return False

        self._state = state
        self._classifier = PixelClassifier(state)
        self._tracker.reset()
        self._calibrated = True

        self._status("Calibrated")
        self._emit("calibrated", width=state.width, height=state.height)
        return True

    def reset_calibration(self) -> None:
        """Clear calibration frames and all derived state."""
        width, height = self._state.width, self._state.height
        self._calibrated = False
        self.calibration_images.clear()
        self._state = CalibrationState.empty(width, height)
        self._classifier = PixelClassifier(self._state)
        self._tracker.reset()
        self._last_decoded = None
        logger.info("Calibration reset")
        self._emit("reset")

    # ---------- per-frame ----------
    def _grab_tick_frame(self) -> Optional[Frame]:
        """Capture a frame for a decode/refine tick; None if the tick must be skipped."""
        try:
            frame = self.capture_image()
        except Exception as e:
            logger.exception("Frame capture failed")
            self._status(f"Capture error: {e}")
            return None

        if frame is None:
            logger.debug("Capture returned no frame")
            return None

        if self._calibrated and frame.size != (self._state.width, self._state.height):
            logger.warning(
                f"Frame size {frame.size} differs from calibration "
                f"{(self._state.width, self._state.height)}, skipping tick"
            )
            return None

        return frame

    def read_displays(self) -> Optional[str]:
        """
        Decode one frame and update the debounce state.

        Fires "change" whenever the text differs from the previous tick and
        "output" once the same text has held for 4 consecutive ticks.

        Returns:
            Decoded text, or None if the tick was skipped
        """
        frame = self._grab_tick_frame()
        if frame is None:
            return None

        gray = frame.gray
        offset = estimate_ambient_offset(gray, self._state) if self._calibrated else 0.0
        decoded = decode_frame(gray, self._state, self._classifier, offset)

        self._last_frame = frame
        self._last_decoded = decoded

        for note in self._tracker.update(decoded.text):
            if note.kind is NotificationKind.CHANGED:
                self._emit("change", value=note.value)
            elif note.kind is NotificationKind.STABLE_OUTPUT:
                self._emit("output", value=note.value)

        return decoded.text

    def refine(self) -> int:
        """
        Narrow segment sample sets against the current frame.

        Returns:
            Number of sample sets narrowed (0 when uncalibrated or skipped)
        """
        if not self._calibrated:
            logger.debug("Refine requested while uncalibrated")
            return 0

        frame = self._grab_tick_frame()
        if frame is None:
            return 0

        gray = frame.gray
        offset = estimate_ambient_offset(gray, self._state)
        narrowed = refine_samples(
            gray, self._state, self._classifier, offset, self.configuration.refine_ratio
        )
        logger.info(f"Refined {narrowed} segment sample sets ({self._state.sample_count} samples)")
        return narrowed

    # ---------- debug ----------
    def render_debug_mask(self, frame: Optional[Frame] = None) -> Optional[Image.Image]:
        """
        Render the sampled pixels over a frame.

        Args:
            frame: Frame to render on (default: frame of the last tick)

        Returns:
            PIL Image, or None if no frame is available
        """
        frame = frame or self._last_frame
        if frame is None:
            return None

        offset = estimate_ambient_offset(frame.gray, self._state) if self._calibrated else 0.0
        decoded = self._last_decoded if frame is self._last_frame else None
        return render_debug_mask(
            frame,
            self._state,
            self._classifier,
            offset,
            self.configuration.debug_mask_colors,
            decoded,
        )
