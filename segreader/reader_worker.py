"""
Reader Worker Module for Segment Display Reader

Provides a background QThread worker that drives the periodic read tick.
Communicates with the UI via Qt signals for thread-safe status updates.

UI actions (calibration capture, reset, refine, debug export) are queued
and executed inside the worker loop, so calibration never overlaps a
decode tick.
"""

import logging
import queue
import time
from datetime import datetime
from typing import List, Optional

from PyQt5.QtCore import QThread, pyqtSignal

from segreader.config import ReaderConfiguration
from segreader.decoder.debug import save_debug_image, DEBUG_DIR
from segreader.frame_capture import FrameSource
from segreader.reader import SegmentDisplayReader


# Configure module logger
logger = logging.getLogger(__name__)


# Worker commands
CMD_CAPTURE_CALIBRATION = "capture_calibration"
CMD_RESET = "reset"
CMD_REFINE = "refine"
CMD_SAVE_DEBUG = "save_debug"


class ReaderWorker(QThread):
    """
    Background worker thread for the read loop.

    Runs a continuous loop that:
    1. Executes queued commands from the UI
    2. Decodes one frame per tick while calibrated
    3. Sleeps to keep the fixed tick interval

    Signals:
        status_changed(str): Emitted when reader status changes
        value_changed(str): Emitted when the decoded text changes
        output_ready(str): Emitted when the decoded text is stable
        calibration_changed(bool): Emitted when calibration succeeds or resets
        calibration_progress(int): Calibration frames held after a capture
        fps_update(float, float): Rolling tick rate and cap
        debug_saved(str): Path of a saved debug image
        error_occurred(str): Emitted when an error occurs

    Example:
        worker = ReaderWorker(ScreenRegionCapture(region))
        worker.output_ready.connect(ui.add_history)
        worker.start()
        worker.request_calibration_capture()  # all lit
        worker.request_calibration_capture()  # all dark
        # ...
        worker.request_stop()
        worker.wait()
    """

    # Signals for UI updates (thread-safe)
    status_changed = pyqtSignal(str)
    value_changed = pyqtSignal(str)
    output_ready = pyqtSignal(str)
    calibration_changed = pyqtSignal(bool)
    calibration_progress = pyqtSignal(int)     # calibration frames held
    fps_update = pyqtSignal(float, float)      # current_fps, fps_cap
    debug_saved = pyqtSignal(str)
    error_occurred = pyqtSignal(str)

    # Performance constants
    MIN_FRAME_TIME_MS = 100  # 10 FPS cap
    FPS_CAP = 10.0
    FPS_WINDOW_SIZE = 10     # Rolling average window

    # Idle poll while uncalibrated
    IDLE_POLL_MS = 50

    def __init__(self, source: FrameSource, configuration: Optional[ReaderConfiguration] = None):
        """
        Initialize the reader worker.

        Args:
            source: Frame capture source
            configuration: Reader configuration shared with the UI
        """
        super().__init__()
        self._source = source
        self._running = False
        self._commands: "queue.Queue[str]" = queue.Queue()

        self.reader = SegmentDisplayReader(source, configuration)
        self.reader.add_listener("change", lambda e: self.value_changed.emit(e["value"]))
        self.reader.add_listener("output", lambda e: self.output_ready.emit(e["value"]))
        self.reader.add_listener("status", lambda e: self.status_changed.emit(e["message"]))
        self.reader.add_listener("calibrated", lambda e: self.calibration_changed.emit(True))
        self.reader.add_listener("reset", lambda e: self.calibration_changed.emit(False))

        # Last tracker state shown in the status line
        self._tracker_state: Optional[str] = None

        # FPS tracking
        self._frame_times: List[float] = []

    def run(self):
        """
        Main worker loop. Called when thread starts.

        Ticks only while the reader is calibrated; otherwise it just
        services queued commands.
        """
        self._running = True
        self._frame_times.clear()

        logger.info("Reader worker started")
        self.status_changed.emit("Waiting for calibration")

        while self._running:
            frame_start = time.perf_counter()

            try:
                self._process_commands()
                if not self.reader.calibrated:
                    self.msleep(self.IDLE_POLL_MS)
                    continue
                self._tick()
            except Exception as e:
                logger.exception("Error in worker cycle")
                self.error_occurred.emit(str(e))

            # Calculate frame time and FPS
            frame_time_ms = (time.perf_counter() - frame_start) * 1000
            self._update_fps(frame_time_ms)

            # Throttle to maintain FPS cap
            if frame_time_ms < self.MIN_FRAME_TIME_MS:
                self.msleep(int(self.MIN_FRAME_TIME_MS - frame_time_ms))

        # Cleanup
        self._source.release()
        logger.info("Reader worker stopped")

    def _process_commands(self) -> None:
        """Run every queued UI command in order."""
        handlers = {
            CMD_CAPTURE_CALIBRATION: self._capture_calibration_image,
            CMD_RESET: self.reader.reset_calibration,
            CMD_REFINE: self._refine,
            CMD_SAVE_DEBUG: self._save_debug_image,
        }
        while True:
            try:
                command = self._commands.get_nowait()
            except queue.Empty:
                return
            logger.debug(f"Worker command: {command}")
            handlers[command]()

    def _enqueue(self, command: str) -> None:
        self._commands.put(command)

    def request_calibration_capture(self):
        """Capture the next calibration frame on the worker thread."""
        self._enqueue(CMD_CAPTURE_CALIBRATION)

    def request_reset(self):
        """Reset calibration on the worker thread."""
        self._enqueue(CMD_RESET)

    def request_refine(self):
        """Run one sample refinement pass on the worker thread."""
        self._enqueue(CMD_REFINE)

    def request_debug_image(self):
        """Save a debug overlay of the last frame on the worker thread."""
        self._enqueue(CMD_SAVE_DEBUG)

    def request_stop(self):
        """
        Request the worker to stop gracefully.

        The worker will complete its current cycle before stopping.
        Use wait() after calling this to block until stopped.
        """
        logger.info("Stop requested")
        self._running = False

    def _tick(self) -> None:
        """Run one decode tick and report stability transitions in the status line."""
        self.reader.read_displays()
        state = self.reader.tracker.get_state_string()
        if state != self._tracker_state:
            self._tracker_state = state
            self.status_changed.emit(state)

    def _capture_calibration_image(self) -> None:
        self.reader.capture_calibration_image()
        self.calibration_progress.emit(len(self.reader.calibration_images))

    def _refine(self) -> None:
        narrowed = self.reader.refine()
        self.status_changed.emit(f"Refined {narrowed} segments")

    def _update_fps(self, frame_time_ms: float) -> None:
        """
        Update FPS rolling average and emit signal.

        Args:
            frame_time_ms: Time taken for current frame in milliseconds
        """
        # Add current frame time to window
        self._frame_times.append(max(frame_time_ms, self.MIN_FRAME_TIME_MS))

        # Keep only last N frames
        if len(self._frame_times) > self.FPS_WINDOW_SIZE:
            self._frame_times.pop(0)

        avg_frame_time = sum(self._frame_times) / len(self._frame_times)
        current_fps = 1000.0 / avg_frame_time if avg_frame_time > 0 else 0.0

        # Emit FPS update
        self.fps_update.emit(current_fps, self.FPS_CAP)

    def _save_debug_image(self) -> Optional[str]:
        """
        Save the last frame with the sample overlay to the debug directory.

        Returns:
            Path to saved file, or None if no frame available
        """
        image = self.reader.render_debug_mask()
        if image is None:
            logger.warning("No frame available for debug image")
            return None

        # Generate timestamped filename
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")[:-3]
        filepath = DEBUG_DIR / f"debug_{timestamp}.png"

        save_debug_image(image, str(filepath))

        logger.info(f"Debug image saved: {filepath}")
        self.debug_saved.emit(str(filepath))
        return str(filepath)
