"""
Segment Display Reader - Entry Point

Launches the Control UI window and manages the reader worker thread.

Example:
    python main.py
    python main.py --region 100,200,320,80
    python main.py --source camera --camera-index 1
    python main.py --source images --images lit.png dark.png frame_*.png
"""

import sys
import logging
import argparse
from pathlib import Path
from typing import Optional

from PyQt5.QtWidgets import QApplication

from segreader.control_ui import ControlWindow
from segreader.frame_capture import (
    CameraCapture, FrameSource, ImageSequenceCapture, ScreenRegionCapture, parse_region
)
from segreader.reader_worker import ReaderWorker
from segreader.settings import (
    configuration_from_settings, load_settings, save_settings, update_settings
)


# Configure logging - output to both console and file
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
    handlers=[
        logging.StreamHandler(),  # Console output
        logging.FileHandler("reader.log", mode='w', encoding='utf-8')  # File output
    ]
)
logger = logging.getLogger(__name__)


class Application:
    """
    Main application controller.

    Manages the lifecycle of the UI and worker thread,
    connecting signals between them.
    """

    def __init__(self, args: argparse.Namespace):
        """
        Initialize the application.

        Args:
            args: Parsed command line arguments (override saved settings)
        """
        self.window: Optional[ControlWindow] = None
        self.worker: Optional[ReaderWorker] = None

        # Load persistent settings, CLI flags win
        self.settings = load_settings()
        if args.source:
            self.settings["source"] = args.source
        if args.region:
            self.settings["region"] = list(parse_region(args.region))
        if args.camera_index is not None:
            self.settings["camera_index"] = args.camera_index
        self.image_paths = [Path(p) for p in args.images or []]

        if args.debug:
            logging.getLogger().setLevel(logging.DEBUG)

        self.configuration = configuration_from_settings(self.settings)

    def _create_source(self) -> FrameSource:
        """Build the capture source selected in the settings."""
        source = self.settings.get("source", "screen")
        if source == "camera":
            return CameraCapture(int(self.settings.get("camera_index", 0)))
        if source == "images":
            if self.image_paths:
                return ImageSequenceCapture(self.image_paths)
            logger.warning("Images source saved but no --images given, using screen")
        return ScreenRegionCapture(tuple(self.settings["region"]))

    def setup(self):
        """Set up the UI, start the worker and connect signals."""
        # Create UI window
        self.window = ControlWindow(self.configuration)

        # Connect UI signals to handlers
        self.window.shutdown_requested.connect(self._on_shutdown)
        self.window.gray_threshold_changed.connect(self._on_gray_threshold_changed)
        self.window.dp_threshold_changed.connect(self._on_dp_threshold_changed)
        self.window.rotate180_toggled.connect(self._on_rotate180_toggled)

        source = self._create_source()
        self.worker = ReaderWorker(source, self.configuration)

        # UI commands run on the worker thread
        self.window.calibrate_requested.connect(self.worker.request_calibration_capture)
        self.window.reset_requested.connect(self.worker.request_reset)
        self.window.refine_requested.connect(self.worker.request_refine)
        self.window.debug_requested.connect(self.worker.request_debug_image)

        # Connect worker signals to UI
        self.worker.status_changed.connect(self.window.set_status)
        self.worker.value_changed.connect(self.window.set_value)
        self.worker.output_ready.connect(self._on_output)
        self.worker.calibration_changed.connect(self.window.set_calibrated)
        self.worker.calibration_progress.connect(self.window.set_calibration_progress)
        self.worker.fps_update.connect(self.window.set_fps_info)
        self.worker.debug_saved.connect(lambda path: self.window.set_status(f"Debug image saved: {path}"))
        self.worker.error_occurred.connect(self._on_error)

        self.window.set_source_info(source.get_status_string())
        self.worker.start()

        logger.info(f"Application initialized, source: {source.get_status_string()}")

    def _on_output(self, value: str):
        """Handle a stable output from the worker."""
        logger.info(f"Output: {value!r}")
        self.window.add_history(value)

    def _on_error(self, error_msg: str):
        """Handle worker error."""
        logger.error(f"Worker error: {error_msg}")
        self.window.set_status(f"Error: {error_msg}")

    def _on_gray_threshold_changed(self, value: int):
        self.configuration.gray_threshold = value
        self._save()

    def _on_dp_threshold_changed(self, value: int):
        self.configuration.decimal_point_flood_fill_threshold = value
        self._save()

    def _on_rotate180_toggled(self, enabled: bool):
        logger.info(f"Rotate 180 toggled: {enabled}")
        self.configuration.rotate180 = enabled
        self._save()

    def _save(self):
        """Persist the current configuration."""
        save_settings(update_settings(self.settings, self.configuration))

    def _on_shutdown(self):
        """Handle window close."""
        logger.info("Shutdown requested")
        if not self.worker or not self.worker.isRunning():
            return

        # Request stop and wait
        self.worker.request_stop()
        self.worker.wait(2000)  # 2 second timeout

        if self.worker.isRunning():
            logger.warning("Worker did not stop gracefully, terminating")
            self.worker.terminate()
            self.worker.wait()

        self.worker = None

    def run(self) -> int:
        """
        Run the application.

        Returns:
            Exit code
        """
        self.window.show()
        return 0


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Segment Display Reader - reads a six digit seven-segment display"
    )
    parser.add_argument(
        "--source", "-s",
        choices=["screen", "camera", "images"],
        help="Capture source (default: saved setting, initially screen)"
    )
    parser.add_argument(
        "--region", "-r",
        help="Screen region as x,y,width,height"
    )
    parser.add_argument(
        "--camera-index", "-c",
        type=int,
        help="OpenCV camera index"
    )
    parser.add_argument(
        "--images", "-i",
        nargs="+",
        help="Image files for the images source, played in order"
    )
    parser.add_argument(
        "--debug", "-d",
        action="store_true",
        help="Enable debug logging"
    )
    args = parser.parse_args()
    if args.source == "images" and not args.images:
        parser.error("--source images requires --images")
    return args


def main():
    """Initialize and run the Segment Display Reader application."""
    args = parse_args()

    app = QApplication(sys.argv)

    application = Application(args)
    application.setup()
    application.run()

    sys.exit(app.exec_())


if __name__ == "__main__":
    main()
