"""
Control UI Module for Segment Display Reader

Provides a PyQt5-based control window for calibrating the reader and
watching its output. Includes calibration controls, the live and stable
readout, output history and configuration fields.
"""

from PyQt5.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QLabel, QPushButton, QHBoxLayout,
    QListWidget, QSpinBox, QCheckBox, QFormLayout
)
from PyQt5.QtCore import Qt, pyqtSignal
from PyQt5.QtGui import QFont

from segreader.config import ReaderConfiguration


# History entries kept in the list
MAX_HISTORY = 200


class ControlWindow(QMainWindow):
    """
    Main control window for the Segment Display Reader application.

    Provides UI controls for calibration and displays the decoded value,
    stable output history and reader status.
    """

    # Signals for worker thread communication
    calibrate_requested = pyqtSignal()
    reset_requested = pyqtSignal()
    refine_requested = pyqtSignal()
    debug_requested = pyqtSignal()            # Request debug image save
    shutdown_requested = pyqtSignal()
    gray_threshold_changed = pyqtSignal(int)
    dp_threshold_changed = pyqtSignal(int)
    rotate180_toggled = pyqtSignal(bool)

    def __init__(self, configuration: ReaderConfiguration):
        super().__init__()
        self._calibrated = False
        self._frames_held = 0
        self._init_ui(configuration)

    def _init_ui(self, configuration: ReaderConfiguration):
        """Initialize the user interface components."""
        # Window configuration
        self.setWindowTitle("Segment Display Reader")
        self.setMinimumSize(340, 520)
        self.setWindowFlags(self.windowFlags() | Qt.WindowStaysOnTopHint)

        # Central widget and layout
        central_widget = QWidget()
        self.setCentralWidget(central_widget)
        layout = QVBoxLayout()
        layout.setSpacing(10)
        layout.setContentsMargins(20, 20, 20, 20)
        central_widget.setLayout(layout)

        # Status label
        self.status_label = QLabel("Status: Waiting for calibration")
        self.status_label.setAlignment(Qt.AlignCenter)
        self.status_label.setWordWrap(True)
        status_font = QFont()
        status_font.setPointSize(10)
        status_font.setBold(True)
        self.status_label.setFont(status_font)
        layout.addWidget(self.status_label)

        # Live readout
        self.output_label = QLabel("------")
        self.output_label.setAlignment(Qt.AlignCenter)
        output_font = QFont("Courier New")
        output_font.setPointSize(28)
        output_font.setBold(True)
        self.output_label.setFont(output_font)
        layout.addWidget(self.output_label)

        # Calibrate button
        self.calibrate_button = QPushButton("CAPTURE LIT FRAME")
        self.calibrate_button.setMinimumHeight(50)
        button_font = QFont()
        button_font.setPointSize(11)
        button_font.setBold(True)
        self.calibrate_button.setFont(button_font)
        self.calibrate_button.clicked.connect(self._on_calibrate_clicked)
        layout.addWidget(self.calibrate_button)

        # Secondary actions
        actions_layout = QHBoxLayout()
        self.reset_button = QPushButton("Reset")
        self.reset_button.clicked.connect(self.reset_requested.emit)
        self.refine_button = QPushButton("Refine")
        self.refine_button.clicked.connect(self.refine_requested.emit)
        self.refine_button.setEnabled(False)  # Disabled until calibrated
        self.debug_button = QPushButton("Save Debug Image")
        self.debug_button.clicked.connect(self.debug_requested.emit)
        for button in (self.reset_button, self.refine_button, self.debug_button):
            button.setMinimumHeight(35)
            actions_layout.addWidget(button)
        layout.addLayout(actions_layout)

        # Configuration fields
        form = QFormLayout()
        self.gray_spin = QSpinBox()
        self.gray_spin.setRange(1, 254)
        self.gray_spin.setValue(int(configuration.gray_threshold))
        self.gray_spin.valueChanged.connect(self.gray_threshold_changed.emit)
        form.addRow("Gray threshold:", self.gray_spin)

        self.dp_spin = QSpinBox()
        self.dp_spin.setRange(1, 254)
        self.dp_spin.setValue(int(configuration.decimal_point_flood_fill_threshold))
        self.dp_spin.valueChanged.connect(self.dp_threshold_changed.emit)
        form.addRow("Decimal point threshold:", self.dp_spin)

        self.rotate_check = QCheckBox("Rotate 180°")
        self.rotate_check.setChecked(configuration.rotate180)
        self.rotate_check.toggled.connect(self.rotate180_toggled.emit)
        form.addRow("", self.rotate_check)
        layout.addLayout(form)

        # Info labels
        self.source_label = QLabel("Source: --")
        self.fps_label = QLabel("FPS:    --")
        info_font = QFont()
        info_font.setPointSize(9)
        for label in [self.source_label, self.fps_label]:
            label.setFont(info_font)
            layout.addWidget(label)

        # Stable output history (newest first)
        layout.addWidget(QLabel("History:"))
        self.history_list = QListWidget()
        self.history_list.setFont(QFont("Courier New", 11))
        layout.addWidget(self.history_list, 1)

        # Apply styling
        self._apply_styles()

    def _apply_styles(self):
        """Apply clean, minimal styling to the window."""
        style = """
            QMainWindow {
                background-color: #f5f5f5;
            }
            QPushButton {
                background-color: #4CAF50;
                color: white;
                border: none;
                border-radius: 5px;
                padding: 10px;
            }
            QPushButton:hover {
                background-color: #45a049;
            }
            QPushButton:pressed {
                background-color: #3d8b40;
            }
            QPushButton:disabled {
                background-color: #cccccc;
                color: #666666;
            }
            QLabel {
                color: #333333;
            }
        """
        self.setStyleSheet(style)

    def _on_calibrate_clicked(self):
        """Handle calibration capture button click."""
        self.calibrate_requested.emit()

    def set_calibration_progress(self, frames_held: int):
        """Track how many calibration frames the reader holds."""
        self._frames_held = frames_held
        self._update_calibrate_button()

    def _update_calibrate_button(self):
        if self._calibrated:
            self.calibrate_button.setText("RECALIBRATE")
        elif self._frames_held == 1:
            self.calibrate_button.setText("CAPTURE DARK FRAME")
        else:
            self.calibrate_button.setText("CAPTURE LIT FRAME")

    def set_status(self, status: str):
        """
        Update the status label.

        Args:
            status: Status text to display (e.g., "Calibrated", "Error: message")
        """
        self.status_label.setText(f"Status: {status}")

        # Color coding for different statuses
        lowered = status.lower()
        if lowered.startswith("error") or "expected" in lowered:
            self.status_label.setStyleSheet("color: #d32f2f;")
        elif lowered == "calibrated":
            self.status_label.setStyleSheet("color: #4CAF50;")
        else:
            self.status_label.setStyleSheet("color: #333333;")

    def set_value(self, value: str):
        """Show the latest decoded text."""
        self.output_label.setText(value)

    def add_history(self, value: str):
        """Prepend a stable output to the history list."""
        self.history_list.insertItem(0, value)
        while self.history_list.count() > MAX_HISTORY:
            self.history_list.takeItem(self.history_list.count() - 1)

    def set_source_info(self, info: str):
        self.source_label.setText(f"Source: {info}")

    def set_fps_info(self, current: float, cap: float):
        """
        Update the FPS label.

        Args:
            current: Current FPS value
            cap: FPS cap value
        """
        self.fps_label.setText(f"FPS:    {current:.1f} (cap: {int(cap)})")

    def set_calibrated(self, calibrated: bool):
        """
        Toggle the calibration-dependent controls.

        Args:
            calibrated: True after a successful calibration, False after reset
        """
        self._calibrated = calibrated
        if not calibrated:
            self._frames_held = 0
        self.refine_button.setEnabled(calibrated)
        self._update_calibrate_button()
        if not calibrated:
            self.output_label.setText("------")
            self.fps_label.setText("FPS:    --")

    def closeEvent(self, event):
        """
        Handle window close event.

        Emits shutdown_requested signal before closing to allow
        graceful cleanup of worker threads.

        Args:
            event: QCloseEvent object
        """
        self.shutdown_requested.emit()
        event.accept()
