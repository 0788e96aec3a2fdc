"""
Live pH Estimation View for Qt Application
Samples a centered region of the camera feed and maps its hue to pH
"""

import logging

from PyQt6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QLabel, QPushButton, QGroupBox,
    QCheckBox, QSpinBox, QDoubleSpinBox, QGridLayout, QMessageBox, QProgressBar
)
from PyQt6.QtCore import Qt, QTimer, pyqtSignal
from PyQt6.QtGui import QImage, QPixmap

from colorimetry.core.exceptions import ValidationError, StorageError
from colorimetry.data.frame_source import OpenCVFrameSource, draw_roi
from colorimetry.session import EstimationSession, SessionState
from qt_app.camera_thread import CameraThread

logger = logging.getLogger(__name__)


class EstimateView(QWidget):
    """Camera preview, live pH readout and calibration capture."""

    calibration_changed = pyqtSignal()

    def __init__(self, session: EstimationSession, source: OpenCVFrameSource, parent=None):
        super().__init__(parent)
        self.session = session
        self.source = source
        self.camera_thread = None
        self.update_interval = 33  # ms between ticks (~30 fps)

        self.init_ui()

        # Tick timer: every tick runs on the GUI thread, one at a time
        self.update_timer = QTimer()
        self.update_timer.timeout.connect(self.on_tick)

    def init_ui(self):
        """Initialize the user interface."""
        layout = QVBoxLayout(self)
        layout.setContentsMargins(30, 20, 30, 20)
        layout.setSpacing(15)

        title = QLabel("Live pH Estimation")
        title.setProperty("class", "title")
        layout.addWidget(title)

        self.status_label = QLabel("Ready | Camera not started")
        self.status_label.setProperty("class", "status")
        layout.addWidget(self.status_label)

        main_content = QHBoxLayout()

        # Left: preview
        preview_group = QGroupBox("Camera Feed")
        preview_layout = QVBoxLayout()
        self.camera_label = QLabel("Camera not started\n\nClick 'Start Camera' to begin")
        self.camera_label.setMinimumSize(640, 360)
        self.camera_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.camera_label.setStyleSheet("background-color: #1a1a1a; color: #ffffff; border-radius: 8px;")
        preview_layout.addWidget(self.camera_label)
        preview_group.setLayout(preview_layout)
        main_content.addWidget(preview_group, stretch=2)

        # Right: readout and controls
        right_column = QVBoxLayout()
        right_column.addWidget(self.create_result_section())
        right_column.addWidget(self.create_camera_controls())
        right_column.addWidget(self.create_capture_section())
        right_column.addStretch()
        main_content.addLayout(right_column, stretch=1)

        layout.addLayout(main_content)

    def create_result_section(self):
        """Create pH readout section."""
        group = QGroupBox("Result")
        layout = QVBoxLayout()

        self.result_label = QLabel("pH: --")
        self.result_label.setStyleSheet("font-size: 28pt; font-weight: 600;")
        layout.addWidget(self.result_label)

        self.debug_label = QLabel("Hue: --")
        layout.addWidget(self.debug_label)

        # pH bar: 1..14 scaled by 100
        self.ph_bar = QProgressBar()
        self.ph_bar.setRange(100, 1400)
        self.ph_bar.setTextVisible(False)
        self.ph_bar.setStyleSheet(
            "QProgressBar::chunk { background: qlineargradient(x1:0, y1:0, x2:1, y2:0, "
            "stop:0 #e53935, stop:0.3 #fb8c00, stop:0.45 #fdd835, stop:0.5 #43a047, "
            "stop:0.7 #00897b, stop:0.8 #1e88e5, stop:1 #8e24aa); }"
        )
        layout.addWidget(self.ph_bar)

        self.mode_label = QLabel()
        layout.addWidget(self.mode_label)
        self.refresh_mode_label()

        group.setLayout(layout)
        return group

    def create_camera_controls(self):
        """Create camera and ROI control section."""
        group = QGroupBox("Camera Controls")
        layout = QGridLayout()
        layout.setSpacing(10)

        self.start_btn = QPushButton("Start Camera")
        self.start_btn.setMinimumHeight(40)
        self.start_btn.clicked.connect(self.toggle_camera)
        layout.addWidget(self.start_btn, 0, 0, 1, 3)

        layout.addWidget(QLabel("Camera Device:"), 1, 0)
        self.device_spin = QSpinBox()
        self.device_spin.setRange(0, 10)
        self.device_spin.setValue(self.source.device_id)
        layout.addWidget(self.device_spin, 1, 1, 1, 2)

        layout.addWidget(QLabel("ROI:"), 2, 0)
        self.smaller_btn = QPushButton("-")
        self.smaller_btn.clicked.connect(self.on_roi_smaller)
        self.bigger_btn = QPushButton("+")
        self.bigger_btn.clicked.connect(self.on_roi_bigger)
        self.roi_label = QLabel()
        roi_layout = QHBoxLayout()
        roi_layout.addWidget(self.smaller_btn)
        roi_layout.addWidget(self.roi_label)
        roi_layout.addWidget(self.bigger_btn)
        layout.addLayout(roi_layout, 2, 1, 1, 2)
        self.refresh_roi_label()

        self.pause_btn = QPushButton("Pause")
        self.pause_btn.setEnabled(False)
        self.pause_btn.clicked.connect(self.on_pause_toggled)
        layout.addWidget(self.pause_btn, 3, 0, 1, 2)

        self.wb_check = QCheckBox("White balance")
        self.wb_check.setChecked(self.session.white_balance)
        self.wb_check.setToolTip("Gray-world white balance on the ROI before sampling")
        self.wb_check.stateChanged.connect(self.on_wb_changed)
        layout.addWidget(self.wb_check, 3, 2)

        group.setLayout(layout)
        return group

    def create_capture_section(self):
        """Create calibration capture section."""
        group = QGroupBox("Capture Calibration Point")
        layout = QHBoxLayout()

        layout.addWidget(QLabel("Known pH:"))
        self.ph_spin = QDoubleSpinBox()
        self.ph_spin.setRange(0.0, 15.0)
        self.ph_spin.setDecimals(2)
        self.ph_spin.setSingleStep(0.1)
        self.ph_spin.setValue(7.0)
        layout.addWidget(self.ph_spin)

        self.capture_btn = QPushButton("Capture")
        self.capture_btn.setToolTip("Pair the current ROI hue with the known pH")
        self.capture_btn.clicked.connect(self.on_capture)
        layout.addWidget(self.capture_btn)

        group.setLayout(layout)
        return group

    # ------------------------------------------------------------------
    # Camera
    # ------------------------------------------------------------------

    def toggle_camera(self):
        """Start or stop the camera."""
        if self.camera_thread is None or not self.camera_thread.isRunning():
            self.start_camera()
        else:
            self.stop_camera()

    def start_camera(self):
        """Start camera capture and the tick loop."""
        self.source.device_id = self.device_spin.value()
        self.camera_thread = CameraThread(self.source)
        self.camera_thread.error_occurred.connect(self.on_camera_error)
        self.camera_thread.start()

        if self.session.state is SessionState.PAUSED:
            self.session.toggle()
        self.session.start()
        self.update_timer.start(self.update_interval)

        self.start_btn.setText("Stop Camera")
        self.pause_btn.setEnabled(True)
        self.pause_btn.setText("Pause")
        self.device_spin.setEnabled(False)
        self.status_label.setText("Camera starting...")

    def stop_camera(self):
        """Stop camera capture."""
        self.update_timer.stop()
        if self.camera_thread:
            self.camera_thread.stop()
            self.camera_thread = None

        self.start_btn.setText("Start Camera")
        self.pause_btn.setEnabled(False)
        self.device_spin.setEnabled(True)
        self.camera_label.setText("Camera stopped")
        self.status_label.setText("Camera stopped")

    def on_camera_error(self, error_msg):
        """Handle camera errors."""
        logger.error("Camera error: %s", error_msg)
        self.stop_camera()
        QMessageBox.critical(self, "Camera Error", error_msg)

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def on_tick(self):
        """Run one estimation tick and refresh the preview."""
        if not self.source.has_frame:
            return

        result = self.session.tick()
        if result is not None:
            self.show_result(result)
            w, h = self.source.frame_size()
            self.status_label.setText(f"Running | Frame: {w}x{h}")
        self.display_camera_frame()

    def show_result(self, result):
        self.result_label.setText(result.summary_string())
        self.debug_label.setText(result.debug_string())
        if result.is_conclusive:
            self.ph_bar.setValue(int(round(result.ph * 100)))
        self.refresh_mode_label()

    def display_camera_frame(self):
        """Display the current frame with the ROI box overlay."""
        frame = self.source.current_frame()
        if frame is None:
            return
        frame = draw_roi(frame, self.session.current_roi(), color=(0, 255, 0, 255))

        h, w, ch = frame.shape
        qt_image = QImage(frame.data, w, h, ch * w, QImage.Format.Format_RGBA8888)
        pixmap = QPixmap.fromImage(qt_image)
        self.camera_label.setPixmap(pixmap.scaled(
            self.camera_label.size(),
            Qt.AspectRatioMode.KeepAspectRatio,
            Qt.TransformationMode.SmoothTransformation
        ))

    # ------------------------------------------------------------------
    # Controls
    # ------------------------------------------------------------------

    def refresh_roi_label(self):
        size = self.session.roi_size
        self.roi_label.setText(f"{size}x{size}")

    def refresh_mode_label(self):
        self.mode_label.setText(f"Active: {self.session.calibration.active_mode.title()}")

    def on_roi_smaller(self):
        self.session.shrink_roi()
        self.refresh_roi_label()

    def on_roi_bigger(self):
        self.session.grow_roi()
        self.refresh_roi_label()

    def on_pause_toggled(self):
        state = self.session.toggle()
        self.pause_btn.setText("Resume" if state is SessionState.PAUSED else "Pause")

    def on_wb_changed(self, state):
        self.session.white_balance = self.wb_check.isChecked()

    def on_capture(self):
        """Capture the current ROI hue as a manual calibration point."""
        try:
            point = self.session.capture_calibration_point(self.ph_spin.value())
        except ValidationError as e:
            QMessageBox.warning(self, "Capture Rejected", str(e))
            return
        except StorageError as e:
            QMessageBox.critical(self, "Save Failed", f"Failed to save calibration:\n{e}")
            return

        self.status_label.setText(f"Captured pH {point.ph:.2f} at hue {point.hue_deg:.1f} deg")
        self.refresh_mode_label()
        self.calibration_changed.emit()

    def closeEvent(self, event):
        self.stop_camera()
        super().closeEvent(event)
