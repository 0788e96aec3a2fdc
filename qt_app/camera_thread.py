"""
Camera capture thread for live pH estimation.
Reads frames in a separate thread so the UI never blocks on the device.
"""

import logging

from PyQt6.QtCore import QThread, pyqtSignal

from colorimetry.data.frame_source import OpenCVFrameSource

logger = logging.getLogger(__name__)


class CameraThread(QThread):
    """Thread that keeps an OpenCVFrameSource filled with the latest frame."""

    # Signals
    frame_ready = pyqtSignal()  # A new frame is available in the source
    error_occurred = pyqtSignal(str)  # Emits error messages

    def __init__(self, source: OpenCVFrameSource):
        super().__init__()
        self.source = source
        self.running = False

    def run(self):
        """Main thread loop for capturing frames."""
        if not self.source.open():
            self.error_occurred.emit(f"Failed to open camera device {self.source.device_id}")
            return

        self.running = True
        while self.running:
            if not self.source.refresh():
                self.error_occurred.emit("Failed to read frame")
                break
            self.frame_ready.emit()

            # Small delay to prevent excessive CPU usage
            self.msleep(10)

        self.running = False
        self.source.release()

    def stop(self):
        """Stop the capture thread."""
        self.running = False
        self.wait()  # Wait for thread to finish
