from PyQt6.QtWidgets import QApplication, QMainWindow, QTabWidget
from PyQt6.QtGui import QPalette, QColor
import argparse
import logging
import sys

from colorimetry import EstimationConfig, build_session
from colorimetry.data import OpenCVFrameSource, FileKeyValueStore
from qt_app.views.estimate_view import EstimateView
from qt_app.views.calibration_view import CalibrationView

logger = logging.getLogger(__name__)


class MainWindow(QMainWindow):
    def __init__(self, config: EstimationConfig, device_id: int = 0) -> None:
        super().__init__()
        self.setWindowTitle("pH Colorimeter")
        self.resize(1280, 800)

        self.source = OpenCVFrameSource(device_id=device_id)
        self.session = build_session(self.source, storage=FileKeyValueStore(), config=config)

        self.tabs = QTabWidget()
        self.tabs.setTabPosition(QTabWidget.TabPosition.North)
        self.tabs.setDocumentMode(True)

        self.estimate_widget = EstimateView(self.session, self.source, self)
        self.estimate_widget.setToolTip("Live pH estimate from the centered region of the camera feed")
        self.tabs.addTab(self.estimate_widget, "Estimate")

        self.calib_widget = CalibrationView(self.session.calibration, self)
        self.calib_widget.setToolTip("Choose the calibration curve and manage captured points")
        self.tabs.addTab(self.calib_widget, "Calibration")

        # Captures change the manual curve shown on the calibration tab
        self.estimate_widget.calibration_changed.connect(self.calib_widget.refresh)
        self.tabs.currentChanged.connect(self.on_tab_changed)

        self.setCentralWidget(self.tabs)

    def on_tab_changed(self, index: int) -> None:
        if self.tabs.widget(index) is self.calib_widget:
            self.calib_widget.refresh()
        else:
            self.estimate_widget.refresh_mode_label()

    def closeEvent(self, event):
        self.estimate_widget.stop_camera()
        super().closeEvent(event)


def setup_theme(app: QApplication) -> None:
    """Setup light-only theme"""
    app.setStyle("Fusion")
    light_palette = QPalette()
    light_palette.setColor(QPalette.ColorRole.Window, QColor(248, 249, 250))
    light_palette.setColor(QPalette.ColorRole.WindowText, QColor(33, 37, 41))
    light_palette.setColor(QPalette.ColorRole.Base, QColor(255, 255, 255))
    light_palette.setColor(QPalette.ColorRole.Button, QColor(233, 236, 239))
    light_palette.setColor(QPalette.ColorRole.ButtonText, QColor(33, 37, 41))
    light_palette.setColor(QPalette.ColorRole.Highlight, QColor(0, 123, 255))
    light_palette.setColor(QPalette.ColorRole.HighlightedText, QColor(255, 255, 255))
    app.setPalette(light_palette)


def main() -> None:
    parser = argparse.ArgumentParser(description="Live pH estimation from a camera feed")
    parser.add_argument("--device", type=int, default=0, help="Camera device ID")
    parser.add_argument("--config", help="JSON file with engine configuration")
    args, qt_args = parser.parse_known_args()

    logging.basicConfig(level=logging.INFO, format='%(asctime)s [%(levelname)s] %(message)s')

    config = EstimationConfig.from_json_file(args.config) if args.config else EstimationConfig()

    app = QApplication([sys.argv[0], *qt_args])
    app.setApplicationName("pH Colorimeter")
    setup_theme(app)

    window = MainWindow(config, device_id=args.device)
    window.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
