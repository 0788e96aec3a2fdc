"""
Calibration Management View for Qt Application
Select the active curve and manage user-captured calibration points
"""

import logging
from pathlib import Path

from PyQt6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QLabel, QPushButton, QGroupBox,
    QComboBox, QMessageBox, QTableWidget, QTableWidgetItem, QHeaderView, QFileDialog
)

from colorimetry.core.data_structures import MANUAL_SOURCE
from colorimetry.core.exceptions import SnapshotParseError, StorageError
from colorimetry.curves import CalibrationService, EXPORT_FILENAME, curve_to_csv

logger = logging.getLogger(__name__)


class CalibrationView(QWidget):
    """Active-mode selection, manual point table, import and export."""

    def __init__(self, calibration: CalibrationService, parent=None):
        super().__init__(parent)
        self.calibration = calibration
        self.init_ui()
        self.refresh()

    def init_ui(self):
        """Initialize the user interface."""
        layout = QVBoxLayout(self)
        layout.setContentsMargins(30, 20, 30, 20)
        layout.setSpacing(15)

        title = QLabel("Calibration")
        title.setProperty("class", "title")
        layout.addWidget(title)

        # Mode selection
        mode_group = QGroupBox("Active Calibration")
        mode_layout = QHBoxLayout()
        self.source_combo = QComboBox()
        self.source_combo.addItems(self.calibration.sources())
        mode_layout.addWidget(self.source_combo)
        use_btn = QPushButton("Use")
        use_btn.clicked.connect(self.on_use_source)
        mode_layout.addWidget(use_btn)
        self.active_label = QLabel()
        mode_layout.addWidget(self.active_label)
        mode_layout.addStretch()
        mode_group.setLayout(mode_layout)
        layout.addWidget(mode_group)

        # Manual points
        points_group = QGroupBox("Manual Calibration Points")
        points_layout = QVBoxLayout()

        self.points_table = QTableWidget(0, 3)
        self.points_table.setHorizontalHeaderLabels(["pH", "Hue (deg)", ""])
        self.points_table.horizontalHeader().setSectionResizeMode(QHeaderView.ResizeMode.Stretch)
        points_layout.addWidget(self.points_table)

        buttons = QHBoxLayout()
        for text, handler, tip in [
            ("Reset", self.on_reset, "Clear all manual calibration points"),
            ("Save", self.on_save, "Write manual points to local storage"),
            ("Load", self.on_load, "Reload manual points from local storage"),
            ("Export JSON", self.on_export, "Save manual points to a calibration file"),
            ("Export CSV", self.on_export_csv, "Save the point table as CSV"),
            ("Import", self.on_import, "Replace manual points from a calibration file"),
        ]:
            btn = QPushButton(text)
            btn.setToolTip(tip)
            btn.clicked.connect(handler)
            buttons.addWidget(btn)
        points_layout.addLayout(buttons)

        points_group.setLayout(points_layout)
        layout.addWidget(points_group)

        self.status_label = QLabel()
        self.status_label.setProperty("class", "status")
        layout.addWidget(self.status_label)

    def refresh(self):
        """Update the point table and the active-mode label."""
        curve = self.calibration.manual_curve
        self.points_table.setRowCount(len(curve))

        # Table rows follow insertion order so the remove button maps to the index
        for i, point in enumerate(curve.points):
            self.points_table.setItem(i, 0, QTableWidgetItem(f"{point.ph:.2f}"))
            self.points_table.setItem(i, 1, QTableWidgetItem(f"{point.hue_deg:.2f}"))
            delete_btn = QPushButton("Remove")
            delete_btn.clicked.connect(lambda checked, idx=i: self.remove_point(idx))
            self.points_table.setCellWidget(i, 2, delete_btn)

        self.active_label.setText(f"Active: {self.calibration.active_mode.title()}")

    def on_use_source(self):
        requested = self.source_combo.currentText()
        applied = self.calibration.set_mode(requested)
        if applied != requested:
            QMessageBox.information(
                self, "Not Enough Points",
                f"'{requested}' needs at least 2 points. Using '{applied}' instead."
            )
        self.refresh()

    def remove_point(self, index):
        try:
            removed = self.calibration.remove_manual_point(index)
        except (IndexError, StorageError) as e:
            QMessageBox.warning(self, "Remove Failed", str(e))
            return
        self.status_label.setText(f"Removed pH {removed.ph:.2f} at hue {removed.hue_deg:.1f} deg")
        self.refresh()

    def on_reset(self):
        reply = QMessageBox.question(
            self, "Reset Calibration", "Clear all manual calibration points?",
            QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No,
            QMessageBox.StandardButton.No
        )
        if reply != QMessageBox.StandardButton.Yes:
            return
        try:
            self.calibration.reset_manual()
        except StorageError as e:
            QMessageBox.critical(self, "Reset Failed", str(e))
            return
        self.refresh()

    def on_save(self):
        try:
            self.calibration.persist()
        except StorageError as e:
            QMessageBox.critical(self, "Save Failed", f"Failed to save calibration:\n{e}")
            return
        self.status_label.setText("Saved to local storage.")

    def on_load(self):
        self.calibration.reload_manual()
        self.refresh()

    def on_export(self):
        filename, _ = QFileDialog.getSaveFileName(
            self, "Export Calibration", EXPORT_FILENAME, "JSON files (*.json)"
        )
        if not filename:
            return
        try:
            Path(filename).write_bytes(self.calibration.export_snapshot())
        except OSError as e:
            QMessageBox.critical(self, "Export Failed", str(e))
            return
        self.status_label.setText(f"Exported to {filename}")

    def on_export_csv(self):
        filename, _ = QFileDialog.getSaveFileName(
            self, "Export Point Table", "ph_manual_calibration.csv", "CSV files (*.csv)"
        )
        if not filename:
            return
        try:
            Path(filename).write_text(curve_to_csv(self.calibration.manual_curve), encoding='utf-8')
        except OSError as e:
            QMessageBox.critical(self, "Export Failed", str(e))
            return
        self.status_label.setText(f"Exported to {filename}")

    def on_import(self):
        filename, _ = QFileDialog.getOpenFileName(
            self, "Import Calibration", "", "JSON files (*.json);;All files (*)"
        )
        if not filename:
            return
        try:
            curve = self.calibration.import_snapshot(Path(filename).read_bytes())
        except (OSError, SnapshotParseError, StorageError) as e:
            logger.warning("Import of %s failed: %s", filename, e)
            QMessageBox.critical(self, "Import Failed", f"Import failed: {e}")
            return
        self.status_label.setText(f"Imported {len(curve)} points")
        if self.calibration.active_mode != MANUAL_SOURCE:
            self.status_label.setText(f"Imported {len(curve)} points (too few for manual mode)")
        self.refresh()
