"""
Built-in calibration curves.
"""

from typing import Dict, List

from ..core.data_structures import CalibrationCurve, CalibrationPoint, DEFAULT_SOURCE


# Universal indicator: hue (deg) -> pH
DEFAULT_CALIBRATION: List[Dict[str, float]] = [
    {'hue': 0, 'pH': 1},     # red
    {'hue': 20, 'pH': 4},    # orange
    {'hue': 50, 'pH': 6},    # yellow
    {'hue': 110, 'pH': 7},   # green
    {'hue': 170, 'pH': 9},   # blue-green
    {'hue': 210, 'pH': 11},  # blue
    {'hue': 280, 'pH': 14},  # violet
]

# Named presets shipped as JSON assets in colorimetry/assets/
PRESET_ASSETS = ('red_cabbage',)


def default_curve() -> CalibrationCurve:
    return CalibrationCurve(
        source=DEFAULT_SOURCE,
        points=tuple(CalibrationPoint(hue_deg=p['hue'], ph=p['pH']) for p in DEFAULT_CALIBRATION),
    )
