"""
Calibration curves: built-in presets, interpolation, storage and snapshots.
"""

from .mapper import map_hue_to_ph, HueToPhMapper, InterpolationPolicy, NEUTRAL_PH
from .presets import DEFAULT_CALIBRATION, PRESET_ASSETS, default_curve
from .snapshot import export_snapshot, parse_snapshot, curve_to_csv, EXPORT_FILENAME
from .store import CalibrationService

__all__ = [
    'map_hue_to_ph',
    'HueToPhMapper',
    'InterpolationPolicy',
    'NEUTRAL_PH',
    'DEFAULT_CALIBRATION',
    'PRESET_ASSETS',
    'default_curve',
    'export_snapshot',
    'parse_snapshot',
    'curve_to_csv',
    'EXPORT_FILENAME',
    'CalibrationService',
]
