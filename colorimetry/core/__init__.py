"""
Core module for the colorimetry engine.

This module provides data structures, configuration, interfaces and
exceptions shared by the sampler, the calibration store and the session.
"""

from .angles import normalize_hue, hue_distance, signed_arc
from .config import EstimationConfig, DEFAULT_CONFIG
from .data_structures import (
    HueEstimate, CalibrationPoint, CalibrationCurve, EstimationResult,
    DEFAULT_SOURCE, MANUAL_SOURCE, PH_MIN, PH_MAX,
)
from .exceptions import (
    ColorimetryError, DataValidationError, ValidationError, SnapshotParseError,
    AssetLoadError, StorageError, FrameSourceError, ConfigurationError,
    UnknownCurveError,
)
from .interfaces import IFrameSource, IKeyValueStore, ICalibrationAssetSource

__all__ = [
    'normalize_hue',
    'hue_distance',
    'signed_arc',
    'EstimationConfig',
    'DEFAULT_CONFIG',
    'HueEstimate',
    'CalibrationPoint',
    'CalibrationCurve',
    'EstimationResult',
    'DEFAULT_SOURCE',
    'MANUAL_SOURCE',
    'PH_MIN',
    'PH_MAX',
    'ColorimetryError',
    'DataValidationError',
    'ValidationError',
    'SnapshotParseError',
    'AssetLoadError',
    'StorageError',
    'FrameSourceError',
    'ConfigurationError',
    'UnknownCurveError',
    'IFrameSource',
    'IKeyValueStore',
    'ICalibrationAssetSource',
]
