"""
Colorimetry engine for camera-based pH estimation.

Samples a region of a video frame, reduces it to a dominant hue and maps
that hue to pH through a calibration curve.
"""

import logging

from .core import (
    EstimationConfig, CalibrationPoint, CalibrationCurve, EstimationResult, HueEstimate,
    ColorimetryError, ValidationError, SnapshotParseError, StorageError,
)
from .curves import CalibrationService, map_hue_to_ph, InterpolationPolicy, PRESET_ASSETS
from .data import (
    ArrayFrameSource, OpenCVFrameSource, FileKeyValueStore, MemoryKeyValueStore,
    JsonAssetSource, load_calibration_assets,
)
from .sampling import ColorSampler, sample_hue, circular_mean_deg
from .session import EstimationSession, SessionState

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = '0.1.0'


def build_session(frame_source, storage=None, config=None, asset_source=None, presets=PRESET_ASSETS):
    """
    Wire a calibration service and estimation session with bundled assets.

    Args:
        frame_source: Where ROI pixels come from
        storage: Key-value store for the manual curve (file store by default)
        config: Engine configuration
        asset_source: Calibration asset source (bundled JSON assets by default)
        presets: Preset curve names to load besides ``default``

    Returns:
        EstimationSession ready to ``start()``
    """
    config = config or EstimationConfig()
    config.validate()
    service = CalibrationService(
        storage if storage is not None else FileKeyValueStore(),
        config=config,
        presets=presets,
    )
    load_calibration_assets(service, asset_source or JsonAssetSource(), ['default', *presets])
    return EstimationSession(frame_source, service, config)


__all__ = [
    'EstimationConfig',
    'CalibrationPoint',
    'CalibrationCurve',
    'EstimationResult',
    'HueEstimate',
    'ColorimetryError',
    'ValidationError',
    'SnapshotParseError',
    'StorageError',
    'CalibrationService',
    'map_hue_to_ph',
    'InterpolationPolicy',
    'ArrayFrameSource',
    'OpenCVFrameSource',
    'FileKeyValueStore',
    'MemoryKeyValueStore',
    'JsonAssetSource',
    'load_calibration_assets',
    'ColorSampler',
    'sample_hue',
    'circular_mean_deg',
    'EstimationSession',
    'SessionState',
    'build_session',
]
