"""
Data module: frame sources, durable storage and calibration assets.
"""

from .asset_loader import JsonAssetSource, DictAssetSource, load_calibration_assets, BUNDLED_ASSET_DIR
from .frame_source import ArrayFrameSource, OpenCVFrameSource, centered_roi, clamp_roi_size, draw_roi
from .storage import MemoryKeyValueStore, FileKeyValueStore

__all__ = [
    'JsonAssetSource',
    'DictAssetSource',
    'load_calibration_assets',
    'BUNDLED_ASSET_DIR',
    'ArrayFrameSource',
    'OpenCVFrameSource',
    'centered_roi',
    'clamp_roi_size',
    'draw_roi',
    'MemoryKeyValueStore',
    'FileKeyValueStore',
]
